from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from google import genai
from google.genai import types as genai_types
from openai import AsyncOpenAI

from .config import (
    AGENT_LLM_PROVIDER,
    GEMINI_API_KEY,
    INTENT_MAX_COMPLETION_TOKENS,
    INTENT_MODEL,
    LLM_DEBUG,
    OPENAI_API_KEY,
    OPENAI_INTENT_MODEL,
    OPENAI_REASONING_EFFORT,
)
from .utils import _log_debug, normalize_text, now_in_timezone
from .agent.schemas import IntentOutput, no_confident_intent

logger = logging.getLogger(__name__)

IntentOracle = Callable[[str, Optional[str]], Awaitable[IntentOutput]]

async_client: Optional[AsyncOpenAI] = AsyncOpenAI(api_key=OPENAI_API_KEY) if OPENAI_API_KEY else None
_gemini_client: Any = None


def get_async_client() -> AsyncOpenAI:
  if async_client is None:
    raise RuntimeError("OPENAI_API_KEY is not set")
  return async_client


def get_gemini_client() -> Any:
  global _gemini_client
  if not GEMINI_API_KEY:
    raise RuntimeError("GEMINI_API_KEY is not set")
  if _gemini_client is None:
    _gemini_client = genai.Client(api_key=GEMINI_API_KEY)
  return _gemini_client


# -------------------------
# LLM 프롬프트
# -------------------------
INTENT_PROMPT_TEMPLATE = """You are an intent extraction engine.

Return ONLY valid JSON.
No markdown. No commentary.

Today is {weekday}, {today} ({timezone}).

IMPORTANT:
- Use ONLY the field names defined below
- DO NOT invent new field names
- Map user language to these exact keys

Schema:
{{
  "intent": "getSchedule" | "addActivity" | "updateActivity" | "deleteActivity" | "findHackathons" | null,
  "arguments": {{ ... }} OR [ {{ ... }}, {{ ... }} ],
  "confidence": number
}}

Mapping rules:
- "activity", "task", "event" -> title
- "time", "at", "starts" -> startTime
- "ends", "until" -> endTime
- "for X minutes/hours" -> duration (e.g. "30 mins", "2 hours")
- "with tags X, Y" or "tagged as X" -> tags (array of strings)
- "on Mondays", "every Tuesday", "weekdays", "daily" -> days (array of weekday names, e.g. ["Monday", "Tuesday"])
- Relative day words ("tomorrow", "next Friday") -> the weekday name they fall on, counted from today
- Updating or deleting an existing activity needs its numeric id -> id
- Hackathon searches -> query

MULTIPLE TASKS:
If the user wants to add multiple activities (e.g. "Swim at 10pm AND Read at 8am"),
set "intent" to "addActivity" and make "arguments" an ARRAY of objects.
Example: "arguments": [{{ "title": "Swim", "time": "10pm" }}, {{ "title": "Read", "time": "8am", "tags": ["study"] }}]

Rules:
- If required fields are missing, still return best guess
- confidence must be between 0 and 1
"""


def build_intent_prompt(time_zone: Optional[str] = None) -> str:
  now = now_in_timezone(time_zone)
  return INTENT_PROMPT_TEMPLATE.format(
      weekday=now.strftime("%A"),
      today=now.strftime("%Y-%m-%d"),
      timezone=str(now.tzinfo),
  )


def _provider_for_model(model: str) -> str:
  if AGENT_LLM_PROVIDER in ("openai", "gemini"):
    return AGENT_LLM_PROVIDER
  model_name = str(model or "").strip().lower()
  if model_name.startswith("gemini") or model_name.startswith("models/gemini"):
    return "gemini"
  return "openai"


def _canonical_gemini_model(model: str) -> str:
  model_name = str(model or "").strip()
  if not model_name:
    return "models/gemini-flash-latest"
  if model_name.startswith("models/"):
    return model_name
  return f"models/{model_name}"


def _clean_json_text(text: str) -> str:
  cleaned = (text or "").strip()
  if cleaned.startswith("```"):
    cleaned = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", cleaned).strip()
    cleaned = re.sub(r"\s*```$", "", cleaned).strip()
  # fences in the middle of a chatty reply
  cleaned = cleaned.replace("```json", "").replace("```", "")
  return cleaned.strip()


def parse_intent_text(raw_output: str) -> IntentOutput:
  """Raw oracle text -> IntentOutput; anything unparseable means "no confident intent"."""
  if not raw_output or not isinstance(raw_output, str):
    return no_confident_intent()
  candidates: List[str] = [raw_output, _clean_json_text(raw_output)]
  cleaned = candidates[-1]
  left = cleaned.find("{")
  right = cleaned.rfind("}")
  if left != -1 and right != -1 and right > left:
    candidates.append(cleaned[left:right + 1])
  seen = set()
  for candidate in candidates:
    text = (candidate or "").strip()
    if not text or text in seen:
      continue
    seen.add(text)
    try:
      data = json.loads(text)
    except ValueError:
      continue
    if not isinstance(data, dict):
      continue
    try:
      return IntentOutput.model_validate(data)
    except Exception:
      continue
  logger.warning("Intent JSON parse failed: %s", raw_output[:500])
  return no_confident_intent()


def _debug_print(provider: str, model: str, user_text: str, raw_output: str,
                 latency_ms: float) -> None:
  if not LLM_DEBUG:
    return
  _log_debug(f"[LLM DEBUG] provider={provider} model={model} latency={latency_ms:.0f}ms")
  _log_debug(f"[LLM DEBUG] user: {user_text}")
  _log_debug(f"[LLM DEBUG] raw: {raw_output if raw_output else '(empty)'}")


def _gemini_text_from_response(response: Any) -> str:
  text = getattr(response, "text", None)
  if isinstance(text, str):
    return text.strip()
  return ""


def _gemini_complete_sync(model: str, prompt: str) -> str:
  client = get_gemini_client()
  config = genai_types.GenerateContentConfig(
      response_mime_type="application/json",
      max_output_tokens=INTENT_MAX_COMPLETION_TOKENS,
  )
  response = client.models.generate_content(
      model=_canonical_gemini_model(model),
      contents=prompt,
      config=config,
  )
  return _gemini_text_from_response(response)


async def _openai_complete(model: str, system_prompt: str, user_text: str) -> str:
  c = get_async_client()
  kwargs: Dict[str, Any] = {}
  if OPENAI_REASONING_EFFORT:
    kwargs["reasoning_effort"] = OPENAI_REASONING_EFFORT
  completion = await c.chat.completions.create(
      model=model,
      messages=[
          {
              "role": "system",
              "content": system_prompt
          },
          {
              "role": "user",
              "content": user_text
          },
      ],
      max_completion_tokens=INTENT_MAX_COMPLETION_TOKENS,
      response_format={"type": "json_object"},
      **kwargs,
  )
  content = completion.choices[0].message.content
  return content if isinstance(content, str) else ""


async def extract_intent(message: str, time_zone: Optional[str] = None) -> IntentOutput:
  """Ask the language model what the chat message wants.

  Provider errors and malformed output both degrade to
  ``IntentOutput(intent=None, arguments={}, confidence=0)``.
  """
  text = normalize_text(message)
  if not text:
    return no_confident_intent()

  system_prompt = build_intent_prompt(time_zone)
  provider = _provider_for_model(INTENT_MODEL)
  model = INTENT_MODEL
  if provider == "openai" and INTENT_MODEL.lower().startswith(("gemini", "models/gemini")):
    model = OPENAI_INTENT_MODEL
  started = time.perf_counter()
  try:
    if provider == "gemini":
      prompt = f"{system_prompt}\nUser message:\n\"{text}\"\n"
      raw_output = await asyncio.to_thread(_gemini_complete_sync, model, prompt)
    else:
      raw_output = await _openai_complete(model, system_prompt, text)
  except Exception as exc:
    logger.warning("intent extraction failed (provider=%s model=%s): %s",
                   provider, model, exc)
    return no_confident_intent()

  _debug_print(provider, model, text, raw_output,
               (time.perf_counter() - started) * 1000.0)
  return parse_intent_text(raw_output)
