from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from ..config import INTENT_CONFIDENCE_THRESHOLD
from ..llm import IntentOracle
from ..models import ChatResponse
from ..tools import (
    ToolContext,
    add_activity,
    delete_activity,
    find_hackathons,
    get_schedule,
    update_activity,
)
from ..utils import _log_debug
from .normalizer import normalize_add_activity_args, normalize_aliases
from .schemas import SUPPORTED_INTENTS, IntentOutput

logger = logging.getLogger(__name__)

NOT_SURE_REPLY = "I'm not sure what you want to do."
UNSUPPORTED_REPLY = "That action isn't supported yet."
DONE_REPLY = "Done ✅"


def summarize_add_results(responses: List[Dict[str, Any]]) -> str:
  success_count = sum(1 for r in responses if r.get("success"))
  fail_count = len(responses) - success_count
  if success_count > 0 and fail_count == 0:
    if len(responses) > 1:
      return "Done! I've added all your tasks."
    return "Done! Added the activity."
  if success_count > 0 and fail_count > 0:
    return f"Partially successful. Added {success_count} tasks, but {fail_count} failed."
  first_error = "Unknown error"
  if responses:
    first_error = responses[0].get("error") or responses[0].get("message") or first_error
  return f"I couldn't add that. Error: {first_error}"


async def _add_one(args: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
  aliased = normalize_aliases(args)
  safe_args = normalize_add_activity_args(aliased)
  return await add_activity(safe_args, context)


async def _handle_add(intent: IntentOutput, context: ToolContext) -> ChatResponse:
  responses: List[Dict[str, Any]] = []
  # Sequential on purpose: each add reads the schedule to pick the next id.
  for args in intent.argument_list():
    try:
      responses.append(await _add_one(args, context))
    except Exception as exc:
      logger.warning("Error adding task %r: %s", args, exc)
      responses.append({"success": False, "error": str(exc)})

  success_count = sum(1 for r in responses if r.get("success"))
  return ChatResponse(
      reply=summarize_add_results(responses),
      result={
          "message": f"Processed {len(responses)} requests.",
          "details": responses,
      },
      refresh_needed=success_count > 0,
  )


def _mutation_args(intent: IntentOutput) -> Dict[str, Any]:
  aliased = normalize_aliases(intent.first_argument())
  aliased.pop("query", None)
  return aliased


async def dispatch_intent(intent: IntentOutput, context: ToolContext) -> ChatResponse:
  if not intent.intent or intent.confidence < INTENT_CONFIDENCE_THRESHOLD:
    return ChatResponse(reply=NOT_SURE_REPLY, refresh_needed=False)

  name = intent.intent
  if name not in SUPPORTED_INTENTS:
    return ChatResponse(reply=UNSUPPORTED_REPLY, refresh_needed=False)

  if name == "addActivity":
    return await _handle_add(intent, context)

  if name == "updateActivity":
    result = await update_activity(_mutation_args(intent), context)
    if result.get("success"):
      reply = "Updated! ✅"
    else:
      reply = f"Failed to update: {result.get('message') or result.get('error')}"
    return ChatResponse(reply=reply, result=result,
                        refresh_needed=bool(result.get("success")))

  if name == "deleteActivity":
    result = await delete_activity(_mutation_args(intent), context)
    if result.get("success"):
      reply = "Deleted! 🗑️"
    else:
      reply = f"Failed to delete: {result.get('message') or result.get('error')}"
    return ChatResponse(reply=reply, result=result,
                        refresh_needed=bool(result.get("success")))

  if name == "getSchedule":
    return ChatResponse(reply=DONE_REPLY, result=await get_schedule({}, context))

  query = normalize_aliases(intent.first_argument()).get("query")
  return ChatResponse(reply=DONE_REPLY, result=await find_hackathons({"query": query}))


async def run_chat(message: str, context: ToolContext,
                   oracle: IntentOracle) -> ChatResponse:
  intent = await oracle(message, context.time_zone)
  _log_debug(f"[INTENT] {intent.intent} conf={intent.confidence:.2f} tz={context.time_zone} "
             f"args={json.dumps(intent.arguments, ensure_ascii=False)}")
  logger.info("intent=%s confidence=%.2f", intent.intent, intent.confidence)
  return await dispatch_intent(intent, context)
