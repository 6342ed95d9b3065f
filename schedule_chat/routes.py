from __future__ import annotations

import logging
import sys
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from .config import (
    AGENT_LLM_PROVIDER,
    GEMINI_API_KEY,
    INTENT_MODEL,
    OPENAI_API_KEY,
)
from .llm import _provider_for_model, extract_intent
from .models import (
    ActivityDeleteRequest,
    ActivityUpdateRequest,
    ChatRequest,
)
from .state import get_store
from .tools import ToolContext, delete_activity, get_schedule, update_activity
from .utils import _clean_optional_str, _log_debug, normalize_text
from .agent.intent_router import run_chat

router = APIRouter()
logger = logging.getLogger(__name__)


def _tool_context(user_id: Optional[str],
                  access_token: Optional[str],
                  time_zone: Optional[str]) -> ToolContext:
  return ToolContext(
      uid=_clean_optional_str(user_id),
      store=get_store(),
      access_token=_clean_optional_str(access_token),
      time_zone=_clean_optional_str(time_zone),
  )


# -------------------------
# Direct activity endpoints
# -------------------------
@router.post("/api/activities/update")
async def activities_update(body: ActivityUpdateRequest):
  context = _tool_context(body.user_id, body.access_token, body.time_zone)
  try:
    return await update_activity({**body.updates, "id": body.id}, context)
  except Exception as exc:
    logger.exception("Update error")
    return JSONResponse({"error": str(exc)}, status_code=500)


@router.post("/api/activities/delete")
async def activities_delete(body: ActivityDeleteRequest):
  context = _tool_context(body.user_id, body.access_token, body.time_zone)
  try:
    return await delete_activity({"id": body.id}, context)
  except Exception as exc:
    logger.exception("Delete error")
    return JSONResponse({"error": str(exc)}, status_code=500)


@router.get("/api/schedule")
async def schedule_view(user_id: Optional[str] = Query(None, alias="userId")):
  if not _clean_optional_str(user_id):
    raise HTTPException(status_code=400, detail="userId required")
  result = await get_schedule({}, _tool_context(user_id, None, None))
  if isinstance(result, dict):
    raise HTTPException(status_code=503, detail=result.get("error"))
  return {"items": result}


# -------------------------
# Chat
# -------------------------
@router.post("/api/chat")
async def chat(body: ChatRequest):
  message = normalize_text(body.message or "")
  if not message or not _clean_optional_str(body.user_id):
    raise HTTPException(status_code=400, detail="message and userId required")

  context = _tool_context(body.user_id, body.access_token, body.time_zone)
  _log_debug(f"[CHAT] uid={context.uid} tz={context.time_zone} message={message}")
  try:
    response = await run_chat(message, context, extract_intent)
  except Exception as exc:
    logger.exception("Chat error")
    return JSONResponse(
        {"reply": f"An error occurred: {exc}", "refreshNeeded": False},
        status_code=500,
    )
  return response.to_payload()


@router.get("/api/debug")
async def debug_status():
  store = get_store()
  return {
      "geminiKeyPresent": bool(GEMINI_API_KEY),
      "openaiKeyPresent": bool(OPENAI_API_KEY),
      "provider": _provider_for_model(INTENT_MODEL),
      "providerSetting": AGENT_LLM_PROVIDER,
      "intentModel": INTENT_MODEL,
      "store": "Connected" if store is not None else "Not Configured",
      "storeFile": str(store.path) if store is not None and store.path else None,
      "pythonVersion": sys.version.split()[0],
  }
