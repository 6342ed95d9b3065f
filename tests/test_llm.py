import json
from datetime import datetime
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

import pytest

from schedule_chat import llm
from schedule_chat.agent.schemas import IntentOutput


def test_parse_plain_json():
    out = llm.parse_intent_text('{"intent": "getSchedule", "arguments": {}, "confidence": 0.9}')
    assert out.intent == "getSchedule"
    assert out.confidence == 0.9


def test_parse_fenced_json():
    raw = '```json\n{"intent": "addActivity", "arguments": [{"title": "Swim"}], "confidence": 0.8}\n```'
    out = llm.parse_intent_text(raw)
    assert out.intent == "addActivity"
    assert out.argument_list() == [{"title": "Swim"}]


def test_parse_chatty_reply():
    raw = 'Sure! {"intent": "deleteActivity", "arguments": {"id": 3}, "confidence": 0.8} hope that helps'
    out = llm.parse_intent_text(raw)
    assert out.intent == "deleteActivity"
    assert out.first_argument() == {"id": 3}


@pytest.mark.parametrize("raw", ["", "not json at all", "[1, 2, 3]", None])
def test_parse_garbage_means_no_intent(raw):
    out = llm.parse_intent_text(raw)
    assert out.intent is None
    assert out.arguments == {}
    assert out.confidence == 0.0


def test_intent_output_coercions():
    out = IntentOutput.model_validate({"intent": "null", "arguments": "oops", "confidence": "1.7"})
    assert out.intent is None
    assert out.arguments == {}
    assert out.confidence == 1.0

    out = IntentOutput.model_validate({"intent": "addActivity", "arguments": [{"title": "A"}, "junk"],
                                       "confidence": "high"})
    assert out.arguments == [{"title": "A"}]
    assert out.confidence == 0.0


def test_build_intent_prompt_has_today():
    prompt = llm.build_intent_prompt("Asia/Seoul")
    today = datetime.now(ZoneInfo("Asia/Seoul"))
    assert today.strftime("%Y-%m-%d") in prompt
    assert "Asia/Seoul" in prompt
    assert '"arguments"' in prompt


@pytest.mark.asyncio
async def test_extract_intent_empty_message_skips_provider():
    with patch.object(llm, "_gemini_complete_sync") as gemini:
        out = await llm.extract_intent("   ")
    gemini.assert_not_called()
    assert out.intent is None


@pytest.mark.asyncio
async def test_extract_intent_gemini_success():
    payload = json.dumps({"intent": "getSchedule", "arguments": {}, "confidence": 0.88})
    with patch.object(llm, "_provider_for_model", return_value="gemini"), \
         patch.object(llm, "_gemini_complete_sync", MagicMock(return_value=payload)) as gemini:
        out = await llm.extract_intent("what's on my plate?", "UTC")
    assert out.intent == "getSchedule"
    prompt = gemini.call_args.args[1]
    assert "what's on my plate?" in prompt


@pytest.mark.asyncio
async def test_extract_intent_provider_failure_degrades():
    with patch.object(llm, "_provider_for_model", return_value="gemini"), \
         patch.object(llm, "_gemini_complete_sync", MagicMock(side_effect=RuntimeError("503"))):
        out = await llm.extract_intent("add gym at 6pm")
    assert out.intent is None
    assert out.confidence == 0.0
