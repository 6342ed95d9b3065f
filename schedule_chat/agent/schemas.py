from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_INTENTS = {
    "getSchedule",
    "addActivity",
    "updateActivity",
    "deleteActivity",
    "findHackathons",
}


class IntentOutput(BaseModel):
  """Intent oracle output. ``arguments`` is one mapping or a list of them."""
  model_config = ConfigDict(extra="ignore")

  intent: Optional[str] = None
  arguments: Union[Dict[str, Any], List[Dict[str, Any]]] = Field(default_factory=dict)
  confidence: float = Field(default=0.0)

  @field_validator("intent", mode="before")
  @classmethod
  def _blank_intent_is_none(cls, value: Any) -> Optional[str]:
    if value is None:
      return None
    if not isinstance(value, str):
      return None
    cleaned = value.strip()
    if not cleaned or cleaned.lower() in ("null", "none"):
      return None
    return cleaned

  @field_validator("arguments", mode="before")
  @classmethod
  def _coerce_arguments(cls, value: Any) -> Any:
    if value is None:
      return {}
    if isinstance(value, list):
      return [item for item in value if isinstance(item, dict)]
    if isinstance(value, dict):
      return value
    return {}

  @field_validator("confidence", mode="before")
  @classmethod
  def _clamp_confidence(cls, value: Any) -> float:
    try:
      confidence = float(value)
    except (TypeError, ValueError):
      return 0.0
    if confidence != confidence:  # NaN
      return 0.0
    return min(max(confidence, 0.0), 1.0)

  def argument_list(self) -> List[Dict[str, Any]]:
    if isinstance(self.arguments, list):
      return list(self.arguments)
    return [self.arguments]

  def first_argument(self) -> Dict[str, Any]:
    items = self.argument_list()
    return items[0] if items else {}


def no_confident_intent() -> IntentOutput:
  return IntentOutput(intent=None, arguments={}, confidence=0.0)
