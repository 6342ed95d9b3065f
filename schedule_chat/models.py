from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any

from .config import DEFAULT_ACTIVITY_STATUS


class Activity(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    title: str
    start_time: str = Field(alias="startTime")  # "HH:MM"
    end_time: str = Field(alias="endTime")  # "HH:MM"
    description: str = ""
    location: str = ""
    attendees: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    days: List[str] = Field(default_factory=list)
    status: str = DEFAULT_ACTIVITY_STATUS
    color: Optional[str] = None
    google_event_id: Optional[str] = Field(default=None, alias="googleEventId")
    html_link: Optional[str] = Field(default=None, alias="htmlLink")

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Hackathon(BaseModel):
    title: str
    date: str  # "YYYY-MM-DD"
    link: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    time_zone: Optional[str] = Field(default=None, alias="timeZone")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    result: Optional[Any] = None
    refresh_needed: bool = Field(default=False, alias="refreshNeeded")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ActivityUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Any] = None
    updates: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = Field(default=None, alias="userId")
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    time_zone: Optional[str] = Field(default=None, alias="timeZone")


class ActivityDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Any] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    time_zone: Optional[str] = Field(default=None, alias="timeZone")
