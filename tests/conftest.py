import copy
from unittest.mock import AsyncMock, MagicMock

import pytest

from schedule_chat import state
from schedule_chat.state import ScheduleStore
from schedule_chat.tools import ToolContext


def make_activity(activity_id, title="Task", start="09:00", end="10:00", **extra):
    record = {
        "id": activity_id,
        "title": title,
        "startTime": start,
        "endTime": end,
        "days": ["Monday"],
        "status": "Pending",
    }
    record.update(extra)
    return record


def seed(store, user_id, document):
    """Put a raw per-user document (list, keyed map or revisioned) straight into the store."""
    store._documents[user_id] = copy.deepcopy(document)


@pytest.fixture
def store():
    return ScheduleStore()


@pytest.fixture
def calendar():
    fake = MagicMock()
    fake.insert = AsyncMock(return_value={"id": "evt-1", "htmlLink": "https://calendar.example/evt-1"})
    fake.patch = AsyncMock(return_value=None)
    fake.delete = AsyncMock(return_value=None)
    return fake


@pytest.fixture
def context(store):
    return ToolContext(uid="user-1", store=store, time_zone="UTC")


@pytest.fixture
def synced_context(store, calendar):
    return ToolContext(uid="user-1",
                       store=store,
                       access_token="token-abc",
                       time_zone="UTC",
                       calendar_factory=lambda token: calendar)


@pytest.fixture
def app_store(monkeypatch):
    installed = ScheduleStore()
    monkeypatch.setattr(state, "_store", installed)
    return installed
