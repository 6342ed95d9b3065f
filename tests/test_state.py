import json

import pytest

from schedule_chat.state import ScheduleStore, StaleRevisionError
from tests.conftest import make_activity, seed


@pytest.mark.asyncio
async def test_write_persists_and_reloads(tmp_path):
    path = tmp_path / "schedule.json"
    store = ScheduleStore(path)

    revision = await store.write("user-1", [make_activity(1)])

    assert revision == 1
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["version"] == 1
    assert on_disk["users"]["user-1"]["revision"] == 1

    reloaded = await ScheduleStore(path).read("user-1")
    assert reloaded.revision == 1
    assert reloaded.items == [make_activity(1)]


@pytest.mark.asyncio
async def test_stale_revision_is_rejected():
    store = ScheduleStore()
    await store.write("user-1", [make_activity(1)], expected_revision=0)

    with pytest.raises(StaleRevisionError) as excinfo:
        await store.write("user-1", [], expected_revision=0)

    assert excinfo.value.actual == 1
    assert (await store.read("user-1")).items == [make_activity(1)]


@pytest.mark.asyncio
async def test_read_returns_copies():
    store = ScheduleStore()
    await store.write("user-1", [make_activity(1)])

    stored = await store.read("user-1")
    stored.items[0]["title"] = "mutated"

    assert (await store.read("user-1")).items[0]["title"] == "Task"


@pytest.mark.asyncio
async def test_users_are_isolated():
    store = ScheduleStore()
    await store.write("user-1", [make_activity(1)])
    assert (await store.read("user-2")).items == []


@pytest.mark.asyncio
async def test_legacy_list_document_reads_at_revision_zero():
    store = ScheduleStore()
    seed(store, "user-1", [make_activity(2), "junk", make_activity(1)])
    stored = await store.read("user-1")
    assert [item["id"] for item in stored.items] == [2, 1]
    assert stored.revision == 0


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "schedule.json"
    path.write_text("{not json", encoding="utf-8")
    store = ScheduleStore(path)
    assert store._read_sync("user-1").items == []


@pytest.mark.asyncio
async def test_failed_save_leaves_memory_untouched(tmp_path, monkeypatch):
    store = ScheduleStore(tmp_path / "schedule.json")
    await store.write("user-1", [make_activity(1)])

    def disk_full(documents):
        raise OSError("disk full")

    monkeypatch.setattr(store, "_save_to_disk", disk_full)
    with pytest.raises(OSError):
        await store.write("user-1", [make_activity(1), make_activity(2)], expected_revision=1)

    stored = await store.read("user-1")
    assert stored.revision == 1
    assert stored.items == [make_activity(1)]
