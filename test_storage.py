"""Tests for the document stores. Each test runs against both backends."""

import json
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from storage import CHILD_COLLECTIONS, Collection, JsonFileStore, StorageError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _reminder(child_id="child-1", **fields):
    reminder = {"childId": child_id, "type": "medication", "title": "Vitamin D",
                "time": None, "date": None, "frequency": "once", "isActive": True,
                "lastTriggered": None}
    reminder.update(fields)
    return reminder


def test_create_then_find_returns_input_plus_server_fields(store):
    item = {"name": "Ava", "dateOfBirth": "2022-01-01", "gender": "female"}
    created = store.create(Collection.CHILDREN, item)

    assert created["id"]
    assert created["createdAt"]
    assert created["updatedAt"]

    found = store.find_by_id(Collection.CHILDREN, created["id"])
    assert found == created
    assert {k: found[k] for k in item} == item


def test_create_does_not_alias_caller_dict(store):
    item = {"name": "Ava", "medicalHistory": {"allergies": []}}
    created = store.create(Collection.CHILDREN, item)
    item["medicalHistory"]["allergies"].append("peanuts")

    assert store.find_by_id(Collection.CHILDREN, created["id"])["medicalHistory"]["allergies"] == []
    assert "id" not in item


def test_find_by_id_missing_returns_none(store):
    assert store.find_by_id(Collection.CHILDREN, "nope") is None


def test_find_by_child_id(store):
    store.create(Collection.HEALTH_RECORDS, {"childId": "a", "title": "Checkup"})
    store.create(Collection.HEALTH_RECORDS, {"childId": "a", "title": "Vaccination"})
    store.create(Collection.HEALTH_RECORDS, {"childId": "b", "title": "Dentist"})

    titles = sorted(r["title"] for r in store.find_by_child_id(Collection.HEALTH_RECORDS, "a"))
    assert titles == ["Checkup", "Vaccination"]
    assert store.find_by_child_id(Collection.HEALTH_RECORDS, "c") == []


def test_update_merges_only_supplied_fields(store):
    created = store.create(Collection.CHILDREN, {"name": "Ava", "gender": "female"})

    updated = store.update(Collection.CHILDREN, created["id"], {"name": "Ava Rose"})

    assert updated["name"] == "Ava Rose"
    assert updated["gender"] == "female"
    assert updated["id"] == created["id"]
    assert updated["createdAt"] == created["createdAt"]
    assert store.find_by_id(Collection.CHILDREN, created["id"]) == updated


def test_update_refreshes_updated_at_strictly(store):
    created = store.create(Collection.CHILDREN, {"name": "Ava"})
    previous = created["updatedAt"]

    for i in range(5):
        updated = store.update(Collection.CHILDREN, created["id"], {"counter": i})
        assert datetime.fromisoformat(updated["updatedAt"]) > datetime.fromisoformat(previous)
        previous = updated["updatedAt"]


def test_update_cannot_change_id(store):
    created = store.create(Collection.CHILDREN, {"name": "Ava"})
    updated = store.update(Collection.CHILDREN, created["id"], {"id": "other"})
    assert updated["id"] == created["id"]


def test_update_missing_returns_none(store):
    assert store.update(Collection.CHILDREN, "nope", {"name": "x"}) is None


def test_delete(store):
    created = store.create(Collection.REMINDERS, _reminder())

    assert store.delete(Collection.REMINDERS, "nope") is False
    assert store.delete(Collection.REMINDERS, created["id"]) is True
    assert store.find_by_id(Collection.REMINDERS, created["id"]) is None
    assert store.delete(Collection.REMINDERS, created["id"]) is False


def test_get_all_is_per_collection(store):
    store.create(Collection.CHILDREN, {"name": "Ava"})
    store.create(Collection.CHILDREN, {"name": "Ben"})
    store.create(Collection.PARENTS, {"name": "Sam"})

    assert sorted(c["name"] for c in store.get_all(Collection.CHILDREN)) == ["Ava", "Ben"]
    assert [p["name"] for p in store.get_all(Collection.PARENTS)] == ["Sam"]
    assert store.get_all(Collection.CARE_PLANS) == []


def test_get_child_with_details(store):
    child = store.create(Collection.CHILDREN, {"name": "Ava"})
    other = store.create(Collection.CHILDREN, {"name": "Ben"})
    store.create(Collection.HEALTH_RECORDS, {"childId": child["id"], "title": "Checkup"})
    store.create(Collection.REMINDERS, _reminder(child["id"]))
    store.create(Collection.CARE_PLANS, {"childId": child["id"], "title": "Plan", "tasks": []})
    store.create(Collection.AI_INSIGHTS, {"childId": child["id"], "title": "Tip"})
    store.create(Collection.AI_INSIGHTS, {"childId": other["id"], "title": "Other tip"})

    details = store.get_child_with_details(child["id"])

    assert details["name"] == "Ava"
    assert {c.value for c in CHILD_COLLECTIONS} <= set(details)
    assert [r["title"] for r in details["healthRecords"]] == ["Checkup"]
    assert len(details["reminders"]) == 1
    assert len(details["carePlans"]) == 1
    assert [i["title"] for i in details["aiInsights"]] == ["Tip"]
    assert store.get_child_with_details("nope") is None


def test_get_upcoming_reminders(store):
    undated = store.create(Collection.REMINDERS, _reminder(time="08:00", frequency="daily"))
    soon = store.create(Collection.REMINDERS, _reminder(date=(NOW + timedelta(hours=3)).isoformat()))
    at_start = store.create(Collection.REMINDERS, _reminder(date=NOW.isoformat()))
    at_end = store.create(Collection.REMINDERS, _reminder(date=(NOW + timedelta(hours=24)).isoformat()))
    store.create(Collection.REMINDERS, _reminder(date=(NOW + timedelta(hours=25)).isoformat()))
    store.create(Collection.REMINDERS, _reminder(date=(NOW - timedelta(minutes=5)).isoformat()))
    store.create(Collection.REMINDERS, _reminder(isActive=False))
    store.create(Collection.REMINDERS, _reminder(isActive=False, date=(NOW + timedelta(hours=1)).isoformat()))
    store.create(Collection.REMINDERS, _reminder(date="not a date"))

    upcoming = {r["id"] for r in store.get_upcoming_reminders(NOW)}

    assert upcoming == {undated["id"], soon["id"], at_start["id"], at_end["id"]}


def test_json_store_persists_to_file(tmp_path):
    path = tmp_path / "models.json"
    store = JsonFileStore(str(path))
    created = store.create(Collection.CHILDREN, {"name": "Ava"})

    on_disk = json.loads(path.read_text())
    assert set(on_disk) == {c.value for c in Collection}
    assert on_disk["children"][0]["id"] == created["id"]

    reloaded = JsonFileStore(str(path))
    assert reloaded.find_by_id(Collection.CHILDREN, created["id"]) == created


def test_json_store_starts_empty_on_corrupt_file(tmp_path):
    path = tmp_path / "models.json"
    path.write_text("{not json")

    store = JsonFileStore(str(path))

    assert store.get_all(Collection.CHILDREN) == []


def test_json_store_write_failure_raises_and_rolls_back(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where a directory should be")
    store = JsonFileStore(str(blocker / "models.json"))

    with pytest.raises(StorageError):
        store.create(Collection.CHILDREN, {"name": "Ava"})

    assert store.get_all(Collection.CHILDREN) == []


def test_json_store_concurrent_writes_to_different_collections_all_reach_disk(tmp_path, monkeypatch):
    path = tmp_path / "models.json"
    store = JsonFileStore(str(path))

    real_dump = json.dump
    writing = threading.Event()

    def slow_dump(obj, fh, **kwargs):
        # Hold up the first save so a second writer arrives mid-write
        if not writing.is_set():
            writing.set()
            time.sleep(0.2)
        real_dump(obj, fh, **kwargs)

    monkeypatch.setattr("storage.json.dump", slow_dump)

    writer = threading.Thread(target=store.create, args=(Collection.CHILDREN, {"name": "Ava"}))
    writer.start()
    assert writing.wait(timeout=5)
    reminder = store.create(Collection.REMINDERS, _reminder())
    writer.join(timeout=5)
    assert not writer.is_alive()

    on_disk = json.loads(path.read_text())
    assert [c["name"] for c in on_disk["children"]] == ["Ava"]
    assert [r["id"] for r in on_disk["reminders"]] == [reminder["id"]]

    reloaded = JsonFileStore(str(path))
    assert len(reloaded.get_all(Collection.CHILDREN)) == 1
    assert len(reloaded.get_all(Collection.REMINDERS)) == 1
