"""Tests for copying the JSON file store into the SQL document store."""

from migrate_json_to_db import migrate
from storage import Collection


def test_migrate_copies_documents_and_is_rerunnable(json_store, sql_store):
    child = json_store.create(Collection.CHILDREN, {"name": "Ava"})
    reminder = json_store.create(Collection.REMINDERS, {"childId": child["id"], "title": "Vitamin D",
                                                        "isActive": True})

    stats = migrate(json_store, sql_store)

    assert stats["children"]["inserted"] == 1
    assert stats["reminders"]["inserted"] == 1
    assert sql_store.find_by_id(Collection.CHILDREN, child["id"]) == child
    assert sql_store.find_by_child_id(Collection.REMINDERS, child["id"]) == [reminder]

    again = migrate(json_store, sql_store)
    assert again["children"] == {"total": 1, "inserted": 0, "skipped": 1, "errors": 0}
    assert len(sql_store.get_all(Collection.CHILDREN)) == 1
