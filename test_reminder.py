"""Tests for the reminder sweep.

Covers fire time computation, the one-minute trigger window and the
lastTriggered bookkeeping done by process_due_reminders.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

import background_worker
from background_worker import compute_fire_time, is_due, process_due_reminders
from config import Settings, settings
from storage import Collection

NOW = datetime(2024, 5, 1, 8, 0, 30, tzinfo=timezone.utc)


def _reminder(**fields):
    reminder = {"childId": "child-1", "type": "medication", "title": "Vitamin D",
                "time": None, "date": None, "frequency": "daily", "isActive": True,
                "lastTriggered": None}
    reminder.update(fields)
    return reminder


def test_fire_time_without_date_uses_today_at_time():
    fire_time = compute_fire_time(_reminder(time="08:00"), NOW)
    assert fire_time == datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def test_fire_time_with_date_and_time():
    fire_time = compute_fire_time(_reminder(date="2024-05-02", time="17:45"), NOW)
    assert fire_time == datetime(2024, 5, 2, 17, 45, tzinfo=timezone.utc)


def test_fire_time_with_date_only_is_the_date():
    fire_time = compute_fire_time(_reminder(date="2024-05-01T08:00:50Z"), NOW)
    assert fire_time == datetime(2024, 5, 1, 8, 0, 50, tzinfo=timezone.utc)


def test_fire_time_without_date_or_time_is_now():
    assert compute_fire_time(_reminder(), NOW) == NOW


def test_fire_time_rejects_bad_time():
    with pytest.raises(ValueError):
        compute_fire_time(_reminder(time="25:99"), NOW)


def test_is_due_window_is_sixty_seconds_inclusive():
    assert is_due(_reminder(time="08:00"), NOW)
    assert is_due(_reminder(time="08:00"), datetime(2024, 5, 1, 8, 1, tzinfo=timezone.utc))
    assert is_due(_reminder(time="08:01"), datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc))
    assert not is_due(_reminder(time="08:00"), datetime(2024, 5, 1, 8, 1, 1, tzinfo=timezone.utc))
    assert not is_due(_reminder(time="08:05"), NOW)


def test_process_due_reminders_stamps_only_due_ones(store):
    due_daily = store.create(Collection.REMINDERS, _reminder(time="08:00"))
    due_dated = store.create(Collection.REMINDERS, _reminder(date="2024-05-01T08:00:50+00:00", frequency="once"))
    later = store.create(Collection.REMINDERS, _reminder(time="09:00"))
    inactive = store.create(Collection.REMINDERS, _reminder(time="08:00", isActive=False))

    triggered = process_due_reminders(store, NOW)

    assert sorted(triggered) == sorted([due_daily["id"], due_dated["id"]])
    assert store.find_by_id(Collection.REMINDERS, due_daily["id"])["lastTriggered"]
    assert store.find_by_id(Collection.REMINDERS, due_dated["id"])["lastTriggered"]
    assert store.find_by_id(Collection.REMINDERS, later["id"])["lastTriggered"] is None
    assert store.find_by_id(Collection.REMINDERS, inactive["id"])["lastTriggered"] is None


def test_process_due_reminders_daily_reminder_fires_again_next_day(store):
    reminder = store.create(Collection.REMINDERS, _reminder(time="08:00"))

    assert process_due_reminders(store, NOW) == [reminder["id"]]
    assert process_due_reminders(store, NOW + timedelta(days=1)) == [reminder["id"]]


def test_process_due_reminders_isolates_bad_reminders(store):
    broken = store.create(Collection.REMINDERS, _reminder(time="8 o'clock"))
    good = store.create(Collection.REMINDERS, _reminder(time="08:00"))

    triggered = process_due_reminders(store, NOW)

    assert triggered == [good["id"]]
    assert store.find_by_id(Collection.REMINDERS, broken["id"])["lastTriggered"] is None


def test_process_due_reminders_survives_store_failure():
    class BrokenStore:
        def get_upcoming_reminders(self, now=None):
            raise RuntimeError("storage offline")

    assert process_due_reminders(BrokenStore(), NOW) == []


def test_check_interval_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(WORKER_CHECK_INTERVAL=0)


def test_worker_loop_yields_to_other_tasks_with_zero_interval(json_store, monkeypatch):
    monkeypatch.setattr(settings, "WORKER_CHECK_INTERVAL", 0)
    monkeypatch.setattr(background_worker, "SLEEP_STEP_SECONDS", 0.01)

    async def run_alongside_worker():
        worker = asyncio.create_task(background_worker.worker_loop(json_store))
        other_runs = 0
        for _ in range(5):
            await asyncio.sleep(0.01)
            other_runs += 1
        worker.cancel()
        with pytest.raises(asyncio.CancelledError):
            await worker
        return other_runs

    assert asyncio.run(run_alongside_worker()) == 5
