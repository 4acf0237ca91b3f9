"""Background Worker for Parent Copilot.

This module implements the periodic reminder sweep. Every tick it:
- Loads the upcoming reminders (active, dated within the next day or undated)
- Computes each reminder's fire time from its date and time of day
- Stamps lastTriggered on reminders whose fire time is within the trigger
  window of the current time

Notification delivery is not implemented; a triggered reminder is logged.
The worker normally runs as a task inside the API process, but can also be
started on its own with ``python background_worker.py``.
"""

import asyncio
import signal
import sys
from datetime import datetime, timedelta
from typing import List, Optional

from config import settings
from logger_config import setup_logger
from storage import Collection, DocumentStore, get_store
from time_utils import local_tz, parse_datetime, parse_time_of_day, utc_now

logger = setup_logger(__name__, 'worker.log')

# Length of one interruptible sleep step, in seconds
SLEEP_STEP_SECONDS = 1

# Global flag for graceful shutdown
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


def compute_fire_time(reminder: dict, now: datetime) -> datetime:
    """Return the moment a reminder should fire.

    Starts from the reminder's date (or ``now`` when it has none) and, when a
    time of day is set, moves to that hour and minute on the same local day.

    Raises:
        ValueError: If the date or time of day cannot be parsed
    """
    tz = local_tz()
    if reminder.get('date'):
        fire_time = parse_datetime(reminder['date'], tz)
    else:
        fire_time = now

    if reminder.get('time'):
        hour, minute = parse_time_of_day(reminder['time'])
        fire_time = fire_time.astimezone(tz).replace(hour=hour, minute=minute, second=0, microsecond=0)

    return fire_time


def is_due(reminder: dict, now: datetime) -> bool:
    """True when ``now`` is within the trigger window of the fire time."""
    fire_time = compute_fire_time(reminder, now)
    return abs(now - fire_time) <= timedelta(seconds=settings.TRIGGER_WINDOW_SECONDS)


def process_due_reminders(store: DocumentStore, now: Optional[datetime] = None) -> List[str]:
    """Run one sweep and return the ids of the reminders that were triggered.

    A failure on one reminder is logged and the sweep moves on to the next.
    """
    now = now or utc_now()

    try:
        upcoming = store.get_upcoming_reminders(now)
    except Exception as e:
        logger.error(f"Error loading upcoming reminders: {str(e)}", exc_info=True)
        return []

    if not upcoming:
        logger.debug("No upcoming reminders at this time")
        return []

    triggered = []
    for reminder in upcoming:
        reminder_id = reminder.get('id')
        try:
            if not is_due(reminder, now):
                continue

            logger.info(
                f"Reminder triggered: '{reminder.get('title')}' "
                f"for child {reminder.get('childId')} (reminder {reminder_id})"
            )
            updated = store.update(Collection.REMINDERS, reminder_id, {'lastTriggered': utc_now().isoformat()})
            if updated is None:
                logger.warning(f"Reminder {reminder_id} disappeared before it could be marked triggered")
                continue
            triggered.append(reminder_id)

        except Exception as e:
            logger.error(f"Error processing reminder {reminder_id}: {str(e)}", exc_info=True)

    return triggered


async def worker_loop(store: Optional[DocumentStore] = None):
    """Main worker loop that runs until shutdown is requested.

    Sweeps the reminders at the configured interval.
    """
    store = store or get_store()

    logger.info("Reminder worker started")
    logger.info(f"Check interval: {settings.WORKER_CHECK_INTERVAL} seconds")
    logger.info(f"Trigger window: {settings.TRIGGER_WINDOW_SECONDS} seconds")

    iteration = 0
    while not shutdown_requested:
        try:
            iteration += 1
            logger.debug(f"Worker iteration {iteration} started")

            triggered = process_due_reminders(store)
            if triggered:
                logger.info(f"Worker iteration {iteration} triggered {len(triggered)} reminder(s)")

            # Sleep in short steps so shutdown is noticed quickly; always at
            # least one step so the event loop gets control between sweeps
            for _ in range(max(1, settings.WORKER_CHECK_INTERVAL)):
                if shutdown_requested:
                    break
                await asyncio.sleep(SLEEP_STEP_SECONDS)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in worker loop iteration {iteration}: {str(e)}", exc_info=True)
            await asyncio.sleep(5)

    logger.info("Reminder worker shutting down gracefully")


def main():
    """Entry point for running the worker as its own process."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("=" * 60)
    logger.info("Parent Copilot - Reminder Worker")
    logger.info("=" * 60)

    if not settings.WORKER_ENABLED:
        logger.warning("Worker is disabled in configuration. Exiting.")
        sys.exit(0)

    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Fatal error in reminder worker: {str(e)}", exc_info=True)
        sys.exit(1)

    logger.info("Reminder worker stopped")
    sys.exit(0)


if __name__ == "__main__":
    main()
