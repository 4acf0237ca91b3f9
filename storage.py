"""Document storage for Parent Copilot.

Both backends expose the same DocumentStore contract so callers never know
whether entities live in a JSON file or in a SQL database:

- create / find_by_id / find_by_child_id / update / delete / get_all
- get_child_with_details: a child with every record that references it
- get_upcoming_reminders: reminders the background worker should look at

Documents are plain dicts with camelCase keys, identical to the API payloads.
"""

import copy
import enum
import json
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.attributes import flag_modified

import database
from config import settings
from logger_config import setup_logger
from time_utils import parse_datetime, utc_now

logger = setup_logger(__name__, 'storage.log')


class Collection(str, enum.Enum):
    """Collections known to the store. The value is the persisted key."""
    PARENTS = "parents"
    CHILDREN = "children"
    HEALTH_RECORDS = "healthRecords"
    REMINDERS = "reminders"
    CARE_PLANS = "carePlans"
    AI_INSIGHTS = "aiInsights"


# Collections whose documents reference a child through 'childId'
CHILD_COLLECTIONS = (
    Collection.HEALTH_RECORDS,
    Collection.REMINDERS,
    Collection.CARE_PLANS,
    Collection.AI_INSIGHTS,
)


class StorageError(Exception):
    """Raised when the storage backend fails to read or write."""


def _next_timestamp(previous: Optional[str]) -> str:
    """Return a UTC timestamp strictly later than ``previous``."""
    now = utc_now()
    if previous:
        try:
            prev = parse_datetime(previous, timezone.utc)
        except (TypeError, ValueError):
            prev = None
        if prev is not None and now <= prev:
            now = prev + timedelta(microseconds=1)
    return now.isoformat()


def _prepare_new(item: dict) -> dict:
    """Copy an incoming item and assign id and timestamps."""
    doc = copy.deepcopy(dict(item))
    now = utc_now().isoformat()
    if not doc.get('id'):
        doc['id'] = str(uuid.uuid4())
    doc.setdefault('createdAt', now)
    doc.setdefault('updatedAt', now)
    return doc


def _merge(existing: dict, fields: dict) -> dict:
    merged = dict(existing)
    for key, value in fields.items():
        if key in ('id', 'createdAt'):
            continue
        merged[key] = value
    merged['updatedAt'] = _next_timestamp(existing.get('updatedAt'))
    return merged


class DocumentStore(ABC):
    """CRUD over named collections plus the two derived queries."""

    @abstractmethod
    def create(self, collection: Collection, item: dict) -> dict:
        """Store a new document and return the stored form.

        Raises:
            StorageError: If the backend write fails
        """

    @abstractmethod
    def find_by_id(self, collection: Collection, item_id: str) -> Optional[dict]:
        """Return the document with that id, or None."""

    @abstractmethod
    def find_by_child_id(self, collection: Collection, child_id: str) -> List[dict]:
        """Return every document whose childId matches."""

    @abstractmethod
    def update(self, collection: Collection, item_id: str, fields: dict) -> Optional[dict]:
        """Merge fields into the document, refresh updatedAt, return it (or None)."""

    @abstractmethod
    def delete(self, collection: Collection, item_id: str) -> bool:
        """Remove the document. Returns True if it existed."""

    @abstractmethod
    def get_all(self, collection: Collection) -> List[dict]:
        """Return every document in the collection."""

    def get_child_with_details(self, child_id: str) -> Optional[dict]:
        """Return the child enriched with all of its records, or None."""
        child = self.find_by_id(Collection.CHILDREN, child_id)
        if child is None:
            return None

        for collection in CHILD_COLLECTIONS:
            child[collection.value] = self.find_by_child_id(collection, child_id)
        return child

    def get_upcoming_reminders(self, now: Optional[datetime] = None) -> List[dict]:
        """Active reminders dated within the next window, plus undated ones.

        Reminders without a date are treated as recurring and are always
        included. The window is closed on both ends.
        """
        now = now or utc_now()
        horizon = now + timedelta(hours=settings.UPCOMING_REMINDER_HOURS)

        upcoming = []
        for reminder in self.get_all(Collection.REMINDERS):
            if not reminder.get('isActive'):
                continue

            if not reminder.get('date'):
                upcoming.append(reminder)
                continue

            try:
                when = parse_datetime(reminder['date'])
            except (TypeError, ValueError):
                logger.warning(f"Skipping reminder {reminder.get('id')} with invalid date {reminder['date']!r}")
                continue

            if now <= when <= horizon:
                upcoming.append(reminder)

        return upcoming


class JsonFileStore(DocumentStore):
    """Store every collection in a single JSON document on disk.

    The whole document is held in memory and rewritten atomically after each
    mutation. Mutations to one collection are serialised by a lock; swapping
    in a collection and writing the file happen together under the store lock,
    so the file always reflects every committed change.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._locks = {collection: threading.Lock() for collection in Collection}
        self._save_lock = threading.Lock()
        self.data = self._load()

    def _empty(self) -> Dict[str, list]:
        return {collection.value: [] for collection in Collection}

    def _load(self) -> Dict[str, list]:
        data = self._empty()
        if not os.path.exists(self.path):
            return data

        try:
            with open(self.path, 'r', encoding='utf-8') as fh:
                loaded = json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading data from {self.path}: {str(e)}")
            return data

        if not isinstance(loaded, dict):
            logger.error(f"Ignoring {self.path}: top level is not an object")
            return data

        for key, items in loaded.items():
            if isinstance(items, list):
                data[key] = items
        logger.info(f"Loaded data file {self.path}")
        return data

    def _save(self):
        """Write the current document to disk. Caller holds ``_save_lock``."""
        snapshot = {key: list(items) for key, items in self.data.items()}
        directory = os.path.dirname(self.path)

        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.models-', suffix='.json')
        except OSError as e:
            raise StorageError(f"Error saving data: {str(e)}") from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(snapshot, fh, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Error saving data: {str(e)}") from e

    def _commit(self, collection: Collection, items: list):
        """Swap in the new list for a collection and persist, rolling back on failure."""
        with self._save_lock:
            previous = self.data[collection.value]
            self.data[collection.value] = items
            try:
                self._save()
            except StorageError:
                self.data[collection.value] = previous
                logger.error(f"Write to {collection.value} failed, change rolled back", exc_info=True)
                raise

    def create(self, collection: Collection, item: dict) -> dict:
        doc = _prepare_new(item)
        with self._locks[collection]:
            self._commit(collection, self.data[collection.value] + [doc])
        return copy.deepcopy(doc)

    def find_by_id(self, collection: Collection, item_id: str) -> Optional[dict]:
        for item in self.data[collection.value]:
            if item.get('id') == item_id:
                return copy.deepcopy(item)
        return None

    def find_by_child_id(self, collection: Collection, child_id: str) -> List[dict]:
        return [
            copy.deepcopy(item)
            for item in self.data[collection.value]
            if item.get('childId') == child_id
        ]

    def update(self, collection: Collection, item_id: str, fields: dict) -> Optional[dict]:
        with self._locks[collection]:
            items = self.data[collection.value]
            for index, item in enumerate(items):
                if item.get('id') == item_id:
                    break
            else:
                return None

            merged = _merge(item, copy.deepcopy(fields))
            self._commit(collection, items[:index] + [merged] + items[index + 1:])
        return copy.deepcopy(merged)

    def delete(self, collection: Collection, item_id: str) -> bool:
        with self._locks[collection]:
            items = self.data[collection.value]
            remaining = [item for item in items if item.get('id') != item_id]
            if len(remaining) == len(items):
                return False
            self._commit(collection, remaining)
        return True

    def get_all(self, collection: Collection) -> List[dict]:
        return copy.deepcopy(self.data[collection.value])


class SqlDocumentStore(DocumentStore):
    """Store documents as JSON rows in a SQL database.

    Every operation runs in its own session and transaction.
    """

    def __init__(self, engine=None):
        self.engine = engine if engine is not None else database.engine
        database.init_db(self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @contextmanager
    def _session(self):
        db = self.SessionLocal()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error: {str(e)}", exc_info=True)
            raise StorageError(f"Database error: {str(e)}") from e
        finally:
            db.close()

    def _get_row(self, db, collection: Collection, item_id: str):
        return db.get(database.Document, (collection.value, item_id))

    def create(self, collection: Collection, item: dict) -> dict:
        doc = _prepare_new(item)
        with self._session() as db:
            row = database.Document(
                collection=collection.value,
                id=doc['id'],
                child_id=doc.get('childId'),
                data=doc,
                created_at=utc_now(),
            )
            db.add(row)
            db.commit()
        return copy.deepcopy(doc)

    def find_by_id(self, collection: Collection, item_id: str) -> Optional[dict]:
        with self._session() as db:
            row = self._get_row(db, collection, item_id)
            return copy.deepcopy(row.data) if row else None

    def find_by_child_id(self, collection: Collection, child_id: str) -> List[dict]:
        with self._session() as db:
            rows = db.query(database.Document).filter(
                database.Document.collection == collection.value,
                database.Document.child_id == child_id
            ).all()
            return [copy.deepcopy(row.data) for row in rows]

    def update(self, collection: Collection, item_id: str, fields: dict) -> Optional[dict]:
        with self._session() as db:
            row = self._get_row(db, collection, item_id)
            if not row:
                return None

            merged = _merge(row.data, copy.deepcopy(fields))
            row.data = merged
            row.child_id = merged.get('childId')
            # JSON columns are not change-tracked for in-place edits
            flag_modified(row, 'data')

            db.commit()
        return copy.deepcopy(merged)

    def delete(self, collection: Collection, item_id: str) -> bool:
        with self._session() as db:
            row = self._get_row(db, collection, item_id)
            if not row:
                return False

            db.delete(row)
            db.commit()
        return True

    def get_all(self, collection: Collection) -> List[dict]:
        with self._session() as db:
            rows = db.query(database.Document).filter(
                database.Document.collection == collection.value
            ).order_by(database.Document.created_at).all()
            return [copy.deepcopy(row.data) for row in rows]


def create_store(backend: Optional[str] = None) -> DocumentStore:
    """Build the store selected by STORAGE_BACKEND ('json' or 'database')."""
    backend = (backend or settings.STORAGE_BACKEND).lower()
    if backend == 'json':
        logger.info(f"Using JSON file store at {settings.DATA_FILE}")
        return JsonFileStore(settings.DATA_FILE)
    if backend == 'database':
        logger.info(f"Using SQL document store ({settings.DATABASE_URL.split('://')[0]})")
        return SqlDocumentStore()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")


_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Shared store instance. Also used as a FastAPI dependency."""
    global _store
    if _store is None:
        _store = create_store()
    return _store
