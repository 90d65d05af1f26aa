import copy
import uuid
from datetime import datetime
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from errors import StoreUnavailableError
from logger import get_logger

logger = get_logger(__name__)


class LessonRepository(ABC):
    """
    Persistence seam for lessons and orders.

    Documents cross this boundary as plain dicts whose ``_id`` is already a string,
    so callers never see driver-specific key types.
    """

    backend = "abstract"

    @abstractmethod
    def list_lessons(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def find_lesson(self, lesson_id: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    def decrement_stock(self, lesson_id: str, qty: int) -> bool:
        """Take ``qty`` seats only if at least ``qty`` remain. Returns whether it applied."""

    @abstractmethod
    def update_lesson_fields(self, lesson_id: str, fields: Dict[str, Any]) -> bool:
        """Merge ``fields`` into the lesson. Returns False when no lesson matched."""

    @abstractmethod
    def insert_order(self, order: Dict[str, Any]) -> str: ...

    @abstractmethod
    def find_order(self, order_id: str) -> Optional[Dict[str, Any]]: ...

    def ping(self) -> None:
        pass

    def close(self) -> None:
        pass


class InMemoryLessonRepository(LessonRepository):
    """Dict-backed store for local runs and tests."""

    backend = "memory"

    def __init__(self) -> None:
        self.lessons: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}

    # Seed helpers
    def add_lesson(self, lesson_id: str, spaces: int, **fields) -> None:
        self.lessons[lesson_id] = {"_id": lesson_id, "spaces": spaces, **fields}

    def list_lessons(self):
        return [copy.deepcopy(doc) for doc in self.lessons.values()]

    def find_lesson(self, lesson_id):
        doc = self.lessons.get(lesson_id)
        return copy.deepcopy(doc) if doc is not None else None

    def decrement_stock(self, lesson_id, qty):
        doc = self.lessons.get(lesson_id)
        if doc is None or doc.get("spaces", 0) < qty:
            return False
        doc["spaces"] -= qty
        return True

    def update_lesson_fields(self, lesson_id, fields):
        doc = self.lessons.get(lesson_id)
        if doc is None:
            return False
        doc.update(copy.deepcopy(fields))
        return True

    def insert_order(self, order):
        order_id = uuid.uuid4().hex
        self.orders[order_id] = serialize_document({**copy.deepcopy(order), "_id": order_id})
        return order_id

    def find_order(self, order_id):
        doc = self.orders.get(order_id)
        return copy.deepcopy(doc) if doc is not None else None


class DisconnectedRepository(LessonRepository):
    """Stands in when no store is configured: the app boots, every data call fails."""

    backend = "disconnected"

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def _fail(self, *args, **kwargs):
        raise StoreUnavailableError(f"Store unavailable: {self.reason}")

    list_lessons = _fail
    find_lesson = _fail
    decrement_stock = _fail
    update_lesson_fields = _fail
    insert_order = _fail
    find_order = _fail
    ping = _fail


def create_repository(settings) -> LessonRepository:
    """Build the repository selected by ``settings.store_backend``. Never raises."""
    backend = settings.store_backend

    if backend == "memory":
        return InMemoryLessonRepository()

    if backend == "mongo":
        if not settings.mongodb_uri:
            logger.error("MONGODB_URI is not set; data routes will fail", extra={"backend": backend})
            return DisconnectedRepository("MONGODB_URI is not set")
        from mongo_util import MongoLessonRepository
        try:
            return MongoLessonRepository(settings.mongodb_uri, settings.mongodb_db)
        except StoreUnavailableError as e:
            logger.error(f"MongoDB client setup failed: {e}", extra={"backend": backend})
            return DisconnectedRepository(str(e))

    if backend == "firebase":
        if not settings.firebase_db_url:
            logger.error("FIREBASE_DB_URL is not set; data routes will fail", extra={"backend": backend})
            return DisconnectedRepository("FIREBASE_DB_URL is not set")
        from firebase_util import FirebaseLessonRepository
        try:
            return FirebaseLessonRepository(settings.firebase_cred_path, settings.firebase_db_url)
        except StoreUnavailableError as e:
            logger.error(f"Firebase initialization failed: {e}", extra={"backend": backend})
            return DisconnectedRepository(str(e))

    logger.error(f"Unknown STORE_BACKEND '{backend}'", extra={"backend": backend})
    return DisconnectedRepository(f"unknown backend '{backend}'")


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Stringify the key and any datetimes so a stored document is JSON-ready."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out[key] = str(value)
        elif isinstance(value, datetime):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out
