# MongoDB-backed lessons/orders store.
# Collections: "lessons" (seat counts live in "spaces") and "orders".

import functools

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from errors import StoreUnavailableError
from logger import get_logger
from repository import LessonRepository, serialize_document

logger = get_logger(__name__)


def _to_object_id(value):
    """Request-supplied ids that aren't ObjectIds can't match anything."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _store_call(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"MongoDB {fn.__name__} failed: {e}", exc_info=True, extra={"backend": "mongo"})
            raise StoreUnavailableError(f"Database error during {fn.__name__}") from e
    return wrapper


class MongoLessonRepository(LessonRepository):
    backend = "mongo"

    def __init__(self, uri, db_name="afterschoolDB", client=None):
        try:
            self._client = client if client is not None else MongoClient(uri, serverSelectionTimeoutMS=3000, tz_aware=True)
        except (PyMongoError, ValueError) as e:
            raise StoreUnavailableError(f"Invalid MongoDB configuration: {e}") from e
        db = self._client[db_name]
        self.lessons = db["lessons"]
        self.orders = db["orders"]

    @_store_call
    def ping(self):
        self._client.admin.command("ping")

    def close(self):
        self._client.close()

    @_store_call
    def list_lessons(self):
        return [serialize_document(doc) for doc in self.lessons.find()]

    @_store_call
    def find_lesson(self, lesson_id):
        oid = _to_object_id(lesson_id)
        if oid is None:
            return None
        return serialize_document(self.lessons.find_one({"_id": oid}))

    @_store_call
    def decrement_stock(self, lesson_id, qty):
        oid = _to_object_id(lesson_id)
        if oid is None:
            return False
        # The $gte guard keeps the check and the write in one atomic update.
        result = self.lessons.update_one(
            {"_id": oid, "spaces": {"$gte": qty}},
            {"$inc": {"spaces": -qty}},
        )
        return result.modified_count > 0

    @_store_call
    def update_lesson_fields(self, lesson_id, fields):
        oid = _to_object_id(lesson_id)
        if oid is None:
            return False
        result = self.lessons.update_one({"_id": oid}, {"$set": fields})
        return result.matched_count > 0

    @_store_call
    def insert_order(self, order):
        result = self.orders.insert_one(dict(order))
        return str(result.inserted_id)

    @_store_call
    def find_order(self, order_id):
        oid = _to_object_id(order_id)
        if oid is None:
            return None
        return serialize_document(self.orders.find_one({"_id": oid}))
