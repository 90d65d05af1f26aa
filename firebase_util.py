import functools

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError

from errors import StoreUnavailableError, ValidationError
from logger import get_logger
from repository import LessonRepository, serialize_document

logger = get_logger(__name__)

# Characters Realtime Database refuses in a key
_FORBIDDEN_KEY_CHARS = set(".$#[]/")


def _valid_key(key):
    return isinstance(key, str) and bool(key) and not (_FORBIDDEN_KEY_CHARS & set(key))


def init_firebase(cred_path, db_url):
    """Initialize the default Firebase app once per process."""
    if firebase_admin._apps:
        return firebase_admin.get_app()
    try:
        cred = credentials.Certificate(cred_path) if cred_path else credentials.ApplicationDefault()
        return firebase_admin.initialize_app(cred, {"databaseURL": db_url})
    except (ValueError, OSError, GoogleAuthError) as e:
        raise StoreUnavailableError(f"Firebase initialization failed: {e}") from e


def _store_call(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except FirebaseError as e:
            logger.error(f"Firebase {fn.__name__} failed: {e}", exc_info=True, extra={"backend": "firebase"})
            raise StoreUnavailableError(f"Database error during {fn.__name__}") from e
    return wrapper


def _with_key(key, value):
    doc = dict(value) if isinstance(value, dict) else {}
    doc["_id"] = key
    return doc


class FirebaseLessonRepository(LessonRepository):
    """Lessons under /lessons/<key>, orders under /orders/<push-key>."""

    backend = "firebase"

    def __init__(self, cred_path, db_url, root=None):
        if root is None:
            init_firebase(cred_path, db_url)
            try:
                root = db.reference("/")
            except (ValueError, GoogleAuthError) as e:
                raise StoreUnavailableError(f"Firebase database unreachable: {e}") from e
        self.root = root

    @_store_call
    def ping(self):
        self.root.child("lessons").get(shallow=True)

    @_store_call
    def list_lessons(self):
        data = self.root.child("lessons").get() or {}
        return [_with_key(key, value) for key, value in data.items() if value is not None]

    @_store_call
    def find_lesson(self, lesson_id):
        if not _valid_key(lesson_id):
            return None
        value = self.root.child("lessons").child(lesson_id).get()
        return _with_key(lesson_id, value) if value is not None else None

    @_store_call
    def decrement_stock(self, lesson_id, qty):
        if not _valid_key(lesson_id):
            return False
        outcome = {"applied": False}

        def take_seats(current):
            # May run several times if another writer races us
            if current is None or current < qty:
                outcome["applied"] = False
                return current
            outcome["applied"] = True
            return current - qty

        self.root.child("lessons").child(lesson_id).child("spaces").transaction(take_seats)
        return outcome["applied"]

    @_store_call
    def update_lesson_fields(self, lesson_id, fields):
        if not _valid_key(lesson_id):
            return False
        if not all(_valid_key(name) for name in fields):
            raise ValidationError("Field names may not contain . $ # [ ] or /")
        lesson_ref = self.root.child("lessons").child(lesson_id)
        if lesson_ref.get(shallow=True) is None:
            return False
        lesson_ref.update(dict(fields))
        return True

    @_store_call
    def insert_order(self, order):
        return self.root.child("orders").push(serialize_document(order)).key

    @_store_call
    def find_order(self, order_id):
        if not _valid_key(order_id):
            return None
        value = self.root.child("orders").child(order_id).get()
        return _with_key(order_id, value) if value is not None else None
