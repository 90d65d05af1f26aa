from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Dict, List

from errors import NotFoundError, ValidationError
from logger import get_logger
from models import CartItem, CheckoutItemResult, Lesson, Order, OrderLine
from repository import LessonRepository

logger = get_logger(__name__)

FULFILLED = "fulfilled"
SKIPPED = "skipped"


def _is_sequence(value):
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _check_lines(lines, id_attr):
    if not _is_sequence(lines) or not lines:
        return False
    for line in lines:
        ref = getattr(line, id_attr, None)
        qty = getattr(line, "qty", None)
        if not isinstance(ref, str) or not ref or not isinstance(qty, int) or qty < 1:
            return False
    return True


def _is_seat_count(value):
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


# Mongo refuses "$"-prefixed or dotted names, Realtime Database refuses . $ # [ ] /
_FORBIDDEN_FIELD_CHARS = set(".$#[]/")


def _valid_field_name(name):
    return isinstance(name, str) and bool(name) and not (_FORBIDDEN_FIELD_CHARS & set(name))


class InventoryService:
    """Seat checkout, order capture and lesson edits on top of a repository."""

    def __init__(self, repository: LessonRepository):
        self.repository = repository

    def list_lessons(self) -> List[Lesson]:
        return [Lesson.model_validate(doc) for doc in self.repository.list_lessons()]

    def submit_checkout(self, cart: List[CartItem]) -> List[CheckoutItemResult]:
        """
        Take seats for every cart item that still fits.

        Items whose lesson is missing or short on seats are skipped, not failed; the
        returned outcome list says which is which. Nothing is rolled back if the store
        fails partway through.
        """
        if not _check_lines(cart, "id"):
            raise ValidationError("Invalid cart data")

        results = []
        for item in cart:
            lesson = self.repository.find_lesson(item.id)
            if lesson is None:
                results.append(CheckoutItemResult(id=item.id, qty=item.qty, status=SKIPPED, reason="not_found"))
                logger.info("checkout skipped unknown lesson", extra={"lesson_id": item.id, "qty": item.qty})
                continue

            spaces = lesson.get("spaces")
            if _is_seat_count(spaces) and spaces >= item.qty and self.repository.decrement_stock(item.id, item.qty):
                results.append(CheckoutItemResult(id=item.id, qty=item.qty, status=FULFILLED))
                logger.info("checkout took seats", extra={"lesson_id": item.id, "qty": item.qty})
            else:
                results.append(
                    CheckoutItemResult(id=item.id, qty=item.qty, status=SKIPPED, reason="insufficient_stock")
                )
                logger.info("checkout skipped, not enough seats", extra={"lesson_id": item.id, "qty": item.qty})

        return results

    def submit_order(self, name: str, phone: str, lines: List[OrderLine]) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Customer name is required")
        if not isinstance(phone, str) or not phone.strip():
            raise ValidationError("Customer phone is required")
        if not _check_lines(lines, "lessonId"):
            raise ValidationError("Order must contain at least one lesson with a positive quantity")

        order = {
            "name": name.strip(),
            "phone": phone.strip(),
            "lessons": [{"lessonId": line.lessonId, "qty": line.qty} for line in lines],
            "createdAt": datetime.now(timezone.utc),
        }
        order_id = self.repository.insert_order(order)
        logger.info("order recorded", extra={"order_id": order_id})
        return order_id

    def get_order(self, order_id: str) -> Order:
        doc = self.repository.find_order(order_id)
        if doc is None:
            raise NotFoundError("Order not found")
        return Order.model_validate(doc)

    def update_lesson_fields(self, lesson_id: str, fields: Dict[str, Any]) -> None:
        if not isinstance(fields, Mapping) or not fields:
            raise ValidationError("Update body must be a non-empty object")
        if "_id" in fields:
            raise ValidationError("Lesson id cannot be changed")
        if not all(_valid_field_name(name) for name in fields):
            raise ValidationError("Field names may not be empty or contain . $ # [ ] or /")
        if "spaces" in fields and not _is_seat_count(fields["spaces"]):
            raise ValidationError("spaces must be a non-negative integer")

        if not self.repository.update_lesson_fields(lesson_id, dict(fields)):
            raise NotFoundError("Lesson not found")
        logger.info("lesson updated", extra={"lesson_id": lesson_id})
