"""Tests for the seat checkout / order flow."""

import pytest

from errors import NotFoundError, StoreUnavailableError, ValidationError
from models import CartItem, OrderLine
from repository import DisconnectedRepository
from service import InventoryService


def test_checkout_takes_requested_seats(service, repository):
    results = service.submit_checkout([CartItem(id="L1", qty=2), CartItem(id="L2", qty=3)])

    assert repository.lessons["L1"]["spaces"] == 3
    assert repository.lessons["L2"]["spaces"] == 0
    assert [r.status for r in results] == ["fulfilled", "fulfilled"]


def test_checkout_skips_item_over_available_stock(service, repository):
    results = service.submit_checkout([CartItem(id="L2", qty=4)])

    assert repository.lessons["L2"]["spaces"] == 3
    assert results[0].status == "skipped"
    assert results[0].reason == "insufficient_stock"


def test_checkout_scenario_second_cart_silently_skipped(service, repository):
    service.submit_checkout([CartItem(id="L1", qty=3)])
    assert repository.lessons["L1"]["spaces"] == 2

    # Too many seats: no error, stock untouched
    results = service.submit_checkout([CartItem(id="L1", qty=10)])
    assert repository.lessons["L1"]["spaces"] == 2
    assert results[0].status == "skipped"


def test_checkout_unknown_lesson_is_skipped(service, repository):
    results = service.submit_checkout([CartItem(id="nope", qty=1), CartItem(id="L1", qty=1)])

    assert results[0].reason == "not_found"
    assert results[1].status == "fulfilled"
    assert repository.lessons["L1"]["spaces"] == 4


def test_checkout_sold_out_lesson_never_goes_negative(service, repository):
    service.submit_checkout([CartItem(id="L3", qty=1)])
    assert repository.lessons["L3"]["spaces"] == 0


@pytest.mark.parametrize("cart", [None, [], "L1", {"id": "L1", "qty": 1}])
def test_checkout_rejects_malformed_cart_before_store_access(cart):
    # A disconnected store would raise StoreUnavailableError if it were touched
    service = InventoryService(DisconnectedRepository("offline"))
    with pytest.raises(ValidationError):
        service.submit_checkout(cart)


def test_checkout_store_failure_surfaces():
    service = InventoryService(DisconnectedRepository("offline"))
    with pytest.raises(StoreUnavailableError):
        service.submit_checkout([CartItem(id="L1", qty=1)])


def test_submit_order_records_exactly_one_order(service, repository):
    lines = [OrderLine(lessonId="L1", qty=2), OrderLine(lessonId="L2", qty=1)]

    order_id = service.submit_order("Ada", "07700900000", lines)

    assert list(repository.orders) == [order_id]
    order = service.get_order(order_id)
    assert order.name == "Ada"
    assert order.phone == "07700900000"
    assert order.lessons == lines
    assert order.createdAt


def test_submit_order_does_not_touch_stock(service, repository):
    service.submit_order("Ada", "07700900000", [OrderLine(lessonId="L1", qty=2)])
    assert repository.lessons["L1"]["spaces"] == 5


@pytest.mark.parametrize(
    "name,phone,lines",
    [
        ("Ada", "07700900000", []),
        ("", "07700900000", [OrderLine(lessonId="L1", qty=1)]),
        ("Ada", "   ", [OrderLine(lessonId="L1", qty=1)]),
        (None, "07700900000", [OrderLine(lessonId="L1", qty=1)]),
    ],
)
def test_submit_order_invalid_input_creates_nothing(service, repository, name, phone, lines):
    with pytest.raises(ValidationError):
        service.submit_order(name, phone, lines)
    assert repository.orders == {}


def test_get_order_unknown_id(service):
    with pytest.raises(NotFoundError):
        service.get_order("missing")


def test_update_lesson_fields_merges(service, repository):
    service.update_lesson_fields("L1", {"price": 120, "location": "Mill Hill"})

    lesson = repository.lessons["L1"]
    assert lesson["price"] == 120
    assert lesson["location"] == "Mill Hill"
    assert lesson["subject"] == "Math"


def test_update_lesson_fields_missing_lesson(service, repository):
    before = {key: dict(doc) for key, doc in repository.lessons.items()}

    with pytest.raises(NotFoundError):
        service.update_lesson_fields("missing", {"spaces": 99})

    assert repository.lessons == before


@pytest.mark.parametrize("fields", [{}, None, ["spaces"], {"_id": "other"}])
def test_update_lesson_fields_rejects_bad_body(service, fields):
    with pytest.raises(ValidationError):
        service.update_lesson_fields("L1", fields)


def test_list_lessons_returns_every_lesson(service):
    lessons = service.list_lessons()

    assert [lesson.id for lesson in lessons] == ["L1", "L2", "L3"]
    assert lessons[0].spaces == 5
    assert lessons[0].model_dump(by_alias=True)["subject"] == "Math"


@pytest.mark.parametrize("fields", [{"spaces": None}, {"spaces": "5"}, {"spaces": -1}, {"$inc": 1}, {"a.b": 1}])
def test_update_lesson_fields_rejects_values_the_store_cannot_hold(service, repository, fields):
    with pytest.raises(ValidationError):
        service.update_lesson_fields("L1", fields)
    assert repository.lessons["L1"]["spaces"] == 5


def test_checkout_treats_non_integer_seats_as_insufficient(service, repository):
    repository.lessons["L2"]["spaces"] = None

    results = service.submit_checkout([CartItem(id="L2", qty=1)])

    assert results[0].reason == "insufficient_stock"
