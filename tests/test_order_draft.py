"""Order draft builder tests"""
import pytest
from datetime import time
from decimal import Decimal

from kindplate.services.order_draft import (
    aggregate_pickup_window,
    build_order_draft,
    compute_totals,
    time_of_day,
)
from helpers import cart_item


class TestTimeOfDay:

    def test_parses_hours_and_minutes(self):
        assert time_of_day("18:30") == time(18, 30)

    def test_accepts_seconds(self):
        assert time_of_day("07:05:00") == time(7, 5)

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            time_of_day("late")


class TestPickupWindow:

    def test_end_is_latest_item_end(self):
        items = [
            cart_item(1, start="10:00", end="18:00"),
            cart_item(2, start="12:00", end="21:30"),
            cart_item(3, start="09:00", end="20:00"),
        ]

        assert aggregate_pickup_window(items) == ("10:00", "21:30")

    def test_end_compared_by_time_of_day(self):
        items = [cart_item(1, end="9:45"), cart_item(2, end="10:15")]

        assert aggregate_pickup_window(items)[1] == "10:15"

    def test_defaults_when_items_have_no_times(self):
        items = [cart_item(1, start=None, end=None)]

        assert aggregate_pickup_window(items) == ("00:00", "19:00")

    def test_defaults_for_empty_cart(self):
        assert aggregate_pickup_window([]) == ("00:00", "19:00")


class TestComputeTotals:

    def test_total_is_subtotal_plus_fee(self):
        assert compute_totals(Decimal("250"), Decimal("50")) == (
            Decimal("250.00"), Decimal("50.00"), Decimal("0.00"), Decimal("300.00")
        )

    def test_discount_never_drives_total_negative(self):
        total = compute_totals(Decimal("10"), Decimal("0"), Decimal("25"))[3]

        assert total == Decimal("0.00")


class TestBuildOrderDraft:

    def test_two_items_same_business(self):
        items = [
            cart_item(1, quantity=2, price="100", start="18:00", end="20:00"),
            cart_item(2, quantity=1, price="50", start="17:00", end="21:00"),
        ]

        draft = build_order_draft(items, Decimal("50"), notes="ring twice")

        assert draft.subtotal == Decimal("250.00")
        assert draft.service_fee == Decimal("50.00")
        assert draft.total == Decimal("300.00")
        assert draft.promocode_discount == Decimal("0.00")
        assert draft.pickup_time_start == "18:00"
        assert draft.pickup_time_end == "21:00"
        assert draft.business_id == 1
        assert draft.business_name == "Business 1"
        assert draft.notes == "ring twice"
        assert [(i.offer_id, i.quantity, i.discounted_price) for i in draft.items] == [
            (1, 2, Decimal("100")),
            (2, 1, Decimal("50")),
        ]

    def test_item_without_times_inherits_window(self):
        draft = build_order_draft([cart_item(1, start=None, end=None)], Decimal("50"))

        assert draft.items[0].pickup_time_start == "00:00"
        assert draft.items[0].pickup_time_end == "19:00"

    def test_empty_cart_builds_nothing(self):
        assert build_order_draft([], Decimal("50")) is None

    def test_draft_serializes_money_as_numbers(self):
        draft = build_order_draft([cart_item(1, quantity=2, price="99.90")], Decimal("50"))

        payload = draft.model_dump(mode="json")

        assert payload["subtotal"] == 199.8
        assert payload["total"] == 249.8
