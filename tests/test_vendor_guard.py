"""Single-vendor-cart guard tests"""
from kindplate.services.cart_persistence import InMemoryCartPersistence
from kindplate.services.cart_store import CartStore
from kindplate.services.vendor_guard import (
    VendorConflict,
    find_vendor_conflict,
    resolve_vendor_conflict,
)
from helpers import cart_item, snapshot


class TestFindVendorConflict:

    def test_empty_cart_never_conflicts(self):
        assert find_vendor_conflict([], snapshot(1, business_id=5)) is None

    def test_same_business_no_conflict(self):
        items = [cart_item(1, business_id=3), cart_item(2, business_id=3)]

        assert find_vendor_conflict(items, snapshot(4, business_id=3)) is None

    def test_other_business_conflicts(self):
        items = [cart_item(1, business_id=3, business_name="Bakery")]

        conflict = find_vendor_conflict(items, snapshot(4, business_id=8, business_name="Cafe"))

        assert conflict == VendorConflict(
            current_business_id=3,
            current_business_name="Bakery",
            new_business_id=8,
            new_business_name="Cafe",
        )
        assert conflict.as_dict()["new_business_id"] == 8


class TestResolveVendorConflict:

    def _store_with_items(self):
        store = CartStore(owner_id=1, persistence=InMemoryCartPersistence())
        store.add_to_cart(snapshot(1, business_id=3), 2)
        store.add_to_cart(snapshot(2, business_id=3), 1)
        return store

    def test_declined_keeps_cart(self):
        store = self._store_with_items()

        mutated = resolve_vendor_conflict(store, snapshot(9, business_id=8), 1, confirm=False)

        assert mutated is False
        assert [item.offer_id for item in store.items] == [1, 2]

    def test_confirmed_replaces_cart(self):
        store = self._store_with_items()

        mutated = resolve_vendor_conflict(store, snapshot(9, business_id=8), 4, confirm=True)

        assert mutated is True
        items = store.items
        assert len(items) == 1
        assert items[0].offer_id == 9
        assert items[0].quantity == 4
        assert items[0].business_id == 8
