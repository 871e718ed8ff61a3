"""
Cart operations and per-store grouping.
"""

import uuid

import pytest

from bazaar.models import CartItem
from bazaar.services import access_grant_service, cart_service, store_service
from bazaar.services.errors import (
    DeniedError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

from conftest import make_product, make_store, put_in_cart, security_events


def test_add_merges_into_existing_line(db_session, buyer, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=10)

    cart_service.add_item(buyer.id, product.id, 2)
    item = cart_service.add_item(buyer.id, product.id, 3)

    assert item.quantity == 5
    assert db_session.query(CartItem).filter_by(user_id=buyer.id).count() == 1


def test_add_beyond_stock_is_rejected(db_session, buyer, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=3)
    cart_service.add_item(buyer.id, product.id, 2)

    with pytest.raises(InsufficientStockError) as excinfo:
        cart_service.add_item(buyer.id, product.id, 2)

    assert excinfo.value.requested == 4
    assert excinfo.value.available == 3
    assert cart_service.list_items(buyer.id)[0].quantity == 2


def test_add_requires_positive_quantity(db_session, buyer, public_store):
    product = make_product(db_session, public_store, "SKU-1")
    with pytest.raises(ValidationError):
        cart_service.add_item(buyer.id, product.id, 0)
    with pytest.raises(ValidationError):
        cart_service.add_item(buyer.id, product.id, "two")


def test_add_unknown_or_inactive_product(db_session, buyer, public_store):
    with pytest.raises(NotFoundError):
        cart_service.add_item(buyer.id, uuid.uuid4(), 1)

    product = make_product(db_session, public_store, "SKU-1")
    product.is_active = False
    db_session.commit()
    with pytest.raises(InvalidStateError):
        cart_service.add_item(buyer.id, product.id, 1)


def test_private_store_requires_buy_grant(db_session, owner, buyer, private_store):
    product = make_product(db_session, private_store, "SKU-1")

    with pytest.raises(DeniedError):
        cart_service.add_item(buyer.id, product.id, 1)
    assert security_events(db_session, "PERMISSION_DENIED")[0].action == "ADD_TO_CART"

    access_grant_service.grant(private_store.id, owner.id, buyer.id, "VIEW")
    with pytest.raises(DeniedError):
        cart_service.add_item(buyer.id, product.id, 1)

    access_grant_service.revoke(private_store.id, owner.id, buyer.id)
    access_grant_service.grant(private_store.id, owner.id, buyer.id, "VIEW_AND_BUY")
    assert cart_service.add_item(buyer.id, product.id, 1).quantity == 1


def test_set_quantity_replaces_and_zero_removes(db_session, buyer, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=10)
    cart_service.add_item(buyer.id, product.id, 2)

    assert cart_service.set_quantity(buyer.id, product.id, 7).quantity == 7
    assert cart_service.set_quantity(buyer.id, product.id, 0) is None
    assert cart_service.list_items(buyer.id) == []


def test_set_quantity_on_missing_line(db_session, buyer, public_store):
    product = make_product(db_session, public_store, "SKU-1")
    with pytest.raises(NotFoundError):
        cart_service.set_quantity(buyer.id, product.id, 3)


def test_remove_is_idempotent(db_session, buyer, public_store):
    product = make_product(db_session, public_store, "SKU-1")
    cart_service.add_item(buyer.id, product.id, 1)

    assert cart_service.remove_item(buyer.id, product.id) is True
    assert cart_service.remove_item(buyer.id, product.id) is False


def test_remove_opens_isolated_transaction(db_session, buyer, public_store, monkeypatch):
    product = make_product(db_session, public_store, "SKU-1")
    put_in_cart(db_session, buyer, product, 1)
    opened = []
    original = cart_service.begin_isolated

    def tracking_begin(*args, **kwargs):
        opened.append(True)
        return original(*args, **kwargs)

    monkeypatch.setattr(cart_service, "begin_isolated", tracking_begin)

    assert cart_service.remove_item(buyer.id, product.id) is True
    assert opened == [True]
    assert db_session.query(CartItem).count() == 0


class TestGrouping:

    def test_lines_grouped_by_owning_store(self, db_session, owner, buyer, public_store):
        other = make_store(owner, "other-store")
        a1 = make_product(db_session, public_store, "A-1", price_cents=500)
        a2 = make_product(db_session, public_store, "A-2", price_cents=250)
        b1 = make_product(db_session, other, "B-1", price_cents=1200)
        put_in_cart(db_session, buyer, a1, 2)
        put_in_cart(db_session, buyer, a2, 1)
        put_in_cart(db_session, buyer, b1, 1)

        grouping = cart_service.group_by_store(buyer.id)

        assert set(grouping.store_ids) == {public_store.id, other.id}
        assert {line.sku for line in grouping.stores[public_store.id]} == {"A-1", "A-2"}
        assert [line.sku for line in grouping.stores[other.id]] == ["B-1"]
        assert grouping.unavailable == []

        data = grouping.to_dict()
        subtotals = {entry["store_id"]: entry["subtotal_cents"] for entry in data["stores"]}
        assert subtotals == {str(public_store.id): 1250, str(other.id): 1200}

    def test_closed_store_and_inactive_product_are_reported(self, db_session, owner, buyer, public_store):
        other = make_store(owner, "other-store")
        live = make_product(db_session, public_store, "LIVE")
        retired = make_product(db_session, public_store, "RETIRED")
        gone = make_product(db_session, other, "GONE")
        put_in_cart(db_session, buyer, live, 1)
        put_in_cart(db_session, buyer, retired, 1)
        put_in_cart(db_session, buyer, gone, 1)

        retired.is_active = False
        db_session.commit()
        store_service.close_store(other.id, owner.id)

        grouping = cart_service.group_by_store(buyer.id)

        assert [line.sku for line in grouping.stores[public_store.id]] == ["LIVE"]
        assert other.id not in grouping.stores
        reasons = {line.sku: line.reason for line in grouping.unavailable}
        assert reasons == {
            "RETIRED": cart_service.UNAVAILABLE_PRODUCT_INACTIVE,
            "GONE": cart_service.UNAVAILABLE_STORE_CLOSED,
        }
        assert [line.sku for line in grouping.unavailable_for(other.id)] == ["GONE"]
        # Reporting never deletes lines
        assert len(cart_service.list_items(buyer.id)) == 3

    def test_empty_cart(self, buyer):
        grouping = cart_service.group_by_store(buyer.id)
        assert grouping.is_empty
        assert grouping.to_dict() == {"stores": [], "unavailable": []}
