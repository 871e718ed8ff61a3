"""
Stock ledger: conditional decrements and restocks.

Verifies:
- Decrement succeeds only when enough stock is available
- Stock never goes negative
- Each stock write bumps version_id
- The ledger joins the caller's transaction (rollback restores stock)
"""

import uuid

import pytest

from bazaar.models import Product
from bazaar.services import inventory_service
from bazaar.services.concurrency import begin_isolated

from conftest import make_product


def decrement(db_session, product_id, quantity, *, commit=True):
    begin_isolated()
    result = inventory_service.reserve_and_decrement(product_id, quantity)
    if commit:
        db_session.commit()
    return result


def test_decrement_within_stock(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=5)

    result = decrement(db_session, product.id, 2)

    assert result.ok
    assert result.available == 5
    assert result.remaining == 3
    assert result.reason is None
    assert inventory_service.get_available(product.id) == 3


def test_decrement_to_exactly_zero(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=4)
    assert decrement(db_session, product.id, 4).ok
    assert inventory_service.get_available(product.id) == 0


def test_shortfall_is_a_result_not_an_exception(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=1)

    result = decrement(db_session, product.id, 2)

    assert not result.ok
    assert result.reason == inventory_service.REASON_INSUFFICIENT
    assert result.requested == 2
    assert result.available == 1
    assert result.to_dict()["available"] == 1
    assert inventory_service.get_available(product.id) == 1


def test_empty_stock_reports_zero_available(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=0)
    result = decrement(db_session, product.id, 1)
    assert not result.ok
    assert result.available == 0


def test_inactive_product_is_not_sold(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=5)
    product.is_active = False
    db_session.commit()

    result = decrement(db_session, product.id, 1)

    assert not result.ok
    assert result.reason == inventory_service.REASON_INACTIVE
    assert inventory_service.get_available(product.id) == 5


def test_missing_product(db_session):
    missing = uuid.uuid4()
    result = decrement(db_session, missing, 1)
    assert not result.ok
    assert result.reason == inventory_service.REASON_NOT_FOUND
    assert inventory_service.get_available(missing) == 0


def test_non_positive_quantity_is_a_programming_error(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=5)
    with pytest.raises(ValueError):
        inventory_service.reserve_and_decrement(product.id, 0)
    with pytest.raises(ValueError):
        inventory_service.add_stock(product.id, -1)


def test_stock_writes_bump_version(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=5)
    start = product.version_id

    decrement(db_session, product.id, 1)
    begin_isolated()
    inventory_service.add_stock(product.id, 3)
    db_session.commit()

    refreshed = db_session.get(Product, product.id)
    assert refreshed.version_id == start + 2
    assert refreshed.stock_quantity == 7


def test_failed_decrement_leaves_version_alone(db_session, public_store):
    product = make_product(db_session, public_store, "SKU-1", stock=1)
    start = product.version_id
    decrement(db_session, product.id, 5)
    assert db_session.get(Product, product.id).version_id == start


def test_rollback_restores_stock(db_session, public_store):
    first = make_product(db_session, public_store, "SKU-1", stock=5)
    second = make_product(db_session, public_store, "SKU-2", stock=5)

    begin_isolated()
    assert inventory_service.reserve_and_decrement(first.id, 3).ok
    assert inventory_service.reserve_and_decrement(second.id, 2).ok
    db_session.rollback()

    assert inventory_service.get_available(first.id) == 5
    assert inventory_service.get_available(second.id) == 5


def test_add_stock_on_missing_product_returns_none(db_session):
    begin_isolated()
    assert inventory_service.add_stock(uuid.uuid4(), 3) is None
    db_session.rollback()
