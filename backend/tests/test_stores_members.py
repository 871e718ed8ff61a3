"""
Store lifecycle and membership management.
"""

import pytest

from bazaar.models import Store, StoreMember
from bazaar.services import member_service, permission_service, products_service, store_service
from bazaar.services.errors import (
    ConflictError,
    DeniedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

from conftest import make_product, make_store, make_user, security_events


def membership(db_session, store, user):
    return db_session.query(StoreMember).filter_by(store_id=store.id, user_id=user.id).first()


class TestStores:

    def test_create_store_adds_owner_membership(self, db_session, owner):
        store = store_service.create_store(owner.id, "Corner Shop", "Corner-Shop", tax_rate_bps=500)

        assert store.slug == "corner-shop"
        assert store.status == "ACTIVE"
        assert store.visibility == "PUBLIC"
        assert store.tax_rate_bps == 500
        member = membership(db_session, store, owner)
        assert member.role == "OWNER"
        assert member.is_active

    def test_slug_rules(self, db_session, owner, public_store):
        with pytest.raises(ConflictError):
            make_store(owner, "public-store")
        with pytest.raises(ValidationError):
            store_service.create_store(owner.id, "Bad", "bad slug!")
        with pytest.raises(ValidationError):
            store_service.create_store(owner.id, "Taxing", "taxing", tax_rate_bps=10_001)

    def test_inactive_owner_cannot_create(self, db_session):
        ghost = make_user(db_session, "ghost@bazaar.test", is_active=False)
        with pytest.raises(NotFoundError):
            store_service.create_store(ghost.id, "Ghost", "ghost")

    def test_listing_hides_private_and_closed(self, owner, public_store, private_store):
        closed = make_store(owner, "closed-store")
        store_service.close_store(closed.id, owner.id)

        assert [store.slug for store in store_service.list_stores()] == ["public-store"]
        slugs = {store.slug for store in store_service.list_stores(include_private=True, include_closed=True)}
        assert slugs == {"public-store", "private-store", "closed-store"}

    def test_status_change_is_audited(self, db_session, owner, public_store):
        store_service.set_store_status(public_store.id, owner.id, "suspended")
        store_service.set_store_status(public_store.id, owner.id, "ACTIVE")

        events = security_events(db_session, "STORE_STATUS_CHANGED")
        assert [event.reason for event in events] == ["ACTIVE -> SUSPENDED", "SUSPENDED -> ACTIVE"]

    def test_admin_cannot_reopen_closed_store(self, db_session, owner, public_store):
        admin = make_user(db_session, "admin@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, admin.id, "ADMIN")
        store_service.close_store(public_store.id, owner.id)

        with pytest.raises(DeniedError):
            store_service.set_store_status(public_store.id, admin.id, "ACTIVE")

        assert store_service.set_store_status(public_store.id, owner.id, "ACTIVE").status == "ACTIVE"

    def test_admin_cannot_close(self, db_session, owner, public_store):
        admin = make_user(db_session, "admin@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, admin.id, "ADMIN")
        with pytest.raises(DeniedError):
            store_service.close_store(public_store.id, admin.id)

    def test_visibility_toggle(self, db_session, owner, stranger, public_store):
        store_service.set_visibility(public_store.id, owner.id, "PRIVATE")
        assert not permission_service.resolve_permission(stranger.id, public_store.id, "VIEW_PRODUCTS")
        assert len(security_events(db_session, "STORE_VISIBILITY_CHANGED")) == 1


class TestMembers:

    def test_invite_and_list(self, db_session, owner, public_store):
        staff = make_user(db_session, "staff@bazaar.test")
        member = member_service.invite_member(public_store.id, owner.id, staff.id, "staff")

        assert member.role == "STAFF"
        assert member.permissions == []
        assert member.invited_by_user_id == owner.id
        assert {m.user_id for m in member_service.list_members(public_store.id)} == {owner.id, staff.id}
        assert security_events(db_session, "MEMBER_INVITED")[0].target_user_id == staff.id

    def test_owner_role_is_not_assignable(self, db_session, owner, public_store):
        user = make_user(db_session, "user@bazaar.test")
        with pytest.raises(InvalidStateError):
            member_service.invite_member(public_store.id, owner.id, user.id, "OWNER")

    def test_custom_permissions_validated(self, db_session, owner, public_store):
        user = make_user(db_session, "user@bazaar.test")
        with pytest.raises(ValidationError):
            member_service.invite_member(public_store.id, owner.id, user.id, "CUSTOM", ["FLY"])

        member = member_service.invite_member(
            public_store.id, owner.id, user.id, "CUSTOM", ["view_orders", "VIEW_ORDERS"]
        )
        assert member.permissions == ["VIEW_ORDERS"]

    def test_duplicate_invite_conflicts_and_reinvite_reactivates(self, db_session, owner, public_store):
        user = make_user(db_session, "user@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, user.id, "STAFF")
        with pytest.raises(ConflictError):
            member_service.invite_member(public_store.id, owner.id, user.id, "MANAGER")

        member_service.remove_member(public_store.id, owner.id, user.id)
        member = member_service.invite_member(public_store.id, owner.id, user.id, "MANAGER")

        assert member.is_active
        assert member.role == "MANAGER"
        assert db_session.query(StoreMember).filter_by(store_id=public_store.id, user_id=user.id).count() == 1

    def test_manager_cannot_invite(self, db_session, owner, public_store):
        manager = make_user(db_session, "manager@bazaar.test")
        user = make_user(db_session, "user@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, manager.id, "MANAGER")
        with pytest.raises(DeniedError):
            member_service.invite_member(public_store.id, manager.id, user.id, "STAFF")

    def test_change_role(self, db_session, owner, public_store):
        user = make_user(db_session, "user@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, user.id, "STAFF")

        member = member_service.change_role(public_store.id, owner.id, user.id, "MANAGER")

        assert member.role == "MANAGER"
        assert security_events(db_session, "MEMBER_ROLE_CHANGED")[0].reason == "STAFF -> MANAGER"
        assert permission_service.resolve_permission(user.id, public_store.id, "CREATE_PRODUCTS")

    def test_owner_membership_is_protected(self, db_session, owner, public_store):
        admin = make_user(db_session, "admin@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, admin.id, "ADMIN")

        with pytest.raises(InvalidStateError):
            member_service.change_role(public_store.id, admin.id, owner.id, "STAFF")
        with pytest.raises(InvalidStateError):
            member_service.remove_member(public_store.id, admin.id, owner.id)

    def test_missing_membership(self, db_session, owner, stranger, public_store):
        with pytest.raises(NotFoundError):
            member_service.change_role(public_store.id, owner.id, stranger.id, "STAFF")
        with pytest.raises(NotFoundError):
            member_service.remove_member(public_store.id, owner.id, stranger.id)


class TestOwnershipTransfer:

    def test_transfer_demotes_previous_owner(self, db_session, owner, buyer, public_store):
        store = member_service.transfer_ownership(public_store.id, owner.id, buyer.id)

        assert store.owner_id == buyer.id
        assert membership(db_session, public_store, buyer).role == "OWNER"
        assert membership(db_session, public_store, owner).role == "ADMIN"
        assert not permission_service.resolve_permission(owner.id, public_store.id, "DELETE_STORE")
        assert permission_service.resolve_permission(buyer.id, public_store.id, "DELETE_STORE")
        assert security_events(db_session, "OWNERSHIP_TRANSFERRED")[0].target_user_id == buyer.id

        owners = db_session.query(StoreMember).filter_by(store_id=public_store.id, role="OWNER", is_active=True)
        assert owners.count() == 1

    def test_only_owner_may_transfer(self, db_session, owner, buyer, public_store):
        admin = make_user(db_session, "admin@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, admin.id, "ADMIN")
        with pytest.raises(DeniedError):
            member_service.transfer_ownership(public_store.id, admin.id, buyer.id)
        assert db_session.get(Store, public_store.id).owner_id == owner.id

    def test_transfer_to_self_is_rejected(self, owner, public_store):
        with pytest.raises(InvalidStateError):
            member_service.transfer_ownership(public_store.id, owner.id, owner.id)


class TestProducts:

    def test_manager_creates_and_staff_cannot(self, db_session, owner, public_store):
        manager = make_user(db_session, "manager@bazaar.test")
        staff = make_user(db_session, "staff@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, manager.id, "MANAGER")
        member_service.invite_member(public_store.id, owner.id, staff.id, "STAFF")

        product = products_service.create_product(
            public_store.id, manager.id, sku="MUG", name="Mug", price_cents=1299, stock_quantity=4
        )
        assert product.stock_quantity == 4

        with pytest.raises(DeniedError):
            products_service.create_product(public_store.id, staff.id, sku="CUP", name="Cup", price_cents=100)

    def test_duplicate_sku_conflicts(self, db_session, owner, public_store):
        make_product(db_session, public_store, "MUG")
        with pytest.raises(ConflictError):
            products_service.create_product(public_store.id, owner.id, sku="MUG", name="Mug", price_cents=100)

    def test_price_validation(self, owner, public_store):
        with pytest.raises(ValidationError):
            products_service.create_product(public_store.id, owner.id, sku="A", name="A", price_cents=0)
        with pytest.raises(ValidationError):
            products_service.create_product(public_store.id, owner.id, sku="A", name="A", price_cents="9.99")

    def test_restock_and_deactivate(self, db_session, owner, public_store):
        product = make_product(db_session, public_store, "MUG", stock=1)

        assert products_service.restock(product.id, owner.id, 4).stock_quantity == 5
        products_service.update_product(product.id, owner.id, is_active=False)

        assert products_service.list_products(public_store.id) == []
        assert len(products_service.list_products(public_store.id, include_inactive=True)) == 1
