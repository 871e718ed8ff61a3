"""
Permission resolution tests.

Verifies:
- Owner, membership, grant and visibility resolution order
- Suspended/closed stores deny mutations but keep status management
- Missing or deactivated users and missing stores deny without raising
- can_perform never writes; require_capability audits denials
"""

import uuid
from datetime import timedelta

import pytest

from bazaar.permissions import ALL_CAPABILITIES, Capability, MUTATING_CAPABILITIES
from bazaar.services import access_grant_service, member_service, permission_service, store_service
from bazaar.services.errors import DeniedError, InvalidStateError

from conftest import make_user, security_events


def allowed(user, store, capability):
    return permission_service.can_perform(user.id, store.id, capability).allowed


class TestOwner:

    def test_owner_holds_every_capability(self, owner, private_store):
        for capability in ALL_CAPABILITIES:
            decision = permission_service.can_perform(owner.id, private_store.id, capability)
            assert decision.allowed
            assert decision.reason == permission_service.ALLOW_OWNER


class TestPrivateStoreGrants:

    def test_view_grant_allows_browsing_but_not_buying(self, owner, stranger, private_store):
        assert not allowed(stranger, private_store, Capability.VIEW_PRODUCTS)

        access_grant_service.grant(private_store.id, owner.id, stranger.id, "VIEW")

        assert allowed(stranger, private_store, Capability.VIEW_PRODUCTS)
        assert not allowed(stranger, private_store, Capability.ADD_TO_CART)
        assert not allowed(stranger, private_store, Capability.CHECKOUT)

    def test_view_and_buy_grant_allows_purchase(self, owner, stranger, private_store):
        access_grant_service.grant(private_store.id, owner.id, stranger.id, "VIEW")
        access_grant_service.revoke(private_store.id, owner.id, stranger.id)
        access_grant_service.grant(private_store.id, owner.id, stranger.id, "VIEW_AND_BUY")

        decision = permission_service.can_perform(stranger.id, private_store.id, Capability.CHECKOUT)
        assert decision.allowed
        assert decision.reason == permission_service.ALLOW_GRANT

    def test_grant_never_yields_management_capabilities(self, owner, stranger, private_store):
        access_grant_service.grant(private_store.id, owner.id, stranger.id, "VIEW_AND_BUY")
        for capability in ALL_CAPABILITIES - {Capability.VIEW_PRODUCTS, Capability.ADD_TO_CART, Capability.CHECKOUT}:
            assert not allowed(stranger, private_store, capability)

    def test_expired_grant_is_ignored(self, owner, stranger, private_store, clock):
        access_grant_service.grant(
            private_store.id, owner.id, stranger.id, "VIEW", expires_at=clock.now() + timedelta(hours=1)
        )
        assert allowed(stranger, private_store, Capability.VIEW_PRODUCTS)

        clock.advance(hours=1)
        assert not allowed(stranger, private_store, Capability.VIEW_PRODUCTS)

    def test_revoked_grant_is_ignored(self, owner, stranger, private_store):
        access_grant_service.grant(private_store.id, owner.id, stranger.id, "VIEW_AND_BUY")
        access_grant_service.revoke(private_store.id, owner.id, stranger.id)
        assert not allowed(stranger, private_store, Capability.VIEW_PRODUCTS)


class TestPublicStore:

    def test_public_store_allows_browse_and_purchase(self, stranger, public_store):
        for capability in (Capability.VIEW_PRODUCTS, Capability.ADD_TO_CART, Capability.CHECKOUT):
            decision = permission_service.can_perform(stranger.id, public_store.id, capability)
            assert decision.allowed
            assert decision.reason == permission_service.ALLOW_PUBLIC

    def test_public_store_denies_management(self, stranger, public_store):
        for capability in (Capability.CREATE_PRODUCTS, Capability.VIEW_ORDERS, Capability.GRANT_ACCESS):
            decision = permission_service.can_perform(stranger.id, public_store.id, capability)
            assert not decision.allowed
            assert decision.reason == permission_service.DENY_NO_ACCESS


class TestMembership:

    def test_staff_member(self, db_session, owner, private_store):
        staff = make_user(db_session, "staff@bazaar.test")
        member_service.invite_member(private_store.id, owner.id, staff.id, "STAFF")

        assert allowed(staff, private_store, Capability.VIEW_ORDERS)
        decision = permission_service.can_perform(staff.id, private_store.id, Capability.CREATE_PRODUCTS)
        assert not decision.allowed
        assert decision.reason == permission_service.DENY_ROLE

    def test_staff_without_grant_cannot_buy_in_private_store(self, db_session, owner, private_store):
        staff = make_user(db_session, "staff@bazaar.test")
        member_service.invite_member(private_store.id, owner.id, staff.id, "STAFF")
        assert not allowed(staff, private_store, Capability.CHECKOUT)

    def test_staff_with_buy_grant_can_buy(self, db_session, owner, private_store):
        staff = make_user(db_session, "staff@bazaar.test")
        member_service.invite_member(private_store.id, owner.id, staff.id, "STAFF")
        access_grant_service.grant(private_store.id, owner.id, staff.id, "VIEW_AND_BUY")

        assert allowed(staff, private_store, Capability.CHECKOUT)
        # Membership still decides management capabilities
        assert not allowed(staff, private_store, Capability.CREATE_PRODUCTS)

    def test_custom_member_holds_exactly_its_set(self, db_session, owner, public_store):
        clerk = make_user(db_session, "clerk@bazaar.test")
        member_service.invite_member(
            public_store.id, owner.id, clerk.id, "CUSTOM", ["VIEW_ORDERS", "PROCESS_ORDERS"]
        )
        assert allowed(clerk, public_store, Capability.PROCESS_ORDERS)
        assert not allowed(clerk, public_store, Capability.CANCEL_ORDERS)

    def test_removed_member_loses_access(self, db_session, owner, private_store):
        staff = make_user(db_session, "staff@bazaar.test")
        member_service.invite_member(private_store.id, owner.id, staff.id, "MANAGER")
        member_service.remove_member(private_store.id, owner.id, staff.id)
        assert not allowed(staff, private_store, Capability.VIEW_PRODUCTS)


class TestStoreState:

    def test_suspended_store_denies_mutations_even_to_owner(self, owner, public_store):
        store_service.set_store_status(public_store.id, owner.id, "SUSPENDED")

        decision = permission_service.can_perform(owner.id, public_store.id, Capability.CREATE_PRODUCTS)
        assert not decision.allowed
        assert decision.reason == permission_service.DENY_STORE_INACTIVE
        assert allowed(owner, public_store, Capability.MANAGE_STORE_STATUS)
        assert allowed(owner, public_store, Capability.DELETE_STORE)
        assert allowed(owner, public_store, Capability.VIEW_ORDERS)

    def test_closed_store_keeps_status_management_for_admin(self, db_session, owner, public_store):
        admin = make_user(db_session, "admin@bazaar.test")
        member_service.invite_member(public_store.id, owner.id, admin.id, "ADMIN")
        store_service.close_store(public_store.id, owner.id)

        assert allowed(admin, public_store, Capability.MANAGE_STORE_STATUS)
        for capability in MUTATING_CAPABILITIES - {Capability.MANAGE_STORE_STATUS, Capability.DELETE_STORE}:
            assert not allowed(admin, public_store, capability)

    def test_closed_store_blocks_purchase(self, owner, stranger, public_store):
        store_service.close_store(public_store.id, owner.id)
        assert not allowed(stranger, public_store, Capability.CHECKOUT)


class TestSoftState:

    def test_inactive_user_is_denied_everything(self, db_session, owner, public_store):
        owner.is_active = False
        db_session.commit()
        decision = permission_service.can_perform(owner.id, public_store.id, Capability.VIEW_PRODUCTS)
        assert not decision.allowed
        assert decision.reason == permission_service.DENY_USER_INACTIVE

    def test_missing_rows_deny_without_raising(self, owner, public_store):
        assert not permission_service.resolve_permission(uuid.uuid4(), public_store.id, Capability.VIEW_PRODUCTS)
        decision = permission_service.can_perform(owner.id, uuid.uuid4(), Capability.VIEW_PRODUCTS)
        assert decision.reason == permission_service.DENY_STORE_NOT_FOUND
        assert not permission_service.resolve_permission("not-a-uuid", public_store.id, Capability.VIEW_PRODUCTS)

    def test_string_ids_resolve(self, owner, public_store):
        assert permission_service.resolve_permission(str(owner.id), str(public_store.id), "DELETE_STORE")


class TestAudit:

    def test_can_perform_writes_nothing(self, db_session, stranger, private_store):
        before = len(security_events(db_session))
        permission_service.can_perform(stranger.id, private_store.id, Capability.GRANT_ACCESS)
        assert len(security_events(db_session)) == before

    def test_require_capability_logs_and_raises(self, db_session, stranger, private_store):
        with pytest.raises(DeniedError) as excinfo:
            permission_service.require_capability(stranger.id, private_store.id, Capability.GRANT_ACCESS)

        assert excinfo.value.details["capability"] == "GRANT_ACCESS"
        events = security_events(db_session, "PERMISSION_DENIED")
        assert len(events) == 1
        assert events[0].user_id == stranger.id
        assert events[0].store_id == private_store.id
        assert events[0].action == "GRANT_ACCESS"
        assert events[0].success is False

    def test_inactive_store_raises_invalid_state(self, owner, public_store):
        store_service.set_store_status(public_store.id, owner.id, "SUSPENDED")
        with pytest.raises(InvalidStateError):
            permission_service.require_capability(owner.id, public_store.id, Capability.CREATE_PRODUCTS)
