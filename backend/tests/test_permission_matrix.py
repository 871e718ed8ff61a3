"""
Role and access-level capability tables.

Pure data checks; no database needed.
"""

import pytest

from bazaar.permissions import (
    ACCESS_LEVEL_CAPABILITIES,
    ALL_CAPABILITIES,
    AccessLevel,
    Capability,
    MemberRole,
    MUTATING_CAPABILITIES,
    READ_ONLY_CAPABILITIES,
    ROLE_CAPABILITIES,
    get_all_capability_codes,
    get_capability_definition,
    parse_capabilities,
    role_capabilities,
)


class TestRoleMonotonicity:

    @pytest.mark.parametrize(
        "higher,lower",
        [
            (MemberRole.OWNER, MemberRole.ADMIN),
            (MemberRole.ADMIN, MemberRole.MANAGER),
            (MemberRole.MANAGER, MemberRole.STAFF),
        ],
    )
    def test_each_role_contains_the_next(self, higher, lower):
        assert ROLE_CAPABILITIES[higher] >= ROLE_CAPABILITIES[lower]

    def test_owner_holds_every_capability(self):
        assert ROLE_CAPABILITIES[MemberRole.OWNER] == ALL_CAPABILITIES

    def test_admin_lacks_only_deletion_and_transfer(self):
        missing = ALL_CAPABILITIES - ROLE_CAPABILITIES[MemberRole.ADMIN]
        assert missing == {Capability.DELETE_STORE, Capability.TRANSFER_OWNERSHIP}

    def test_manager_table(self):
        assert ROLE_CAPABILITIES[MemberRole.MANAGER] == {
            Capability.VIEW_PRODUCTS,
            Capability.CREATE_PRODUCTS,
            Capability.EDIT_PRODUCTS,
            Capability.DELETE_PRODUCTS,
            Capability.VIEW_ORDERS,
            Capability.PROCESS_ORDERS,
            Capability.VIEW_STATS,
        }

    def test_staff_table(self):
        assert ROLE_CAPABILITIES[MemberRole.STAFF] == {Capability.VIEW_PRODUCTS, Capability.VIEW_ORDERS}


class TestCustomRole:

    def test_custom_uses_explicit_set(self):
        caps = role_capabilities(MemberRole.CUSTOM, ["VIEW_ORDERS", "process_orders"])
        assert caps == {Capability.VIEW_ORDERS, Capability.PROCESS_ORDERS}

    def test_custom_ignores_unknown_codes_on_read(self):
        caps = role_capabilities(MemberRole.CUSTOM, ["VIEW_ORDERS", "LAUNCH_ROCKETS"])
        assert caps == {Capability.VIEW_ORDERS}

    def test_predefined_roles_ignore_explicit_set(self):
        caps = role_capabilities(MemberRole.STAFF, ["DELETE_STORE"])
        assert Capability.DELETE_STORE not in caps

    def test_parse_rejects_unknown_codes_on_write(self):
        with pytest.raises(ValueError, match="LAUNCH_ROCKETS"):
            parse_capabilities(["VIEW_ORDERS", "LAUNCH_ROCKETS"])


class TestAccessLevels:

    def test_view_is_read_only(self):
        assert ACCESS_LEVEL_CAPABILITIES[AccessLevel.VIEW] == {Capability.VIEW_PRODUCTS}

    def test_view_and_buy_adds_purchase_path(self):
        assert ACCESS_LEVEL_CAPABILITIES[AccessLevel.VIEW_AND_BUY] == {
            Capability.VIEW_PRODUCTS,
            Capability.ADD_TO_CART,
            Capability.CHECKOUT,
        }


class TestCatalogue:

    def test_every_capability_has_a_definition(self):
        assert set(get_all_capability_codes()) == {cap.value for cap in Capability}
        for cap in Capability:
            assert get_capability_definition(cap.value)["code"] == cap.value

    def test_read_only_and_mutating_partition_the_catalogue(self):
        assert READ_ONLY_CAPABILITIES | MUTATING_CAPABILITIES == ALL_CAPABILITIES
        assert not READ_ONLY_CAPABILITIES & MUTATING_CAPABILITIES
