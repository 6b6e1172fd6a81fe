"""
Policy engine tests.

authorize() is pure, so these run without an app or a database.
"""

import pytest

from accountsforge.models import EntityKind, Role
from accountsforge.policy import (
    AccessContext,
    Operation,
    Principal,
    TargetRef,
    authorize,
    can_read_all,
)


ADMIN = Principal("u-admin", Role.ADMIN)
ALICE = Principal("u-alice", Role.EMPLOYEE)
BOB = Principal("u-bob", Role.SALESMAN)

LEDGER = [EntityKind.EXPENSE, EntityKind.REVENUE, EntityKind.CLAIM]
NON_ADMINS = [ALICE, BOB]


def ctx(principal, operation, entity, owner=None, status=None, changed=(), new_owner=None):
    target = TargetRef(owner_id=owner, status=status) if owner is not None else None
    return AccessContext(
        principal=principal,
        operation=operation,
        entity=entity,
        target=target,
        changed_fields=frozenset(changed),
        new_owner_id=new_owner,
    )


# =============================================================================
# READ
# =============================================================================


class TestLedgerRead:

    @pytest.mark.parametrize("entity", LEDGER)
    @pytest.mark.parametrize("principal", NON_ADMINS)
    @pytest.mark.parametrize("status", ["pending", "approved", "rejected"])
    def test_non_admin_cannot_read_foreign_records(self, entity, principal, status):
        decision = authorize(ctx(principal, Operation.READ, entity, owner="u-someone-else", status=status))
        assert not decision
        assert decision.reason == "no_grant"

    @pytest.mark.parametrize("entity", LEDGER)
    @pytest.mark.parametrize("status", ["pending", "approved", "rejected"])
    def test_owner_reads_own_in_any_status(self, entity, status):
        decision = authorize(ctx(ALICE, Operation.READ, entity, owner=ALICE.user_id, status=status))
        assert decision.allowed
        assert decision.reason == "read_own"

    @pytest.mark.parametrize("entity", LEDGER)
    def test_admin_reads_everything(self, entity):
        decision = authorize(ctx(ADMIN, Operation.READ, entity, owner=ALICE.user_id, status="approved"))
        assert decision.allowed
        assert decision.reason == "read_all_admin"

    def test_can_read_all_only_for_admin(self):
        assert can_read_all(ADMIN, EntityKind.EXPENSE)
        assert can_read_all(ADMIN, EntityKind.COMMISSION)
        assert not can_read_all(ALICE, EntityKind.EXPENSE)
        assert not can_read_all(BOB, EntityKind.COMMISSION)


# =============================================================================
# INSERT
# =============================================================================


class TestLedgerInsert:

    @pytest.mark.parametrize("entity", [EntityKind.EXPENSE, EntityKind.CLAIM])
    def test_anyone_inserts_own_expense_and_claim(self, entity):
        for principal in (ADMIN, ALICE, BOB):
            decision = authorize(ctx(principal, Operation.INSERT, entity, new_owner=principal.user_id))
            assert decision.allowed, principal

    def test_employee_cannot_insert_revenue(self):
        decision = authorize(ctx(ALICE, Operation.INSERT, EntityKind.REVENUE, new_owner=ALICE.user_id))
        assert not decision.allowed
        assert decision.reason == "revenue_requires_salesman"

    @pytest.mark.parametrize("principal", [BOB, ADMIN])
    def test_salesman_and_admin_insert_revenue(self, principal):
        decision = authorize(ctx(principal, Operation.INSERT, EntityKind.REVENUE, new_owner=principal.user_id))
        assert decision.allowed
        assert decision.reason == "insert_own"

    @pytest.mark.parametrize("entity", LEDGER)
    @pytest.mark.parametrize("principal", [ADMIN, ALICE, BOB])
    def test_nobody_inserts_for_someone_else(self, entity, principal):
        decision = authorize(ctx(principal, Operation.INSERT, entity, new_owner="u-victim"))
        assert not decision.allowed


# =============================================================================
# UPDATE
# =============================================================================


class TestLedgerUpdate:

    def test_owner_updates_while_pending(self):
        decision = authorize(ctx(
            ALICE, Operation.UPDATE, EntityKind.EXPENSE,
            owner=ALICE.user_id, status="pending", changed={"amount", "description"},
        ))
        assert decision.allowed
        assert decision.reason == "update_own_pending"

    @pytest.mark.parametrize("status", ["approved", "rejected", "paid"])
    def test_owner_cannot_update_after_review(self, status):
        decision = authorize(ctx(
            ALICE, Operation.UPDATE, EntityKind.CLAIM,
            owner=ALICE.user_id, status=status, changed={"description"},
        ))
        assert not decision.allowed
        assert decision.reason == "not_pending"

    def test_owner_cannot_touch_review_fields(self):
        decision = authorize(ctx(
            BOB, Operation.UPDATE, EntityKind.REVENUE,
            owner=BOB.user_id, status="pending", changed={"status"},
        ))
        assert not decision.allowed
        assert decision.reason == "review_requires_admin"

    @pytest.mark.parametrize("principal", [ADMIN, ALICE])
    def test_owner_field_is_immutable_for_everyone(self, principal):
        decision = authorize(ctx(
            principal, Operation.UPDATE, EntityKind.EXPENSE,
            owner=ALICE.user_id, status="pending", changed={"user_id"},
        ))
        assert not decision.allowed
        assert decision.reason == "owner_immutable"

    @pytest.mark.parametrize("status", ["pending", "approved", "rejected"])
    def test_admin_updates_review_fields_at_any_status(self, status):
        decision = authorize(ctx(
            ADMIN, Operation.UPDATE, EntityKind.EXPENSE,
            owner=ALICE.user_id, status=status, changed={"status", "reviewed_by", "reviewed_at"},
        ))
        assert decision.allowed
        assert decision.reason == "update_all_admin"

    def test_admin_cannot_edit_someone_elses_amount(self):
        decision = authorize(ctx(
            ADMIN, Operation.UPDATE, EntityKind.EXPENSE,
            owner=ALICE.user_id, status="pending", changed={"amount"},
        ))
        assert not decision.allowed

    def test_non_owner_update_is_no_grant(self):
        decision = authorize(ctx(
            BOB, Operation.UPDATE, EntityKind.EXPENSE,
            owner=ALICE.user_id, status="pending", changed={"description"},
        ))
        assert not decision.allowed
        assert decision.reason == "no_grant"


# =============================================================================
# DELETE
# =============================================================================


class TestLedgerDelete:

    def test_owner_deletes_pending_claim(self):
        decision = authorize(ctx(ALICE, Operation.DELETE, EntityKind.CLAIM, owner=ALICE.user_id, status="pending"))
        assert decision.allowed
        assert decision.reason == "delete_own_pending"

    def test_owner_cannot_delete_approved_claim(self):
        decision = authorize(ctx(ALICE, Operation.DELETE, EntityKind.CLAIM, owner=ALICE.user_id, status="approved"))
        assert not decision.allowed

    @pytest.mark.parametrize("entity", [EntityKind.EXPENSE, EntityKind.REVENUE])
    def test_owner_cannot_delete_expense_or_revenue(self, entity):
        decision = authorize(ctx(BOB, Operation.DELETE, entity, owner=BOB.user_id, status="pending"))
        assert not decision.allowed

    @pytest.mark.parametrize("entity", LEDGER)
    def test_admin_deletes_anything(self, entity):
        decision = authorize(ctx(ADMIN, Operation.DELETE, entity, owner=ALICE.user_id, status="approved"))
        assert decision.allowed
        assert decision.reason == "delete_all_admin"


# =============================================================================
# PROFILES
# =============================================================================


class TestProfiles:

    def test_self_insert_requires_identity_match(self):
        assert authorize(ctx(ALICE, Operation.INSERT, EntityKind.PROFILE, new_owner=ALICE.user_id))
        decision = authorize(ctx(ALICE, Operation.INSERT, EntityKind.PROFILE, new_owner=BOB.user_id))
        assert not decision.allowed

    def test_read_and_update_own_profile(self):
        assert authorize(ctx(ALICE, Operation.READ, EntityKind.PROFILE, owner=ALICE.user_id))
        decision = authorize(ctx(
            ALICE, Operation.UPDATE, EntityKind.PROFILE, owner=ALICE.user_id, changed={"full_name"},
        ))
        assert decision.reason == "profile_update_self"

    def test_cannot_read_other_profile(self):
        assert not authorize(ctx(ALICE, Operation.READ, EntityKind.PROFILE, owner=BOB.user_id))

    @pytest.mark.parametrize("principal", NON_ADMINS)
    def test_non_admin_cannot_change_own_role(self, principal):
        decision = authorize(ctx(
            principal, Operation.UPDATE, EntityKind.PROFILE,
            owner=principal.user_id, changed={"role"},
        ))
        assert not decision.allowed
        assert decision.reason == "role_change_requires_admin"

    def test_admin_changes_roles(self):
        decision = authorize(ctx(
            ADMIN, Operation.UPDATE, EntityKind.PROFILE, owner=ALICE.user_id, changed={"role"},
        ))
        assert decision.allowed
        assert decision.reason == "profile_update_admin"

    def test_nobody_deletes_profiles_through_policy(self):
        assert not authorize(ctx(ADMIN, Operation.DELETE, EntityKind.PROFILE, owner=ALICE.user_id))


# =============================================================================
# COMMISSIONS AND NOTIFICATIONS
# =============================================================================


class TestDerivedRecords:

    def test_salesman_reads_own_commission_only(self):
        assert authorize(ctx(BOB, Operation.READ, EntityKind.COMMISSION, owner=BOB.user_id))
        assert not authorize(ctx(BOB, Operation.READ, EntityKind.COMMISSION, owner="u-other"))

    @pytest.mark.parametrize("principal", [ADMIN, ALICE, BOB])
    def test_nobody_inserts_commissions(self, principal):
        assert not authorize(ctx(principal, Operation.INSERT, EntityKind.COMMISSION, new_owner=principal.user_id))

    def test_only_admin_records_payout(self):
        changed = {"payout_status", "payout_reference"}
        assert authorize(ctx(ADMIN, Operation.UPDATE, EntityKind.COMMISSION, owner=BOB.user_id, changed=changed))
        assert not authorize(ctx(BOB, Operation.UPDATE, EntityKind.COMMISSION, owner=BOB.user_id, changed=changed))

    def test_admin_cannot_rewrite_commission_amount(self):
        decision = authorize(ctx(
            ADMIN, Operation.UPDATE, EntityKind.COMMISSION, owner=BOB.user_id, changed={"commission_amount"},
        ))
        assert not decision.allowed

    def test_notification_target_marks_read(self):
        assert authorize(ctx(
            ALICE, Operation.UPDATE, EntityKind.NOTIFICATION, owner=ALICE.user_id, changed={"read_at"},
        ))
        assert not authorize(ctx(
            ALICE, Operation.UPDATE, EntityKind.NOTIFICATION, owner=ALICE.user_id, changed={"message"},
        ))
        assert not authorize(ctx(
            ADMIN, Operation.UPDATE, EntityKind.NOTIFICATION, owner=ALICE.user_id, changed={"read_at"},
        ))


def test_decisions_are_deterministic():
    context = ctx(BOB, Operation.UPDATE, EntityKind.REVENUE, owner=BOB.user_id, status="pending", changed={"amount"})
    assert authorize(context) == authorize(context)
