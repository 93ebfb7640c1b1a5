"""Tests for AuditEmitter -- the append-only audit trail."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from savings_kernel.exceptions import RoleNotPermittedError
from savings_kernel.models.audit_log import AuditAction, AuditLog, AuditStatus


class TestRecord:

    def test_success_entry(self, audit, store, org, clock):
        entity_id = uuid4()

        entry_id = audit.success(
            AuditAction.CREATE_DEPOSIT,
            "Deposit",
            entity_id,
            {"amount": Decimal("1000.00"), "accountId": entity_id, "wasActivated": True},
            org.agent_actor,
        )

        entry = store.get(AuditLog, entry_id)
        assert entry.action == "CREATE_DEPOSIT"
        assert entry.status == AuditStatus.SUCCESS.value
        assert entry.entity_id == str(entity_id)
        assert entry.details == {
            "amount": "1000.00",
            "accountId": str(entity_id),
            "wasActivated": True,
        }
        assert entry.error is None
        assert entry.performed_by_id == org.agent.id
        assert entry.company_id == org.company.id
        assert entry.created_at == clock.now()

    def test_failure_entry_carries_reason_code(self, audit, store, org):
        entry_id = audit.failure(
            AuditAction.CREATE_DEPOSIT,
            "Deposit",
            None,
            {"accountId": "abc"},
            org.agent_actor,
            error="INVALID_ID",
        )

        entry = store.get(AuditLog, entry_id)
        assert entry.status == AuditStatus.FAILURE.value
        assert entry.error == "INVALID_ID"
        assert entry.entity_id is None

    def test_system_entry_has_no_actor(self, audit, store):
        entry_id = audit.success(AuditAction.MATURITY_SWEEP, "Account", None, None, None)

        entry = store.get(AuditLog, entry_id)
        assert entry.performed_by_id is None
        assert entry.company_id is None
        assert entry.details == {}

    def test_unserializable_details_are_logged_not_raised(self, audit, store, org, captured_logs):
        result = audit.success(
            AuditAction.CREATE_DEPOSIT, "Deposit", None, {"obj": object()}, org.agent_actor
        )

        assert result is None
        assert store.audit_entries() == []
        [record] = [r for r in captured_logs() if r["message"] == "audit_write_failed"]
        assert record["action"] == "CREATE_DEPOSIT"
        assert record["exc_type"] == "TypeError"


class TestClear:

    @pytest.fixture
    def seeded(self, audit, org, other_org, clock):
        audit.success(AuditAction.OPEN_ACCOUNT, "Account", None, {}, org.admin_actor)
        clock.advance_days(1)
        audit.success(AuditAction.CREATE_DEPOSIT, "Deposit", None, {}, org.agent_actor)
        audit.success(AuditAction.CREATE_DEPOSIT, "Deposit", None, {}, other_org.agent_actor)
        clock.advance_days(1)

    def test_admin_clears_own_company_only(self, audit, store, org, other_org, seeded):
        deleted = audit.clear(org.admin_actor)

        assert deleted == 2
        remaining = store.audit_entries()
        assert {e.company_id for e in remaining} == {other_org.company.id, org.company.id}
        [purge] = [e for e in remaining if e.company_id == org.company.id]
        assert purge.action == AuditAction.CLEAR_AUDIT_LOGS.value
        assert purge.details == {"deleted": 2, "before": None}

    def test_clear_before_cutoff(self, audit, store, org, clock, seeded):
        cutoff = clock.now() - timedelta(days=1, hours=12)

        assert audit.clear(org.admin_actor, before=cutoff) == 1

        actions = [e.action for e in store.audit_entries() if e.company_id == org.company.id]
        assert sorted(actions) == ["CLEAR_AUDIT_LOGS", "CREATE_DEPOSIT"]

    @pytest.mark.parametrize("role", ["manager_actor", "agent_actor", "client_actor"])
    def test_non_admins_may_not_clear(self, audit, store, org, seeded, role):
        with pytest.raises(RoleNotPermittedError):
            audit.clear(getattr(org, role))

        assert len(store.audit_entries()) == 3
