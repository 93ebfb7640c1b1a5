"""Tests for QueryService: role-scoped deposit listings and the audit trail views."""

from datetime import timedelta
from uuid import uuid4

import pytest

from savings_kernel.exceptions import (
    AuditLogNotFoundError,
    DepositOperationError,
    RoleNotPermittedError,
)
from savings_kernel.models.audit_log import AuditAction, AuditStatus
from savings_kernel.selectors.audit_selector import AuditLogFilter


class TestListDeposits:

    def test_each_role_sees_its_slice(self, services, org, make_account, add_deposit, clock):
        mine = make_account()
        theirs = make_account(client=org.other_client, agent=org.other_agent)
        own = add_deposit(mine, "1000", clock.now())
        add_deposit(theirs, "1000", clock.now(), collector=org.other_agent)

        assert len(services.queries.list_deposits(org.admin_actor)) == 2
        assert len(services.queries.list_deposits(org.manager_actor)) == 2
        assert [d.id for d in services.queries.list_deposits(org.agent_actor)] == [own.id]
        assert [d.id for d in services.queries.list_deposits(org.client_actor)] == [own.id]

    def test_account_and_date_filters(self, services, org, make_account, add_deposit, clock):
        account = make_account()
        add_deposit(account, "1000", clock.now() - timedelta(days=40))
        recent = add_deposit(account, "1000", clock.now())

        rows = services.queries.list_deposits(
            org.admin_actor,
            account_id=str(account.id),
            date_from=clock.now() - timedelta(days=1),
        )

        assert [d.id for d in rows] == [recent.id]
        assert rows[0].to_dict()["amount"] == "1000.00"


class TestAuditLogViews:

    def test_list_newest_first_with_filters(self, services, org, make_account, clock):
        account = make_account()
        services.deposits.create_deposit(org.agent_actor, account.id, org.client.id, "1000")
        clock.advance(5)
        with pytest.raises(DepositOperationError):
            services.deposits.create_deposit(org.agent_actor, account.id, org.client.id, "1000")

        entries = services.queries.list_audit_logs(org.admin_actor)
        assert [e["status"] for e in entries] == [AuditStatus.FAILURE.value, AuditStatus.SUCCESS.value]
        assert entries[0]["error"] == "MONTHLY_ALREADY_PAID"
        assert entries[1]["performedBy"] == str(org.agent.id)

        failed = services.queries.list_audit_logs(
            org.admin_actor, AuditLogFilter(status=AuditStatus.FAILURE.value)
        )
        assert len(failed) == 1

    def test_get_single_entry(self, services, org, audit):
        entry_id = audit.success(AuditAction.CLOSE_ACCOUNT, "Account", None, {"x": 1}, org.admin_actor)

        entry = services.queries.get_audit_log(org.admin_actor, entry_id)

        assert entry["id"] == str(entry_id)
        assert entry["action"] == AuditAction.CLOSE_ACCOUNT.value
        assert entry["details"] == {"x": 1}

    def test_entry_of_another_company_is_not_found(self, services, org, other_org, audit):
        entry_id = audit.success(AuditAction.CLOSE_ACCOUNT, "Account", None, {}, org.admin_actor)

        with pytest.raises(AuditLogNotFoundError):
            services.queries.get_audit_log(other_org.admin_actor, entry_id)
        with pytest.raises(AuditLogNotFoundError):
            services.queries.get_audit_log(org.admin_actor, uuid4())

    @pytest.mark.parametrize("role", ["manager_actor", "agent_actor", "client_actor"])
    def test_admin_only(self, services, org, role):
        actor = getattr(org, role)
        with pytest.raises(RoleNotPermittedError):
            services.queries.list_audit_logs(actor)
        with pytest.raises(RoleNotPermittedError):
            services.queries.clear_audit_logs(actor)

    def test_clear_before_a_cutoff(self, services, org, audit, clock, store):
        audit.success(AuditAction.CLOSE_ACCOUNT, "Account", None, {}, org.admin_actor)
        clock.advance(60)
        cutoff = clock.now()
        audit.success(AuditAction.DELETE_ACCOUNT, "Account", None, {}, org.admin_actor)

        deleted = services.queries.clear_audit_logs(org.admin_actor, before=cutoff)

        assert deleted == 1
        remaining = {e.action for e in store.audit_entries()}
        assert remaining == {AuditAction.DELETE_ACCOUNT.value, AuditAction.CLEAR_AUDIT_LOGS.value}
