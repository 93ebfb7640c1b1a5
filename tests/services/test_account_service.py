"""
Tests for AccountService -- opening accounts and Admin maintenance.

Covers:
- open_account(): totals per payment mode, account numbers, agent
  assignment rules per role, input validation codes
- update_total_payable(): collected floor, mode consistency, recompute
- close_account(), delete_account(), refresh_status()
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.terms import PaymentMode
from savings_kernel.exceptions import AccountNotFoundError, DepositOperationError
from savings_kernel.models.account import Account
from savings_kernel.models.audit_log import AuditAction, AuditStatus
from savings_kernel.models.change_request import ChangeRequestStatus, DepositChangeRequest
from savings_services.account_service import AccountService, OpenAccountRequest, scheme_prefix


def monthly_request(org, **overrides) -> OpenAccountRequest:
    values = dict(
        client_id=org.client.id,
        assigned_agent_id=org.agent.id,
        scheme_type="Recurring Deposit",
        payment_mode="Monthly",
        duration_months=12,
        installment_amount="1000",
    )
    values.update(overrides)
    return OpenAccountRequest(**values)


def failure_code(store, action: AuditAction) -> str:
    [entry] = [e for e in store.audit_entries(action.value) if e.status == AuditStatus.FAILURE.value]
    return entry.error


class TestSchemePrefix:

    @pytest.mark.parametrize(
        "scheme, prefix",
        [
            ("Recurring Deposit", "RD"),
            ("National Savings Certificate", "NSC"),
            ("ppf", "PPF"),
            ("KVP", "KVP"),
            ("", "AC"),
        ],
    )
    def test_prefix(self, scheme, prefix):
        assert scheme_prefix(scheme) == prefix


class TestOpenAccount:

    def test_monthly_account(self, services, org, store):
        record = services.accounts.open_account(org.agent_actor, monthly_request(org))

        assert record.account_number == "RDM100001"
        assert record.total_payable_amount == Decimal("12000.00")
        assert record.status == AccountStatus.ACTIVE.value
        assert record.balance == Decimal("0.00")
        assert record.maturity_date == datetime(2027, 3, 10, 6, 30, tzinfo=timezone.utc)
        stored = store.get(Account, record.id)
        assert stored.client_name == org.client.name
        assert stored.assigned_agent_id == org.agent.id

    def test_numbers_are_sequential_per_payment_mode(self, services, org):
        first = services.accounts.open_account(org.agent_actor, monthly_request(org))
        second = services.accounts.open_account(org.agent_actor, monthly_request(org))
        daily = services.accounts.open_account(
            org.agent_actor,
            monthly_request(org, payment_mode="Daily", installment_amount=None, daily_deposit_amount="100"),
        )

        assert (first.account_number, second.account_number) == ("RDM100001", "RDM100002")
        assert daily.account_number == "RDD100001"

    def test_daily_target_defaults_from_daily_amount(self, services, org, store):
        record = services.accounts.open_account(
            org.agent_actor,
            monthly_request(org, payment_mode="Daily", installment_amount=None, daily_deposit_amount="100"),
        )

        stored = store.get(Account, record.id)
        assert stored.monthly_target == Decimal("3000.00")
        assert stored.daily_deposit_amount == Decimal("100.00")
        assert record.total_payable_amount == Decimal("36000.00")

    def test_daily_target_days_is_configurable(self, services, org, clock, store):
        accounts = AccountService(services.executor, services.audit, clock=clock, daily_target_days=31)

        record = accounts.open_account(
            org.agent_actor,
            monthly_request(org, payment_mode="Daily", installment_amount=None, daily_deposit_amount="100"),
        )

        assert store.get(Account, record.id).monthly_target == Decimal("3100.00")

    def test_yearly_account_from_total_payable(self, services, org, store):
        record = services.accounts.open_account(
            org.agent_actor,
            monthly_request(
                org,
                scheme_type="ppf",
                payment_mode="Yearly",
                installment_amount=None,
                total_payable_amount="12000",
            ),
        )

        assert record.account_number == "PPFY100001"
        assert record.total_payable_amount == Decimal("12000.00")

    def test_account_may_open_inactive(self, services, org):
        record = services.accounts.open_account(
            org.agent_actor, monthly_request(org, status="Inactive")
        )

        assert record.status == AccountStatus.INACTIVE.value

    def test_admin_and_manager_may_open_for_an_agent(self, services, org):
        by_admin = services.accounts.open_account(org.admin_actor, monthly_request(org))
        by_manager = services.accounts.open_account(org.manager_actor, monthly_request(org))

        assert by_admin.assigned_agent_id == by_manager.assigned_agent_id == org.agent.id

    def test_success_is_audited(self, services, org, store):
        record = services.accounts.open_account(org.agent_actor, monthly_request(org))

        [entry] = store.audit_entries(AuditAction.OPEN_ACCOUNT.value)
        assert entry.status == AuditStatus.SUCCESS.value
        assert entry.entity_id == str(record.id)
        assert entry.details["accountNumber"] == "RDM100001"

    def test_agent_can_only_assign_themselves(self, services, org, store):
        with pytest.raises(DepositOperationError):
            services.accounts.open_account(
                org.agent_actor, monthly_request(org, assigned_agent_id=org.other_agent.id)
            )

        assert failure_code(store, AuditAction.OPEN_ACCOUNT) == "SCOPE_VIOLATION"

    def test_client_must_belong_to_the_agent(self, services, org, store):
        with pytest.raises(DepositOperationError, match="does not belong"):
            services.accounts.open_account(
                org.admin_actor, monthly_request(org, assigned_agent_id=org.other_agent.id)
            )

    def test_unknown_agent(self, services, org, store):
        with pytest.raises(DepositOperationError, match="Agent not found"):
            services.accounts.open_account(
                org.admin_actor, monthly_request(org, assigned_agent_id=org.manager.id)
            )

        assert failure_code(store, AuditAction.OPEN_ACCOUNT) == "USER_NOT_FOUND"

    def test_client_from_another_company(self, services, org, other_org, store):
        with pytest.raises(DepositOperationError, match="Client not found"):
            services.accounts.open_account(
                other_org.admin_actor,
                monthly_request(org, assigned_agent_id=other_org.agent.id),
            )

    def test_clients_cannot_open_accounts(self, services, org, store):
        with pytest.raises(DepositOperationError):
            services.accounts.open_account(org.client_actor, monthly_request(org))

        assert failure_code(store, AuditAction.OPEN_ACCOUNT) == "ROLE_NOT_PERMITTED"

    @pytest.mark.parametrize(
        "overrides, code",
        [
            ({"duration_months": 0}, "INVALID_DURATION"),
            ({"duration_months": "twelve"}, "INVALID_DURATION"),
            ({"payment_mode": "Weekly"}, "INVALID_PAYMENT_MODE"),
            ({"installment_amount": None}, "MISSING_INSTALLMENT_AMOUNT"),
            ({"payment_mode": "Daily", "installment_amount": None}, "MISSING_MONTHLY_TARGET"),
            ({"payment_mode": "Yearly", "installment_amount": None}, "MISSING_YEARLY_AMOUNT"),
            ({"status": "Matured"}, "INVALID_OPENING_STATUS"),
            ({"scheme_type": "  "}, "MISSING_SCHEME_TYPE"),
            ({"client_id": "nope"}, "INVALID_ID"),
        ],
    )
    def test_invalid_requests(self, services, org, store, overrides, code):
        with pytest.raises(DepositOperationError):
            services.accounts.open_account(org.agent_actor, monthly_request(org, **overrides))

        assert failure_code(store, AuditAction.OPEN_ACCOUNT) == code
        assert store.all(Account.__table__.select()) == []


class TestUpdateTotalPayable:

    def test_reducing_to_collected_turns_on_track(self, services, org, make_account, add_deposit, clock, store):
        account = make_account(PaymentMode.MONTHLY, installment="1000")
        for months_ago in (1, 2, 3):
            add_deposit(account, "1000", clock.now() - timedelta(days=31 * months_ago))

        record = services.accounts.update_total_payable(org.admin_actor, account.id, "3000")

        assert record.total_payable_amount == Decimal("3000.00")
        assert record.status == AccountStatus.ON_TRACK.value
        [entry] = store.audit_entries(AuditAction.UPDATE_TOTAL_PAYABLE.value)
        assert entry.details["before"] == "12000.00"

    def test_cannot_go_below_collected(self, services, org, make_account, add_deposit, clock, store):
        account = make_account(PaymentMode.DAILY, monthly_target="3000")
        add_deposit(account, "2500", clock.now())

        with pytest.raises(DepositOperationError, match="below the collected amount"):
            services.accounts.update_total_payable(org.admin_actor, account.id, "2000")

        assert failure_code(store, AuditAction.UPDATE_TOTAL_PAYABLE) == "TOTAL_PAYABLE_BELOW_COLLECTED"
        assert store.get(Account, account.id).total_payable_amount == Decimal("36000.00")

    def test_monthly_total_is_a_whole_number_of_installments(self, services, org, make_account, store):
        account = make_account(PaymentMode.MONTHLY, installment="1000")

        with pytest.raises(DepositOperationError):
            services.accounts.update_total_payable(org.admin_actor, account.id, "12500")

        assert failure_code(store, AuditAction.UPDATE_TOTAL_PAYABLE) == "TOTAL_PAYABLE_MODE_MISMATCH"

    def test_yearly_total_keeps_the_yearly_amount(self, services, org, make_account, store):
        account = make_account(PaymentMode.YEARLY, yearly_amount="12000")

        with pytest.raises(DepositOperationError):
            services.accounts.update_total_payable(org.admin_actor, account.id, "6000")

        assert failure_code(store, AuditAction.UPDATE_TOTAL_PAYABLE) == "TOTAL_PAYABLE_MODE_MISMATCH"

    def test_raising_a_paid_yearly_total_keeps_it_fully_paid(self, services, org, make_account, store):
        account = make_account(PaymentMode.YEARLY, total="12000")
        services.deposits.create_deposit(org.agent_actor, account.id, org.client.id, "12000")

        record = services.accounts.update_total_payable(org.admin_actor, account.id, "24000")

        after = store.get(Account, account.id)
        assert record.total_payable_amount == Decimal("24000.00")
        assert after.yearly_amount == Decimal("12000.00")
        assert after.is_fully_paid is True
        assert after.status == AccountStatus.ON_TRACK.value
        assert after.balance == Decimal("12000.00")

    def test_paid_yearly_account_still_takes_one_payment(self, services, org, make_account, store):
        account = make_account(PaymentMode.YEARLY, total="12000")
        services.deposits.create_deposit(org.agent_actor, account.id, org.client.id, "12000")
        services.accounts.update_total_payable(org.admin_actor, account.id, "24000")

        with pytest.raises(DepositOperationError, match="already been made"):
            services.deposits.create_deposit(org.agent_actor, account.id, org.client.id, "12000")

        assert store.get(Account, account.id).is_fully_paid is True
        assert store.ledger_total(account.id) == Decimal("12000.00")

    def test_unpaid_yearly_total_sets_the_payment(self, services, org, make_account, store):
        account = make_account(PaymentMode.YEARLY, total="12000")

        services.accounts.update_total_payable(org.admin_actor, account.id, "6000")
        services.deposits.create_deposit(org.agent_actor, account.id, org.client.id, "6000")

        after = store.get(Account, account.id)
        assert after.yearly_amount is None
        assert after.is_fully_paid is True

    def test_admin_only(self, services, org, make_account, store):
        account = make_account()

        with pytest.raises(DepositOperationError):
            services.accounts.update_total_payable(org.manager_actor, account.id, "24000")

        assert failure_code(store, AuditAction.UPDATE_TOTAL_PAYABLE) == "ROLE_NOT_PERMITTED"


class TestCloseAndDelete:

    def test_close_account(self, services, org, make_account, store):
        account = make_account()

        record = services.accounts.close_account(org.admin_actor, account.id)

        assert record.status == AccountStatus.CLOSED.value
        assert store.get(Account, account.id).status == AccountStatus.CLOSED.value
        [entry] = store.audit_entries(AuditAction.CLOSE_ACCOUNT.value)
        assert entry.details["statusBefore"] == AccountStatus.ACTIVE.value

    def test_closed_account_stays_closed_on_recompute(self, services, org, make_account, add_deposit, clock):
        account = make_account()
        add_deposit(account, "1000", clock.now())
        services.accounts.close_account(org.admin_actor, account.id)

        state = services.accounts.refresh_status(account.id)

        assert state.status == AccountStatus.CLOSED
        assert state.balance == Decimal("1000.00")

    def test_delete_removes_deposits_and_change_requests(self, services, org, make_account, add_deposit, clock, store):
        account = make_account(PaymentMode.DAILY, monthly_target="3000")
        first = add_deposit(account, "100", clock.now())
        add_deposit(account, "200", clock.now())
        store.add(
            DepositChangeRequest(
                deposit_id=first.id,
                agent_id=org.agent.id,
                company_id=org.company.id,
                old_values={"amount": "100.00"},
                new_values={"amount": "150.00"},
                reason="typo",
                status=ChangeRequestStatus.PENDING.value,
            )
        )

        removed = services.accounts.delete_account(org.admin_actor, account.id)

        assert removed == 2
        assert store.get(Account, account.id) is None
        assert store.deposits_for(account.id) == []
        assert store.all(DepositChangeRequest.__table__.select()) == []
        [entry] = store.audit_entries(AuditAction.DELETE_ACCOUNT.value)
        assert entry.details["depositsRemoved"] == 2

    def test_delete_unknown_account(self, services, org, store):
        with pytest.raises(DepositOperationError, match="Account not found"):
            services.accounts.delete_account(org.admin_actor, org.client.id)

        assert failure_code(store, AuditAction.DELETE_ACCOUNT) == "ACCOUNT_NOT_FOUND"


class TestRefreshStatus:

    def test_rebuilds_stale_fields_from_ledger(self, services, make_account, add_deposit, clock, store):
        account = make_account(PaymentMode.DAILY, monthly_target="3000")
        add_deposit(account, "3000", clock.now())

        state = services.accounts.refresh_status(account.id)

        assert state.changed is True
        assert state.status == AccountStatus.ON_TRACK
        stored = store.get(Account, account.id)
        assert stored.balance == Decimal("3000.00")
        assert stored.last_payment_date == clock.now()

    def test_second_refresh_changes_nothing(self, services, make_account, add_deposit, clock):
        account = make_account()
        add_deposit(account, "1000", clock.now())
        services.accounts.refresh_status(account.id)

        assert services.accounts.refresh_status(account.id).changed is False

    def test_inactive_account_with_deposits_takes_its_mode_status(self, services, make_account, add_deposit, clock):
        account = make_account(status=AccountStatus.INACTIVE)
        add_deposit(account, "1000", clock.now())

        assert services.accounts.refresh_status(account.id).status == AccountStatus.PENDING

    def test_inactive_account_without_deposits_stays_inactive(self, services, make_account):
        account = make_account(status=AccountStatus.INACTIVE)

        assert services.accounts.refresh_status(account.id).status == AccountStatus.INACTIVE

    def test_unknown_account(self, services, org):
        with pytest.raises(AccountNotFoundError):
            services.accounts.refresh_status(org.client.id)
