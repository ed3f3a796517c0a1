"""Tests for the ledger service operations."""

from datetime import datetime
from decimal import Decimal
from typing import Callable

import pytest

from ledger_engine.engine import reconcile_account
from ledger_engine.exceptions import (
    AccountNotFoundError,
    InsufficientBalanceError,
    PermissionDeniedError,
    PlanNotFoundError,
    ValidationError,
)
from ledger_engine.models.ledger import (
    Account,
    AccrualOutcome,
    Actor,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.service import LedgerService

S = TransactionStatus


class TestCreateAccount:
    """Tests for account creation on first login."""

    def test_zero_initialized(self, service: LedgerService) -> None:
        account = service.create_account("acct-001")

        assert account.balance == Decimal("0")
        assert account.total_invested == Decimal("0")
        assert account.current_plan_id is None

    def test_idempotent(self, service: LedgerService, funded_account: Account) -> None:
        again = service.create_account(funded_account.account_id)

        assert again.balance == Decimal("1000")

    def test_requires_id(self, service: LedgerService) -> None:
        with pytest.raises(ValidationError):
            service.create_account("")

    def test_get_missing(self, service: LedgerService) -> None:
        with pytest.raises(AccountNotFoundError):
            service.get_account("nope")


class TestRecordTransaction:
    """Tests for user requests."""

    def test_starts_pending(self, service: LedgerService, account: Account, now: datetime) -> None:
        tx = service.record_transaction(
            account.account_id, TransactionType.DEPOSIT, Decimal("500"), reference="0xabc"
        )

        assert tx.status is S.PENDING
        assert tx.amount == Decimal("500")
        assert tx.reference == "0xabc"
        assert tx.created_at == now
        assert service.store.get_transaction(tx.transaction_id) == tx
        assert service.get_account(account.account_id).balance == Decimal("0")

    def test_string_type_and_amount(self, service: LedgerService, account: Account) -> None:
        tx = service.record_transaction(account.account_id, "withdrawal", "12.34")

        assert tx.transaction_type is TransactionType.WITHDRAWAL
        assert tx.amount == Decimal("12.34")

    def test_float_amount_kept_exact(self, service: LedgerService, account: Account) -> None:
        tx = service.record_transaction(account.account_id, "deposit", 0.1)

        assert tx.amount == Decimal("0.1")

    @pytest.mark.parametrize("amount", [0, -5, "abc", "NaN", "Infinity", True])
    def test_invalid_amount(self, service: LedgerService, account: Account, amount: object) -> None:
        with pytest.raises(ValidationError):
            service.record_transaction(account.account_id, "deposit", amount)

    def test_amount_rounded_to_money_quantum(self, service: LedgerService, account: Account) -> None:
        tx = service.record_transaction(account.account_id, "deposit", "10.005")

        assert tx.amount == Decimal("10.01")
        assert service.store.get_transaction(tx.transaction_id).amount == Decimal("10.01")

    @pytest.mark.parametrize("amount", ["0.004", "0.000000001"])
    def test_amount_below_money_quantum(
        self, service: LedgerService, account: Account, amount: str
    ) -> None:
        with pytest.raises(ValidationError):
            service.record_transaction(account.account_id, "deposit", amount)

        assert service.pending_transactions() == []

    @pytest.mark.parametrize("tx_type", ["interest", "admin_credit", "admin_debit", "refund"])
    def test_type_not_requestable(self, service: LedgerService, account: Account, tx_type: str) -> None:
        with pytest.raises(ValidationError):
            service.record_transaction(account.account_id, tx_type, "10")

    def test_investment_description(self, service: LedgerService, account: Account) -> None:
        tx = service.record_transaction(account.account_id, "investment", "1500")

        assert tx.description == "Investment in Gold Plan"
        assert tx.plan_id is None

    def test_investment_unknown_plan_id(self, service: LedgerService, account: Account) -> None:
        with pytest.raises(PlanNotFoundError):
            service.record_transaction(account.account_id, "investment", "500", plan_id="diamond")

    def test_investment_outside_chosen_plan(
        self, service: LedgerService, account: Account, fund: Callable
    ) -> None:
        fund(account.account_id, "100")

        with pytest.raises(PlanNotFoundError):
            service.record_transaction(account.account_id, "investment", "10", plan_id="platinum")

        assert service.pending_transactions() == []
        assert service.get_account(account.account_id).total_invested == Decimal("0")

    def test_investment_below_every_plan(self, service: LedgerService, account: Account) -> None:
        with pytest.raises(PlanNotFoundError):
            service.record_transaction(account.account_id, "investment", "100")

    def test_plan_id_on_deposit(self, service: LedgerService, account: Account) -> None:
        with pytest.raises(ValidationError):
            service.record_transaction(account.account_id, "deposit", "500", plan_id="basic")

    def test_missing_account(self, service: LedgerService) -> None:
        with pytest.raises(AccountNotFoundError):
            service.record_transaction("nope", "deposit", "10")


class TestScenarios:
    """End-to-end flows of the platform."""

    def test_deposit_then_approve(self, service: LedgerService, account: Account, admin: Actor) -> None:
        tx = service.record_transaction(account.account_id, TransactionType.DEPOSIT, Decimal("500"))
        assert tx.status is S.PENDING

        service.transition(tx.transaction_id, S.APPROVED, admin)

        assert service.get_account(account.account_id).balance == Decimal("500")

    def test_invest_whole_balance(
        self, service: LedgerService, account: Account, admin: Actor, fund: Callable
    ) -> None:
        fund(account.account_id, "500")
        tx = service.record_transaction(
            account.account_id, TransactionType.INVESTMENT, Decimal("500"), plan_id="basic"
        )

        service.transition(tx.transaction_id, S.APPROVED, admin)

        after = service.get_account(account.account_id)
        assert after.balance == Decimal("0")
        assert after.total_invested == Decimal("500")
        assert after.current_plan_id == "basic"

    def test_accrue_once_per_day(self, service: LedgerService, invested_account: Account) -> None:
        first = service.maybe_accrue(invested_account.account_id, "2024-01-01")
        after_first = service.get_account(invested_account.account_id)
        second = service.maybe_accrue(invested_account.account_id, "2024-01-01")

        assert first.outcome is AccrualOutcome.ACCRUED
        assert after_first.balance == Decimal("50")
        assert after_first.total_interest == Decimal("50")
        assert after_first.last_accrual_date.isoformat() == "2024-01-01"
        assert second.outcome is AccrualOutcome.ALREADY_ACCRUED_TODAY
        assert service.get_account(invested_account.account_id) == after_first

    def test_withdraw_more_than_balance(
        self, service: LedgerService, account: Account, admin: Actor, fund: Callable
    ) -> None:
        fund(account.account_id, "100")
        tx = service.record_transaction(account.account_id, TransactionType.WITHDRAWAL, Decimal("200"))

        with pytest.raises(InsufficientBalanceError):
            service.transition(tx.transaction_id, S.APPROVED, admin)

        assert service.get_account(account.account_id).balance == Decimal("100")
        assert service.store.get_transaction(tx.transaction_id).status is S.PENDING

    def test_debit_more_than_balance(
        self, service: LedgerService, account: Account, admin: Actor
    ) -> None:
        service.adjust(account.account_id, Decimal("30"), "opening", admin)

        with pytest.raises(InsufficientBalanceError):
            service.adjust(account.account_id, Decimal("-50"), "correction", admin)

        assert service.get_account(account.account_id).balance == Decimal("30")


class TestQueries:
    """Tests for history, queue and summary."""

    def test_history_newest_first(
        self, service: LedgerService, funded_account: Account, admin: Actor
    ) -> None:
        service.adjust(funded_account.account_id, Decimal("5"), "bonus", admin)

        history = service.account_history(funded_account.account_id)

        assert [t.transaction_type for t in history] == [
            TransactionType.ADMIN_CREDIT,
            TransactionType.DEPOSIT,
        ]

    def test_history_owner_allowed(
        self, service: LedgerService, funded_account: Account, owner: Actor
    ) -> None:
        assert len(service.account_history(funded_account.account_id, owner)) == 1

    def test_history_other_user_denied(self, service: LedgerService, funded_account: Account) -> None:
        with pytest.raises(PermissionDeniedError):
            service.account_history(funded_account.account_id, Actor("someone-else"))

    def test_history_missing_account(self, service: LedgerService) -> None:
        with pytest.raises(AccountNotFoundError):
            service.account_history("nope")

    def test_pending_queue(self, service: LedgerService, funded_account: Account, admin: Actor) -> None:
        first = service.record_transaction(funded_account.account_id, "withdrawal", "10")
        second = service.record_transaction(funded_account.account_id, "withdrawal", "20")
        service.transition(first.transaction_id, S.REJECTED, admin)

        pending = service.pending_transactions()

        assert [t.transaction_id for t in pending] == [second.transaction_id]

    def test_platform_summary(
        self, service: LedgerService, invested_account: Account, fund: Callable
    ) -> None:
        service.create_account("acct-idle")
        service.create_account("acct-cash")
        fund("acct-cash", "250")
        service.record_transaction("acct-cash", "withdrawal", "50")

        summary = service.platform_summary()

        assert summary["accounts"] == 3
        assert summary["active_accounts"] == 2
        assert summary["pending_approvals"] == 1
        assert summary["total_balance"] == Decimal("250")
        assert summary["total_invested"] == Decimal("500")


class TestReconcile:
    """Tests for rebuilding figures from the ledger."""

    def test_balanced_after_engine_activity(
        self, service: LedgerService, invested_account: Account, admin: Actor, fund: Callable
    ) -> None:
        account_id = invested_account.account_id
        service.maybe_accrue(account_id, "2024-01-01")
        service.maybe_accrue(account_id, "2024-01-02")
        fund(account_id, "300")
        withdrawal = service.record_transaction(account_id, "withdrawal", "120")
        service.transition(withdrawal.transaction_id, S.APPROVED, admin)
        service.transition(withdrawal.transaction_id, S.COMPLETED, admin)
        service.adjust(account_id, Decimal("-30"), "fee", admin)
        rejected = service.record_transaction(account_id, "deposit", "999")
        service.transition(rejected.transaction_id, S.REJECTED, admin)

        report = service.reconcile(account_id)

        assert report.balanced
        assert report.ledger["balance"] == Decimal("250")
        assert report.ledger["total_interest"] == Decimal("100")
        assert report.ledger["total_withdrawal"] == Decimal("120")

    def test_cancelled_approval_not_counted(
        self, service: LedgerService, funded_account: Account, admin: Actor
    ) -> None:
        tx = service.record_transaction(funded_account.account_id, "withdrawal", "100")
        service.transition(tx.transaction_id, S.APPROVED, admin)
        service.transition(tx.transaction_id, S.CANCELLED, admin)

        assert service.reconcile(funded_account.account_id).balanced

    def test_admin_edit_shows_difference(
        self, service: LedgerService, funded_account: Account, admin: Actor
    ) -> None:
        service.update_account(funded_account.account_id, admin, balance=Decimal("1200"))

        report = service.reconcile(funded_account.account_id)

        assert not report.balanced
        assert report.differences == {"balance": Decimal("200")}

    def test_reconcile_account_function(self) -> None:
        account = Account(account_id="a", balance=Decimal("5"), total_interest=Decimal("5"))
        entries = [
            Transaction("t1", "a", TransactionType.INTEREST, Decimal("5"), S.COMPLETED),
            Transaction("t2", "a", TransactionType.DEPOSIT, Decimal("100"), S.PENDING),
        ]

        report = reconcile_account(account, entries)

        assert report.balanced
        assert report.stored == report.ledger
