"""Tests for daily interest accrual."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable
from unittest.mock import MagicMock

import pytest

from ledger_engine.config import EngineConfig
from ledger_engine.engine import AccrualScheduler
from ledger_engine.events import EventPublisher
from ledger_engine.exceptions import AccountNotFoundError, PlanNotFoundError, ValidationError
from ledger_engine.models.ledger import (
    Account,
    AccrualOutcome,
    Actor,
    Plan,
    TransactionStatus,
    TransactionType,
)
from ledger_engine.service import LedgerService
from ledger_engine.store import InMemoryLedgerStore

DAY = date(2024, 1, 1)


def interest_entries(service: LedgerService, account_id: str) -> list:
    return [
        t
        for t in service.store.list_account_transactions(account_id)
        if t.transaction_type is TransactionType.INTEREST
    ]


class TestMaybeAccrue:
    """Tests for a single account accrual."""

    def test_credits_simple_interest(
        self, service: LedgerService, invested_account: Account
    ) -> None:
        result = service.maybe_accrue(invested_account.account_id, DAY)

        assert result.outcome is AccrualOutcome.ACCRUED
        assert result.amount == Decimal("50.00")
        after = service.get_account(invested_account.account_id)
        assert after.balance == Decimal("50.00")
        assert after.total_interest == Decimal("50.00")
        assert after.total_invested == Decimal("500")
        assert after.last_accrual_date == DAY

    def test_writes_completed_interest_entry(
        self, service: LedgerService, invested_account: Account, now: datetime
    ) -> None:
        result = service.maybe_accrue(invested_account.account_id, DAY)

        [entry] = interest_entries(service, invested_account.account_id)
        assert entry.transaction_id == result.transaction.transaction_id
        assert entry.status is TransactionStatus.COMPLETED
        assert entry.amount == Decimal("50.00")
        assert entry.auto_generated is True
        assert entry.plan_id == "basic"
        assert entry.description == "Daily interest from Basic Plan"
        assert entry.completed_at == now

    def test_second_call_same_day(
        self, service: LedgerService, invested_account: Account
    ) -> None:
        service.maybe_accrue(invested_account.account_id, DAY)

        result = service.maybe_accrue(invested_account.account_id, DAY)

        assert result.outcome is AccrualOutcome.ALREADY_ACCRUED_TODAY
        assert service.get_account(invested_account.account_id).balance == Decimal("50.00")
        assert len(interest_entries(service, invested_account.account_id)) == 1

    def test_earlier_day_after_later_day(
        self, service: LedgerService, invested_account: Account
    ) -> None:
        service.maybe_accrue(invested_account.account_id, DAY + timedelta(days=1))

        result = service.maybe_accrue(invested_account.account_id, DAY)

        assert result.outcome is AccrualOutcome.ALREADY_ACCRUED_TODAY

    def test_consecutive_days_do_not_compound(
        self, service: LedgerService, invested_account: Account
    ) -> None:
        for offset in range(3):
            service.maybe_accrue(invested_account.account_id, DAY + timedelta(days=offset))

        after = service.get_account(invested_account.account_id)
        assert after.total_interest == Decimal("150.00")
        assert after.balance == Decimal("150.00")
        assert len(interest_entries(service, invested_account.account_id)) == 3

    def test_no_principal(self, service: LedgerService, funded_account: Account) -> None:
        result = service.maybe_accrue(funded_account.account_id, DAY)

        assert result.outcome is AccrualOutcome.NO_OP
        assert service.get_account(funded_account.account_id).balance == Decimal("1000")

    def test_no_plan(self, service: LedgerService, account: Account, admin: Actor) -> None:
        service.update_account(account.account_id, admin, total_invested=Decimal("500"))

        result = service.maybe_accrue(account.account_id, DAY)

        assert result.outcome is AccrualOutcome.NO_OP

    def test_zero_rate_plan(self, store: InMemoryLedgerStore, clock: Callable, admin: Actor) -> None:
        config = EngineConfig(plans=(Plan("free", "Free", Decimal("1"), None, Decimal("0")),))
        service = LedgerService(store, config=config, clock=clock)
        service.create_account("acct-001")
        service.update_account(
            "acct-001", admin, total_invested=Decimal("100"), current_plan_id="free"
        )

        result = service.maybe_accrue("acct-001", DAY)

        assert result.outcome is AccrualOutcome.NO_OP
        assert service.get_account("acct-001").last_accrual_date is None

    def test_rounds_half_up_to_quantum(
        self, store: InMemoryLedgerStore, clock: Callable, admin: Actor
    ) -> None:
        config = EngineConfig(plans=(Plan("odd", "Odd", Decimal("1"), None, Decimal("0.015")),))
        service = LedgerService(store, config=config, clock=clock)
        service.create_account("acct-001")
        service.update_account("acct-001", admin, total_invested=Decimal("101"), current_plan_id="odd")

        result = service.maybe_accrue("acct-001", DAY)

        # 101 * 0.015 = 1.515
        assert result.amount == Decimal("1.52")

    def test_unknown_plan_on_account(
        self, service: LedgerService, invested_account: Account
    ) -> None:
        service.store.mutate(
            invested_account.account_id,
            lambda a: _with_plan(a, "retired"),
        )

        with pytest.raises(PlanNotFoundError):
            service.maybe_accrue(invested_account.account_id, DAY)

    def test_missing_account(self, service: LedgerService) -> None:
        with pytest.raises(AccountNotFoundError):
            service.maybe_accrue("nope", DAY)

    def test_accepts_iso_string(self, service: LedgerService, invested_account: Account) -> None:
        result = service.maybe_accrue(invested_account.account_id, "2024-01-01")

        assert result.accrued
        assert service.get_account(invested_account.account_id).last_accrual_date == DAY

    def test_aware_datetime_uses_utc_day(
        self, service: LedgerService, invested_account: Account
    ) -> None:
        # 2024-01-01 22:00 at UTC-5 is 2024-01-02 03:00 UTC
        local = datetime(2024, 1, 1, 22, 0, tzinfo=timezone(timedelta(hours=-5)))

        service.maybe_accrue(invested_account.account_id, local)

        assert service.get_account(invested_account.account_id).last_accrual_date == date(2024, 1, 2)

    def test_invalid_date(self, service: LedgerService, invested_account: Account) -> None:
        with pytest.raises(ValidationError):
            service.maybe_accrue(invested_account.account_id, "yesterday")

    def test_publishes_accrued_event(
        self, store: InMemoryLedgerStore, clock: Callable, admin: Actor
    ) -> None:
        sink = MagicMock()
        service = LedgerService(store, publisher=EventPublisher([sink]), clock=clock)
        service.create_account("acct-001")
        service.update_account(
            "acct-001", admin, total_invested=Decimal("1000"), current_plan_id="gold"
        )

        service.maybe_accrue("acct-001", DAY)

        event = sink.send.call_args.args[1]
        assert event.event_type == "transaction.accrued"
        assert event.data["amount"] == "200.00"


class TestAccrueAll:
    """Tests for the accrual batch."""

    def test_counts_outcomes(
        self, service: LedgerService, invested_account: Account, fund: Callable
    ) -> None:
        service.create_account("acct-idle")
        service.create_account("acct-cash")
        fund("acct-cash", "100")

        counts = service.accrue_all(DAY)

        assert counts == {"accrued": 1, "already_accrued_today": 0, "no_op": 2, "failed": 0}

    def test_rerun_credits_once(self, service: LedgerService, invested_account: Account) -> None:
        service.accrue_all(DAY)

        counts = service.accrue_all(DAY)

        assert counts["accrued"] == 0
        assert counts["already_accrued_today"] == 1
        assert service.get_account(invested_account.account_id).total_interest == Decimal("50.00")

    def test_failure_does_not_stop_batch(
        self, store: InMemoryLedgerStore, clock: Callable, admin: Actor
    ) -> None:
        scheduler = AccrualScheduler(store, clock=clock)
        service = LedgerService(store, clock=clock)
        for account_id, plan_id in (("a-broken", "retired"), ("b-ok", "gold")):
            service.create_account(account_id)
            store.mutate(account_id, lambda a, p=plan_id: _invest(a, "1000", p))

        counts = scheduler.accrue_all(DAY)

        assert counts["failed"] == 1
        assert counts["accrued"] == 1
        assert store.get_account("b-ok").total_interest == Decimal("200.00")


def _with_plan(account: Account, plan_id: str) -> Account:
    account.current_plan_id = plan_id
    return account


def _invest(account: Account, amount: str, plan_id: str) -> Account:
    account.total_invested = Decimal(amount)
    account.current_plan_id = plan_id
    return account
