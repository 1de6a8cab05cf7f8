"""Shared fixtures: in-memory storage, a fixed clock and a loaded ledger."""

from datetime import date

import pytest

from calm_expenses.audit import AuditLogger
from calm_expenses.orchestrator import LedgerController
from calm_expenses.services.storage import InMemoryStorage, LedgerStore

TODAY = date(2024, 3, 1)


class FixedClock:
    """A settable stand-in for date.today."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_logger():
    return AuditLogger(history_size=100)


@pytest.fixture
def store(storage, audit_logger):
    return LedgerStore(storage, audit_logger=audit_logger)


@pytest.fixture
def ledger(store, audit_logger, clock):
    """A loaded controller holding only the seeded "Cash" account."""
    controller = LedgerController(store=store, audit_logger=audit_logger, clock=clock)
    controller.load()
    return controller


@pytest.fixture
def cash(ledger):
    return ledger.accounts[0]
