from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.schema import Transaction


@pytest.fixture
def start_date() -> date:
    return date(2026, 1, 1)


@pytest.fixture
def make_tx():
    def _make(
        tx_id: str = "tx",
        kind: str = "inflow",
        amount="1000",
        anchor: date = date(2026, 1, 1),
        interval: str | None = None,
        recurrence_end: date | None = None,
        delay: int = 0,
        category: str | None = None,
    ) -> Transaction:
        return Transaction(
            id=tx_id,
            kind=kind,
            label=tx_id.title(),
            amount=Decimal(str(amount)),
            anchor_date=anchor,
            recurring=interval is not None,
            interval=interval,
            recurrence_end=recurrence_end,
            payment_delay_days=delay,
            category_id=category,
        )

    return _make


@pytest.fixture
def sample_transactions(make_tx) -> list[Transaction]:
    return [
        make_tx("rent", "outflow", "4000", interval="monthly", category="facilities"),
        make_tx("payroll", "outflow", "18000", interval="monthly", category="headcount"),
        make_tx("subscriptions", "inflow", "15000", interval="monthly", delay=30, category="revenue"),
        make_tx("insurance", "outflow", "3000", interval="quarterly", category="admin"),
        make_tx("seed", "inflow", "50000", category="funding"),
    ]
