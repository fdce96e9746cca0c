"""Recurrence expansion: transaction definitions to dated occurrences."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Iterator

import pandas as pd

from src.schema import MONTHLY, QUARTERLY, WEEKLY, YEARLY, RecurrenceConfigError, Transaction


MONTH_STEPS = {MONTHLY: 1, QUARTERLY: 3, YEARLY: 12}
WEEK_DAYS = 7


@dataclass(frozen=True)
class Occurrence:
    """One dated instance of a transaction after recurrence and payment delay."""

    transaction: Transaction
    occurrence_id: str
    nominal_date: date
    effective_date: date

    @property
    def kind(self) -> str:
        return self.transaction.kind

    @property
    def amount(self) -> Decimal:
        return self.transaction.amount


def next_nominal_date(current: date, interval: str) -> date:
    """Step one interval forward from the previous nominal date.

    Calendar-month steps clamp to the target month's last day, and later steps
    continue from the clamped date: Jan 31, Feb 28, Mar 28, ...
    """
    if interval == WEEKLY:
        return current + timedelta(days=WEEK_DAYS)
    if interval not in MONTH_STEPS:
        raise RecurrenceConfigError(f"Unsupported recurrence interval: {interval!r}")
    return (pd.Timestamp(current) + pd.DateOffset(months=MONTH_STEPS[interval])).date()


def iter_nominal_dates(tx: Transaction, horizon_end: date) -> Iterator[date]:
    """Yield nominal (pre-delay) dates lazily; every call starts a fresh sequence."""
    if not tx.recurring:
        yield tx.anchor_date
        return
    if not tx.interval:
        raise RecurrenceConfigError(f"{tx.id}: recurring transactions require an interval.")

    cursor = tx.anchor_date
    while cursor < horizon_end:
        if tx.recurrence_end is not None and cursor > tx.recurrence_end:
            return
        yield cursor
        cursor = next_nominal_date(cursor, tx.interval)


def _occurrence(tx: Transaction, nominal: date, occurrence_id: str) -> Occurrence:
    return Occurrence(
        transaction=tx,
        occurrence_id=occurrence_id,
        nominal_date=nominal,
        effective_date=nominal + timedelta(days=int(tx.payment_delay_days)),
    )


def expand(tx: Transaction, horizon_start: date, horizon_end: date) -> list[Occurrence]:
    """Return the occurrences of one transaction, ordered by nominal date.

    One-time transactions are returned unfiltered; the monthly aggregator drops
    anything whose effective month falls outside the horizon.
    """
    if not tx.recurring:
        return [_occurrence(tx, tx.anchor_date, tx.id)]

    return [
        _occurrence(tx, nominal, f"{tx.id}-{nominal:%Y%m%d}")
        for nominal in iter_nominal_dates(tx, horizon_end)
        if nominal >= horizon_start
    ]


def expand_all(transactions: Iterable[Transaction], horizon_start: date, horizon_end: date) -> list[Occurrence]:
    occurrences: list[Occurrence] = []
    for tx in transactions:
        occurrences.extend(expand(tx, horizon_start, horizon_end))
    return occurrences
