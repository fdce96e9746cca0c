"""Core cashflow projection engine: monthly aggregation and the projection entry point."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

import pandas as pd

from src.defaults import DEFAULTS
from src.metrics import summarize
from src.recurrence import Occurrence, expand_all
from src.schema import INFLOW, Alert, MonthBucket, Transaction, coerce_money, validate_transactions


ZERO = Decimal("0")


@dataclass(frozen=True)
class ProjectionResult:
    months: tuple[MonthBucket, ...]
    starting_balance: Decimal
    total_in: Decimal
    total_out: Decimal
    average_burn_rate: Decimal
    runway: int
    alerts: tuple[Alert, ...]
    break_even_month: int | None = None
    minimum_cash: Decimal = ZERO
    minimum_cash_month: str = ""
    negative_cash_months: int = 0

    @property
    def ending_cash(self) -> Decimal:
        return self.months[-1].cumulative if self.months else self.starting_balance

    @property
    def runway_covers_horizon(self) -> bool:
        """True when cash never hits zero inside the horizon (not an unlimited runway)."""
        return bool(self.months) and self.runway == len(self.months)


def month_starts(horizon_start: date, month_count: int) -> list[date]:
    if month_count <= 0:
        return []
    start = pd.Timestamp(horizon_start).to_period("M").to_timestamp()
    return [d.date() for d in pd.date_range(start=start, periods=int(month_count), freq="MS")]


def horizon_bounds(horizon_start: date, month_count: int) -> tuple[date, date]:
    """Return [first day of the start month, first day after the last month)."""
    start = pd.Timestamp(horizon_start).to_period("M").to_timestamp()
    end = start + pd.offsets.MonthBegin(max(int(month_count), 0))
    return start.date(), end.date()


def aggregate(
    occurrences: Iterable[Occurrence],
    starting_balance: Decimal,
    horizon_start: date,
    month_count: int,
) -> list[MonthBucket]:
    """Bucket occurrences by effective calendar month and thread the running balance."""
    starts = month_starts(horizon_start, month_count)
    if not starts:
        return []

    by_month: dict[tuple[int, int], list[Occurrence]] = defaultdict(list)
    for occ in occurrences:
        by_month[(occ.effective_date.year, occ.effective_date.month)].append(occ)

    buckets: list[MonthBucket] = []
    cumulative = starting_balance
    for month_start in starts:
        month_occ = sorted(by_month.get((month_start.year, month_start.month), []), key=lambda o: (o.effective_date, o.occurrence_id))
        cash_in = sum((o.amount for o in month_occ if o.kind == INFLOW), ZERO)
        cash_out = sum((o.amount for o in month_occ if o.kind != INFLOW), ZERO)
        net = cash_in - cash_out
        cumulative = cumulative + net
        buckets.append(
            MonthBucket(
                month_start=month_start,
                cash_in=cash_in,
                cash_out=cash_out,
                net=net,
                cumulative=cumulative,
                occurrences=tuple(month_occ),
            )
        )
    return buckets


def current_month_start(today: date | None = None) -> date:
    today = today or date.today()
    return today.replace(day=1)


def run_projection(
    transactions: Sequence[Transaction],
    starting_balance,
    month_count: int | None = None,
    start_date: date | None = None,
) -> ProjectionResult:
    """Project transactions over a monthly horizon.

    Inputs are validated before any month is built; invalid input raises a
    ProjectionInputError subclass and no partial result is produced.
    """
    month_count = int(DEFAULTS["horizon_months"] if month_count is None else month_count)
    balance = coerce_money(starting_balance, "starting_balance")

    if month_count <= 0:
        validate_transactions(transactions)
        months: list[MonthBucket] = []
    else:
        horizon_start, horizon_end = horizon_bounds(start_date or current_month_start(), month_count)
        txs = validate_transactions(transactions, horizon_end)
        occurrences = expand_all(txs, horizon_start, horizon_end)
        months = aggregate(occurrences, balance, horizon_start, month_count)

    summary = summarize(months, balance)
    return ProjectionResult(
        months=tuple(months),
        starting_balance=balance,
        total_in=summary.total_in,
        total_out=summary.total_out,
        average_burn_rate=summary.average_burn_rate,
        runway=summary.runway,
        alerts=summary.alerts,
        break_even_month=summary.break_even_month,
        minimum_cash=summary.minimum_cash,
        minimum_cash_month=summary.minimum_cash_month,
        negative_cash_months=summary.negative_cash_months,
    )


PROJECTION_COLUMNS = [
    "Month_Number",
    "Date",
    "Year_Month_Label",
    "Month",
    "Cash In",
    "Cash Out",
    "Net Cashflow",
    "Cumulative Cash",
    "Transactions",
]


def projection_frame(result: ProjectionResult) -> pd.DataFrame:
    """Return a float DataFrame of the monthly series for charts and tables."""
    rows = [
        {
            "Month_Number": idx + 1,
            "Date": pd.Timestamp(m.month_start),
            "Year_Month_Label": m.month_start.strftime("%Y-%m"),
            "Month": m.label,
            "Cash In": float(m.cash_in),
            "Cash Out": float(m.cash_out),
            "Net Cashflow": float(m.net),
            "Cumulative Cash": float(m.cumulative),
            "Transactions": len(m.occurrences),
        }
        for idx, m in enumerate(result.months)
    ]
    return pd.DataFrame(rows, columns=PROJECTION_COLUMNS)
