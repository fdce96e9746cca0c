"""Burn rate, runway, break-even, and alert calculations for a monthly series."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from src.defaults import DEFAULTS
from src.schema import Alert, MonthBucket


ZERO = Decimal("0")


@dataclass(frozen=True)
class ProjectionSummary:
    total_in: Decimal
    total_out: Decimal
    average_burn_rate: Decimal
    runway: int
    alerts: tuple[Alert, ...]
    break_even_month: int | None
    minimum_cash: Decimal
    minimum_cash_month: str
    negative_cash_months: int


def average_burn_rate(months: Sequence[MonthBucket], window: int | None = None) -> Decimal:
    """Mean |net| over the negative-net months inside the leading window.

    Months after the window are ignored, so this is a short-horizon signal.
    """
    window = int(DEFAULTS["burn_window_months"] if window is None else window)
    negatives = [m.net for m in months[:window] if m.net < 0]
    if not negatives:
        return ZERO
    return sum((abs(n) for n in negatives), ZERO) / len(negatives)


def runway_months(months: Sequence[MonthBucket]) -> int:
    """Count leading months whose cumulative balance stays strictly positive.

    A series that never drops to zero returns its own length; there is no
    separate value for an unlimited runway.
    """
    runway = 0
    for m in months:
        if m.cumulative > 0:
            runway += 1
        else:
            break
    return runway


def break_even_month(months: Sequence[MonthBucket], starting_balance: Decimal) -> int | None:
    """Return the 1-based month where cumulative cash first exceeds the starting balance."""
    for idx, m in enumerate(months):
        if m.cumulative > starting_balance:
            return idx + 1
    return None


def build_alerts(months: Sequence[MonthBucket], runway: int) -> list[Alert]:
    critical = int(DEFAULTS["critical_runway_months"])
    warning = int(DEFAULTS["warning_runway_months"])
    window = int(DEFAULTS["burn_window_months"])

    alerts: list[Alert] = []
    if 0 < runway <= critical:
        alerts.append(Alert("danger", f"Critical: Only {runway} months of runway remaining"))
    if critical < runway <= warning:
        alerts.append(Alert("warning", f"Warning: {runway} months of runway remaining"))

    upcoming_negative = [m for m in months[:window] if m.net < 0]
    if len(upcoming_negative) >= 2:
        alerts.append(Alert("warning", "Multiple negative cashflow months in the next quarter"))

    first_negative = next((m for m in months if m.cumulative < 0), None)
    if first_negative is not None:
        alerts.append(Alert("danger", f"Cash runs out in {first_negative.label}", month=first_negative.label))
    return alerts


def summarize(months: Sequence[MonthBucket], starting_balance: Decimal = ZERO) -> ProjectionSummary:
    months = list(months)
    total_in = sum((m.cash_in for m in months), ZERO)
    total_out = sum((m.cash_out for m in months), ZERO)
    runway = runway_months(months)

    if months:
        low = min(months, key=lambda m: m.cumulative)
        minimum_cash = low.cumulative
        minimum_cash_month = low.label
    else:
        minimum_cash = ZERO
        minimum_cash_month = ""

    return ProjectionSummary(
        total_in=total_in,
        total_out=total_out,
        average_burn_rate=average_burn_rate(months),
        runway=runway,
        alerts=tuple(build_alerts(months, runway)),
        break_even_month=break_even_month(months, starting_balance),
        minimum_cash=minimum_cash,
        minimum_cash_month=minimum_cash_month,
        negative_cash_months=sum(1 for m in months if m.cumulative < 0),
    )
