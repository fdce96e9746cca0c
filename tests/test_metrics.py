from __future__ import annotations

from datetime import date
from decimal import Decimal

import pandas as pd

from src.metrics import average_burn_rate, break_even_month, build_alerts, runway_months, summarize
from src.schema import MonthBucket


def _series(nets, starting="0") -> list[MonthBucket]:
    months = []
    cumulative = Decimal(starting)
    for idx, net in enumerate(nets):
        net = Decimal(str(net))
        cumulative += net
        months.append(
            MonthBucket(
                month_start=(pd.Timestamp(2026, 1, 1) + pd.DateOffset(months=idx)).date(),
                cash_in=max(net, Decimal("0")),
                cash_out=max(-net, Decimal("0")),
                net=net,
                cumulative=cumulative,
            )
        )
    return months


def test_burn_rate_only_looks_at_first_three_months():
    months = _series([-300, 100, -100, -5000, -5000], starting="20000")
    assert average_burn_rate(months) == Decimal("200")


def test_burn_rate_is_zero_without_negative_months():
    assert average_burn_rate(_series([100, 0, 50])) == Decimal("0")
    assert average_burn_rate([]) == Decimal("0")


def test_runway_stops_at_first_non_positive_month():
    assert runway_months(_series([100, -50, -50, 200])) == 1
    assert runway_months(_series([10, 10, 10])) == 3
    assert runway_months(_series([0, 10])) == 0


def test_critical_and_multiple_negative_alerts_are_independent():
    months = _series([-400, -400, -400, -400, -400], starting="1000")
    runway = runway_months(months)
    assert runway == 2
    messages = [a.message for a in build_alerts(months, runway)]
    assert messages == [
        "Critical: Only 2 months of runway remaining",
        "Multiple negative cashflow months in the next quarter",
        "Cash runs out in Mar 2026",
    ]


def test_warning_alert_between_thresholds():
    months = _series([100] * 5 + [-1000] * 3)
    alerts = build_alerts(months, runway_months(months))
    assert alerts[0].severity == "warning"
    assert alerts[0].message == "Warning: 5 months of runway remaining"


def test_no_runway_alert_above_warning_threshold():
    months = _series([100] * 12)
    assert build_alerts(months, runway_months(months)) == []


def test_break_even_month_is_first_month_above_start():
    months = _series([-100, 50, 80], starting="1000")
    assert break_even_month(months, Decimal("1000")) == 3
    assert break_even_month(_series([-1, -1], starting="10"), Decimal("10")) is None


def test_summarize_reports_minimum_cash_and_negative_months():
    months = _series([-700, -700, 2000], starting="1000")
    summary = summarize(months, Decimal("1000"))
    assert summary.minimum_cash == Decimal("-400")
    assert summary.minimum_cash_month == "Feb 2026"
    assert summary.negative_cash_months == 1
    assert summary.total_in == Decimal("2000")
    assert summary.total_out == Decimal("1400")


def test_month_label_uses_short_month_name():
    assert _series([1])[0].label == "Jan 2026"
    assert MonthBucket(date(2027, 9, 1), 0, 0, 0, 0).label == "Sep 2027"
