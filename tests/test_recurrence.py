from __future__ import annotations

from datetime import date

import pytest

from src.recurrence import expand, iter_nominal_dates, next_nominal_date
from src.schema import RecurrenceConfigError


HORIZON_START = date(2026, 1, 1)
HORIZON_END = date(2027, 1, 1)


def test_monthly_occurrences_stay_on_anchor_day(make_tx):
    occ = expand(make_tx("sub", interval="monthly", anchor=date(2026, 1, 10)), HORIZON_START, HORIZON_END)
    assert len(occ) == 12
    assert all(o.nominal_date.day == 10 for o in occ)
    assert occ[0].occurrence_id == "sub-20260110"
    assert occ[-1].nominal_date == date(2026, 12, 10)


@pytest.mark.parametrize(
    "interval, expected_count",
    [("weekly", 53), ("monthly", 12), ("quarterly", 4), ("yearly", 1)],
)
def test_interval_counts_over_one_year(make_tx, interval, expected_count):
    occ = expand(make_tx("t", interval=interval, anchor=date(2026, 1, 1)), HORIZON_START, HORIZON_END)
    assert len(occ) == expected_count


def test_weekly_spacing_is_seven_days(make_tx):
    occ = expand(make_tx("w", interval="weekly", anchor=date(2026, 1, 5)), HORIZON_START, date(2026, 2, 1))
    gaps = {(b.nominal_date - a.nominal_date).days for a, b in zip(occ, occ[1:])}
    assert gaps == {7}


def test_month_end_anchor_steps_from_previous_date(make_tx):
    occ = expand(make_tx("eom", interval="monthly", anchor=date(2026, 1, 31)), HORIZON_START, date(2026, 5, 1))
    assert [o.nominal_date for o in occ] == [
        date(2026, 1, 31),
        date(2026, 2, 28),
        date(2026, 3, 28),
        date(2026, 4, 28),
    ]


def test_quarterly_and_yearly_clamp_then_continue(make_tx):
    quarterly = expand(make_tx("q", interval="quarterly", anchor=date(2025, 11, 30)), date(2025, 11, 1), date(2026, 9, 1))
    assert [o.nominal_date for o in quarterly] == [date(2025, 11, 30), date(2026, 2, 28), date(2026, 5, 28), date(2026, 8, 28)]
    yearly = expand(make_tx("y", interval="yearly", anchor=date(2024, 2, 29)), date(2024, 1, 1), date(2026, 12, 1))
    assert [o.nominal_date for o in yearly] == [date(2024, 2, 29), date(2025, 2, 28), date(2026, 2, 28)]


def test_recurrence_end_is_inclusive(make_tx):
    tx = make_tx("t", interval="monthly", anchor=date(2026, 1, 15), recurrence_end=date(2026, 3, 15))
    assert [o.nominal_date for o in expand(tx, HORIZON_START, HORIZON_END)] == [
        date(2026, 1, 15),
        date(2026, 2, 15),
        date(2026, 3, 15),
    ]


def test_recurrence_end_before_anchor_yields_nothing(make_tx):
    tx = make_tx("t", interval="monthly", anchor=date(2026, 5, 1), recurrence_end=date(2026, 4, 1))
    assert expand(tx, HORIZON_START, HORIZON_END) == []


def test_occurrences_before_horizon_start_are_skipped(make_tx):
    tx = make_tx("t", interval="monthly", anchor=date(2025, 11, 20))
    occ = expand(tx, HORIZON_START, date(2026, 3, 1))
    assert [o.nominal_date for o in occ] == [date(2026, 1, 20), date(2026, 2, 20)]


def test_payment_delay_shifts_effective_date_only(make_tx):
    tx = make_tx("inv", interval="monthly", anchor=date(2026, 1, 15), delay=30)
    first = expand(tx, HORIZON_START, HORIZON_END)[0]
    assert first.nominal_date == date(2026, 1, 15)
    assert first.effective_date == date(2026, 2, 14)


def test_one_time_transaction_keeps_its_id_and_applies_delay(make_tx):
    occ = expand(make_tx("once", anchor=date(2026, 3, 3), delay=10), HORIZON_START, HORIZON_END)
    assert len(occ) == 1
    assert occ[0].occurrence_id == "once"
    assert occ[0].effective_date == date(2026, 3, 13)


def test_nominal_dates_generator_restarts_per_call(make_tx):
    tx = make_tx("t", interval="quarterly", anchor=date(2026, 1, 1))
    first = list(iter_nominal_dates(tx, date(2026, 7, 1)))
    second = list(iter_nominal_dates(tx, date(2026, 7, 1)))
    assert first == second == [date(2026, 1, 1), date(2026, 4, 1)]


def test_unknown_interval_raises():
    with pytest.raises(RecurrenceConfigError):
        next_nominal_date(date(2026, 1, 1), "daily")
