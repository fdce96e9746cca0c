from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.model import PROJECTION_COLUMNS, month_starts, projection_frame, run_projection
from src.schema import InvalidAmountError, RecurrenceConfigError, Transaction


def test_monthly_inflow_accumulates(make_tx, start_date):
    result = run_projection([make_tx("sub", "inflow", "1000", interval="monthly")], 0, 3, start_date)
    assert [m.cumulative for m in result.months] == [Decimal("1000"), Decimal("2000"), Decimal("3000")]
    assert result.runway == 3
    assert result.runway_covers_horizon


def test_payment_delay_moves_outflow_into_next_month(make_tx, start_date):
    tx = make_tx("vendor", "outflow", "2000", anchor=date(2026, 1, 15), interval="monthly", delay=30)
    result = run_projection([tx], Decimal("1500"), 3, start_date)

    assert [m.net for m in result.months] == [Decimal("0"), Decimal("-2000"), Decimal("-2000")]
    assert [m.cumulative for m in result.months] == [Decimal("1500"), Decimal("-500"), Decimal("-2500")]
    assert result.runway == 1
    assert result.average_burn_rate == Decimal("2000")
    # The March occurrence is paid in April, outside the horizon.
    assert result.total_out == Decimal("4000")
    assert [a.message for a in result.alerts] == [
        "Critical: Only 1 months of runway remaining",
        "Multiple negative cashflow months in the next quarter",
        "Cash runs out in Feb 2026",
    ]


def test_one_time_overspend_runs_out_in_first_month(make_tx, start_date):
    result = run_projection([make_tx("repair", "outflow", "150")], 100, 3, start_date)
    assert result.months[0].cumulative == Decimal("-50")
    assert result.runway == 0
    assert len(result.alerts) == 1
    assert result.alerts[0].severity == "danger"
    assert result.alerts[0].message == "Cash runs out in Jan 2026"
    assert result.alerts[0].month == "Jan 2026"


def test_cumulative_conservation(sample_transactions, start_date):
    result = run_projection(sample_transactions, Decimal("25000"), 24, start_date)
    running = Decimal("25000")
    for m in result.months:
        assert m.net == m.cash_in - m.cash_out
        running += m.net
        assert m.cumulative == running
    assert result.ending_cash == Decimal("25000") + result.total_in - result.total_out


def test_occurrences_are_ordered_independent_of_input_order(sample_transactions, start_date):
    forward = run_projection(sample_transactions, 0, 6, start_date)
    reverse = run_projection(list(reversed(sample_transactions)), 0, 6, start_date)
    assert forward.months == reverse.months
    for m in forward.months:
        keys = [(o.effective_date, o.occurrence_id) for o in m.occurrences]
        assert keys == sorted(keys)


def test_occurrences_outside_horizon_are_dropped(make_tx, start_date):
    txs = [
        make_tx("early", "inflow", "500", anchor=date(2025, 12, 31)),
        make_tx("late", "inflow", "500", anchor=date(2026, 4, 1)),
        make_tx("edge", "inflow", "500", anchor=date(2026, 3, 31)),
    ]
    result = run_projection(txs, 0, 3, start_date)
    assert result.total_in == Decimal("500")
    assert result.months[2].cash_in == Decimal("500")


@pytest.mark.parametrize("month_count", [0, -3])
def test_degenerate_horizon_returns_empty_result(sample_transactions, month_count):
    result = run_projection(sample_transactions, 1000, month_count, date(2026, 1, 1))
    assert result.months == ()
    assert result.total_in == 0
    assert result.total_out == 0
    assert result.runway == 0
    assert result.alerts == ()
    assert result.ending_cash == Decimal("1000")


def test_start_date_is_snapped_to_month_start(make_tx):
    result = run_projection([make_tx("a", anchor=date(2026, 2, 1))], 0, 2, date(2026, 1, 20))
    assert result.months[0].month_start == date(2026, 1, 1)
    assert result.months[1].cash_in == Decimal("1000")


def test_recurring_without_interval_fails_fast(start_date):
    tx = Transaction("bad", "inflow", "Bad", Decimal("10"), start_date, recurring=True)
    with pytest.raises(RecurrenceConfigError):
        run_projection([tx], 0, 3, start_date)


@pytest.mark.parametrize("amount", [Decimal("-1"), Decimal("NaN"), Decimal("Infinity")])
def test_invalid_amounts_are_rejected(start_date, amount):
    tx = Transaction("bad", "outflow", "Bad", amount, start_date)
    with pytest.raises(InvalidAmountError):
        run_projection([tx], 0, 3, start_date)


def test_negative_delay_is_rejected(make_tx, start_date):
    with pytest.raises(InvalidAmountError):
        run_projection([make_tx("bad", delay=-5)], 0, 3, start_date)


def test_non_finite_starting_balance_is_rejected(sample_transactions, start_date):
    with pytest.raises(InvalidAmountError):
        run_projection(sample_transactions, float("nan"), 3, start_date)


def test_runway_never_decreases_with_more_starting_cash(sample_transactions, start_date):
    runways = [run_projection(sample_transactions, balance, 24, start_date).runway for balance in range(-50000, 200001, 25000)]
    assert runways == sorted(runways)


def test_default_horizon_is_24_months(sample_transactions, start_date):
    assert len(run_projection(sample_transactions, 0, start_date=start_date).months) == 24


def test_month_starts_spans_year_boundary():
    assert month_starts(date(2026, 11, 15), 3) == [date(2026, 11, 1), date(2026, 12, 1), date(2027, 1, 1)]


def test_projection_frame_matches_result(sample_transactions, start_date):
    result = run_projection(sample_transactions, 1000, 6, start_date)
    df = projection_frame(result)
    assert list(df.columns) == PROJECTION_COLUMNS
    assert len(df) == 6
    assert df["Month"].iloc[0] == "Jan 2026"
    assert df["Cumulative Cash"].iloc[-1] == pytest.approx(float(result.ending_cash))


def test_month_end_anchor_with_delay_lands_twice_in_march(make_tx, start_date):
    tx = make_tx("eom", "outflow", "100", anchor=date(2026, 1, 31), interval="monthly", delay=3)
    result = run_projection([tx], 0, 4, start_date)
    assert [len(m.occurrences) for m in result.months] == [0, 1, 2, 0]
    assert result.months[2].cash_out == Decimal("200")


def test_delay_past_last_supported_date_is_rejected(make_tx, start_date):
    with pytest.raises(InvalidAmountError):
        run_projection([make_tx("late", "inflow", "10", delay=3_000_000)], 0, 3, start_date)
    with pytest.raises(InvalidAmountError):
        run_projection([make_tx("late", "inflow", "10", interval="weekly", delay=2_900_000)], 0, 1200, start_date)


def test_large_delay_within_date_range_is_simply_not_counted(make_tx, start_date):
    result = run_projection([make_tx("slow", "inflow", "10", interval="monthly", delay=36_500)], 0, 3, start_date)
    assert result.total_in == Decimal("0")


def test_plain_number_amounts_are_accepted(start_date):
    txs = [
        Transaction("int", "inflow", "Int", 1000, start_date),
        Transaction("float", "outflow", "Float", 250.5, start_date),
    ]
    result = run_projection(txs, 0, 1, start_date)
    assert result.months[0].net == Decimal("749.5")
