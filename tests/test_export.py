from __future__ import annotations

from datetime import date
from decimal import Decimal

from src.export import EXPORT_HEADERS, export_filename, format_amount, to_delimited_text
from src.model import run_projection


def test_three_month_export_has_header_and_three_rows(make_tx, start_date):
    result = run_projection([make_tx("sub", "inflow", "1000", interval="monthly")], 0, 3, start_date)
    lines = to_delimited_text(result.months).split("\n")
    assert len(lines) == 4
    assert lines[0] == ",".join(EXPORT_HEADERS)
    assert lines[1] == "Jan 2026,1000.00,0.00,1000.00,1000.00"
    assert lines[3] == "Mar 2026,1000.00,0.00,1000.00,3000.00"
    for line in lines[1:]:
        for field in line.split(",")[1:]:
            assert len(field.split(".")[1]) == 2


def test_export_handles_negative_values_without_separators(make_tx, start_date):
    result = run_projection([make_tx("big", "outflow", "1234567.891")], 0, 1, start_date)
    assert to_delimited_text(result.months).split("\n")[1] == "Jan 2026,0.00,1234567.89,-1234567.89,-1234567.89"


def test_empty_series_exports_header_only():
    assert to_delimited_text([]) == "Month,Cash In,Cash Out,Net Cashflow,Cumulative Cash"


def test_format_amount_rounds_half_up_and_drops_negative_zero():
    assert format_amount(Decimal("2.345")) == "2.35"
    assert format_amount(Decimal("-0.001")) == "0.00"
    assert format_amount(Decimal("7")) == "7.00"


def test_export_filename_uses_iso_date():
    assert export_filename(date(2026, 3, 9)) == "cashflow-forecast-2026-03-09.csv"
