"""Delimited-text export of a monthly projection series."""

from __future__ import annotations

import csv
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from io import StringIO
from typing import Sequence

from src.defaults import DEFAULTS
from src.schema import MonthBucket


EXPORT_HEADERS = ["Month", "Cash In", "Cash Out", "Net Cashflow", "Cumulative Cash"]


def format_amount(value: Decimal, places: int | None = None) -> str:
    """Fixed-point text with no thousands separators and no locale dependence."""
    places = int(DEFAULTS["export_decimal_places"] if places is None else places)
    quantum = Decimal(1).scaleb(-places)
    text = f"{Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP):f}"
    if text.startswith("-") and Decimal(text) == 0:
        return text[1:]
    return text


def to_delimited_text(months: Sequence[MonthBucket]) -> str:
    """Header plus one row per month, in input order, joined with newlines."""
    buf = StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for m in months:
        writer.writerow(
            [
                m.label,
                format_amount(m.cash_in),
                format_amount(m.cash_out),
                format_amount(m.net),
                format_amount(m.cumulative),
            ]
        )
    return buf.getvalue().rstrip("\n")


def export_filename(today: date | None = None, prefix: str = "cashflow-forecast") -> str:
    today = today or date.today()
    return f"{prefix}-{today.isoformat()}.csv"
