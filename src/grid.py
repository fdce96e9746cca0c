"""Positional 24-slot monthly arrays for the plan grid.

This model has no dates: month i is simply column i. It is kept apart from the
dated projection engine in src.model.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

import numpy as np
import pandas as pd

from src.defaults import DEFAULTS


ROW_TYPES = {"revenue", "cost", "headcount", "investment", "tax"}
COST_ROW_TYPES = {"cost", "headcount", "investment", "tax"}
GRID_MONTHS = int(DEFAULTS["grid_months"])


@dataclass(frozen=True)
class PlanRow:
    id: str
    name: str
    row_type: str
    category: str = ""
    monthly_values: tuple[float, ...] = ()


def generate_monthly_values(base_value: float, growth_rate_pct: float, months: int = GRID_MONTHS) -> list[float]:
    """Compounding monthly series, each value rounded to a whole unit."""
    values: list[float] = []
    current = float(base_value)
    for _ in range(max(int(months), 0)):
        values.append(float(Decimal(str(current)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)))
        current = current * (1 + float(growth_rate_pct) / 100)
    return values


def update_cell(rows: Sequence[PlanRow], row_id: str, month_index: int, value: float) -> list[PlanRow]:
    """Return a new row list with one cell replaced."""
    if not 0 <= int(month_index) < GRID_MONTHS:
        raise IndexError(f"month_index must be in [0,{GRID_MONTHS - 1}].")
    out: list[PlanRow] = []
    for row in rows:
        if row.id == row_id:
            values = list(row.monthly_values) + [0.0] * max(0, GRID_MONTHS - len(row.monthly_values))
            values[int(month_index)] = float(value)
            row = replace(row, monthly_values=tuple(values))
        out.append(row)
    return out


def _row_excluded(row: PlanRow, toggles: dict) -> bool:
    if "marketing" in row.name.lower() and not toggles.get("marketing", True):
        return True
    if row.row_type == "headcount" and not toggles.get("headcount", True):
        return True
    if row.row_type == "investment" and not toggles.get("investments", True):
        return True
    return False


def _row_array(row: PlanRow) -> np.ndarray:
    values = np.zeros(GRID_MONTHS, dtype=float)
    src = np.asarray(row.monthly_values[:GRID_MONTHS], dtype=float)
    values[: len(src)] = np.nan_to_num(src, nan=0.0)
    return values


def grid_cashflow(rows: Sequence[PlanRow], starting_cash: float, toggles: dict | None = None) -> pd.DataFrame:
    toggles = {**DEFAULTS["grid_toggles"], **(toggles or {})}
    revenue = np.zeros(GRID_MONTHS, dtype=float)
    costs = np.zeros(GRID_MONTHS, dtype=float)
    for row in rows:
        if _row_excluded(row, toggles):
            continue
        if row.row_type == "revenue":
            revenue += _row_array(row)
        elif row.row_type in COST_ROW_TYPES:
            costs += _row_array(row)

    net = revenue - costs
    return pd.DataFrame(
        {
            "Month": [f"M{i + 1}" for i in range(GRID_MONTHS)],
            "Revenue": revenue,
            "Costs": costs,
            "Net": net,
            "Cash": float(starting_cash) + np.cumsum(net),
        }
    )


def grid_kpis(frame: pd.DataFrame, starting_cash: float) -> dict:
    """Totals, final cash, runway, and break-even month for a grid frame.

    Runway here is the month number of the first negative cash month (the
    grid length when cash never goes negative), matching the grid's display.
    """
    cash = frame["Cash"].to_numpy()
    negative = np.flatnonzero(cash < 0)
    above_start = np.flatnonzero(cash > float(starting_cash))
    return {
        "total_revenue": float(frame["Revenue"].sum()),
        "total_costs": float(frame["Costs"].sum()),
        "final_cash": float(cash[-1]) if len(cash) else float(starting_cash),
        "runway": int(negative[0] + 1) if len(negative) else len(frame),
        "break_even_month": int(above_start[0] + 1) if len(above_start) else None,
    }
