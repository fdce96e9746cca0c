"""Projection roll-forward and conservation integrity checks."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import numpy as np
import pandas as pd

from src.model import ProjectionResult, projection_frame


def _finding(
    check: str,
    max_abs_delta: float,
    month: str,
    lhs_name: str,
    rhs_name: str,
) -> dict[str, Any]:
    return {
        "Check": check,
        "Max Abs Delta": float(max_abs_delta),
        "Month of Max Delta": month,
        "LHS": lhs_name,
        "RHS": rhs_name,
    }


def _month_of_max_delta(df: pd.DataFrame, delta: np.ndarray) -> str:
    if len(delta) == 0:
        return ""
    idx = int(np.argmax(np.abs(delta)))
    if "Month" in df.columns and idx < len(df):
        return str(df.iloc[idx]["Month"])
    return str(idx)


def _check_series_identity(
    findings: list[dict[str, Any]],
    df: pd.DataFrame,
    check_name: str,
    lhs_name: str,
    rhs_name: str,
    lhs: np.ndarray,
    rhs: np.ndarray,
    tol: float,
) -> None:
    delta = np.nan_to_num(np.asarray(lhs, dtype=float) - np.asarray(rhs, dtype=float), nan=0.0)
    if len(delta) == 0:
        return
    max_abs = float(np.max(np.abs(delta)))
    if max_abs > float(tol):
        findings.append(_finding(check_name, max_abs, _month_of_max_delta(df, delta), lhs_name, rhs_name))


def run_integrity_checks(result: ProjectionResult, tol: float = 1e-3) -> list[dict[str, Any]]:
    """Return integrity findings (empty list means all checks passed)."""
    df = projection_frame(result)
    if df.empty:
        return []

    findings: list[dict[str, Any]] = []
    starting = float(result.starting_balance)

    _check_series_identity(
        findings,
        df,
        "Net cashflow identity",
        "Net Cashflow",
        "Cash In - Cash Out",
        df["Net Cashflow"].to_numpy(),
        (df["Cash In"] - df["Cash Out"]).to_numpy(),
        tol,
    )
    prev_cash = np.concatenate(([starting], df["Cumulative Cash"].to_numpy()[:-1]))
    _check_series_identity(
        findings,
        df,
        "Cash roll-forward",
        "Cumulative Cash",
        "Prior Cumulative Cash + Net Cashflow",
        df["Cumulative Cash"].to_numpy(),
        prev_cash + df["Net Cashflow"].to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        df,
        "Cumulative conservation",
        "Cumulative Cash",
        "Starting Balance + running sum of Net Cashflow",
        df["Cumulative Cash"].to_numpy(),
        starting + np.cumsum(df["Net Cashflow"].to_numpy()),
        tol,
    )

    # Horizon totals are checked on the Decimal values, where equality is exact.
    net_total = sum((m.net for m in result.months), Decimal("0"))
    if net_total != result.total_in - result.total_out:
        findings.append(
            _finding(
                "Horizon totals",
                abs(float(net_total - (result.total_in - result.total_out))),
                "",
                "Sum of Net Cashflow",
                "Total Cash In - Total Cash Out",
            )
        )
    return findings
