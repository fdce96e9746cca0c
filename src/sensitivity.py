"""Scenario transforms and base/optimistic/pessimistic comparisons."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

import pandas as pd

from src.defaults import DEFAULTS
from src.model import ProjectionResult, run_projection
from src.schema import (
    InvalidAmountError,
    ScenarioAssumptions,
    Transaction,
    coerce_money,
    scenario_from_rates,
    validate_transactions,
)


HUNDRED = Decimal("100")


def _build_default_scenarios() -> list[ScenarioAssumptions]:
    return [scenario_from_rates(name, rates) for name, rates in DEFAULTS["scenario_rates"].items()]


DEFAULT_SCENARIOS = _build_default_scenarios()


def apply_scenario(
    transactions: Iterable[Transaction],
    inflow_growth_rate_pct=0,
    outflow_growth_rate_pct=0,
) -> list[Transaction]:
    """Return new transactions with amounts scaled by (1 + rate/100) per kind.

    The input list and its transactions are left untouched. Zero rates return
    numerically equal amounts.
    """
    inflow_factor = 1 + coerce_money(inflow_growth_rate_pct, "inflow_growth_rate_pct") / HUNDRED
    outflow_factor = 1 + coerce_money(outflow_growth_rate_pct, "outflow_growth_rate_pct") / HUNDRED
    if inflow_factor < 0 or outflow_factor < 0:
        raise InvalidAmountError("Growth rates below -100% would produce negative amounts.")

    return [
        tx.with_amount(tx.amount * (inflow_factor if tx.is_inflow else outflow_factor))
        for tx in validate_transactions(transactions)
    ]


def apply_scenario_assumptions(transactions: Iterable[Transaction], scenario: ScenarioAssumptions) -> list[Transaction]:
    return apply_scenario(transactions, scenario.inflow_growth_rate_pct, scenario.outflow_growth_rate_pct)


def run_scenarios(
    transactions: Sequence[Transaction],
    starting_balance,
    scenarios: Sequence[ScenarioAssumptions] | None = None,
    month_count: int | None = None,
    start_date: date | None = None,
) -> dict[str, ProjectionResult]:
    """Run each scenario through the same projection; results keyed by scenario name."""
    if scenarios is None or len(scenarios) == 0:
        scenarios = DEFAULT_SCENARIOS

    results: dict[str, ProjectionResult] = {}
    for scenario in scenarios:
        adjusted = apply_scenario_assumptions(transactions, scenario)
        results[scenario.name] = run_projection(adjusted, starting_balance, month_count=month_count, start_date=start_date)
    return results


def scenario_comparison_frame(results: dict[str, ProjectionResult]) -> pd.DataFrame:
    rows = []
    for name, result in results.items():
        rows.append(
            {
                "Scenario": name,
                "Total Cash In": float(result.total_in),
                "Total Cash Out": float(result.total_out),
                "Ending Cash": float(result.ending_cash),
                "Average Burn Rate": float(result.average_burn_rate),
                "Runway (months)": int(result.runway),
                "Minimum Cash": float(result.minimum_cash),
                "Minimum Cash Month": result.minimum_cash_month,
                "Break-even Month": result.break_even_month,
                "Alerts": len(result.alerts),
            }
        )
    return pd.DataFrame(rows)
