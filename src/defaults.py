"""Default configuration values for projections, scenarios, and the plan grid."""

from __future__ import annotations


DEFAULTS = {
    "horizon_months": 24,
    "starting_cash": 0.0,
    "grid_months": 24,
    "burn_window_months": 3,
    "critical_runway_months": 3,
    "warning_runway_months": 6,
    "export_decimal_places": 2,
    "scenario_rates": {
        "Base": {"inflow_growth_rate_pct": 0.0, "outflow_growth_rate_pct": 0.0},
        "Optimistic": {"inflow_growth_rate_pct": 20.0, "outflow_growth_rate_pct": -10.0},
        "Pessimistic": {"inflow_growth_rate_pct": -15.0, "outflow_growth_rate_pct": 10.0},
    },
    "grid_toggles": {"marketing": True, "headcount": True, "investments": True},
}

STORAGE_ENV_VAR = "CASHFLOW_STORAGE_ROOT"
DEFAULT_STORAGE_DIR = ".local_store"
