"""Request payloads for the hosted text-generation insight service.

Only the request side lives here. Sending the payload and reading the reply
belong to the caller.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from src.schema import MonthBucket


INSIGHT_KINDS = ("analyze", "forecast", "suggest")

SYSTEM_PROMPTS = {
    "analyze": (
        "You are a financial analyst specializing in startup cashflow. Analyze the provided data and give:\n"
        "1. Key risks (runway warnings, burn rate spikes)\n"
        "2. Optimization opportunities (cost reduction, revenue growth)\n"
        "3. Actionable recommendations\n\n"
        "Be concise, specific, and data-driven. Format as clear bullet points."
    ),
    "forecast": (
        "You are a financial forecasting expert. Based on historical data, predict the next 6 months of cashflow.\n"
        "Provide specific monthly predictions considering:\n"
        "- Revenue growth trends\n- Cost patterns\n- Seasonal variations\n- Market conditions\n\n"
        "Format: Month-by-month forecast with reasoning."
    ),
    "suggest": (
        "You are a cost optimization consultant. Review the provided expense categories and suggest:\n"
        "1. 3-5 specific cost-cutting opportunities\n"
        "2. Revenue enhancement ideas\n"
        "3. Missing expense categories they should track\n\n"
        "Be specific and actionable."
    ),
}


def _money(value: Decimal) -> str:
    return f"{float(value):,.2f}"


def _signed(value: Decimal) -> str:
    return f"{'+' if value >= 0 else ''}{_money(value)}"


def insight_summary(months: Sequence[MonthBucket]) -> dict:
    """Headline figures sent with every request.

    avg_burn_rate is the sum of negative nets in the first three months divided
    by three, not the dashboard's mean over negative months only.
    """
    window = list(months[:3])
    burn = sum((-m.net for m in window if m.net < 0), Decimal("0")) / 3
    return {
        "current_cash": float(months[0].cumulative) if months else 0.0,
        "avg_burn_rate": float(burn),
        "total_revenue": float(sum((m.cash_in for m in months), Decimal("0"))),
        "total_costs": float(sum((m.cash_out for m in months), Decimal("0"))),
        "months": len(months),
        "monthly_trend": [
            {"month": m.label, "net": float(m.net), "cash": float(m.cumulative)} for m in list(months)[:6]
        ],
    }


def _user_prompt(kind: str, months: Sequence[MonthBucket], categories: Sequence[str], summary: dict) -> str:
    if kind == "analyze":
        trend = "\n".join(
            f"Month {m.label}: Net {_signed(m.net)}, Cash: {_money(m.cumulative)}" for m in list(months)[:6]
        )
        return (
            "Analyze this startup's cashflow:\n"
            f"Current Cash: {summary['current_cash']:,.2f}\n"
            f"Avg Burn Rate: {summary['avg_burn_rate']:,.2f}/month\n"
            f"Total Revenue ({summary['months']} months): {summary['total_revenue']:,.2f}\n"
            f"Total Costs ({summary['months']} months): {summary['total_costs']:,.2f}\n\n"
            f"Recent 6 months trend:\n{trend}\n\n"
            f"Categories: {', '.join(categories)}"
        )
    if kind == "forecast":
        history = "\n".join(
            f"{m.label}: Revenue {_money(m.cash_in)}, Costs {_money(m.cash_out)}, Net {_money(m.net)}"
            for m in list(months)[:12]
        )
        return f"Forecast next 6 months based on this data:\n{history}"
    return (
        f"Expense categories: {', '.join(categories) or 'none recorded'}\n"
        f"Total Revenue: {summary['total_revenue']:,.2f}\n"
        f"Total Costs: {summary['total_costs']:,.2f}"
    )


def build_insight_request(kind: str, months: Sequence[MonthBucket], categories: Sequence[str] = ()) -> dict:
    if kind not in INSIGHT_KINDS:
        raise ValueError(f"kind must be one of {'/'.join(INSIGHT_KINDS)}.")
    summary = insight_summary(months)
    return {
        "type": kind,
        "system_prompt": SYSTEM_PROMPTS[kind],
        "user_prompt": _user_prompt(kind, months, list(categories), summary),
        "summary": summary,
    }
