"""Plan templates that seed the 24-month plan grid."""

from __future__ import annotations

from dataclasses import dataclass, field

from src.defaults import DEFAULTS
from src.grid import PlanRow, generate_monthly_values


@dataclass(frozen=True)
class TemplateRow:
    name: str
    row_type: str
    base_value: float
    growth_rate: float
    is_recurring: bool = True
    payment_delay_days: int = 0


@dataclass(frozen=True)
class PlanTemplate:
    id: str
    name: str
    description: str
    categories: tuple[str, ...]
    rows: tuple[TemplateRow, ...] = ()
    assumptions: dict = field(default_factory=dict)


TEMPLATES: dict[str, PlanTemplate] = {
    "blank": PlanTemplate(
        id="blank",
        name="Blank Plan",
        description="Start from scratch with an empty cashflow plan.",
        categories=("revenue", "cost"),
        assumptions={"revenue_growth_rate": 5.0, "cost_inflation_rate": 3.0, "starting_cash": 50000.0},
    ),
    "saas": PlanTemplate(
        id="saas",
        name="SaaS Startup",
        description="Subscription software with MRR growth model.",
        categories=("revenue", "cost", "headcount", "investment"),
        rows=(
            TemplateRow("MRR", "revenue", 5000, 8),
            TemplateRow("Onboarding Fees", "revenue", 2000, 5, is_recurring=False),
            TemplateRow("Hosting & Infrastructure", "cost", 1200, 3, payment_delay_days=30),
            TemplateRow("Support Tools", "cost", 800, 2),
            TemplateRow("Marketing Spend", "cost", 3000, 10),
            TemplateRow("SaaS Stack", "cost", 1500, 1),
            TemplateRow("CEO", "headcount", 8000, 0),
            TemplateRow("CTO", "headcount", 8000, 0),
            TemplateRow("Developer", "headcount", 6000, 0),
            TemplateRow("Sales Rep", "headcount", 5000, 0),
        ),
        assumptions={
            "revenue_growth_rate": 8.0,
            "cost_inflation_rate": 3.0,
            "starting_cash": 100000.0,
            "churn_rate": 5.0,
            "cac": 500.0,
        },
    ),
    "marketplace": PlanTemplate(
        id="marketplace",
        name="Marketplace",
        description="Two-sided marketplace earning take-rate commissions.",
        categories=("revenue", "cost", "headcount"),
        rows=(
            TemplateRow("Commission Revenue", "revenue", 6000, 10),
            TemplateRow("Listing Fees", "revenue", 1500, 4),
            TemplateRow("Payment Processing", "cost", 900, 10),
            TemplateRow("Marketing Spend", "cost", 4000, 8),
            TemplateRow("Customer Support", "headcount", 4000, 0),
            TemplateRow("Founder", "headcount", 6000, 0),
        ),
        assumptions={"revenue_growth_rate": 10.0, "cost_inflation_rate": 4.0, "starting_cash": 80000.0},
    ),
    "ai_startup": PlanTemplate(
        id="ai_startup",
        name="AI Startup",
        description="AI product with subscription and usage-based revenue.",
        categories=("revenue", "cost", "headcount"),
        rows=(
            TemplateRow("Subscription Revenue", "revenue", 8000, 15),
            TemplateRow("Usage-Based Revenue", "revenue", 12000, 20, is_recurring=False),
            TemplateRow("AI Model API Costs", "cost", 5000, 18, payment_delay_days=30),
            TemplateRow("GPU / Compute", "cost", 4000, 15),
            TemplateRow("Infrastructure", "cost", 2000, 10, payment_delay_days=30),
            TemplateRow("Support Tools", "cost", 1000, 3),
            TemplateRow("AI Engineer", "headcount", 9000, 0),
            TemplateRow("Product Manager", "headcount", 7000, 0),
            TemplateRow("Support", "headcount", 4500, 0),
        ),
        assumptions={"revenue_growth_rate": 18.0, "cost_inflation_rate": 12.0, "starting_cash": 120000.0},
    ),
}


DAYS_PER_GRID_MONTH = 30


def template_row_values(row: TemplateRow, months: int) -> list[float]:
    """Monthly values for one template row.

    One-time rows keep only their first month; payment delays shift the series
    right by whole 30-day months, dropping what falls past the grid.
    """
    values = generate_monthly_values(row.base_value, row.growth_rate, months)
    if not row.is_recurring:
        values = values[:1] + [0.0] * (len(values) - 1)
    shift = min(int(row.payment_delay_days) // DAYS_PER_GRID_MONTH, len(values))
    if shift:
        values = [0.0] * shift + values[: len(values) - shift]
    return values


def get_template(template_id: str) -> PlanTemplate:
    if template_id not in TEMPLATES:
        raise KeyError(f"Unknown plan template: {template_id}")
    return TEMPLATES[template_id]


def rows_from_template(template: PlanTemplate, months: int | None = None) -> list[PlanRow]:
    months = int(DEFAULTS["grid_months"] if months is None else months)
    return [
        PlanRow(
            id=f"row-{idx}",
            name=row.name,
            row_type=row.row_type,
            category=row.row_type,
            monthly_values=tuple(template_row_values(row, months)),
        )
        for idx, row in enumerate(template.rows)
    ]
