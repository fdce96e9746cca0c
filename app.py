import json
from datetime import date, datetime, timezone

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from src.charts import cashflow_figure, scenario_figure
from src.defaults import DEFAULTS
from src.export import export_filename, to_delimited_text
from src.grid import GRID_MONTHS, PlanRow, grid_cashflow, grid_kpis
from src.insights import INSIGHT_KINDS, build_insight_request
from src.integrity_checks import run_integrity_checks
from src.model import current_month_start, projection_frame, run_projection
from src.pdf_export import build_projection_pdf_bytes
from src.runtime_logging import (
    append_runtime_event,
    install_global_exception_logging,
    log_failure,
    log_skipped_records,
    pdf_event_logger,
    runtime_events_frame,
    runtime_log_path,
)
from src.schema import (
    KINDS,
    RECURRENCE_INTERVALS,
    ProjectionInputError,
    ScenarioAssumptions,
    coerce_money,
    transaction_to_record,
    transactions_from_records,
)
from src.sensitivity import DEFAULT_SCENARIOS, run_scenarios, scenario_comparison_frame
from src.templates import TEMPLATES, get_template, rows_from_template


install_global_exception_logging()


TRANSACTION_COLUMNS = [
    "id",
    "kind",
    "label",
    "amount",
    "anchor_date",
    "recurring",
    "interval",
    "recurrence_end",
    "payment_delay_days",
    "category_id",
]


def _sample_transactions(start: date) -> pd.DataFrame:
    anchor = start.isoformat()
    rows = [
        {"id": "rent", "kind": "outflow", "label": "Office rent", "amount": 4000.0, "anchor_date": anchor,
         "recurring": True, "interval": "monthly", "recurrence_end": None, "payment_delay_days": 0, "category_id": "facilities"},
        {"id": "payroll", "kind": "outflow", "label": "Payroll", "amount": 18000.0, "anchor_date": anchor,
         "recurring": True, "interval": "monthly", "recurrence_end": None, "payment_delay_days": 0, "category_id": "headcount"},
        {"id": "subscriptions", "kind": "inflow", "label": "Subscription revenue", "amount": 15000.0, "anchor_date": anchor,
         "recurring": True, "interval": "monthly", "recurrence_end": None, "payment_delay_days": 30, "category_id": "revenue"},
        {"id": "insurance", "kind": "outflow", "label": "Insurance", "amount": 3000.0, "anchor_date": anchor,
         "recurring": True, "interval": "quarterly", "recurrence_end": None, "payment_delay_days": 0, "category_id": "admin"},
        {"id": "seed", "kind": "inflow", "label": "Seed tranche", "amount": 50000.0, "anchor_date": anchor,
         "recurring": False, "interval": None, "recurrence_end": None, "payment_delay_days": 0, "category_id": "funding"},
    ]
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


UI_DEFAULTS = {
    "starting_cash": 100000.0,
    "horizon_months": int(DEFAULTS["horizon_months"]),
    "start_date": current_month_start(),
    "plan_template": "saas",
    "grid_starting_cash": float(TEMPLATES["saas"].assumptions.get("starting_cash", 0.0)),
    "toggle_marketing": True,
    "toggle_headcount": True,
    "toggle_investments": True,
    "insight_kind": "analyze",
    "pdf_include_charts": False,
    "pdf_export_payload_bytes": None,
    "pdf_export_filename": "",
}


def _init_state() -> None:
    for key, value in UI_DEFAULTS.items():
        if key not in st.session_state:
            st.session_state[key] = value
    if "transactions_df" not in st.session_state:
        st.session_state["transactions_df"] = _sample_transactions(st.session_state["start_date"])
    if "scenario_rates_df" not in st.session_state:
        st.session_state["scenario_rates_df"] = pd.DataFrame(
            [
                {
                    "Scenario": s.name,
                    "Inflow growth %": float(s.inflow_growth_rate_pct),
                    "Outflow growth %": float(s.outflow_growth_rate_pct),
                }
                for s in DEFAULT_SCENARIOS
            ]
        )


def _scenarios_from_table(df: pd.DataFrame) -> list[ScenarioAssumptions]:
    scenarios: list[ScenarioAssumptions] = []
    for row in df.to_dict(orient="records"):
        name = str(row.get("Scenario") or "").strip()
        if not name:
            continue
        scenarios.append(
            ScenarioAssumptions(
                name=name,
                inflow_growth_rate_pct=coerce_money(row.get("Inflow growth %") or 0, "inflow_growth_rate_pct"),
                outflow_growth_rate_pct=coerce_money(row.get("Outflow growth %") or 0, "outflow_growth_rate_pct"),
            )
        )
    return scenarios


def _format_money(value) -> str:
    return f"${float(value):,.0f}"


st.set_page_config(page_title="Cashflow Projection", layout="wide")
st.title("Cashflow Projection")
st.caption("Recurring and one-time transactions projected month by month, with scenarios, a plan grid, and exports.")

_init_state()

with st.sidebar:
    st.header("Projection Controls")
    st.number_input(
        "Starting Cash",
        step=1000.0,
        key="starting_cash",
        help="Opening balance before the first projected month. May be negative.",
    )
    st.number_input(
        "Horizon (months)",
        min_value=0,
        max_value=120,
        step=1,
        key="horizon_months",
        help="Number of calendar months to project. Zero produces an empty projection.",
    )
    st.date_input(
        "Projection Start",
        key="start_date",
        help="Any day inside the first projected month; the horizon starts on that month's first day.",
    )
    if st.button("Reset Sample Transactions", help="Replace the transaction table with the bundled sample."):
        st.session_state["transactions_df"] = _sample_transactions(st.session_state["start_date"])
        append_runtime_event(level="INFO", event="sample_transactions_reset", message="Transaction table reset to sample.")

    st.divider()
    st.caption(f"Runtime log: `{runtime_log_path()}`")
    with st.expander("Recent Runtime Events", expanded=False):
        events = runtime_events_frame(limit=20)
        if not events.empty:
            st.dataframe(events, width="stretch")
        else:
            st.write("No events recorded.")

st.subheader("Transactions")
edited_df = st.data_editor(
    st.session_state["transactions_df"],
    num_rows="dynamic",
    key="transactions_editor",
    width="stretch",
    column_config={
        "kind": st.column_config.SelectboxColumn("kind", options=sorted(KINDS), required=True),
        "interval": st.column_config.SelectboxColumn("interval", options=list(RECURRENCE_INTERVALS)),
        "amount": st.column_config.NumberColumn("amount", min_value=0.0, format="%.2f"),
        "payment_delay_days": st.column_config.NumberColumn("payment_delay_days", min_value=0, step=1),
        "recurring": st.column_config.CheckboxColumn("recurring"),
        "anchor_date": st.column_config.TextColumn("anchor_date", help="YYYY-MM-DD"),
        "recurrence_end": st.column_config.TextColumn("recurrence_end", help="YYYY-MM-DD, blank for open-ended"),
    },
)
transactions, record_warnings = transactions_from_records(edited_df)
for warning in record_warnings:
    st.warning(warning)
log_skipped_records(record_warnings)

try:
    result = run_projection(
        transactions,
        st.session_state["starting_cash"],
        month_count=int(st.session_state["horizon_months"]),
        start_date=st.session_state["start_date"],
    )
except ProjectionInputError as exc:
    log_failure("projection", exc, {"transactions": len(transactions)})
    st.error(f"Projection failed: {exc}")
    st.stop()

frame = projection_frame(result)

overview_tab, scenario_tab, grid_tab, insight_tab, export_tab = st.tabs(
    ["Overview", "Scenarios", "Plan Grid", "Insights", "Export"]
)

with overview_tab:
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Total Cash In", _format_money(result.total_in))
    c2.metric("Total Cash Out", _format_money(result.total_out))
    c3.metric("Ending Cash", _format_money(result.ending_cash))
    c4.metric("Avg Burn (first 3 months)", _format_money(result.average_burn_rate))
    c5.metric(
        "Runway",
        f"{result.runway} months",
        "covers full horizon" if result.runway_covers_horizon else None,
        delta_color="off",
    )
    d1, d2, d3 = st.columns(3)
    d1.metric("Minimum Cash", _format_money(result.minimum_cash), result.minimum_cash_month or None, delta_color="off")
    d2.metric("Months Below Zero", f"{result.negative_cash_months}")
    d3.metric("Break-even Month", f"M{result.break_even_month}" if result.break_even_month else "N/A")

    for alert in result.alerts:
        if alert.severity == "danger":
            st.error(alert.message)
        elif alert.severity == "warning":
            st.warning(alert.message)
        else:
            st.info(alert.message)

    fig = cashflow_figure(frame)
    if fig is not None:
        st.plotly_chart(fig, width="stretch")
    st.dataframe(frame.drop(columns=["Date"]), width="stretch")

    findings = run_integrity_checks(result)
    if findings:
        st.error("Integrity checks failed.")
        st.dataframe(pd.DataFrame(findings), width="stretch")
    else:
        st.caption("Integrity checks passed.")

with scenario_tab:
    st.subheader("Scenario Assumptions")
    rates_df = st.data_editor(
        st.session_state["scenario_rates_df"],
        num_rows="dynamic",
        key="scenario_rates_editor",
        width="stretch",
    )
    try:
        scenario_results = run_scenarios(
            transactions,
            st.session_state["starting_cash"],
            scenarios=_scenarios_from_table(rates_df),
            month_count=int(st.session_state["horizon_months"]),
            start_date=st.session_state["start_date"],
        )
    except ProjectionInputError as exc:
        log_failure("scenario_run", exc, {"scenarios": len(rates_df)})
        st.error(f"Scenario run failed: {exc}")
        scenario_results = {}

    if scenario_results:
        st.dataframe(scenario_comparison_frame(scenario_results), width="stretch")
        sfig = scenario_figure({name: projection_frame(r) for name, r in scenario_results.items()})
        if sfig is not None:
            st.plotly_chart(sfig, width="stretch")

with grid_tab:
    st.subheader("24-Month Plan Grid")
    g1, g2 = st.columns(2)
    g1.selectbox(
        "Plan Template",
        options=list(TEMPLATES),
        format_func=lambda tid: TEMPLATES[tid].name,
        key="plan_template",
        help="Template rows seed the grid; values compound at each row's growth rate.",
    )
    g2.number_input(
        "Grid Starting Cash",
        step=1000.0,
        key="grid_starting_cash",
        help="Opening balance for the positional grid (independent of the dated projection).",
    )
    template = get_template(st.session_state["plan_template"])
    st.caption(template.description)

    t1, t2, t3 = st.columns(3)
    t1.toggle("Include Marketing", key="toggle_marketing", help="Exclude rows whose name mentions marketing when off.")
    t2.toggle("Include Headcount", key="toggle_headcount", help="Exclude headcount rows when off.")
    t3.toggle("Include Investments", key="toggle_investments", help="Exclude investment rows when off.")

    template_rows = rows_from_template(template)
    month_cols = [f"M{i + 1}" for i in range(GRID_MONTHS)]
    grid_df = pd.DataFrame(
        [
            {"id": r.id, "name": r.name, "row_type": r.row_type, **dict(zip(month_cols, r.monthly_values))}
            for r in template_rows
        ],
        columns=["id", "name", "row_type", *month_cols],
    )
    edited_grid = st.data_editor(grid_df, key=f"grid_editor_{template.id}", width="stretch", disabled=["id", "row_type"])
    plan_rows = [
        PlanRow(
            id=str(row["id"]),
            name=str(row["name"] or ""),
            row_type=str(row["row_type"]),
            category=str(row["row_type"]),
            monthly_values=tuple(float(row[c]) if pd.notna(row[c]) else 0.0 for c in month_cols),
        )
        for row in edited_grid.to_dict(orient="records")
    ]
    toggles = {
        "marketing": st.session_state["toggle_marketing"],
        "headcount": st.session_state["toggle_headcount"],
        "investments": st.session_state["toggle_investments"],
    }
    grid_frame = grid_cashflow(plan_rows, st.session_state["grid_starting_cash"], toggles)
    kpis = grid_kpis(grid_frame, st.session_state["grid_starting_cash"])

    k1, k2, k3, k4, k5 = st.columns(5)
    k1.metric("Total Revenue", _format_money(kpis["total_revenue"]))
    k2.metric("Total Costs", _format_money(kpis["total_costs"]))
    k3.metric("Final Cash", _format_money(kpis["final_cash"]))
    k4.metric("Runway", f"{kpis['runway']} months")
    k5.metric("Break-even", f"M{kpis['break_even_month']}" if kpis["break_even_month"] else "N/A")

    gfig = go.Figure()
    gfig.add_trace(go.Bar(x=grid_frame["Month"], y=grid_frame["Net"], name="Net"))
    gfig.add_trace(go.Scatter(x=grid_frame["Month"], y=grid_frame["Cash"], name="Cash", mode="lines+markers"))
    gfig.update_layout(title="Plan Grid Cash", legend=dict(orientation="h"))
    st.plotly_chart(gfig, width="stretch")

with insight_tab:
    st.subheader("Insight Request Preview")
    st.selectbox(
        "Insight Type",
        options=list(INSIGHT_KINDS),
        key="insight_kind",
        help="Request payload that would be sent to the text-generation service.",
    )
    categories = sorted({tx.category_id for tx in transactions if tx.category_id})
    request = build_insight_request(st.session_state["insight_kind"], result.months, categories)
    st.session_state["insight_request_json"] = json.dumps(request, indent=2)
    st.code(st.session_state["insight_request_json"], language="json")

with export_tab:
    st.subheader("CSV Export")
    csv_text = to_delimited_text(result.months)
    st.download_button(
        "Download Projection CSV",
        csv_text,
        file_name=export_filename(),
        mime="text/csv",
        help="Month, Cash In, Cash Out, Net Cashflow, Cumulative Cash with two decimals.",
    )
    st.download_button(
        "Download Transactions JSON",
        json.dumps([transaction_to_record(tx) for tx in transactions], indent=2),
        file_name="cashflow-transactions.json",
        mime="application/json",
        help="Normalized transactions as JSON records.",
    )

    st.subheader("PDF Report")
    st.checkbox(
        "Include charts",
        key="pdf_include_charts",
        help="Render charts with Kaleido; charts fall back to placeholders when rendering fails.",
    )
    if st.button("Generate PDF Report", help="Build a PDF with KPIs, alerts, the monthly table and scenarios."):
        generated_at = datetime.now(timezone.utc).isoformat()
        try:
            pdf_bytes = build_projection_pdf_bytes(
                {
                    "title": "Cashflow Forecast",
                    "result": result,
                    "scenario_results": scenario_results,
                    "generated_at_utc": generated_at,
                },
                {"include_charts": bool(st.session_state["pdf_include_charts"]), "log_event": pdf_event_logger()},
            )
        except Exception as exc:
            log_failure("pdf_export", exc)
            st.error(f"PDF generation failed: {exc}")
        else:
            st.session_state["pdf_export_payload_bytes"] = pdf_bytes
            st.session_state["pdf_export_filename"] = export_filename(prefix="cashflow-report").replace(".csv", ".pdf")
            append_runtime_event(
                level="INFO",
                event="pdf_export_generated",
                message="PDF report generated.",
                context={"bytes": len(pdf_bytes), "months": len(result.months)},
            )

    if st.session_state.get("pdf_export_payload_bytes"):
        st.download_button(
            "Download PDF Report",
            st.session_state["pdf_export_payload_bytes"],
            file_name=st.session_state["pdf_export_filename"],
            mime="application/pdf",
            help="Download the most recently generated PDF report.",
        )
