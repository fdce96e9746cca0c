"""PDF report for a cashflow projection and its scenario comparison."""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime, timezone
import html
from io import BytesIO
from typing import Any, Callable

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image, PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from src.charts import cashflow_figure, scenario_figure
from src.model import ProjectionResult, projection_frame
from src.sensitivity import scenario_comparison_frame


DEFAULT_OPTIONS = {
    "include_charts": True,
    "chart_width_px": 1200,
    "chart_height_px": 620,
}

MONTHLY_TABLE_COLUMNS = ["Month", "Cash In", "Cash Out", "Net Cashflow", "Cumulative Cash", "Transactions"]


def _merge_options(options: dict | None) -> dict:
    out = deepcopy(DEFAULT_OPTIONS)
    if isinstance(options, dict):
        out.update(options)
    return out


def _log_event(
    options: dict,
    *,
    level: str,
    event: str,
    message: str,
    context: dict[str, Any] | None = None,
    exc: BaseException | None = None,
) -> None:
    logger: Callable[..., Any] | None = options.get("log_event")
    if callable(logger):
        logger(level=level, event=event, message=message, context=context or {}, exc=exc)


def _utc_iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _fmt_currency_2(value: Any) -> str:
    return f"{float(value):,.2f}"


def render_plotly_figure_png(fig, width_px: int, height_px: int) -> bytes:
    """Render a Plotly figure into PNG bytes using Kaleido."""
    if fig is None:
        raise ValueError("Figure is required.")
    width_px = max(640, int(width_px))
    height_px = max(360, int(height_px))
    fig.update_layout(template="plotly_white", width=width_px, height=height_px, margin=dict(l=50, r=40, t=70, b=50))
    try:
        image = fig.to_image(format="png", width=width_px, height=height_px, scale=1)
    except Exception as exc:
        raise RuntimeError("Chart image render failed.") from exc
    return bytes(image)


def _chart_placeholder(chart_id: str, title: str, reason: str) -> dict[str, Any]:
    return {"id": chart_id, "title": title, "image_bytes": None, "placeholder_text": reason}


def build_pdf_chart_images(report_input: dict, options: dict | None = None) -> list[dict]:
    """Render report charts, substituting a placeholder for any chart that fails."""
    options = _merge_options(options)
    result: ProjectionResult = report_input["result"]
    scenario_results: dict[str, ProjectionResult] = report_input.get("scenario_results") or {}

    builders = [
        ("cashflow", "Monthly Cashflow", lambda: cashflow_figure(projection_frame(result))),
    ]
    if scenario_results:
        builders.append(
            (
                "scenarios",
                "Cumulative Cash by Scenario",
                lambda: scenario_figure({name: projection_frame(r) for name, r in scenario_results.items()}),
            )
        )

    images: list[dict[str, Any]] = []
    for chart_id, title, builder in builders:
        fig = builder()
        if fig is None:
            images.append(_chart_placeholder(chart_id, title, "No data available for this chart."))
            continue
        try:
            png = render_plotly_figure_png(fig, options["chart_width_px"], options["chart_height_px"])
        except RuntimeError as exc:
            _log_event(
                options,
                level="WARNING",
                event="pdf_chart_render_failed",
                message=f"Chart '{title}' could not be rendered; using placeholder.",
                context={"chart_id": chart_id},
                exc=exc,
            )
            images.append(_chart_placeholder(chart_id, title, "Chart engine unavailable in this environment."))
            continue
        images.append({"id": chart_id, "title": title, "image_bytes": png, "placeholder_text": ""})
    return images


def _kpi_table(result: ProjectionResult) -> pd.DataFrame:
    rows = [
        ("Starting Balance", _fmt_currency_2(result.starting_balance)),
        ("Total Cash In", _fmt_currency_2(result.total_in)),
        ("Total Cash Out", _fmt_currency_2(result.total_out)),
        ("Ending Cash", _fmt_currency_2(result.ending_cash)),
        ("Average Burn Rate (first 3 months)", _fmt_currency_2(result.average_burn_rate)),
        ("Runway (months)", f"{result.runway}" + (" (entire horizon)" if result.runway_covers_horizon else "")),
        ("Break-even Month", f"M{result.break_even_month}" if result.break_even_month else "N/A"),
        ("Minimum Cash", f"{_fmt_currency_2(result.minimum_cash)} ({result.minimum_cash_month or 'n/a'})"),
        ("Months Below Zero", f"{result.negative_cash_months}"),
    ]
    return pd.DataFrame(rows, columns=["KPI", "Value"])


def _alerts_table(result: ProjectionResult) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Severity": a.severity.upper(), "Message": a.message, "Month": a.month or ""} for a in result.alerts],
        columns=["Severity", "Message", "Month"],
    )


def _monthly_table(result: ProjectionResult) -> pd.DataFrame:
    df = projection_frame(result)[MONTHLY_TABLE_COLUMNS].copy()
    for col in ["Cash In", "Cash Out", "Net Cashflow", "Cumulative Cash"]:
        df[col] = df[col].map(_fmt_currency_2)
    return df


def build_report_sections(report_input: dict, chart_images: list[dict]) -> list[dict]:
    """Build section descriptors consumed by the PDF renderer."""
    result: ProjectionResult = report_input["result"]
    scenario_results = report_input.get("scenario_results") or {}
    title = str(report_input.get("title") or "Cashflow Forecast")
    generated_at = str(report_input.get("generated_at_utc") or _utc_iso_now())
    horizon = f"{result.months[0].label} to {result.months[-1].label}" if result.months else "empty horizon"

    sections: list[dict[str, Any]] = [
        {
            "title": title,
            "paragraphs": [
                f"Generated (UTC): {generated_at}",
                f"Horizon: {horizon} ({len(result.months)} months)",
                "Runway counts leading months with positive cash; a runway equal to the horizon length is not an unlimited runway.",
            ],
            "tables": [
                {"title": "KPI Snapshot", "dataframe": _kpi_table(result)},
                {"title": "Alerts", "dataframe": _alerts_table(result)},
            ],
            "charts": [],
        },
        {
            "title": "Monthly Projection",
            "paragraphs": [],
            "tables": [{"title": "Monthly Cashflow", "dataframe": _monthly_table(result)}],
            "charts": [c for c in chart_images if c.get("id") == "cashflow"],
        },
    ]
    if scenario_results:
        sections.append(
            {
                "title": "Scenario Comparison",
                "paragraphs": [],
                "tables": [{"title": "Scenario Summary", "dataframe": scenario_comparison_frame(scenario_results)}],
                "charts": [c for c in chart_images if c.get("id") == "scenarios"],
            }
        )
    return sections


def _report_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="TableHeader", parent=styles["BodyText"], fontName="Helvetica-Bold", fontSize=7.5, leading=9))
    styles.add(ParagraphStyle(name="TableCell", parent=styles["BodyText"], fontName="Helvetica", fontSize=7.0, leading=8.5))
    return styles


def _append_dataframe_table_to_story(story: list[Any], table_spec: dict, styles) -> None:
    df = table_spec.get("dataframe")
    story.append(Paragraph(html.escape(str(table_spec.get("title", "Table"))), styles["Heading3"]))
    if not isinstance(df, pd.DataFrame) or df.empty:
        story.append(Paragraph("No data available.", styles["BodyText"]))
        story.append(Spacer(1, 8))
        return

    header = [Paragraph(html.escape(str(c)), styles["TableHeader"]) for c in df.columns]
    body = [
        [Paragraph(html.escape("" if pd.isna(v) else str(v)), styles["TableCell"]) for v in row]
        for row in df.itertuples(index=False)
    ]
    t = Table([header] + body, repeatRows=1)
    t.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#d9e6f2")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#102a43")),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("GRID", (0, 0), (-1, -1), 0.3, colors.HexColor("#bcccdc")),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f7fafc")]),
            ]
        )
    )
    story.append(t)
    story.append(Spacer(1, 8))


def _build_reportlab_pdf(report_input: dict, sections: list[dict]) -> bytes:
    styles = _report_styles()
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(letter),
        leftMargin=0.4 * inch,
        rightMargin=0.4 * inch,
        topMargin=0.4 * inch,
        bottomMargin=0.4 * inch,
        title=str(report_input.get("title") or "Cashflow Forecast"),
    )

    story: list[Any] = []
    for section_idx, section in enumerate(sections):
        story.append(Paragraph(html.escape(str(section.get("title", "Section"))), styles["Heading1"]))
        for para in section.get("paragraphs", []):
            story.append(Paragraph(html.escape(str(para)), styles["BodyText"]))
        if section.get("paragraphs"):
            story.append(Spacer(1, 8))

        for chart in section.get("charts", []):
            story.append(Paragraph(html.escape(str(chart.get("title", "Chart"))), styles["Heading3"]))
            if chart.get("image_bytes"):
                img = Image(BytesIO(chart["image_bytes"]))
                img.drawWidth = 9.6 * inch
                img.drawHeight = 4.9 * inch
                story.append(img)
            else:
                story.append(Paragraph(html.escape(str(chart.get("placeholder_text", "Chart unavailable."))), styles["BodyText"]))
            story.append(Spacer(1, 10))

        for table_spec in section.get("tables", []):
            _append_dataframe_table_to_story(story, table_spec, styles)

        if section_idx < len(sections) - 1:
            story.append(PageBreak())

    doc.build(story)
    return buf.getvalue()


def build_projection_pdf_bytes(report_input: dict, options: dict | None = None) -> bytes:
    """Build the PDF report.

    report_input keys: ``result`` (ProjectionResult, required), ``scenario_results``
    (optional dict of name -> ProjectionResult), ``title`` and ``generated_at_utc``.
    Pass ``chart_images_override`` in options to skip chart rendering.
    """
    merged = _merge_options(options)
    chart_images = merged.get("chart_images_override")
    if not isinstance(chart_images, list):
        chart_images = build_pdf_chart_images(report_input, merged) if merged.get("include_charts") else []
    sections = build_report_sections(report_input, chart_images)
    return _build_reportlab_pdf(report_input, sections)
