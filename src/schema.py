"""Transaction schema, enumerations, validation, and record normalization."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import pandas as pd


INFLOW = "inflow"
OUTFLOW = "outflow"
KINDS = {INFLOW, OUTFLOW}

# Spellings used by the record store and the plan grid.
KIND_ALIASES = {
    "inflow": INFLOW,
    "revenue": INFLOW,
    "income": INFLOW,
    "outflow": OUTFLOW,
    "expense": OUTFLOW,
    "cost": OUTFLOW,
}

WEEKLY = "weekly"
MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"
RECURRENCE_INTERVALS = (WEEKLY, MONTHLY, QUARTERLY, YEARLY)

SEVERITIES = ("info", "warning", "danger")

RECORD_FIELD_ALIASES = {
    "id": ("id", "transaction_id"),
    "kind": ("kind", "type"),
    "label": ("label", "name"),
    "amount": ("amount",),
    "anchor_date": ("anchor_date", "date"),
    "recurring": ("recurring", "is_recurring"),
    "interval": ("interval", "recurrence_frequency"),
    "recurrence_end": ("recurrence_end", "recurrence_end_date"),
    "payment_delay_days": ("payment_delay_days", "payment_delay"),
    "category_id": ("category_id", "category"),
}

_TRUE_TEXT = {"1", "true", "yes", "y", "on"}
_FALSE_TEXT = {"0", "false", "no", "n", "off", ""}


class ProjectionInputError(ValueError):
    """Raised when projection inputs cannot be used as given."""


class RecurrenceConfigError(ProjectionInputError):
    """Raised for an unknown kind or an invalid recurrence configuration."""


class InvalidAmountError(ProjectionInputError):
    """Raised for negative, non-finite, or unparseable money and delay values."""


@dataclass(frozen=True)
class Transaction:
    """One-time or recurring cash movement, in the account's base currency.

    ``amount`` may be built from any finite number; validation converts it to Decimal.
    """

    id: str
    kind: str
    label: str
    amount: Decimal
    anchor_date: date
    recurring: bool = False
    interval: str | None = None
    recurrence_end: date | None = None
    payment_delay_days: int = 0
    category_id: str | None = None

    @property
    def is_inflow(self) -> bool:
        return self.kind == INFLOW

    def with_amount(self, amount: Decimal) -> "Transaction":
        return replace(self, amount=amount)


@dataclass(frozen=True)
class Alert:
    severity: str
    message: str
    month: str | None = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"severity must be one of {'/'.join(SEVERITIES)} (got {self.severity!r}).")


@dataclass(frozen=True)
class ScenarioAssumptions:
    """Uniform percentage adjustments applied to inflow and outflow amounts."""

    name: str
    inflow_growth_rate_pct: Decimal = field(default_factory=lambda: Decimal("0"))
    outflow_growth_rate_pct: Decimal = field(default_factory=lambda: Decimal("0"))


def coerce_amount(value: Any, field_name: str = "amount") -> Decimal:
    """Return a finite, non-negative Decimal or raise InvalidAmountError."""
    money = coerce_money(value, field_name)
    if money < 0:
        raise InvalidAmountError(f"{field_name} must be non-negative.")
    return money


def coerce_money(value: Any, field_name: str = "amount") -> Decimal:
    """Return a finite Decimal; negative values are allowed (starting balances)."""
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"{field_name} must be a number.")
    if isinstance(value, Decimal):
        out = value
    else:
        try:
            out = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmountError(f"{field_name} must be a number.") from None
    if not out.is_finite():
        raise InvalidAmountError(f"{field_name} must be finite.")
    return out


def coerce_date(value: Any, field_name: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        raise ProjectionInputError(f"{field_name} is required.")
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        raise ProjectionInputError(f"{field_name} is not a valid date.") from None
    if pd.isna(ts):
        raise ProjectionInputError(f"{field_name} is required.")
    return ts.date()


def coerce_bool(value: Any, field_name: str = "flag") -> bool:
    if hasattr(value, "item") and not isinstance(value, str):
        # numpy scalars from DataFrame rows
        value = value.item()
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        if pd.isna(value):
            return False
        return bool(value)
    if isinstance(value, str):
        txt = value.strip().lower()
        if txt in _TRUE_TEXT:
            return True
        if txt in _FALSE_TEXT:
            return False
    raise ProjectionInputError(f"{field_name} must be a boolean.")


def normalize_kind(value: Any) -> str:
    kind = KIND_ALIASES.get(str(value or "").strip().lower())
    if kind is None:
        raise RecurrenceConfigError(f"kind must be one of inflow/outflow (got {value!r}).")
    return kind


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def validate_transaction(tx: Transaction, latest_date: date | None = None) -> Transaction:
    """Return the transaction with its amount as a Decimal, or raise a ProjectionInputError subclass.

    ``latest_date`` is the last nominal date the caller may expand to (the
    horizon end); the payment delay must keep every effective date representable.
    """
    if tx.kind not in KINDS:
        raise RecurrenceConfigError(f"{tx.id}: kind must be one of inflow/outflow.")
    try:
        amount = coerce_amount(tx.amount)
    except InvalidAmountError as exc:
        raise InvalidAmountError(f"{tx.id}: {exc}") from None
    if isinstance(tx.payment_delay_days, bool) or not isinstance(tx.payment_delay_days, int):
        raise InvalidAmountError(f"{tx.id}: payment_delay_days must be an integer.")
    if tx.payment_delay_days < 0:
        raise InvalidAmountError(f"{tx.id}: payment_delay_days must be non-negative.")
    latest = tx.anchor_date if latest_date is None else max(tx.anchor_date, latest_date)
    try:
        latest + timedelta(days=tx.payment_delay_days)
    except OverflowError:
        raise InvalidAmountError(f"{tx.id}: payment_delay_days moves payments past the last supported date.") from None
    if tx.recurring:
        if not tx.interval:
            raise RecurrenceConfigError(f"{tx.id}: recurring transactions require an interval.")
        if tx.interval not in RECURRENCE_INTERVALS:
            raise RecurrenceConfigError(
                f"{tx.id}: interval must be one of {'/'.join(RECURRENCE_INTERVALS)} (got {tx.interval!r})."
            )
    return tx if amount is tx.amount else replace(tx, amount=amount)


def validate_transactions(transactions: Iterable[Transaction], latest_date: date | None = None) -> list[Transaction]:
    return [validate_transaction(tx, latest_date) for tx in transactions]


def _record_value(record: dict, key: str) -> Any:
    for alias in RECORD_FIELD_ALIASES[key]:
        if alias in record and not _is_missing(record[alias]):
            return record[alias]
    return None


def transaction_from_record(record: dict, default_id: str = "") -> Transaction:
    """Build a validated Transaction from a loosely typed record (strict)."""
    if not isinstance(record, dict):
        raise ProjectionInputError("Record must be an object.")

    tx_id = _record_value(record, "id")
    recurring = coerce_bool(_record_value(record, "recurring"), "recurring")
    interval_raw = _record_value(record, "interval")
    interval = str(interval_raw).strip().lower() if interval_raw is not None else None
    end_raw = _record_value(record, "recurrence_end")
    delay_raw = _record_value(record, "payment_delay_days")
    delay = 0
    if delay_raw is not None:
        delay_days = coerce_money(delay_raw, "payment_delay_days")
        if delay_days != delay_days.to_integral_value():
            raise InvalidAmountError("payment_delay_days must be a whole number of days.")
        delay = int(delay_days)
    category = _record_value(record, "category_id")

    tx = Transaction(
        id=str(tx_id) if tx_id is not None else default_id,
        kind=normalize_kind(_record_value(record, "kind")),
        label=str(_record_value(record, "label") or ""),
        amount=coerce_amount(_record_value(record, "amount")),
        anchor_date=coerce_date(_record_value(record, "anchor_date"), "anchor_date"),
        recurring=recurring,
        interval=interval if recurring else None,
        recurrence_end=coerce_date(end_raw, "recurrence_end") if recurring and end_raw is not None else None,
        payment_delay_days=delay,
        category_id=str(category) if category is not None else None,
    )
    return validate_transaction(tx)


def transactions_from_records(records: Any) -> tuple[list[Transaction], list[str]]:
    """Normalize records, skipping invalid rows with a warning per row."""
    warnings: list[str] = []
    if records is None:
        return [], warnings
    if isinstance(records, pd.DataFrame):
        rows = records.to_dict(orient="records")
    elif isinstance(records, list):
        rows = records
    else:
        return [], ["transactions ignored because it is not a list/table."]

    out: list[Transaction] = []
    seen_ids: set[str] = set()
    for idx, row in enumerate(rows):
        if not isinstance(row, dict):
            warnings.append(f"transactions[{idx}] ignored because entry is not an object.")
            continue
        try:
            tx = transaction_from_record(row, default_id=f"row-{idx + 1}")
        except ProjectionInputError as exc:
            warnings.append(f"transactions[{idx}] ignored: {exc}")
            continue
        if tx.id in seen_ids:
            warnings.append(f"transactions[{idx}] has duplicate id {tx.id!r}; renamed to row-{idx + 1}.")
            tx = replace(tx, id=f"row-{idx + 1}")
        seen_ids.add(tx.id)
        out.append(tx)
    return out, warnings


def transaction_to_record(tx: Transaction) -> dict:
    return {
        "id": tx.id,
        "kind": tx.kind,
        "label": tx.label,
        "amount": float(tx.amount),
        "anchor_date": tx.anchor_date.isoformat(),
        "recurring": tx.recurring,
        "interval": tx.interval,
        "recurrence_end": tx.recurrence_end.isoformat() if tx.recurrence_end else None,
        "payment_delay_days": tx.payment_delay_days,
        "category_id": tx.category_id,
    }


def scenario_from_rates(name: str, rates: dict) -> ScenarioAssumptions:
    return ScenarioAssumptions(
        name=name,
        inflow_growth_rate_pct=coerce_money(rates.get("inflow_growth_rate_pct", 0), "inflow_growth_rate_pct"),
        outflow_growth_rate_pct=coerce_money(rates.get("outflow_growth_rate_pct", 0), "outflow_growth_rate_pct"),
    )


def month_label(value: date) -> str:
    return value.strftime("%b %Y")


@dataclass(frozen=True)
class MonthBucket:
    """Totals for one calendar month of a projection."""

    month_start: date
    cash_in: Decimal
    cash_out: Decimal
    net: Decimal
    cumulative: Decimal
    occurrences: tuple = ()

    @property
    def label(self) -> str:
        return month_label(self.month_start)
