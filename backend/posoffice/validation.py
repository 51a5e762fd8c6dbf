from __future__ import annotations
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from posoffice.time_utils import day_range, parse_day, parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


# Maximum money value: 9,999,999,999.99 (fits Numeric(12, 2))
MAX_MONEY = Decimal("9999999999.99")
# Line subtotals and document totals are Numeric(14, 2)
MAX_AMOUNT = Decimal("999999999999.99")
MAX_QUANTITY = 1_000_000
CENT = Decimal("0.01")

PHONE_PATTERN = re.compile(r"^[0-9+\-() ]+$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: wire name -> column key clients are allowed to set (security boundary)
    - required_on_create: wire names required for POST
    """
    writable_fields: dict[str, str]
    required_on_create: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, name: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def coerce_money(value: Any, name: str) -> Decimal:
    """Non-negative amount with at most two decimal places."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a number")
    try:
        # str() first so floats like 0.1 do not carry binary noise
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{name} must be a number")
    if amount < 0:
        raise ValidationError(f"{name} must be >= 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"{name} cannot exceed {MAX_MONEY:,}")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{name} must have at most 2 decimal places")
    return amount.quantize(CENT)


def coerce_quantity(value: Any, name: str) -> int:
    """Line quantity: integer in 1..MAX_QUANTITY."""
    quantity = coerce_int(value, name)
    if quantity < 1:
        raise ValidationError(f"{name} must be >= 1")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"{name} cannot exceed {MAX_QUANTITY:,}")
    return quantity


def enforce_amount(amount: Decimal, name: str) -> None:
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{name} cannot exceed {MAX_AMOUNT:,}")


def _coerce_value(col, value: Any, name: str):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, name)

    if isinstance(coltype, Numeric):
        return coerce_money(value, name)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{name} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{name} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column key.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        key = policy.writable_fields[k]
        col = cols[key]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(col, raw, k)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_phone(value: str | None, name: str) -> None:
    if value is None or value == "":
        return
    if not PHONE_PATTERN.match(value):
        raise ValidationError(f"{name} may only contain digits, spaces and + - ( )")


def parse_date_range(start_raw: str | None, end_raw: str | None, *, required: bool = True):
    """
    Turn startDate/endDate query values into a half-open UTC window.

    Returns None when both are absent and the range is optional.
    """
    if not start_raw and not end_raw and not required:
        return None
    if not start_raw or not end_raw:
        raise ValidationError("startDate and endDate are required")
    try:
        start = parse_day(start_raw)
        end = parse_day(end_raw)
    except ValueError:
        raise ValidationError("startDate and endDate must be YYYY-MM-DD dates")
    if end < start:
        raise ValidationError("endDate must not be before startDate")
    return day_range(start, end)


def coerce_datetime(value: Any, name: str) -> datetime | None:
    """Optional ISO-8601 datetime field; None or blank means 'not given'."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
