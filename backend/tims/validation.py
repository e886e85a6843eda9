# Overview: Request-body validation driven by SQLAlchemy column metadata plus TIMS business rules.

from __future__ import annotations
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Text

from tims.time_utils import parse_iso_datetime
from .models import ITEM_STATUSES, TRANSACTION_TYPES, SUPPLIER_STATUSES, ORDER_STATUSES, USER_ROLES


# Largest order total accepted: 9,999,999.99 in cents
MAX_AMOUNT_CENTS = 999_999_999

# Upper bound for stock counters and transaction quantities
MAX_QUANTITY = 1_000_000_000

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PLAIN_INT_RE = re.compile(r"^-?\d+$")


class ValidationError(ValueError):
    """Bad input; routes answer 400."""


class ConflictError(ValueError):
    """Input clashes with stored state (duplicate serial, supplier in use); routes answer 409."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a route lets the client touch.

    writable_fields is the allowlist; anything else in the body is rejected.
    required_on_create must be present for POST and full-replacement PUT.
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _to_int(key: str, value: Any) -> int:
    # bool is an int subclass; JSON true must not become 1
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if isinstance(value, str):
        text = value.strip()
        if "e" in text.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in text:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        if _PLAIN_INT_RE.match(text):
            return int(text)
    raise ValidationError(f"{key} must be an integer")


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a datetime")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return parsed


def _coerce_value(col, value: Any):
    """Convert one JSON value to the Python type of col. None passes through."""
    if value is None:
        return None

    coltype = col.type
    if isinstance(coltype, Integer):
        return _to_int(col.key, value)
    if isinstance(coltype, Boolean):
        return value if isinstance(value, bool) else bool(value)
    if isinstance(coltype, DateTime):
        return _to_datetime(col.key, value)
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()
    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a JSON body into a clean patch dict for model.

    Checks, in order: the body is an object; required fields are present
    (unless partial); every key is writable and a real column; values coerce
    to the column type; NOT NULL columns get no null or blank value; strings
    fit String(n). Blank optional strings become None.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")

    patch: dict = {}
    for key, raw in payload.items():
        col = columns[key]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and value == "":
            if not col.nullable:
                raise ValidationError(f"{key} cannot be blank")
            value = None

        length = getattr(col.type, "length", None)
        if isinstance(col.type, String) and length and isinstance(value, str) and len(value) > length:
            raise ValidationError(f"{key} exceeds max length {length}")

        patch[key] = value

    return patch


def _require_range(patch: dict, field: str, *, minimum: int, maximum: int = MAX_QUANTITY) -> None:
    if field in patch and patch[field] is not None:
        value = patch[field]
        if value < minimum:
            raise ValidationError(f"{field} must be >= {minimum}")
        if value > maximum:
            raise ValidationError(f"{field} cannot exceed {maximum}")


def enforce_rules_inventory_item(patch: dict) -> None:
    if "status" in patch and patch["status"] not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ITEM_STATUSES)}")
    _require_range(patch, "stock_level", minimum=0)
    _require_range(patch, "reorder_point", minimum=0)


def enforce_rules_inventory_transaction(patch: dict) -> None:
    """
    purchase / sale / return take a positive quantity.
    adjustment takes a signed, non-zero delta.
    """
    tx_type = patch.get("transaction_type")
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError(f"transaction_type must be one of: {', '.join(TRANSACTION_TYPES)}")

    quantity = patch.get("quantity")
    if quantity is None:
        raise ValidationError("quantity is required")

    if tx_type == "adjustment":
        if quantity == 0:
            raise ValidationError("quantity must be non-zero for adjustment")
        if abs(quantity) > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
    else:
        if quantity <= 0:
            raise ValidationError(f"quantity must be a positive integer for {tx_type}")
        _require_range(patch, "quantity", minimum=1)


def enforce_rules_supplier(patch: dict) -> None:
    if "status" in patch and patch["status"] not in SUPPLIER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SUPPLIER_STATUSES)}")
    email = patch.get("email")
    if email is not None and not _EMAIL_RE.match(email):
        raise ValidationError("Valid email is required")


def enforce_rules_order(patch: dict) -> None:
    _require_range(patch, "total_amount_cents", minimum=0, maximum=MAX_AMOUNT_CENTS)


def enforce_rules_order_status(patch: dict) -> None:
    if patch.get("status") not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")


def enforce_rules_user(patch: dict) -> None:
    if "role" in patch and patch["role"] not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
    if "email" in patch and (patch["email"] is None or not _EMAIL_RE.match(patch["email"])):
        raise ValidationError("Valid email is required")
