# Overview: Input parsing helpers for JSON payloads and query strings.

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from .errors import InvalidQuantity, ValidationFailed
from .time_utils import parse_iso_date, parse_iso_datetime


# Upper bound for any single money field: $10,000,000.00
MAX_AMOUNT_CENTS = 1_000_000_000


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON payload")
    return payload


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    Accepts int or an integer string ("12", "-3"). Rejects bool, float and
    anything else so that 1.5 units or True never slip through as quantities.
    """
    if isinstance(value, bool):
        raise ValidationFailed(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s.startswith(("+", "-")):
            digits = s[1:]
        else:
            digits = s
        if digits.isdigit():
            return int(s)
    raise ValidationFailed(f"{field} must be an integer")


def parse_optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_int(value, field)


def parse_positive_int(value: Any, field: str = "quantity") -> int:
    """Quantities: strictly positive integers, reported as InvalidQuantity."""
    try:
        n = parse_int(value, field)
    except ValidationFailed as exc:
        raise InvalidQuantity(str(exc), {"field": field}) from exc
    if n <= 0:
        raise InvalidQuantity(f"{field} must be greater than zero", {"field": field, "value": n})
    return n


def parse_non_negative_int(value: Any, field: str, *, maximum: int = MAX_AMOUNT_CENTS) -> int:
    n = parse_int(value, field)
    if n < 0:
        raise ValidationFailed(f"{field} must be >= 0")
    if n > maximum:
        raise ValidationFailed(f"{field} cannot exceed {maximum}")
    return n


def parse_optional_datetime(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationFailed(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationFailed(f"{field} must be an ISO-8601 datetime")


def parse_optional_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationFailed(f"{field} must be an ISO-8601 date")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationFailed(f"{field} must be an ISO-8601 date")


def parse_page_args(args) -> dict:
    """page/limit from a query string; pagination applies defaults and caps."""
    return {
        "page": parse_optional_int(args.get("page"), "page"),
        "limit": parse_optional_int(args.get("limit"), "limit"),
    }


def parse_range_args(args) -> dict:
    """start/end from a query string as a half-open [start, end) window."""
    start = parse_optional_datetime(args.get("start"), "start")
    end = parse_optional_datetime(args.get("end"), "end")
    if start and end and end <= start:
        raise ValidationFailed("end must be after start")
    return {"start": start, "end": end}


def clean_text(value: Any, field: str, *, max_length: int | None = None, required: bool = False) -> str | None:
    if value is None:
        if required:
            raise ValidationFailed(f"{field} is required")
        return None
    s = str(value).strip()
    if not s:
        if required:
            raise ValidationFailed(f"{field} cannot be blank")
        return None
    if max_length and len(s) > max_length:
        raise ValidationFailed(f"{field} exceeds max length {max_length}")
    return s


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    raise ValidationFailed(f"{field} must be true or false")
