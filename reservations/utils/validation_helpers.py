from datetime import datetime, timezone
from typing import Optional

from email_validator import EmailNotValidError, validate_email


def normalize_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def check_email(value: Optional[str]) -> Optional[str]:
    """Error message for a malformed address, None if it is well-formed."""
    if not value or not value.strip():
        return "Customer email is required"
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        return f"Invalid email address: {e}"
    return None


def check_time_window(
    start: Optional[datetime], end: Optional[datetime], now: Optional[datetime] = None
) -> dict:
    """Field errors for a booking window; empty when the window is usable."""
    errors = {}
    if start is None:
        errors["start_time"] = "Start time is required"
    if end is None:
        errors["end_time"] = "End time is required"
    if errors:
        return errors
    if start >= end:
        errors["end_time"] = "End time must be after start time"
    elif end <= (now or datetime.utcnow()):
        errors["start_time"] = "Cannot book a time slot in the past"
    return errors


def request_errors(errors) -> dict:
    """Map pydantic error entries to the ``{"rooms[0].cost_type": message}`` form."""
    result = {}
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
            loc = loc[1:]
        field = ""
        for part in loc:
            if isinstance(part, int):
                field += f"[{part}]"
            else:
                field += f".{part}" if field else str(part)
        result.setdefault(field or "request", error.get("msg", "Invalid value"))
    return result
