"""Parsing utilities for request arguments and JSON bodies."""
import re
from datetime import datetime, time
from typing import Any, Dict, Optional

from flask import request

from app.exceptions import ValidationError

DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off')


def parse_datetime_arg(value: Optional[str], field: str, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO date or datetime query argument.

    Rules:
    - Empty or missing -> None
    - Date only (2025-01-31) -> start of that day, or 23:59:59.999999
      when ``end_of_day`` is set so a range end includes the whole day
    - Timezone-aware values are converted to naive local time

    Raises:
        ValidationError: if the value is not ISO-8601.
    """
    if value is None:
        return None

    cleaned = value.strip()
    if not cleaned:
        return None

    if DATE_ONLY_PATTERN.match(cleaned):
        try:
            day = datetime.strptime(cleaned, '%Y-%m-%d').date()
        except ValueError:
            raise ValidationError(f'Invalid date: {value}', field=field)
        return datetime.combine(day, time.max if end_of_day else time.min)

    if cleaned.endswith('Z'):
        cleaned = cleaned[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        raise ValidationError(f'Invalid date: {value}', field=field)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_bool(value, field: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a JSON or form boolean ('true', 1, 'no', ...)."""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValidationError(f'{field} must be true or false', field=field)


def parse_int(value, field: str, default: Optional[int] = None, minimum: Optional[int] = None) -> Optional[int]:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer', field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer', field=field)
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', field=field)
    return number


def json_body() -> Dict[str, Any]:
    """Current request JSON body as a dict ({} when absent)."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data
