"""
Questboard Domain Validators

Purpose
-------
Validation and sanitization helpers shared by the economy services.

Two families:
- `validate_*` raise structured domain exceptions (raise-on-error).
- `clamp_*` / `coerce_*` sanitize untrusted client numbers. They never
  raise; out-of-range input is pulled back into range and a warning is
  logged so abuse stays visible.

Usage
-----
    from questboard.modules.shared.validators import clamp_untrusted_int

    raid_xp = clamp_untrusted_int(payload["raid_xp"], 0, 1000, "raid_xp", default=0)
"""

from __future__ import annotations

import math
from typing import Any, Optional, Union

from questboard.core.logging.logger import get_logger

logger = get_logger(__name__)

Number = Union[int, float]


def coerce_finite(value: Any) -> Optional[float]:
    """
    Return ``value`` as a finite float, or None if it is not a real number.

    Booleans, strings, None, NaN and infinities are all rejected.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    result = float(value)
    if not math.isfinite(result):
        return None
    return result


def clamp(value: Number, minimum: Number, maximum: Number, field: str) -> Number:
    """Clamp into ``[minimum, maximum]``, logging when the input was outside."""
    if value < minimum or value > maximum:
        clamped = min(max(value, minimum), maximum)
        logger.warning(
            "Clamped out-of-range value",
            extra={
                "field": field,
                "value": value,
                "clamped_to": clamped,
                "min": minimum,
                "max": maximum,
            },
        )
        return clamped
    return value


def clamp_untrusted_int(
    value: Any,
    minimum: int,
    maximum: int,
    field: str,
    default: int,
) -> int:
    """
    Sanitize a client-supplied integer.

    Non-numbers fall back to ``default``; fractions are floored; the result
    is clamped into ``[minimum, maximum]``.
    """
    number = coerce_finite(value)
    if number is None:
        logger.warning(
            "Ignored non-numeric value",
            extra={"field": field, "value": repr(value), "default": default},
        )
        return default
    return int(clamp(math.floor(number), minimum, maximum, field))


def validate_actor_id(actor_id: Any, field: str = "actor_id") -> str:
    """
    Validate an actor identifier.

    Raises:
        ValidationError: If the id is not a non-empty string
    """
    from .exceptions import ValidationError

    if not isinstance(actor_id, str) or not actor_id.strip():
        raise ValidationError(field, "must be a non-empty string")
    return actor_id


def validate_limit(limit: Any, maximum: int = 100) -> int:
    """
    Validate a result-size limit for leaderboard style reads.

    Raises:
        ValidationError: If limit is not an integer in ``[1, maximum]``
    """
    from .exceptions import ValidationError

    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError("limit", f"must be an integer, got {limit!r}")
    if not (1 <= limit <= maximum):
        raise ValidationError("limit", f"must be between 1 and {maximum}, got {limit}")
    return limit


def validate_record_id(value: Any, field: str = "record_id") -> int:
    """
    Validate a row id passed in from a client, e.g. a notification cursor.

    Digit strings are accepted since cursors often arrive as query parameters.

    Raises:
        ValidationError: If the value is not a non-negative integer
    """
    from .exceptions import ValidationError

    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, f"must be an integer, got {value!r}")
    if value < 0:
        raise ValidationError(field, f"must not be negative, got {value}")
    return value
