"""Typed data entry payloads.

A payload maps column ids to values. Each category declares its columns, and
every column has a kind that decides which values it accepts:

  - text:   any string (surrounding whitespace is stripped)
  - number: int or float, or a string holding one
  - date:   ``datetime.date`` or an ISO ``YYYY-MM-DD`` string
  - select: one of the column's declared options

Empty values (``None`` or blank strings) count as missing. Drafts may leave
required columns empty; submission may not.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ColumnKind(str, Enum):
    """Value kinds a category column can declare."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"


@dataclass
class ColumnDefinition:
    """A single column of a data entry category."""
    id: str
    name: str
    kind: ColumnKind
    required: bool = False
    options: List[Any] = field(default_factory=list)

    @property
    def option_values(self) -> List[str]:
        """Allowed values for select columns.

        Options are stored either as plain strings or as
        ``{"label": ..., "value": ...}`` objects.
        """
        values = []
        for option in self.options or []:
            if isinstance(option, dict):
                values.append(str(option.get("value", option.get("label", ""))))
            else:
                values.append(str(option))
        return values


class PayloadError(ValueError):
    """Raised by ``validate_payload`` with one message per offending column."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{key}: {message}" for key, message in errors.items()))
        self.errors = errors


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_text(value: Any, column: ColumnDefinition) -> str:
    if not isinstance(value, str):
        raise ValueError("expected text")
    return value.strip()


def _coerce_number(value: Any, column: ColumnDefinition):
    if isinstance(value, bool):
        raise ValueError("expected a number")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        raw = value.strip()
        try:
            number = int(raw)
        except ValueError:
            try:
                number = float(raw)
            except ValueError:
                raise ValueError("expected a number") from None
    else:
        raise ValueError("expected a number")
    if isinstance(number, float) and not math.isfinite(number):
        raise ValueError("expected a finite number")
    return number


def _coerce_date(value: Any, column: ColumnDefinition) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()).isoformat()
        except ValueError:
            raise ValueError("expected a date in YYYY-MM-DD format") from None
    raise ValueError("expected a date in YYYY-MM-DD format")


def _coerce_select(value: Any, column: ColumnDefinition) -> str:
    choice = str(value).strip()
    allowed = column.option_values
    if choice not in allowed:
        raise ValueError(f"must be one of: {', '.join(allowed)}")
    return choice


COERCERS = {
    ColumnKind.TEXT: _coerce_text,
    ColumnKind.NUMBER: _coerce_number,
    ColumnKind.DATE: _coerce_date,
    ColumnKind.SELECT: _coerce_select,
}


def validate_payload(
    columns: Iterable[ColumnDefinition],
    data: Optional[Dict[str, Any]],
    *,
    require_complete: bool = False,
) -> Dict[str, Any]:
    """Validate and normalise a payload against a category's columns.

    Args:
        columns: Column definitions of the entry's category
        data: Raw payload keyed by column id
        require_complete: Also demand a value for every required column

    Returns:
        Normalised payload; missing values are left out

    Raises:
        PayloadError: With a message per invalid or missing column
    """
    by_id = {str(column.id): column for column in columns}
    data = data or {}
    errors: Dict[str, str] = {}
    normalised: Dict[str, Any] = {}

    for key, value in data.items():
        column = by_id.get(str(key))
        if column is None:
            errors[str(key)] = "unknown column"
            continue
        if _is_missing(value):
            continue
        try:
            normalised[str(key)] = COERCERS[column.kind](value, column)
        except ValueError as e:
            errors[str(key)] = f"{column.name}: {e}"

    if require_complete:
        for column_id, column in by_id.items():
            if column.required and column_id not in normalised and column_id not in errors:
                errors[column_id] = f"{column.name}: value is required"

    if errors:
        raise PayloadError(errors)
    return normalised

