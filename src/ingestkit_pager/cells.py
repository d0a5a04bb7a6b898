"""Cell type coercion shared by header detection and row conversion.

:func:`coerce_cell` maps one :class:`~ingestkit_pager.models.RawCell` to a
``(FieldType, value)`` pair.  It is total: blank, error, and unrecognized
cells degrade to an empty string instead of failing.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from openpyxl.utils.datetime import from_excel

from ingestkit_pager.models import CellKind, FieldType, RawCell

logger = logging.getLogger("ingestkit_pager")

# Day zero of the 1900 date system as Excel counts it.
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)


def coerce_cell(cell: RawCell) -> tuple[FieldType, Any]:
    """Return the ``(FieldType, value)`` pair for a raw cell."""
    kind = cell.kind
    if kind is CellKind.BOOLEAN:
        return FieldType.BOOLEAN, bool(cell.value)
    if kind is CellKind.STRING:
        return FieldType.STRING, "" if cell.value is None else str(cell.value)
    if kind is CellKind.NUMERIC:
        if cell.is_date:
            return FieldType.DATETIME, to_utc_datetime(cell.value)
        return FieldType.DOUBLE, _to_float(cell.value)
    if kind is CellKind.FORMULA:
        # Resolved to the cached result; expressions are never surfaced.
        return FieldType.DOUBLE, _to_float(cell.value)
    return FieldType.STRING, ""


def to_utc_datetime(value: Any) -> datetime | None:
    """Reinterpret a date-formatted cell value as a UTC-aware ``datetime``.

    Naive datetimes are taken to already be UTC.  ``time`` and ``timedelta``
    values are offsets from the Excel epoch; plain numbers are Excel serial
    dates.  Returns ``None`` when the value cannot be read as a date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, time):
        return datetime.combine(EXCEL_EPOCH.date(), value.replace(tzinfo=None), tzinfo=timezone.utc)
    if isinstance(value, timedelta):
        return EXCEL_EPOCH + value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            converted = from_excel(value)
        except (OverflowError, ValueError):
            logger.debug("Serial date %r out of range", value)
            return None
        return to_utc_datetime(converted)
    return None


def conform_value(value: Any, field_type: FieldType) -> Any:
    """Fit a coerced cell value to the type of the field it lands in.

    Values that already match are returned as-is.  Values that cannot be
    represented in *field_type* become ``None``.
    """
    if value is None:
        return None

    if field_type is FieldType.STRING:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    if isinstance(value, str) and value.strip() == "":
        return None

    if field_type is FieldType.DOUBLE:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    if field_type is FieldType.DATETIME:
        if isinstance(value, (str, bool)):
            return None
        return to_utc_datetime(value)

    if field_type is FieldType.BOOLEAN:
        return value if isinstance(value, bool) else None

    return None


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    result = float(value)
    if math.isnan(result):
        return None
    return result
