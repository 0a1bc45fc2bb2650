"""Tolerant conversion between schema-less row properties and typed values.

Rows written over the years carry the same logical field in different
representations: booleans as native bools, "true"/"false" strings or 0/1
integers; dates as native values or ISO-8601 strings; money as decimals,
doubles or numeric strings. Each reader tries an ordered tuple of
representation parsers and falls back to None (or a stated default). Readers
never raise.

Writers follow set-or-clear: a present, non-blank value is written (trimmed
when textual); an absent or blank value removes the property from the row.
"""

import json
import logging
from collections.abc import Callable, Mapping, MutableMapping
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel

from travel_itinerary.models.common import TimelineItemType, TripPermission

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

Parser = Callable[[Any], Any]

# Obsolete category names written by earlier versions of the app
LEGACY_ITEM_TYPE_ALIASES: dict[str, TimelineItemType] = {
    "travel": TimelineItemType.flight,
    "transportation": TimelineItemType.taxi,
    "transport": TimelineItemType.taxi,
    "lodging": TimelineItemType.hotel,
    "accommodation": TimelineItemType.hotel,
    "stay": TimelineItemType.hotel,
    "activity": TimelineItemType.tour,
    "dining": TimelineItemType.dining,
    "food": TimelineItemType.dining,
    "notes": TimelineItemType.note,
}

_PERMISSION_TOKENS: dict[str, TripPermission] = {
    "owner": TripPermission.owner,
    "fullcontrol": TripPermission.full_control,
    "readonly": TripPermission.read_only,
}


def _decode(value: Any, parsers: tuple[Parser, ...]) -> Any:
    """Run parsers in order; the first non-None result wins."""
    if value is None:
        return None

    for parser in parsers:
        try:
            result = parser(value)
        except (ValueError, TypeError, ArithmeticError):
            continue
        if result is not None:
            return result

    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# Representation parsers
def _bool_native(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _bool_from_str(value: Any) -> bool | None:
    text = _text(value)
    return {"true": True, "false": False}.get(text.lower()) if text else None


def _bool_from_int(value: Any) -> bool | None:
    return value != 0 if _is_int(value) else None


def _int_native(value: Any) -> int | None:
    return value if _is_int(value) else None


def _int_from_float(value: Any) -> int | None:
    if isinstance(value, float | Decimal) and value == int(value):
        return int(value)
    return None


def _int_from_str(value: Any) -> int | None:
    text = _text(value)
    return int(text) if text else None


def _float_native(value: Any) -> float | None:
    if isinstance(value, float) or _is_int(value):
        return float(value)
    return None


def _float_from_decimal(value: Any) -> float | None:
    return float(value) if isinstance(value, Decimal) else None


def _float_from_str(value: Any) -> float | None:
    text = _text(value)
    return float(text) if text else None


def _decimal_native(value: Any) -> Decimal | None:
    return value if isinstance(value, Decimal) else None


def _decimal_from_float(value: Any) -> Decimal | None:
    # repr() keeps the shortest round-tripping form: 12.3 -> Decimal("12.3")
    return Decimal(repr(value)) if isinstance(value, float) else None


def _decimal_from_int(value: Any) -> Decimal | None:
    return Decimal(value) if _is_int(value) else None


def _decimal_from_str(value: Any) -> Decimal | None:
    text = _text(value)
    return Decimal(text) if text else None


def _date_from_datetime(value: Any) -> date | None:
    return _as_utc(value).date() if isinstance(value, datetime) else None


def _date_native(value: Any) -> date | None:
    return value if isinstance(value, date) and not isinstance(value, datetime) else None


def _date_from_str(value: Any) -> date | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return _as_utc(datetime.fromisoformat(text)).date()


def _datetime_native(value: Any) -> datetime | None:
    return _as_utc(value) if isinstance(value, datetime) else None


def _datetime_from_date(value: Any) -> datetime | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return None


def _datetime_from_str(value: Any) -> datetime | None:
    text = _text(value)
    return _as_utc(datetime.fromisoformat(text)) if text else None


_BOOL_PARSERS: tuple[Parser, ...] = (_bool_native, _bool_from_str, _bool_from_int)
_INT_PARSERS: tuple[Parser, ...] = (_int_native, _int_from_float, _int_from_str)
_FLOAT_PARSERS: tuple[Parser, ...] = (_float_native, _float_from_decimal, _float_from_str)
_DECIMAL_PARSERS: tuple[Parser, ...] = (
    _decimal_native,
    _decimal_from_float,
    _decimal_from_int,
    _decimal_from_str,
)
_DATE_PARSERS: tuple[Parser, ...] = (_date_from_datetime, _date_native, _date_from_str)
_DATETIME_PARSERS: tuple[Parser, ...] = (
    _datetime_native,
    _datetime_from_date,
    _datetime_from_str,
)


# Readers
def get_string(properties: Mapping[str, Any], name: str) -> str | None:
    """Read a string property; blank reads as absent."""
    value = properties.get(name)
    if value is None:
        return None
    if isinstance(value, datetime | date):
        text = value.isoformat()
    else:
        text = str(value)
    return text if text.strip() else None


def get_bool(properties: Mapping[str, Any], name: str, default: bool = False) -> bool:
    """Read a boolean property, falling back to ``default``."""
    result = _decode(properties.get(name), _BOOL_PARSERS)
    return default if result is None else result


def get_int(properties: Mapping[str, Any], name: str) -> int | None:
    return _decode(properties.get(name), _INT_PARSERS)


def get_float(properties: Mapping[str, Any], name: str) -> float | None:
    return _decode(properties.get(name), _FLOAT_PARSERS)


def get_decimal(properties: Mapping[str, Any], name: str) -> Decimal | None:
    """Read a decimal property; non-finite values read as absent."""
    result = _decode(properties.get(name), _DECIMAL_PARSERS)
    if result is not None and not result.is_finite():
        return None
    return result


def get_date(properties: Mapping[str, Any], name: str) -> date | None:
    return _decode(properties.get(name), _DATE_PARSERS)


def get_datetime(properties: Mapping[str, Any], name: str) -> datetime | None:
    """Read a timestamp property as an aware UTC datetime."""
    return _decode(properties.get(name), _DATETIME_PARSERS)


def get_json(properties: Mapping[str, Any], name: str, model: type[M]) -> M | None:
    """Read a JSON blob into a model.

    Malformed blobs and blobs without content read as absent; metadata is
    optional and never authoritative.
    """
    value = properties.get(name)
    if value is None:
        return None

    try:
        if isinstance(value, Mapping):
            result = model.model_validate(value)
        elif isinstance(value, str) and value.strip():
            result = model.model_validate_json(value)
        else:
            return None
    except ValueError as e:
        logger.debug("Ignoring undecodable %s: %s", name, e)
        return None

    if not getattr(result, "has_content", True):
        return None
    return result


def parse_item_type(value: Any) -> TimelineItemType:
    """Decode a stored item type; unknown or blank values become ``other``."""
    text = _text(value)
    if text is None:
        return TimelineItemType.other

    token = text.lower()
    canonical = token.replace("_", "").replace("-", "").replace(" ", "")
    for item_type in TimelineItemType:
        if item_type.value == canonical:
            return item_type

    return LEGACY_ITEM_TYPE_ALIASES.get(token, TimelineItemType.other)


def parse_permission(value: Any) -> TripPermission | None:
    """Decode a stored permission level; unknown values are None."""
    text = _text(value)
    if text is None:
        return None
    token = text.lower().replace("_", "").replace("-", "").replace(" ", "")
    return _PERMISSION_TOKENS.get(token)


# Writers
def _prune(value: Any) -> Any:
    """Drop None values and empty containers from a dumped model."""
    if isinstance(value, dict):
        pruned = {key: _prune(item) for key, item in value.items()}
        return {key: item for key, item in pruned.items() if item not in (None, "", {}, [])}
    if isinstance(value, list):
        return [_prune(item) for item in value]
    return value


def encode_value(value: Any) -> Any:
    """Encode a typed value for storage; None means "clear the property"."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, BaseModel):
        if not getattr(value, "has_content", True):
            return None
        data = _prune(value.model_dump(mode="json", by_alias=True, exclude_none=True))
        return json.dumps(data, separators=(",", ":")) if data else None
    return value


def set_or_clear(properties: MutableMapping[str, Any], name: str, value: Any) -> None:
    """Write ``value`` under ``name`` or remove the property when blank."""
    encoded = encode_value(value)
    if encoded is None:
        properties.pop(name, None)
    else:
        properties[name] = encoded
