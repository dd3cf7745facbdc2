"""
Normalization of raw provider records coming back from the provider search API.

Every record passes through `normalize_provider` before anything else sees it,
so identity and coordinate rules are decided in exactly one place.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .base import Coordinate, ProviderRecord

logger = logging.getLogger(__name__)

_ID_KEYS = ("id",)
_PLACE_ID_KEYS = ("placeId", "place_id")
_LAT_KEYS = ("lat", "latitude")
_LNG_KEYS = ("lng", "lon", "longitude")


def _norm(s: str) -> str:
    return " ".join((s or "").lower().split())


def _first_present(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def coerce_float(value: Any) -> Optional[float]:
    """
    Coerce a number or numeric text to float.

    Returns None for None, blank text, booleans, unparsable text and non-finite values.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            logger.warning("Could not coerce %r to float", value)
            return None
    else:
        logger.warning("Unexpected type %s for numeric value %r", type(value).__name__, value)
        return None

    if not math.isfinite(result):
        return None
    return result


def coerce_identity(value: Any) -> Optional[str]:
    """Render an id as text; integral numbers lose their decimal part (12.0 -> "12")."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            return str(int(value))
        return repr(value)
    text = str(value).strip()
    return text or None


def provider_identity(raw: Mapping[str, Any], position: Optional[int] = None) -> str:
    """
    Pick one identity for a raw record: `id` first, then the place identifier.

    Records carrying neither get a key built from name and address. Without those
    the coordinate is used, and without a coordinate the record's list position.
    """
    identity = coerce_identity(_first_present(raw, _ID_KEYS))
    if identity is None:
        identity = coerce_identity(_first_present(raw, _PLACE_ID_KEYS))
    if identity is not None:
        return identity

    name = _norm(str(raw.get("name") or ""))
    address = _norm(str(raw.get("address") or ""))
    if name or address:
        return "anon:" + name + "|" + address
    coord = coordinate_from_mapping(raw)
    if coord is not None:
        return f"anon:@{coord.lat},{coord.lng}"
    return f"anon:#{position if position is not None else 0}"


def coerce_coordinate(lat: Any, lng: Any) -> Optional[Coordinate]:
    """Both axes or nothing: a pair with a missing or unusable axis is unmappable."""
    lat_f = coerce_float(lat)
    lng_f = coerce_float(lng)
    if lat_f is None or lng_f is None:
        return None
    if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0):
        logger.warning("Coordinate out of range: lat=%s lng=%s", lat_f, lng_f)
        return None
    return Coordinate(lat=lat_f, lng=lng_f)


def coordinate_from_mapping(raw: Any) -> Optional[Coordinate]:
    if not isinstance(raw, Mapping):
        return None
    return coerce_coordinate(
        _first_present(raw, _LAT_KEYS),
        _first_present(raw, _LNG_KEYS),
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _count(value: Any) -> int:
    number = coerce_float(value)
    if number is None or number < 0:
        return 0
    return int(number)


def _labels(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    seen = set()
    labels: List[str] = []
    for item in value:
        label = _text(item)
        if label and label not in seen:
            seen.add(label)
            labels.append(label)
    return tuple(labels)


def normalize_provider(raw: Mapping[str, Any], position: Optional[int] = None) -> ProviderRecord:
    coordinate = coordinate_from_mapping(raw)
    if coordinate is None and (
        _first_present(raw, _LAT_KEYS) is not None or _first_present(raw, _LNG_KEYS) is not None
    ):
        logger.debug("Provider %s has an incomplete coordinate; it will not be mapped", raw.get("name"))

    return ProviderRecord(
        id=provider_identity(raw, position),
        name=_text(raw.get("name")),
        address=_text(raw.get("address")),
        coordinate=coordinate,
        type=_text(raw.get("type")),
        rating=coerce_float(raw.get("rating")),
        reviews=_count(raw.get("reviews")),
        price=_text(raw.get("price")),
        hours=_text(raw.get("hours")),
        phone=_text(raw.get("phone")),
        insurance=_labels(raw.get("insurance")),
        distance=_text(raw.get("distance")),
        payload=dict(raw),
    )


def normalize_providers(raw_items: Iterable[Any]) -> Tuple[ProviderRecord, ...]:
    """Normalize a raw list, keeping source order and dropping repeated identities."""
    seen = set()
    records: List[ProviderRecord] = []
    for position, raw in enumerate(raw_items):
        if not isinstance(raw, Mapping):
            logger.warning("Skipping provider entry that is not an object: %r", raw)
            continue
        record = normalize_provider(raw, position)
        if record.id in seen:
            logger.warning("Dropping duplicate provider id %s", record.id, extra={"provider_id": record.id})
            continue
        seen.add(record.id)
        records.append(record)
    return tuple(records)
