"""Ordered map stops for a trip's route."""

from dataclasses import dataclass
from datetime import date

from travel_itinerary.config import get_settings
from travel_itinerary.models.common import ItemFamily, TimelineItemType
from travel_itinerary.models.details import TripDetails
from travel_itinerary.models.entry import ItineraryEntry

DEFAULT_MARKER_COLOR = "#0d6efd"

MARKER_PALETTE: dict[ItemFamily, str] = {
    ItemFamily.transport: "#0d6efd",
    ItemFamily.lodging: "#dc3545",
    ItemFamily.activity: "#198754",
    ItemFamily.dining: "#fd7e14",
    ItemFamily.note: "#6c757d",
    ItemFamily.other: "#6610f2",
}

_UNORDERED = 2**31 - 1


@dataclass(frozen=True)
class RouteMapPoint:
    """One stop on the route map."""

    entry_id: str
    stop_id: str
    stop_label: str
    stop_type: str
    entry_type_label: str
    item_type_token: str
    date_label: str
    details: str | None
    place_id: str
    sequence: int
    marker_color: str


def marker_color(item_type: TimelineItemType) -> str:
    return MARKER_PALETTE.get(item_type.family, DEFAULT_MARKER_COLOR)


def details_snippet(details: str | None, max_chars: int | None = None) -> str | None:
    """Trimmed details, cut to ``max_chars`` with a trailing ellipsis."""
    if details is None or not details.strip():
        return None

    limit = max_chars or get_settings().route_detail_max_chars
    trimmed = details.strip()
    if len(trimmed) <= limit:
        return trimmed
    return f"{trimmed[: limit - 1]}..."


def _route_sort_key(entry: ItineraryEntry) -> tuple:
    return (
        entry.date or date.max,
        entry.sort_order if entry.sort_order is not None else _UNORDERED,
        entry.title.casefold(),
        entry.entry_id.casefold(),
    )


def _stop_places(entry: ItineraryEntry) -> list[tuple[str, str | None]]:
    """(stop type, place id) pairs an entry contributes, blanks included."""
    segment = entry.metadata.segment if entry.metadata is not None else None
    if segment is not None and segment.has_places:
        return [
            ("Departure", segment.departure_place_id),
            ("Arrival", segment.arrival_place_id),
        ]

    place_id = entry.location.place_id if entry.location is not None else None
    return [("Location", place_id)]


def build_route_points(
    details: TripDetails | None, max_detail_chars: int | None = None
) -> list[RouteMapPoint]:
    """Build the ordered stops of a trip.

    Entries are ordered by date (undated last), sort order (unordered last),
    title and id. The sequence number runs across the whole trip.

    Args:
        details: Trip with its entries
        max_detail_chars: Details snippet limit (default: configured limit)

    Returns:
        Route points in travel order
    """
    if details is None or not details.entries:
        return []

    points: list[RouteMapPoint] = []
    sequence = 1

    for entry in sorted(details.entries, key=_route_sort_key):
        title = entry.title.strip() or entry.entry_id
        snippet = details_snippet(entry.details, max_detail_chars)

        for stop_type, place_id in _stop_places(entry):
            if place_id is None or not place_id.strip():
                continue

            points.append(
                RouteMapPoint(
                    entry_id=entry.entry_id,
                    stop_id=f"{entry.entry_id}-{stop_type.lower()}-{sequence}",
                    stop_label=title if stop_type == "Location" else f"{title} ({stop_type})",
                    stop_type=stop_type,
                    entry_type_label=entry.item_type.display_name,
                    item_type_token=entry.item_type.value,
                    date_label=entry.date_label,
                    details=snippet,
                    place_id=place_id.strip(),
                    sequence=sequence,
                    marker_color=marker_color(entry.item_type),
                )
            )
            sequence += 1

    return points
