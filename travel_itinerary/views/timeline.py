"""Calendar-grid projection of a trip's itinerary.

Days become 1-indexed grid rows. Single-day entries are bucketed into their
day; multi-day entries become span blocks laid out in lanes so that no two
overlapping spans share a lane (greedy interval colouring).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import ClassVar

from travel_itinerary.models.details import TripDetails
from travel_itinerary.models.entry import ItineraryEntry

# Entries without an explicit order sort after every ordered entry
UNORDERED_SENTINEL = 2**31 - 1


@dataclass(frozen=True)
class TimelineDay:
    """One grid row: a calendar day and its single-day entries."""

    row_line: int
    date: date
    entries: tuple[ItineraryEntry, ...] = ()


@dataclass(frozen=True)
class TimelineSpanBlock:
    """A multi-day entry placed on the grid.

    ``row_end`` is exclusive. ``start_date``/``end_date`` are clamped to the
    timeline's range.
    """

    entry: ItineraryEntry
    row_start: int
    row_end: int
    start_date: date
    end_date: date
    lane_index: int = 0
    lane_count: int = 1

    @property
    def row_span(self) -> int:
        return self.row_end - self.row_start

    def overlaps(self, other: "TimelineSpanBlock") -> bool:
        return self.row_start < other.row_end and other.row_start < self.row_end


@dataclass(frozen=True)
class TimelineViewModel:
    """Ordered days, lane-assigned spans and the widest lane count."""

    days: tuple[TimelineDay, ...] = ()
    spans: tuple[TimelineSpanBlock, ...] = ()
    max_lane_count: int = 1

    EMPTY: ClassVar["TimelineViewModel"]

    def __post_init__(self) -> None:
        if self.max_lane_count < 1:
            object.__setattr__(self, "max_lane_count", 1)

    @property
    def has_entries(self) -> bool:
        return bool(self.spans) or any(day.entries for day in self.days)


TimelineViewModel.EMPTY = TimelineViewModel()


def _day_sort_key(entry: ItineraryEntry) -> tuple:
    return (
        entry.sort_order if entry.sort_order is not None else UNORDERED_SENTINEL,
        entry.item_type.rank,
        entry.title.casefold(),
    )


def build_timeline_dates(details: TripDetails, today: date | None = None) -> list[date]:
    """Every calendar day between the earliest and latest known date.

    Falls back to the single day ``today`` when nothing is dated.
    """
    candidates = [
        value
        for value in (details.trip.start_date, details.trip.end_date)
        if value is not None
    ]
    for entry in details.entries:
        if entry.date is not None:
            candidates.append(entry.date)
        if entry.end_date is not None:
            candidates.append(entry.end_date)

    if not candidates:
        candidates.append(today or datetime.now(timezone.utc).date())

    first, last = min(candidates), max(candidates)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def _build_span_blocks(
    entries: list[ItineraryEntry], dates: list[date]
) -> list[TimelineSpanBlock]:
    first, last = dates[0], dates[-1]
    rows = {day: index + 1 for index, day in enumerate(dates)}
    blocks: list[TimelineSpanBlock] = []

    for entry in entries:
        start, end = entry.date, entry.end_date
        if end < start:
            start, end = end, start
        start = max(start, first)
        end = min(end, last)

        blocks.append(
            TimelineSpanBlock(
                entry=entry,
                row_start=rows[start],
                row_end=rows[end] + 1,
                start_date=start,
                end_date=end,
            )
        )

    return blocks


def assign_lanes(blocks: list[TimelineSpanBlock]) -> list[TimelineSpanBlock]:
    """Greedy lane assignment.

    Spans are placed by start row, longest first on ties, each taking the
    lowest lane free among the spans still active. A span's lane count is one
    more than the highest lane among all spans overlapping it.
    """
    ordered = sorted(blocks, key=lambda block: (block.row_start, -block.row_span))

    active: list[TimelineSpanBlock] = []
    placed: list[TimelineSpanBlock] = []
    for block in ordered:
        active = [other for other in active if other.row_end > block.row_start]
        used = {other.lane_index for other in active}

        lane = 0
        while lane in used:
            lane += 1

        block = replace(block, lane_index=lane)
        active.append(block)
        placed.append(block)

    finalized = [
        replace(
            block,
            lane_count=max(
                (other.lane_index for other in placed if block.overlaps(other)),
                default=block.lane_index,
            )
            + 1,
        )
        for block in placed
    ]
    return sorted(finalized, key=lambda block: (block.row_start, block.lane_index))


def build_timeline(details: TripDetails | None, today: date | None = None) -> TimelineViewModel:
    """Project a trip onto the calendar grid.

    Args:
        details: Trip with its entries; None yields the empty view model
        today: Day used when neither the trip nor any entry has a date

    Returns:
        Timeline view model
    """
    if details is None:
        return TimelineViewModel.EMPTY

    dates = build_timeline_dates(details, today)
    span_entries = [entry for entry in details.entries if entry.is_span]
    single_entries = [entry for entry in details.entries if not entry.is_span]

    buckets: dict[date, list[ItineraryEntry]] = {day: [] for day in dates}
    for entry in single_entries:
        if entry.date is not None:
            buckets[entry.date].append(entry)

    days = tuple(
        TimelineDay(
            row_line=index + 1,
            date=day,
            entries=tuple(sorted(buckets[day], key=_day_sort_key)),
        )
        for index, day in enumerate(dates)
    )

    spans = tuple(assign_lanes(_build_span_blocks(span_entries, dates)))
    max_lane_count = max((span.lane_count for span in spans), default=1)

    return TimelineViewModel(days=days, spans=spans, max_lane_count=max_lane_count)
