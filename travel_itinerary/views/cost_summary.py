"""Per-currency cost totals for a trip's bookings."""

from dataclasses import dataclass
from decimal import Decimal

from travel_itinerary.models.booking import Booking
from travel_itinerary.models.common import TimelineItemType
from travel_itinerary.models.details import TripDetails
from travel_itinerary.models.entry import ItineraryEntry

UNSPECIFIED_CURRENCY = "UNSPECIFIED"

_UNDATED_SORT_KEY = "9999-12-31"


@dataclass(frozen=True)
class BookingCostRow:
    """A booked entry and what it costs."""

    entry_id: str
    entry_title: str
    entry_type: TimelineItemType
    entry_date_label: str
    entry_date_sort_key: str
    booking_label: str
    booking_reference: str | None
    cost: Decimal | None
    is_paid: bool | None
    currency_key: str
    currency_display: str


@dataclass(frozen=True)
class CurrencyCostSummary:
    currency_key: str
    currency_display: str
    total: Decimal
    paid_total: Decimal
    unpaid_total: Decimal
    bookings: tuple[BookingCostRow, ...]

    @property
    def is_unspecified(self) -> bool:
        return self.currency_key == UNSPECIFIED_CURRENCY


@dataclass(frozen=True)
class CostSummary:
    currencies: tuple[CurrencyCostSummary, ...] = ()

    @property
    def overall_total(self) -> Decimal:
        return sum((group.total for group in self.currencies), Decimal(0))

    @property
    def overall_paid(self) -> Decimal:
        return sum((group.paid_total for group in self.currencies), Decimal(0))

    @property
    def overall_unpaid(self) -> Decimal:
        return sum((group.unpaid_total for group in self.currencies), Decimal(0))


def normalize_currency(booking_currency: str | None, default_currency: str | None) -> str:
    """Booking currency, else the trip default, else UNSPECIFIED."""
    for source in (booking_currency, default_currency):
        if source is not None and source.strip():
            return source.strip().upper()
    return UNSPECIFIED_CURRENCY


def _cost_row(entry: ItineraryEntry, booking: Booking, default_currency: str | None) -> BookingCostRow:
    currency_key = normalize_currency(booking.currency, default_currency)
    return BookingCostRow(
        entry_id=entry.entry_id,
        entry_title=entry.title,
        entry_type=entry.item_type,
        entry_date_label=entry.date_label,
        entry_date_sort_key=entry.date.isoformat() if entry.date else _UNDATED_SORT_KEY,
        booking_label=booking.label,
        booking_reference=booking.reference,
        cost=booking.cost,
        is_paid=booking.is_paid,
        currency_key=currency_key,
        currency_display="Unspecified" if currency_key == UNSPECIFIED_CURRENCY else currency_key,
    )


def _sum_costs(rows: list[BookingCostRow]) -> Decimal:
    return sum((row.cost or Decimal(0) for row in rows), Decimal(0))


def summarize_costs(details: TripDetails | None) -> CostSummary:
    """Group booked costs by currency.

    Only bookings linked to an existing entry are counted. Groups are ordered
    by currency code with the unspecified group last.
    """
    if details is None:
        return CostSummary()

    entries = {entry.entry_id.casefold(): entry for entry in details.entries}
    groups: dict[str, list[BookingCostRow]] = {}

    for booking in details.bookings:
        if not booking.entry_id:
            continue
        entry = entries.get(booking.entry_id.casefold())
        if entry is None:
            continue

        row = _cost_row(entry, booking, details.trip.default_currency)
        groups.setdefault(row.currency_key, []).append(row)

    summaries = []
    for currency_key, rows in groups.items():
        rows.sort(key=lambda row: (row.entry_date_sort_key, row.entry_title.casefold()))
        summaries.append(
            CurrencyCostSummary(
                currency_key=currency_key,
                currency_display=rows[0].currency_display,
                total=_sum_costs(rows),
                paid_total=_sum_costs([row for row in rows if row.is_paid is True]),
                unpaid_total=_sum_costs([row for row in rows if row.is_paid is not True]),
                bookings=tuple(rows),
            )
        )

    summaries.sort(key=lambda group: (group.is_unspecified, group.currency_display.casefold()))
    return CostSummary(currencies=tuple(summaries))
