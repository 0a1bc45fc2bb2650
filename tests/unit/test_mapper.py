"""Unit tests for row <-> entity mapping."""

from datetime import date, datetime, timezone
from decimal import Decimal

from travel_itinerary.db.mapper import (
    apply_booking,
    apply_itinerary_entry,
    apply_saved_share_link,
    apply_share_link,
    apply_trip,
    apply_trip_access,
    stamp_share_link,
    to_booking,
    to_itinerary_entry,
    to_saved_share_link,
    to_share_link,
    to_trip,
    to_trip_access,
)
from travel_itinerary.db.tables import TableEntity
from travel_itinerary.models.booking import BookingMutation
from travel_itinerary.models.common import LocationInfo, TimelineItemType, TripPermission
from travel_itinerary.models.entry import ItineraryEntryMutation
from travel_itinerary.models.metadata import (
    BookingMetadata,
    FlightMetadata,
    SegmentMetadata,
    StayBookingMetadata,
    TravelMetadata,
)
from travel_itinerary.models.sharing import ShareLinkMutation, TripAccessMutation
from travel_itinerary.models.trip import Trip, TripMutation


def _row(partition_key: str, row_key: str, properties: dict) -> TableEntity:
    return TableEntity(partition_key=partition_key, row_key=row_key, properties=properties, etag="e1")


class TestTripMapping:
    def test_round_trip_keeps_every_field(self) -> None:
        mutation = TripMutation(
            name="  Portugal  ",
            slug="portugal-2024",
            start_date=date(2024, 5, 1),
            end_date=date(2024, 5, 10),
            home_time_zone="Europe/Lisbon",
            default_currency="eur",
        )
        props = apply_trip({}, mutation)

        assert props == {
            "Name": "Portugal",
            "Slug": "portugal-2024",
            "StartDate": "2024-05-01",
            "EndDate": "2024-05-10",
            "HomeTimeZone": "Europe/Lisbon",
            "DefaultCurrency": "EUR",
        }

        trip = to_trip(_row("user-1", "trip-1", props))
        assert trip.trip_id == "trip-1"
        assert trip.user_id == "user-1"
        assert trip.name == "Portugal"
        assert trip.start_date == date(2024, 5, 1)
        assert trip.default_currency == "EUR"
        assert trip.etag == "e1"

    def test_missing_name_and_slug_fall_back_to_row_key(self) -> None:
        trip = to_trip(_row("user-1", "trip-1", {}))
        assert trip.name == "trip-1"
        assert trip.slug == "trip-1"
        assert trip.start_date is None

    def test_blank_optional_fields_are_removed(self) -> None:
        existing = {"Name": "Old", "HomeTimeZone": "UTC", "DefaultCurrency": "USD", "Extra": 1}
        props = apply_trip(existing, TripMutation(name="New", slug="new"))

        assert props == {"Name": "New", "Slug": "new", "Extra": 1}


class TestEntryMapping:
    def test_round_trip_with_location_and_metadata(self) -> None:
        mutation = ItineraryEntryMutation(
            date=date(2024, 5, 1),
            end_date=date(2024, 5, 3),
            is_multi_day=True,
            item_type=TimelineItemType.hotel,
            title="Hotel Avenida",
            details="Late check-in",
            location=LocationInfo(
                label="Avenida", latitude=38.72, longitude=-9.14, place_id="place-hotel"
            ),
            tags="stay, city",
            metadata=TravelMetadata(flight=FlightMetadata(airline="TAP")),
            sort_order=2,
        )
        props = apply_itinerary_entry({}, mutation)

        assert props["ItemType"] == "hotel"
        assert props["Date"] == "2024-05-01"
        assert props["IsMultiDay"] is True
        assert props["PlaceId"] == "place-hotel"
        assert props["MetadataJson"] == '{"flight":{"airline":"TAP"}}'
        assert "LocationUrl" not in props

        entry = to_itinerary_entry(_row("trip-1", "entry-1", props))
        assert entry.trip_id == "trip-1"
        assert entry.entry_id == "entry-1"
        assert entry.end_date == date(2024, 5, 3)
        assert entry.item_type is TimelineItemType.hotel
        assert entry.location == mutation.location
        assert entry.metadata == mutation.metadata
        assert entry.sort_order == 2
        assert entry.tag_list == ["stay", "city"]

    def test_all_blank_optionals_decode_as_absent(self) -> None:
        props = apply_itinerary_entry({}, ItineraryEntryMutation(title="Walk", details="  "))
        entry = to_itinerary_entry(_row("trip-1", "entry-1", props))

        assert "Details" not in props
        assert entry.details is None
        assert entry.location is None
        assert entry.metadata is None
        assert entry.date is None

    def test_legacy_representations(self) -> None:
        props = {
            "Title": "Old entry",
            "Date": datetime(2024, 5, 1, tzinfo=timezone.utc),
            "IsMultiDay": "false",
            "Category": "lodging",
            "SortOrder": "3",
            "Latitude": "38.7",
            "MetadataJson": "{broken",
        }
        entry = to_itinerary_entry(_row("trip-1", "entry-1", props))

        assert entry.date == date(2024, 5, 1)
        assert entry.is_multi_day is False
        assert entry.item_type is TimelineItemType.hotel
        assert entry.sort_order == 3
        assert entry.location is not None
        assert entry.location.latitude == 38.7
        assert entry.metadata is None

    def test_unusable_coordinates_read_as_absent(self) -> None:
        cases = [
            ({"Latitude": 123.4, "Longitude": -9.1}, None, -9.1),
            ({"Latitude": "NaN", "Longitude": "200"}, None, None),
            ({"Latitude": "38.7", "Longitude": float("-inf")}, 38.7, None),
        ]
        for coordinates, latitude, longitude in cases:
            entry = to_itinerary_entry(_row("trip-1", "entry-1", {"Title": "x", **coordinates}))

            if latitude is None and longitude is None:
                assert entry.location is None
            else:
                assert entry.location is not None
                assert entry.location.latitude == latitude
                assert entry.location.longitude == longitude

    def test_unusable_coordinates_keep_the_rest_of_the_place(self) -> None:
        entry = to_itinerary_entry(
            _row("trip-1", "entry-1", {"Title": "x", "Latitude": 95.0, "PlaceId": "p1"})
        )

        assert entry.location == LocationInfo(place_id="p1")

    def test_missing_title_falls_back_to_row_key(self) -> None:
        entry = to_itinerary_entry(_row("trip-1", "entry-1", {}))
        assert entry.title == "entry-1"
        assert entry.item_type is TimelineItemType.other

    def test_rewrite_drops_legacy_category(self) -> None:
        props = apply_itinerary_entry(
            {"Category": "lodging", "Custom": "kept"},
            ItineraryEntryMutation(title="Stay", item_type=TimelineItemType.flat),
        )
        assert "Category" not in props
        assert props["Custom"] == "kept"
        assert props["ItemType"] == "flat"

    def test_segment_metadata_round_trip(self) -> None:
        metadata = TravelMetadata(
            segment=SegmentMetadata(departure_place_id="lis", arrival_place_id="opo")
        )
        props = apply_itinerary_entry({}, ItineraryEntryMutation(title="Train", metadata=metadata))
        entry = to_itinerary_entry(_row("trip-1", "entry-1", props))

        assert entry.metadata is not None
        assert entry.metadata.segment == metadata.segment


class TestBookingMapping:
    def test_round_trip(self) -> None:
        mutation = BookingMutation(
            entry_id="entry-1",
            vendor="Hotel Avenida",
            reference="ABC123",
            cost=Decimal("250.40"),
            currency="eur",
            is_refundable=True,
            is_paid=True,
            cancellation_policy="Free until 48h before",
            cancellation_date=date(2024, 4, 28),
            confirmation_details="Room 12",
            confirmation_url="https://example.com/booking",
            metadata=BookingMetadata(
                stay=StayBookingMetadata(check_in_time="15:00", includes=["breakfast"])
            ),
        )
        props = apply_booking({}, mutation, TimelineItemType.hotel)

        assert props["ItemType"] == "hotel"
        assert props["Cost"] == 250.4
        assert props["Currency"] == "EUR"
        assert props["CancellationDate"] == "2024-04-28"

        booking = to_booking(_row("trip-1", "booking-1", props))
        assert booking.entry_id == "entry-1"
        assert booking.cost == Decimal("250.40")
        assert booking.is_paid is True
        assert booking.is_refundable is True
        assert booking.cancellation_date == date(2024, 4, 28)
        assert booking.metadata == mutation.metadata
        assert booking.label == "Hotel Avenida"

    def test_cost_from_numeric_string(self) -> None:
        booking = to_booking(_row("trip-1", "booking-1", {"Cost": "99.95", "IsPaid": 0}))
        assert booking.cost == Decimal("99.95")
        assert booking.is_paid is False

    def test_legacy_confirmation_and_type_fields(self) -> None:
        props = {"ConfirmationDetailsJson": "Seat 4A", "BookingType": "travel"}
        booking = to_booking(_row("trip-1", "booking-1", props))

        assert booking.confirmation_details == "Seat 4A"
        assert booking.item_type is TimelineItemType.flight

    def test_unlinked_booking_clears_entry(self) -> None:
        props = apply_booking(
            {"EntryId": "entry-1", "ItemType": "hotel"},
            BookingMutation(vendor="Taxi"),
            TimelineItemType.other,
        )
        assert "EntryId" not in props
        assert props["ItemType"] == "other"


class TestShareLinkMapping:
    def test_defaults_for_missing_flags(self) -> None:
        link = to_share_link(_row("trip-1", "CODE1234", {"OwnerUserId": "user-1"}))

        assert link.include_cost is True
        assert link.show_booking_confirmations is True
        assert link.show_booking_metadata is True
        assert link.mask_bookings is False
        assert link.expires_on is None

    def test_owner_falls_back_to_created_by(self) -> None:
        link = to_share_link(_row("trip-1", "CODE1234", {"CreatedBy": "user-2"}))
        assert link.owner_user_id == "user-2"

    def test_missing_owner_reads_as_blank(self) -> None:
        link = to_share_link(_row("trip-1", "CODE1234", {}))
        assert link.owner_user_id == ""

    def test_round_trip(self) -> None:
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        props = apply_share_link(
            {},
            ShareLinkMutation(expires_on=expires, include_cost=False, notes="For family"),
        )
        stamp_share_link(props, "user-1", "user-2", created)

        link = to_share_link(_row("trip-1", "CODE1234", props))
        assert link.owner_user_id == "user-1"
        assert link.created_by == "user-2"
        assert link.created_on == created
        assert link.expires_on == expires
        assert link.include_cost is False
        assert link.notes == "For family"
        assert link.is_expired(datetime(2031, 1, 1, tzinfo=timezone.utc))
        assert not link.is_expired(datetime(2029, 1, 1, tzinfo=timezone.utc))


class TestAccessMapping:
    def test_round_trip(self) -> None:
        props = apply_trip_access(
            {}, TripAccessMutation(email=" Friend@Example.COM ", permission=TripPermission.read_only)
        )
        access = to_trip_access(_row("trip-1", "access-1", props))

        assert props == {"Email": "friend@example.com", "Permission": "read_only"}
        assert access.email == "friend@example.com"
        assert access.permission is TripPermission.read_only
        assert access.user_id is None

    def test_unknown_permission_reads_as_read_only(self) -> None:
        access = to_trip_access(_row("trip-1", "access-1", {"Email": "a@b.c", "Permission": "?"}))
        assert access.permission is TripPermission.read_only

    def test_changing_email_forgets_resolved_user(self) -> None:
        existing = {"Email": "old@example.com", "Permission": "read_only", "UserId": "user-9"}
        same = apply_trip_access(
            dict(existing),
            TripAccessMutation(email="old@example.com", permission=TripPermission.full_control),
        )
        changed = apply_trip_access(dict(existing), TripAccessMutation(email="new@example.com"))

        assert same["UserId"] == "user-9"
        assert same["Permission"] == "full_control"
        assert "UserId" not in changed


class TestSavedShareLinkMapping:
    def test_round_trip(self) -> None:
        saved_on = datetime(2024, 6, 1, tzinfo=timezone.utc)
        trip = Trip(trip_id="trip-1", user_id="user-1", name="Portugal", slug="portugal")
        props = apply_saved_share_link({}, "CODE1234", trip, saved_on)

        saved = to_saved_share_link(_row("user-2", "saved-1", props))
        assert saved.user_id == "user-2"
        assert saved.share_code == "CODE1234"
        assert saved.trip_name == "Portugal"
        assert saved.trip_slug == "portugal"
        assert saved.saved_on == saved_on
