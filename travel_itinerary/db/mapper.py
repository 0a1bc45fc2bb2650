"""Mapping between table rows and domain entities.

Property names are the wire contract with the table store and must not be
renamed.
"""

from collections.abc import MutableMapping
from datetime import datetime
from typing import Any

from travel_itinerary.db.codec import (
    get_bool,
    get_date,
    get_datetime,
    get_decimal,
    get_float,
    get_int,
    get_json,
    get_string,
    parse_item_type,
    parse_permission,
    set_or_clear,
)
from travel_itinerary.db.tables import TableEntity
from travel_itinerary.models.booking import Booking, BookingMutation
from travel_itinerary.models.common import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    LocationInfo,
    TimelineItemType,
    TripPermission,
    is_valid_coordinate,
)
from travel_itinerary.models.entry import ItineraryEntry, ItineraryEntryMutation
from travel_itinerary.models.metadata import BookingMetadata, TravelMetadata
from travel_itinerary.models.sharing import (
    SavedShareLink,
    ShareLink,
    ShareLinkMutation,
    TripAccess,
    TripAccessMutation,
)
from travel_itinerary.models.trip import Trip, TripMutation

Properties = MutableMapping[str, Any]


# Trips
def to_trip(entity: TableEntity) -> Trip:
    props = entity.properties
    return Trip(
        trip_id=entity.row_key,
        user_id=entity.partition_key,
        name=get_string(props, "Name") or entity.row_key,
        slug=get_string(props, "Slug") or entity.row_key,
        start_date=get_date(props, "StartDate"),
        end_date=get_date(props, "EndDate"),
        home_time_zone=get_string(props, "HomeTimeZone"),
        default_currency=get_string(props, "DefaultCurrency"),
        etag=entity.etag,
    )


def apply_trip(props: Properties, mutation: TripMutation) -> Properties:
    set_or_clear(props, "Name", mutation.name)
    set_or_clear(props, "Slug", mutation.resolved_slug)
    set_or_clear(props, "StartDate", mutation.start_date)
    set_or_clear(props, "EndDate", mutation.end_date)
    set_or_clear(props, "HomeTimeZone", mutation.home_time_zone)
    set_or_clear(props, "DefaultCurrency", mutation.default_currency)
    return props


# Itinerary entries
def _get_coordinate(props: Properties, name: str, limit: float) -> float | None:
    """Read a coordinate; non-finite or out-of-range values read as absent."""
    value = get_float(props, name)
    return value if is_valid_coordinate(value, limit) else None


def _to_location(props: Properties) -> LocationInfo | None:
    location = LocationInfo(
        label=get_string(props, "LocationName"),
        latitude=_get_coordinate(props, "Latitude", MAX_LATITUDE),
        longitude=_get_coordinate(props, "Longitude", MAX_LONGITUDE),
        url=get_string(props, "LocationUrl"),
        notes=get_string(props, "LocationNotes"),
        place_id=get_string(props, "PlaceId"),
    )
    return location if location.has_content else None


def to_itinerary_entry(entity: TableEntity) -> ItineraryEntry:
    props = entity.properties
    # Rows from before item types were introduced carry a free-form Category
    item_type_value = get_string(props, "ItemType") or get_string(props, "Category")

    return ItineraryEntry(
        trip_id=entity.partition_key,
        entry_id=entity.row_key,
        date=get_date(props, "Date"),
        end_date=get_date(props, "EndDate"),
        is_multi_day=get_bool(props, "IsMultiDay", default=False),
        item_type=parse_item_type(item_type_value),
        title=get_string(props, "Title") or entity.row_key,
        details=get_string(props, "Details"),
        location=_to_location(props),
        tags=get_string(props, "Tags"),
        metadata=get_json(props, "MetadataJson", TravelMetadata),
        sort_order=get_int(props, "SortOrder"),
        etag=entity.etag,
    )


def apply_itinerary_entry(props: Properties, mutation: ItineraryEntryMutation) -> Properties:
    location = mutation.location or LocationInfo()

    set_or_clear(props, "Title", mutation.title)
    set_or_clear(props, "Date", mutation.date)
    set_or_clear(props, "EndDate", mutation.end_date)
    props["IsMultiDay"] = mutation.is_multi_day
    set_or_clear(props, "ItemType", mutation.item_type)
    set_or_clear(props, "Details", mutation.details)
    set_or_clear(props, "Tags", mutation.tags)
    set_or_clear(props, "MetadataJson", mutation.metadata)
    set_or_clear(props, "SortOrder", mutation.sort_order)
    set_or_clear(props, "LocationName", location.label)
    set_or_clear(props, "LocationUrl", location.url)
    set_or_clear(props, "LocationNotes", location.notes)
    set_or_clear(props, "Latitude", location.latitude)
    set_or_clear(props, "Longitude", location.longitude)
    set_or_clear(props, "PlaceId", location.place_id)
    props.pop("Category", None)
    return props


# Bookings
def to_booking(entity: TableEntity) -> Booking:
    props = entity.properties
    return Booking(
        trip_id=entity.partition_key,
        booking_id=entity.row_key,
        entry_id=get_string(props, "EntryId"),
        item_type=parse_item_type(get_string(props, "ItemType") or get_string(props, "BookingType")),
        vendor=get_string(props, "Vendor"),
        reference=get_string(props, "Reference"),
        cost=get_decimal(props, "Cost"),
        currency=get_string(props, "Currency"),
        is_refundable=get_bool(props, "IsRefundable", default=False),
        is_paid=get_bool(props, "IsPaid", default=False),
        cancellation_policy=get_string(props, "CancellationPolicy"),
        cancellation_date=get_date(props, "CancellationDate"),
        confirmation_details=(
            get_string(props, "ConfirmationDetails") or get_string(props, "ConfirmationDetailsJson")
        ),
        confirmation_url=get_string(props, "ConfirmationUrl"),
        metadata=get_json(props, "BookingMetadataJson", BookingMetadata),
        etag=entity.etag,
    )


def apply_booking(
    props: Properties, mutation: BookingMutation, item_type: TimelineItemType
) -> Properties:
    set_or_clear(props, "EntryId", mutation.entry_id)
    set_or_clear(props, "ItemType", item_type)
    set_or_clear(props, "Vendor", mutation.vendor)
    set_or_clear(props, "Reference", mutation.reference)
    set_or_clear(props, "Cost", mutation.cost)
    set_or_clear(props, "Currency", mutation.currency)
    props["IsRefundable"] = mutation.is_refundable
    props["IsPaid"] = mutation.is_paid
    set_or_clear(props, "CancellationPolicy", mutation.cancellation_policy)
    set_or_clear(props, "CancellationDate", mutation.cancellation_date)
    set_or_clear(props, "ConfirmationDetails", mutation.confirmation_details)
    set_or_clear(props, "ConfirmationUrl", mutation.confirmation_url)
    set_or_clear(props, "BookingMetadataJson", mutation.metadata)
    props.pop("ConfirmationDetailsJson", None)
    props.pop("BookingType", None)
    return props


# Share links
def to_share_link(entity: TableEntity) -> ShareLink:
    props = entity.properties
    return ShareLink(
        trip_id=entity.partition_key,
        share_code=entity.row_key,
        owner_user_id=get_string(props, "OwnerUserId") or get_string(props, "CreatedBy") or "",
        created_on=get_datetime(props, "CreatedOn"),
        created_by=get_string(props, "CreatedBy"),
        expires_on=get_datetime(props, "ExpiresOn"),
        mask_bookings=get_bool(props, "MaskBookings", default=False),
        include_cost=get_bool(props, "IncludeCost", default=True),
        show_booking_confirmations=get_bool(props, "ShowBookingConfirmations", default=True),
        show_booking_metadata=get_bool(props, "ShowBookingMetadata", default=True),
        notes=get_string(props, "Notes"),
        etag=entity.etag,
    )


def apply_share_link(props: Properties, mutation: ShareLinkMutation) -> Properties:
    set_or_clear(props, "ExpiresOn", mutation.expires_on)
    props["MaskBookings"] = mutation.mask_bookings
    props["IncludeCost"] = mutation.include_cost
    props["ShowBookingConfirmations"] = mutation.show_booking_confirmations
    props["ShowBookingMetadata"] = mutation.show_booking_metadata
    set_or_clear(props, "Notes", mutation.notes)
    return props


def stamp_share_link(props: Properties, owner_user_id: str, created_by: str, now: datetime) -> Properties:
    set_or_clear(props, "OwnerUserId", owner_user_id)
    set_or_clear(props, "CreatedBy", created_by)
    set_or_clear(props, "CreatedOn", now)
    return props


# Access grants
def to_trip_access(entity: TableEntity) -> TripAccess:
    props = entity.properties
    return TripAccess(
        trip_id=entity.partition_key,
        access_id=entity.row_key,
        email=(get_string(props, "Email") or "").strip().lower(),
        # Unreadable levels fall back to the least privilege
        permission=parse_permission(get_string(props, "Permission")) or TripPermission.read_only,
        user_id=get_string(props, "UserId"),
        granted_on=get_datetime(props, "GrantedOn"),
        granted_by=get_string(props, "GrantedBy"),
        etag=entity.etag,
    )


def apply_trip_access(props: Properties, mutation: TripAccessMutation) -> Properties:
    if get_string(props, "Email") != mutation.email:
        # A different person: drop the previously resolved user id
        props.pop("UserId", None)
    set_or_clear(props, "Email", mutation.email)
    set_or_clear(props, "Permission", mutation.permission)
    return props


# Saved share links
def to_saved_share_link(entity: TableEntity) -> SavedShareLink:
    props = entity.properties
    return SavedShareLink(
        user_id=entity.partition_key,
        saved_link_id=entity.row_key,
        share_code=get_string(props, "ShareCode") or "",
        trip_name=get_string(props, "TripName"),
        trip_slug=get_string(props, "TripSlug"),
        saved_on=get_datetime(props, "SavedOn"),
        etag=entity.etag,
    )


def apply_saved_share_link(
    props: Properties, share_code: str, trip: Trip, saved_on: datetime
) -> Properties:
    set_or_clear(props, "ShareCode", share_code)
    set_or_clear(props, "TripName", trip.name)
    set_or_clear(props, "TripSlug", trip.slug)
    set_or_clear(props, "SavedOn", saved_on)
    return props
