"""Exception types raised by the itinerary data layer.

Not-found is never an exception on read paths: repository reads return
``None`` and deletes return ``False``. Everything below is a fault the
caller must handle or let propagate.
"""


class ItineraryError(Exception):
    """Base class for itinerary data layer errors."""

    pass


class InvalidArgumentError(ItineraryError, ValueError):
    """A required identifier or argument was blank or malformed."""

    pass


class TripAccessDeniedError(ItineraryError):
    """The acting user may not perform this mutation on the trip."""

    def __init__(self, message: str = "Trip not available for current user.") -> None:
        super().__init__(message)


# Domain invariants
class DomainInvariantError(ItineraryError):
    """A write would break a domain invariant."""

    pass


class BookingEntryMissingError(DomainInvariantError):
    """The booking links to an itinerary entry that no longer exists."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Itinerary entry '{entry_id}' no longer exists.")
        self.entry_id = entry_id


class DuplicateBookingError(DomainInvariantError):
    """Another booking is already linked to the itinerary entry."""

    def __init__(self, entry_id: str, existing_booking_id: str) -> None:
        super().__init__(
            f"Itinerary entry '{entry_id}' already has booking '{existing_booking_id}'."
        )
        self.entry_id = entry_id
        self.existing_booking_id = existing_booking_id


class ShareLinkIntegrityError(DomainInvariantError):
    """A stored share link is missing data required to resolve its trip."""

    pass


class ShareCodeUnavailableError(DomainInvariantError):
    """A requested custom share code is malformed or already in use."""

    pass


# Store faults
class ConcurrencyConflictError(ItineraryError):
    """The row changed since it was read (version tag mismatch)."""

    def __init__(self, table: str, partition_key: str, row_key: str) -> None:
        super().__init__(
            f"Row {partition_key}/{row_key} in {table} was modified concurrently."
        )
        self.table = table
        self.partition_key = partition_key
        self.row_key = row_key


class EntityNotFoundError(ItineraryError):
    """The targeted row does not exist in the table store."""

    pass


class EntityAlreadyExistsError(ItineraryError):
    """A row with the same partition and row key already exists."""

    pass


class TransientStoreError(ItineraryError):
    """The table store failed for infrastructure reasons; safe to retry."""

    pass
