"""Integration tests for tenancy and collaborator access grants.

Every test runs against both the in-memory and the SQL table store.
"""

import pytest

from travel_itinerary.db.context import RequestContext
from travel_itinerary.db.itinerary import TableItineraryRepository
from travel_itinerary.db.tables import TableContext, TableEntity
from travel_itinerary.errors import InvalidArgumentError, TripAccessDeniedError
from travel_itinerary.models import (
    ItineraryEntryMutation,
    Trip,
    TripAccessMutation,
    TripMutation,
    TripPermission,
)


async def create_trip(repo: TableItineraryRepository, ctx: RequestContext, name: str = "Lisbon") -> Trip:
    return await repo.create_trip(ctx, TripMutation(name=name))


async def grant(
    repo: TableItineraryRepository,
    owner: RequestContext,
    trip: Trip,
    email: str,
    permission: TripPermission,
):
    return await repo.grant_trip_access(
        owner, trip.trip_id, TripAccessMutation(email=email, permission=permission)
    )


@pytest.mark.asyncio
async def test_owner_sees_own_trip(repo: TableItineraryRepository, owner: RequestContext) -> None:
    """Test that a created trip is visible to its owner with owner permission."""
    trip = await create_trip(repo, owner, "Lisbon Weekend")

    details = await repo.get_trip(owner, trip.trip_id)

    assert details is not None
    assert details.trip.slug == "lisbon-weekend"
    assert details.trip.user_id == owner.user_id
    assert details.current_user_permission is TripPermission.owner
    assert [t.trip_id for t in await repo.list_trips(owner)] == [trip.trip_id]


@pytest.mark.asyncio
async def test_stranger_cannot_see_or_touch_trip(
    repo: TableItineraryRepository, owner: RequestContext, stranger: RequestContext
) -> None:
    """Test that another user's trip reads as absent and rejects writes."""
    trip = await create_trip(repo, owner)

    assert await repo.get_trip(stranger, trip.trip_id) is None
    assert await repo.get_trip_by_slug(stranger, trip.slug) is None
    assert await repo.list_trips(stranger) == []
    assert await repo.delete_trip(stranger, trip.trip_id) is False

    with pytest.raises(TripAccessDeniedError):
        await repo.update_trip(stranger, trip.trip_id, TripMutation(name="Hijacked"))
    with pytest.raises(TripAccessDeniedError):
        await repo.create_itinerary_entry(
            stranger, trip.trip_id, ItineraryEntryMutation(title="Intruder")
        )

    details = await repo.get_trip(owner, trip.trip_id)
    assert details is not None
    assert details.trip.name == "Lisbon"
    assert details.entries == []


@pytest.mark.asyncio
async def test_full_control_grant_allows_editing(
    repo: TableItineraryRepository, owner: RequestContext, editor: RequestContext
) -> None:
    """Test that a full-control grant, matched by email, lets the grantee edit."""
    trip = await create_trip(repo, owner)
    await grant(repo, owner, trip, "editor@example.com", TripPermission.full_control)

    details = await repo.get_trip(editor, trip.trip_id)
    assert details is not None
    assert details.current_user_permission is TripPermission.full_control

    entry = await repo.create_itinerary_entry(
        editor, trip.trip_id, ItineraryEntryMutation(title="Tram 28")
    )
    updated = await repo.update_trip(editor, trip.trip_id, TripMutation(name="Lisbon & Sintra"))

    assert entry.trip_id == trip.trip_id
    assert updated is not None
    assert updated.name == "Lisbon & Sintra"
    assert updated.user_id == owner.user_id


@pytest.mark.asyncio
async def test_read_only_grant_cannot_edit(
    repo: TableItineraryRepository, owner: RequestContext, viewer: RequestContext
) -> None:
    trip = await create_trip(repo, owner)
    await grant(repo, owner, trip, viewer.user_email, TripPermission.read_only)

    details = await repo.get_trip(viewer, trip.trip_id)
    assert details is not None
    assert details.current_user_permission is TripPermission.read_only

    with pytest.raises(TripAccessDeniedError):
        await repo.create_itinerary_entry(
            viewer, trip.trip_id, ItineraryEntryMutation(title="Nope")
        )
    with pytest.raises(TripAccessDeniedError):
        await repo.get_share_links(viewer, trip.trip_id)


@pytest.mark.asyncio
async def test_email_grant_is_stamped_with_user_id(
    repo: TableItineraryRepository, owner: RequestContext, editor: RequestContext
) -> None:
    """Test that the first visit of a grantee records their user id on the grant."""
    trip = await create_trip(repo, owner)
    access = await grant(repo, owner, trip, "editor@example.com", TripPermission.full_control)
    assert access.user_id is None

    await repo.get_trip(editor, trip.trip_id)

    (stamped,) = await repo.get_trip_access_list(owner, trip.trip_id)
    assert stamped.access_id == access.access_id
    assert stamped.user_id == editor.user_id

    # Once stamped the grant matches by user id even without an email
    no_email = RequestContext(user_id=editor.user_id)
    details = await repo.get_trip(no_email, trip.trip_id)
    assert details is not None
    assert details.current_user_permission is TripPermission.full_control


@pytest.mark.asyncio
async def test_granted_trips_are_listed_and_found_by_slug(
    repo: TableItineraryRepository,
    owner: RequestContext,
    editor: RequestContext,
    viewer: RequestContext,
) -> None:
    own = await create_trip(repo, editor, "Editor Trip")
    shared = await create_trip(repo, owner, "Shared Trip")
    await create_trip(repo, owner, "Private Trip")
    await grant(repo, owner, shared, "editor@example.com", TripPermission.read_only)

    trips = await repo.list_trips(editor)

    assert [trip.trip_id for trip in trips] == [own.trip_id, shared.trip_id]
    details = await repo.get_trip_by_slug(editor, "SHARED-TRIP")
    assert details is not None
    assert details.trip.trip_id == shared.trip_id
    assert details.current_user_permission is TripPermission.read_only
    assert await repo.get_trip_by_slug(editor, "private-trip") is None
    assert await repo.list_trips(viewer) == []


@pytest.mark.asyncio
async def test_strongest_grant_wins(
    repo: TableItineraryRepository, owner: RequestContext, editor: RequestContext
) -> None:
    trip = await create_trip(repo, owner)
    await grant(repo, owner, trip, "editor@example.com", TripPermission.read_only)
    # Second grant under another address, stamped to the same user on first visit
    await grant(repo, owner, trip, "editor.alias@example.com", TripPermission.full_control)
    alias = RequestContext(user_id=editor.user_id, user_email="editor.alias@example.com")
    await repo.get_trip(alias, trip.trip_id)

    details = await repo.get_trip(editor, trip.trip_id)

    assert details is not None
    assert details.current_user_permission is TripPermission.full_control


@pytest.mark.asyncio
async def test_only_owner_manages_access_and_deletes(
    repo: TableItineraryRepository, owner: RequestContext, editor: RequestContext
) -> None:
    trip = await create_trip(repo, owner)
    access = await grant(repo, owner, trip, "editor@example.com", TripPermission.full_control)

    with pytest.raises(TripAccessDeniedError):
        await repo.get_trip_access_list(editor, trip.trip_id)
    with pytest.raises(TripAccessDeniedError):
        await grant(repo, editor, trip, "friend@example.com", TripPermission.read_only)
    with pytest.raises(TripAccessDeniedError):
        await repo.revoke_trip_access(editor, trip.trip_id, access.access_id)
    with pytest.raises(TripAccessDeniedError):
        await repo.delete_trip(editor, trip.trip_id)

    assert await repo.get_trip(owner, trip.trip_id) is not None


@pytest.mark.asyncio
async def test_regrant_updates_existing_grant(
    repo: TableItineraryRepository, owner: RequestContext
) -> None:
    trip = await create_trip(repo, owner)
    first = await grant(repo, owner, trip, "friend@example.com", TripPermission.read_only)
    second = await grant(repo, owner, trip, "Friend@Example.com", TripPermission.full_control)

    grants = await repo.get_trip_access_list(owner, trip.trip_id)

    assert second.access_id == first.access_id
    assert len(grants) == 1
    assert grants[0].permission is TripPermission.full_control
    assert grants[0].granted_by == owner.user_id
    assert grants[0].granted_on is not None


@pytest.mark.asyncio
async def test_owner_permission_cannot_be_granted(
    repo: TableItineraryRepository, owner: RequestContext
) -> None:
    trip = await create_trip(repo, owner)

    with pytest.raises(InvalidArgumentError):
        await grant(repo, owner, trip, "friend@example.com", TripPermission.owner)

    assert await repo.get_trip_access_list(owner, trip.trip_id) == []


@pytest.mark.asyncio
async def test_update_and_revoke_grant(
    repo: TableItineraryRepository, owner: RequestContext, viewer: RequestContext
) -> None:
    trip = await create_trip(repo, owner)
    access = await grant(repo, owner, trip, viewer.user_email, TripPermission.read_only)

    updated = await repo.update_trip_access(
        owner,
        trip.trip_id,
        access.access_id,
        TripAccessMutation(email=viewer.user_email, permission=TripPermission.full_control),
    )
    assert updated is not None
    assert updated.permission is TripPermission.full_control

    assert await repo.revoke_trip_access(owner, trip.trip_id, access.access_id) is True
    assert await repo.revoke_trip_access(owner, trip.trip_id, access.access_id) is False
    assert await repo.get_trip(viewer, trip.trip_id) is None
    assert (
        await repo.update_trip_access(
            owner, trip.trip_id, access.access_id, TripAccessMutation(email=viewer.user_email)
        )
        is None
    )


@pytest.mark.asyncio
async def test_delete_trip_is_idempotent_and_leaves_children(
    repo: TableItineraryRepository, tables: TableContext, owner: RequestContext
) -> None:
    """Test that deleting a trip removes only the trip row."""
    trip = await create_trip(repo, owner)
    await repo.create_itinerary_entry(owner, trip.trip_id, ItineraryEntryMutation(title="Walk"))

    assert await repo.delete_trip(owner, trip.trip_id) is True
    assert await repo.delete_trip(owner, trip.trip_id) is False
    assert await repo.get_trip(owner, trip.trip_id) is None
    assert len(await tables.itinerary_entries.query(trip.trip_id)) == 1


@pytest.mark.asyncio
async def test_blank_identifiers_are_rejected(
    repo: TableItineraryRepository, owner: RequestContext
) -> None:
    with pytest.raises(InvalidArgumentError):
        await repo.get_trip(owner, "   ")
    with pytest.raises(InvalidArgumentError):
        await repo.list_trips(RequestContext(user_id=""))
    with pytest.raises(InvalidArgumentError):
        await repo.delete_itinerary_entry(owner, "trip", "")
    with pytest.raises(InvalidArgumentError):
        await repo.get_trip_by_share_code(" ")


@pytest.mark.asyncio
async def test_mixed_case_stored_grant_is_listed(
    repo: TableItineraryRepository,
    tables: TableContext,
    owner: RequestContext,
    stranger: RequestContext,
) -> None:
    """Test that a grant row stored with mixed-case email is found by every read."""
    trip = await create_trip(repo, owner)
    await tables.trip_access.add_entity(
        TableEntity(
            partition_key=trip.trip_id,
            row_key="grant-1",
            properties={"Email": "Friend@Example.com", "Permission": "ReadOnly"},
        )
    )
    friend = RequestContext(user_id="user-friend", user_email="friend@example.com")

    assert [t.trip_id for t in await repo.list_trips(friend)] == [trip.trip_id]
    by_slug = await repo.get_trip_by_slug(friend, trip.slug)
    assert by_slug is not None
    assert by_slug.current_user_permission is TripPermission.read_only
    details = await repo.get_trip(friend, trip.trip_id)
    assert details is not None
    assert details.current_user_permission is TripPermission.read_only

    stamped = await tables.trip_access.get_entity(trip.trip_id, "grant-1")
    assert stamped is not None
    assert stamped.properties["UserId"] == "user-friend"
    assert await repo.list_trips(stranger) == []
