"""Booking store behaviour against a real SQLite file."""
import asyncio

import pytest

from database import BookingStore
from errors import SlotConflict, StorageError
from models import BookingCreate, Day, MeetingType
from slots import SLOT_GRID


def make_booking(day="Monday", time="05:00", name="Jane Doe", meeting_type="zoom") -> BookingCreate:
    return BookingCreate(student_name=name, meeting_type=meeting_type, day=day, time=time)


@pytest.mark.asyncio
async def test_create_assigns_id_and_created_at(store):
    booking = await store.create(make_booking())

    assert booking.id is not None
    assert booking.created_at is not None
    assert booking.day == "Monday"
    assert booking.meeting_type == "zoom"


@pytest.mark.asyncio
async def test_create_then_slot_is_not_free(store):
    assert await store.is_slot_free(Day.WEDNESDAY, "06:15")

    await store.create(make_booking(day="Wednesday", time="06:15"))

    assert not await store.is_slot_free(Day.WEDNESDAY, "06:15")
    assert await store.is_slot_free(Day.FRIDAY, "06:15")


@pytest.mark.asyncio
async def test_duplicate_slot_raises_conflict(store):
    await store.create(make_booking())

    with pytest.raises(SlotConflict) as excinfo:
        await store.create(make_booking(name="John Smith", meeting_type="face-to-face"))

    assert excinfo.value.day == "Monday"
    assert excinfo.value.time == "05:00"
    assert len(await store.list_all()) == 1


@pytest.mark.asyncio
async def test_concurrent_create_same_slot_has_one_winner(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'race.db'}"
    async with BookingStore(url) as store:
        results = await asyncio.gather(
            store.create(make_booking(name="Jane Doe")),
            store.create(make_booking(name="John Smith")),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, SlotConflict)]
        created = [r for r in results if not isinstance(r, Exception)]
        assert len(conflicts) == 1
        assert len(created) == 1
        assert len(await store.list_all()) == 1


@pytest.mark.asyncio
async def test_list_all_orders_by_day_then_time(store):
    await store.create(make_booking(day="Friday", time="05:00"))
    await store.create(make_booking(day="Monday", time="06:00"))
    await store.create(make_booking(day="Wednesday", time="05:30"))
    await store.create(make_booking(day="Monday", time="05:15"))

    ordered = [(b.day, b.time) for b in await store.list_all()]

    assert ordered == [
        ("Friday", "05:00"),
        ("Monday", "05:15"),
        ("Monday", "06:00"),
        ("Wednesday", "05:30"),
    ]


@pytest.mark.asyncio
async def test_list_by_day_orders_by_time(store):
    await store.create(make_booking(time="07:00"))
    await store.create(make_booking(time="05:45"))
    await store.create(make_booking(day="Friday", time="05:00"))

    times = [b.time for b in await store.list_by_day("Monday")]

    assert times == ["05:45", "07:00"]


@pytest.mark.asyncio
async def test_available_slots_excludes_exactly_the_booked_times(store):
    booked = {"05:00", "06:30", "07:15"}
    for time in booked:
        await store.create(make_booking(day="Friday", time=time))

    friday = await store.available_slots(Day.FRIDAY)

    for time in SLOT_GRID:
        assert (time in friday) == (time not in booked)
    assert friday == sorted(friday)
    assert await store.available_slots("Monday") == list(SLOT_GRID)


@pytest.mark.asyncio
async def test_available_slots_never_contains_off_grid_times(store):
    for day in Day:
        slots = await store.available_slots(day)
        assert set(slots) <= set(SLOT_GRID)
        assert "04:45" not in slots
        assert "07:30" not in slots


@pytest.mark.asyncio
async def test_available_slots_for_unknown_day_is_empty(store):
    assert await store.available_slots("Tuesday") == []
    assert await store.list_by_day("Tuesday") == []


@pytest.mark.asyncio
async def test_delete_frees_the_slot(store):
    booking = await store.create(make_booking(meeting_type=MeetingType.FACE_TO_FACE))

    assert await store.delete(booking.id) is True
    assert await store.is_slot_free("Monday", "05:00")
    assert "05:00" in await store.available_slots("Monday")


@pytest.mark.asyncio
async def test_delete_unknown_id_has_no_side_effects(store):
    await store.create(make_booking())

    assert await store.delete(9999) is False
    assert len(await store.list_all()) == 1


@pytest.mark.asyncio
async def test_store_must_be_opened_first(tmp_path):
    store = BookingStore(f"sqlite+aiosqlite:///{tmp_path / 'closed.db'}")

    with pytest.raises(StorageError):
        await store.list_all()


@pytest.mark.asyncio
async def test_data_persists_across_reopen(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'bookings.db'}"
    async with BookingStore(url) as store:
        await store.create(make_booking())

    async with BookingStore(url) as store:
        assert not await store.is_slot_free("Monday", "05:00")


@pytest.mark.asyncio
async def test_check_violation_on_free_slot_is_storage_error(store):
    # Bypasses request validation so the CHECK constraint is what rejects it
    invalid = BookingCreate.model_construct(
        student_name="Jane Doe", meeting_type="phone", day="Monday", time="05:00"
    )

    with pytest.raises(StorageError) as excinfo:
        await store.create(invalid)

    assert not isinstance(excinfo.value, SlotConflict)
    assert excinfo.value.message == "Storage error"
    assert await store.is_slot_free("Monday", "05:00")
    assert await store.list_all() == []


@pytest.mark.asyncio
async def test_created_at_survives_round_trip(store):
    booking = await store.create(make_booking())

    [stored] = await store.list_all()
    assert stored.created_at is not None
    assert stored.created_at.replace(tzinfo=None) == booking.created_at.replace(tzinfo=None)
