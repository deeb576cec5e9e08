from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from sqlalchemy import func
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, select

from errors import SlotConflict, StorageError
from logging_config import get_logger
from models import Booking, BookingCreate, Day
from slots import generate_slot_grid

logger = get_logger(__name__)


def _day_value(day: Union[Day, str]) -> Optional[str]:
    try:
        return Day(day).value
    except ValueError:
        return None


def _ensure_sqlite_dir(database_url: str):
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


class BookingStore:
    """
    Durable storage of bookings and derivation of free slots.

    The store owns one async engine. Call ``open()`` before use and
    ``close()`` when done, or use it as an async context manager.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self):
        if self.is_open:
            return
        _ensure_sqlite_dir(self.database_url)
        self._engine = create_async_engine(self.database_url, echo=self.echo, future=True)
        self._session_factory = sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        try:
            async with self._engine.begin() as conn:
                # This creates the tables if they don't exist
                await conn.run_sync(SQLModel.metadata.create_all)
        except SQLAlchemyError as exc:
            logger.error("storage_init_failed", error=str(exc))
            await self.close()
            raise StorageError("Could not initialise database") from exc
        logger.info("booking_store_opened", database_url=make_url(self.database_url).render_as_string())

    async def close(self):
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("booking_store_closed")

    async def __aenter__(self) -> "BookingStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @asynccontextmanager
    async def _session(self):
        if self._session_factory is None:
            raise StorageError("Booking store is not open")
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("storage_error", error=str(exc))
            raise StorageError() from exc

    async def list_all(self) -> List[Booking]:
        statement = select(Booking).order_by(Booking.day, Booking.time)
        async with self._session() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def list_by_day(self, day: Union[Day, str]) -> List[Booking]:
        day_value = _day_value(day)
        if day_value is None:
            return []
        statement = select(Booking).where(Booking.day == day_value).order_by(Booking.time)
        async with self._session() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def is_slot_free(self, day: Union[Day, str], time: str) -> bool:
        statement = (
            select(func.count())
            .select_from(Booking)
            .where(Booking.day == _day_value(day), Booking.time == time)
        )
        async with self._session() as session:
            result = await session.execute(statement)
            return result.scalar_one() == 0

    async def create(self, booking_data: BookingCreate) -> Booking:
        """
        Insert a booking, relying on the (day, time) unique constraint.

        Raises:
            SlotConflict: the slot was taken when the insert committed
            StorageError: any other engine failure
        """
        day = _day_value(booking_data.day)
        meeting_type = getattr(booking_data.meeting_type, "value", booking_data.meeting_type)
        new_booking = Booking(
            student_name=booking_data.student_name,
            meeting_type=meeting_type,
            day=day,
            time=booking_data.time,
            created_at=datetime.now(timezone.utc),
        )

        async with self._session() as session:
            session.add(new_booking)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                violation = exc
            else:
                await session.refresh(new_booking)
                logger.info(
                    "booking_created",
                    booking_id=new_booking.id,
                    day=new_booking.day,
                    time=new_booking.time,
                )
                return new_booking

        # A CHECK failure also surfaces as IntegrityError; only a taken slot is a conflict.
        if await self.is_slot_free(day, booking_data.time):
            logger.error("storage_error", error=str(violation))
            raise StorageError() from violation
        logger.info("slot_conflict", day=day, time=booking_data.time)
        raise SlotConflict(day, booking_data.time) from violation

    async def delete(self, booking_id: int) -> bool:
        async with self._session() as session:
            booking = await session.get(Booking, booking_id)
            if booking is None:
                return False
            await session.delete(booking)
            await session.commit()
        logger.info("booking_deleted", booking_id=booking_id)
        return True

    async def available_slots(self, day: Union[Day, str]) -> List[str]:
        if _day_value(day) is None:
            return []
        booked_times = {booking.time for booking in await self.list_by_day(day)}
        return [time for time in generate_slot_grid() if time not in booked_times]
