import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import CheckConstraint, Column, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field

from slots import is_grid_slot


class Day(str, Enum):
    MONDAY = "Monday"
    WEDNESDAY = "Wednesday"
    FRIDAY = "Friday"


class MeetingType(str, Enum):
    FACE_TO_FACE = "face-to-face"
    ZOOM = "zoom"


DAYS = [day.value for day in Day]
MEETING_TYPES = [meeting_type.value for meeting_type in MeetingType]

STUDENT_NAME_PATTERN = re.compile(r"^[A-Za-z ]{2,50}$")


def _in_list(column: str, values: List[str]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # Database-level protection against double booking
        UniqueConstraint("day", "time", name="unique_booking_slot"),
        CheckConstraint(_in_list("meeting_type", MEETING_TYPES), name="check_meeting_type"),
        CheckConstraint(_in_list("day", DAYS), name="check_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_name: str
    meeting_type: str
    day: str = Field(index=True)
    time: str  # "HH:MM", 05:00 ... 07:15
    created_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=False)
    )


# Pydantic Schemas for Request/Response
class BookingCreate(BaseModel):
    student_name: str
    meeting_type: MeetingType
    day: Day
    time: str

    @field_validator("student_name")
    @classmethod
    def check_student_name(cls, v: str) -> str:
        v = v.strip()
        if not STUDENT_NAME_PATTERN.match(v):
            raise ValueError("student_name must be 2-50 letters and spaces")
        return v

    @field_validator("time")
    @classmethod
    def check_time(cls, v: str) -> str:
        if not is_grid_slot(v):
            raise ValueError("time must be a 15-minute slot between 05:00 and 07:15")
        return v


class BookingRead(BaseModel):
    id: int
    student_name: str
    meeting_type: str
    day: str
    time: str
    created_at: datetime


class AvailableSlots(BaseModel):
    day: Day
    slots: List[str]


class DeleteResult(BaseModel):
    success: bool
    deletedId: int


class HealthStatus(BaseModel):
    status: str
    timestamp: str
