"""Appointment, availability, and booking-result data models."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Lifecycle status of a stored appointment."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"


# Statuses that release their (date, time slot) back to the grid
INACTIVE_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})

# Statuses from which a hard delete is permitted
DELETABLE_STATUSES = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
})


class PetType(str, Enum):
    DOG = "dog"
    CAT = "cat"
    BIRD = "bird"
    RABBIT = "rabbit"
    HAMSTER = "hamster"
    FISH = "fish"
    REPTILE = "reptile"
    OTHER = "other"


class AppointmentContext(BaseModel):
    """Where a booking came from."""
    user_id: Optional[str] = None
    source: str = "direct"


class Appointment(BaseModel):
    """A stored appointment occupying one slot on the grid."""
    id: str
    owner_name: str
    pet_name: str
    phone: str
    scheduled_date: date
    scheduled_time_slot: str
    preferred_date_time: str
    pet_type: PetType = PetType.OTHER
    email: Optional[str] = None
    service: str = "checkup"
    duration: int = 30
    reason: str = ""
    notes: str = ""
    session_id: Optional[str] = None
    conversation_id: Optional[str] = None
    context: AppointmentContext = Field(default_factory=AppointmentContext)
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_active(self) -> bool:
        """True while the appointment still holds its slot."""
        return self.status not in INACTIVE_STATUSES


class ValidationIssue(BaseModel):
    """A single field-level validation problem."""
    field: str
    message: str
    code: str


class TimeSlot(BaseModel):
    """One start time on the booking grid."""
    time: str
    display: str


class SlotAvailability(TimeSlot):
    available: bool = True


class DaySlots(BaseModel):
    """Grid for one date with booked slots marked unavailable."""
    date: date
    is_operating_day: bool
    is_past: bool = False
    slots: list[SlotAvailability] = Field(default_factory=list)
    total_slots: int = 0
    available_count: int = 0
    booked_count: int = 0
    message: str = ""


class DateAvailability(BaseModel):
    """Summary of availability for a single date."""
    date: date
    day_name: str
    is_operating_day: bool
    available_slots: int
    is_full: bool


class BookingResult(BaseModel):
    """Outcome of an appointment operation."""
    success: bool
    message: str = ""
    code: Optional[str] = None
    appointment: Optional[Appointment] = None
    validation_errors: list[ValidationIssue] = Field(default_factory=list)
    suggested_slots: list[TimeSlot] = Field(default_factory=list)
    requested_date: Optional[date] = None
    requested_time_slot: Optional[str] = None
    existing_appointment_id: Optional[str] = None
    updated_fields: list[str] = Field(default_factory=list)


class AppointmentFilter(BaseModel):
    """Query options for listing appointments."""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    status: Optional[AppointmentStatus] = None
    on_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    sort_by: str = "scheduled_date"
    sort_order: str = "asc"


class AppointmentPage(BaseModel):
    appointments: list[Appointment]
    page: int
    limit: int
    total: int
    pages: int
    has_more: bool


class ServiceCount(BaseModel):
    service: str
    count: int


class AppointmentStatistics(BaseModel):
    total: int
    by_status: dict[str, int]
    today: int
    this_week: int
    this_month: int
    service_breakdown: list[ServiceCount] = Field(default_factory=list)
    upcoming: list[Appointment] = Field(default_factory=list)
