# agenda/schemas.py

from pydantic import BaseModel, Field, model_validator
from enum import Enum
from datetime import datetime, date
from typing import List, Optional

from .core import time_to_minutes
from .status import AppointmentStatus

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def _reject_nulls(data, fields):
    # PATCH bodies may omit these fields but not clear them
    if isinstance(data, dict):
        cleared = sorted(f for f in fields if f in data and data[f] is None)
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
    return data


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    owner = "owner"
    client = "client"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    full_name: str = ""
    phone: Optional[str] = None


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: UserRole
    full_name: str = ""
    phone: Optional[str] = None


# ── Schedules ────────────────────────────────────────────────────────────────

class DaySchedule(BaseModel):
    enabled: bool = False
    start: str = Field(default="09:00", pattern=TIME_PATTERN)
    end: str = Field(default="18:00", pattern=TIME_PATTERN)

    @model_validator(mode="after")
    def check_interval(self):
        if self.enabled and time_to_minutes(self.start) >= time_to_minutes(self.end):
            raise ValueError(f"start ({self.start}) must be before end ({self.end})")
        return self


class WeeklySchedule(BaseModel):
    mon: DaySchedule = Field(default_factory=DaySchedule)
    tue: DaySchedule = Field(default_factory=DaySchedule)
    wed: DaySchedule = Field(default_factory=DaySchedule)
    thu: DaySchedule = Field(default_factory=DaySchedule)
    fri: DaySchedule = Field(default_factory=DaySchedule)
    sat: DaySchedule = Field(default_factory=DaySchedule)
    sun: DaySchedule = Field(default_factory=DaySchedule)


class OpenStatusResponse(BaseModel):
    business_id: int
    is_open: bool
    next_status_time: Optional[str] = None
    label: str


# ── Businesses, services, employees ─────────────────────────────────────────

class BusinessCreate(BaseModel):
    name: str = Field(min_length=1)
    category: Optional[str] = None
    timezone: Optional[str] = None
    slot_minutes: Optional[int] = Field(default=None, gt=0, le=240)
    opening_hours: Optional[WeeklySchedule] = None


class BusinessPublic(BaseModel):
    id: int
    owner_id: int
    name: str
    category: Optional[str] = None
    timezone: str
    slot_minutes: int
    opening_hours: Optional[dict] = None


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    duration_minutes: int = Field(gt=0)
    price: float = Field(default=0, ge=0)


class ServicePublic(BaseModel):
    id: int
    business_id: int
    name: str
    duration_minutes: int
    price: float


class EmployeeRoleType(str, Enum):
    manager = "manager"
    reception = "reception"
    customer_service = "customer_service"
    sales_marketing = "sales_marketing"
    technician = "technician"
    assistant = "assistant"
    other = "other"


class EmployeeCreate(BaseModel):
    name: str = Field(min_length=1)
    role: str = ""
    role_type: EmployeeRoleType = EmployeeRoleType.other
    role_custom: Optional[str] = None
    photo_url: Optional[str] = None
    active: bool = True
    service_ids: List[int] = Field(default_factory=list)
    availability_weekly: Optional[WeeklySchedule] = None


class EmployeeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    role: Optional[str] = None
    role_type: Optional[EmployeeRoleType] = None
    role_custom: Optional[str] = None
    photo_url: Optional[str] = None
    active: Optional[bool] = None
    service_ids: Optional[List[int]] = None
    availability_weekly: Optional[WeeklySchedule] = None

    @model_validator(mode="before")
    @classmethod
    def check_nulls(cls, data):
        return _reject_nulls(data, ("name", "role", "role_type", "active", "service_ids"))


class EmployeePublic(BaseModel):
    id: int
    business_id: int
    name: str
    role: str
    role_type: str
    role_custom: Optional[str] = None
    photo_url: Optional[str] = None
    active: bool
    service_ids: List[int]
    availability_weekly: Optional[dict] = None


# ── Customers ───────────────────────────────────────────────────────────────

class CustomerCreate(BaseModel):
    full_name: str = Field(min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class CustomerUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @model_validator(mode="before")
    @classmethod
    def check_nulls(cls, data):
        return _reject_nulls(data, ("full_name", "tags"))


class CustomerPublic(BaseModel):
    id: int
    business_id: int
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str]
    archived: bool
    created_at: datetime
    updated_at: datetime
    last_interaction_at: datetime


class DeleteAction(str, Enum):
    archive = "archive"
    client_only = "client_only"
    appointments_only = "appointments_only"
    all = "all"


class DeleteResult(BaseModel):
    action: DeleteAction
    customer_deleted: bool
    customer_archived: bool
    appointments_deleted: int


# ── Appointments ────────────────────────────────────────────────────────────

class BookingRequest(BaseModel):
    """Client-side booking wizard submission."""
    service_id: int
    starts_at: datetime
    employee_id: Optional[int] = None
    customer_name: str = Field(min_length=1)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


class AppointmentCreate(BaseModel):
    """Manual entry from the provider agenda."""
    service_id: int
    starts_at: datetime
    employee_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    starts_at: Optional[datetime] = None
    employee_id: Optional[int] = None
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentPublic(BaseModel):
    id: int
    business_id: int
    employee_id: Optional[int] = None
    service_id: Optional[int] = None
    service_name: str
    service_duration: int
    customer_id: Optional[int] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    date: datetime
    status: AppointmentStatus
    notes: Optional[str] = None


class InboxTab(str, Enum):
    pending = "pending"
    upcoming = "upcoming"
    history = "history"


class AvailabilityResponse(BaseModel):
    business_id: int
    date: date
    service_id: int
    employee_id: Optional[int] = None
    available_starts: List[str]


# ── Notifications ───────────────────────────────────────────────────────────

class NotificationPublic(BaseModel):
    id: int
    audience: str
    recipient_id: int
    type: str
    title: str
    body: str
    read: bool
    related_id: Optional[int] = None
    related_name: Optional[str] = None
    created_at: datetime
    read_at: Optional[datetime] = None


class UnreadCount(BaseModel):
    unread: int
