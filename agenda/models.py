# agenda/models.py

from typing import Optional, List
from datetime import datetime

from sqlalchemy.types import JSON, DateTime
from sqlmodel import SQLModel, Field, Column

# datetimes are naive, in the business timezone


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # owner or client
    full_name: str = ""
    phone: Optional[str] = None


class Business(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    owner_id: int = Field(index=True, foreign_key="user.id")
    name: str
    category: Optional[str] = None
    timezone: str
    slot_minutes: int
    # day key -> {"enabled", "start", "end"}; validated when edited only
    opening_hours: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    business_id: int = Field(index=True, foreign_key="business.id")
    name: str
    duration_minutes: int
    price: float = 0


class Employee(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    business_id: int = Field(index=True, foreign_key="business.id")
    name: str
    role: str = ""  # title / description
    role_type: str = "other"
    role_custom: Optional[str] = None
    photo_url: Optional[str] = None
    active: bool = True
    service_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    availability_weekly: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))


class Customer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    business_id: int = Field(index=True, foreign_key="business.id")
    full_name: str
    phone: Optional[str] = Field(default=None, index=True)
    email: Optional[str] = Field(default=None, index=True)
    address: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    archived: bool = False
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))
    last_interaction_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    business_id: int = Field(index=True, foreign_key="business.id")
    employee_id: Optional[int] = Field(default=None, foreign_key="employee.id")
    service_id: Optional[int] = Field(default=None, foreign_key="service.id")
    # copied from the service for rendering without a join
    service_name: str
    service_duration: int
    customer_id: Optional[int] = Field(default=None, foreign_key="customer.id")
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    client_user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    # start, business local time
    date: datetime = Field(sa_column=Column(DateTime, nullable=False))
    status: str = "pending"
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    audience: str = Field(index=True)  # business or client
    recipient_id: int = Field(index=True)  # business id or client user id
    type: str
    title: str
    body: str
    read: bool = False
    related_id: Optional[int] = None
    related_name: Optional[str] = None
    client_email: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime, nullable=False))
    read_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
