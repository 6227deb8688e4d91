# agenda/routers/appointments_routes.py

import logging
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from agenda import customers as crm
from agenda import notifications
from agenda.auth import get_current_user
from agenda.booking import business_appointments, check_slot
from agenda.core import filter_appointments, inbox, local_now, to_local
from agenda.db import get_session
from agenda.deps import get_business_or_404, get_owned_business, require_role
from agenda.exceptions import BookingConflict, InvalidTransition, SlotUnavailable
from agenda.models import Appointment, Business, Customer, Employee, Service
from agenda.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentUpdate,
    BookingRequest,
    InboxTab,
    StatusUpdate,
)
from agenda.status import AppointmentStatus, validate_transition

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["appointments"],
)


def _get_service(session: Session, business: Business, service_id: int) -> Service:
    service = session.get(Service, service_id)
    if service is None or service.business_id != business.id:
        raise HTTPException(status_code=422, detail="Service not available")
    return service


def _get_employee(session: Session, business: Business, employee_id: Optional[int]) -> Optional[Employee]:
    if employee_id is None:
        return None
    employee = session.get(Employee, employee_id)
    if employee is None or employee.business_id != business.id:
        raise HTTPException(status_code=422, detail="Employee not available")
    return employee


def _check_slot(business, service, starts_at, session, employee=None, exclude_id=None):
    try:
        check_slot(
            business,
            service,
            starts_at,
            business_appointments(session, business.id),
            now=local_now(business.timezone),
            employee=employee,
            exclude_id=exclude_id,
        )
    except BookingConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SlotUnavailable as e:
        raise HTTPException(status_code=422, detail=str(e))


def _get_appointment(session: Session, appt_id: int) -> Appointment:
    appt = session.get(Appointment, appt_id)
    if appt is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt


@router.post("/businesses/{business_id}/appointments/request", response_model=AppointmentPublic, status_code=201)
def request_appointment(
    business_id: int,
    booking: BookingRequest,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")
    business = get_business_or_404(session, business_id)

    # 1) Validate service, employee and slot
    service = _get_service(session, business, booking.service_id)
    employee = _get_employee(session, business, booking.employee_id)
    starts_at = to_local(booking.starts_at, business.timezone)
    _check_slot(business, service, starts_at, session, employee=employee)

    # 2) Sync CRM; booking proceeds even if this fails
    customer_id = None
    try:
        customer = crm.upsert_from_appointment(
            session,
            business.id,
            full_name=booking.customer_name,
            email=booking.customer_email or current_user["email"],
            phone=booking.customer_phone,
        )
        customer_id = customer.id
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning(f"CRM sync failed for business {business.id}: {e}")

    # 3) Create pending appointment
    db_appt = Appointment(
        business_id=business.id,
        employee_id=employee.id if employee else None,
        service_id=service.id,
        service_name=service.name,
        service_duration=service.duration_minutes,
        customer_id=customer_id,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email or current_user["email"],
        customer_phone=booking.customer_phone,
        client_user_id=current_user["id"],
        date=starts_at,
        status=AppointmentStatus.pending.value,
        notes=booking.notes,
    )
    session.add(db_appt)
    session.commit()
    session.refresh(db_appt)
    logger.info(f"Appointment {db_appt.id} requested at business {business.id} for {db_appt.date}")

    # 4) Let the business know
    notifications.notify_new_appointment(session, business, db_appt)
    return db_appt


@router.post("/businesses/{business_id}/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    business_id: int,
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)

    service = _get_service(session, business, appt.service_id)
    employee = _get_employee(session, business, appt.employee_id)
    starts_at = to_local(appt.starts_at, business.timezone)
    _check_slot(business, service, starts_at, session, employee=employee)

    customer = None
    if appt.customer_id is not None:
        customer = session.get(Customer, appt.customer_id)
        if customer is None or customer.business_id != business.id:
            raise HTTPException(status_code=422, detail="Customer not found")
    elif appt.customer_name:
        customer = crm.upsert_from_appointment(
            session,
            business.id,
            full_name=appt.customer_name,
            email=appt.customer_email,
            phone=appt.customer_phone,
        )
    else:
        raise HTTPException(status_code=422, detail="customer_id or customer_name is required")

    db_appt = Appointment(
        business_id=business.id,
        employee_id=employee.id if employee else None,
        service_id=service.id,
        service_name=service.name,
        service_duration=service.duration_minutes,
        customer_id=customer.id,
        customer_name=customer.full_name,
        customer_email=customer.email,
        customer_phone=customer.phone,
        date=starts_at,
        status=AppointmentStatus.confirmed.value,
        notes=appt.notes,
    )
    session.add(db_appt)
    session.commit()
    session.refresh(db_appt)
    logger.info(f"Appointment {db_appt.id} entered by business {business.id} for {db_appt.date}")
    return db_appt


@router.get("/businesses/{business_id}/appointments", response_model=List[AppointmentPublic])
def list_appointments(
    business_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    employee_id: Optional[int] = None,
    status: Optional[AppointmentStatus] = None,
    customer_id: Optional[int] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    start = to_local(start, business.timezone) if start is not None else None
    end = to_local(end, business.timezone) if end is not None else None
    if start is not None and end is not None and start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")

    appts = filter_appointments(
        business_appointments(session, business.id),
        start=start,
        end=end,
        employee_id=employee_id,
        status=status.value if status else None,
        customer_id=customer_id,
    )
    return sorted(appts, key=lambda a: a.date)


@router.get("/businesses/{business_id}/inbox", response_model=List[AppointmentPublic])
def appointment_inbox(
    business_id: int,
    tab: InboxTab = InboxTab.pending,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    return inbox(business_appointments(session, business.id), tab.value, local_now(business.timezone))


@router.patch("/appointments/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: int,
    updates: AppointmentUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    target = _get_appointment(session, appt_id)
    business = get_owned_business(session, target.business_id, current_user)

    data = updates.model_dump(exclude_unset=True)
    starts_at = to_local(data["starts_at"], business.timezone) if data.get("starts_at") else target.date
    employee_id = data.get("employee_id", target.employee_id)

    if "starts_at" in data or "employee_id" in data:
        if target.status not in (AppointmentStatus.pending.value, AppointmentStatus.confirmed.value):
            raise HTTPException(status_code=409, detail=f"Cannot reschedule a {target.status} appointment")
        service = _get_service(session, business, target.service_id)
        employee = _get_employee(session, business, employee_id)
        _check_slot(business, service, starts_at, session, employee=employee, exclude_id=target.id)

    target.date = starts_at
    target.employee_id = employee_id
    if "notes" in data:
        target.notes = data["notes"]
    target.updated_at = datetime.now()

    session.add(target)
    session.commit()
    session.refresh(target)
    return target


@router.patch("/appointments/{appt_id}/status", response_model=AppointmentPublic)
def change_status(
    appt_id: int,
    update: StatusUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # 1) Find the appointment in DB
    target = _get_appointment(session, appt_id)
    business = get_business_or_404(session, target.business_id)

    # 2) Authorization: owning business, or the client cancelling their own booking
    if current_user["role"] == "owner":
        if business.owner_id != current_user["id"]:
            raise HTTPException(status_code=403, detail="Forbidden")
    elif target.client_user_id != current_user["id"] or update.status != AppointmentStatus.cancelled:
        raise HTTPException(status_code=403, detail="Forbidden")

    # 3) Validate transition
    previous = target.status
    try:
        new_status = validate_transition(previous, update.status)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    # 4) Confirming an assigned appointment must not double-book the employee
    if new_status == AppointmentStatus.confirmed.value and target.employee_id is not None:
        service = _get_service(session, business, target.service_id)
        employee = _get_employee(session, business, target.employee_id)
        _check_slot(business, service, target.date, session, employee=employee, exclude_id=target.id)

    # 5) Persist and notify
    target.status = new_status
    target.updated_at = datetime.now()
    session.add(target)
    session.commit()
    session.refresh(target)
    logger.info(f"Appointment {target.id}: {previous} -> {new_status}")

    notifications.notify_status_change(
        session, business, target, previous, by_client=current_user["role"] == "client",
    )
    return target


@router.delete("/appointments/{appt_id}", status_code=204)
def delete_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    target = _get_appointment(session, appt_id)
    get_owned_business(session, target.business_id, current_user)

    session.delete(target)
    session.commit()


@router.get("/clients/me/appointments", response_model=List[AppointmentPublic])
def list_my_appointments(
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")

    stmt = select(Appointment).where(Appointment.client_user_id == current_user["id"])
    if status is not None:
        stmt = stmt.where(Appointment.status == status.value)

    stmt = stmt.order_by(Appointment.date)
    return session.exec(stmt).all()
