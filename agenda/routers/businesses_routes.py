# agenda/routers/businesses_routes.py

import logging
from datetime import date
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from agenda.auth import get_current_user
from agenda.booking import business_appointments, detach_appointments, ensure_unblocked
from agenda.config import DEFAULT_TIMEZONE, DEFAULT_SLOT_MINUTES
from agenda.core import available_slots, is_open, local_now
from agenda.db import get_session
from agenda.deps import get_business_or_404, get_owned_business, require_role
from agenda.exceptions import BookingConflict
from agenda.models import Business, Employee, Service
from agenda.schemas import (
    AvailabilityResponse,
    BusinessCreate,
    BusinessPublic,
    OpenStatusResponse,
    ServiceCreate,
    ServicePublic,
    WeeklySchedule,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/businesses",
    tags=["businesses"],
)


def _check_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=422, detail=f"Unknown timezone '{name}'")
    return name


@router.post("", response_model=BusinessPublic, status_code=201)
def create_business(
    business: BusinessCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "owner")

    db_business = Business(
        owner_id=current_user["id"],
        name=business.name,
        category=business.category,
        timezone=_check_timezone(business.timezone or DEFAULT_TIMEZONE),
        slot_minutes=business.slot_minutes or DEFAULT_SLOT_MINUTES,
        opening_hours=business.opening_hours.model_dump() if business.opening_hours else None,
    )
    session.add(db_business)
    session.commit()
    session.refresh(db_business)

    logger.info(f"Business {db_business.id} created by user {current_user['id']}")
    return db_business


@router.get("", response_model=List[BusinessPublic])
def list_businesses(
    category: Optional[str] = None,
    session: Session = Depends(get_session),
):
    stmt = select(Business)
    if category is not None:
        stmt = stmt.where(Business.category == category)
    return session.exec(stmt.order_by(Business.name)).all()


@router.get("/{business_id}", response_model=BusinessPublic)
def get_business(
    business_id: int,
    session: Session = Depends(get_session),
):
    return get_business_or_404(session, business_id)


@router.put("/{business_id}/opening-hours", response_model=WeeklySchedule)
def set_opening_hours(
    business_id: int,
    schedule: WeeklySchedule,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)

    business.opening_hours = schedule.model_dump()
    session.add(business)
    session.commit()
    session.refresh(business)

    return business.opening_hours


@router.get("/{business_id}/status", response_model=OpenStatusResponse)
def opening_status(
    business_id: int,
    session: Session = Depends(get_session),
):
    business = get_business_or_404(session, business_id)
    status = is_open(business.opening_hours, local_now(business.timezone))

    return {
        "business_id": business.id,
        "is_open": status.is_open,
        "next_status_time": status.next_status_time,
        "label": status.label,
    }


@router.get("/{business_id}/availability", response_model=AvailabilityResponse)
def business_availability(
    business_id: int,
    on_date: date,
    service_id: int,
    employee_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    # 1) Lookup business and service
    business = get_business_or_404(session, business_id)
    service = session.get(Service, service_id)
    if service is None or service.business_id != business.id:
        raise HTTPException(status_code=404, detail="Service not found")

    # 2) Without an employee only opening hours apply; requests stay pending
    employee_schedule = None
    appointments = []
    if employee_id is not None:
        employee = session.get(Employee, employee_id)
        if employee is None or employee.business_id != business.id:
            raise HTTPException(status_code=404, detail="Employee not found")
        if not employee.active or service.id not in (employee.service_ids or []):
            return {
                "business_id": business.id,
                "date": on_date,
                "service_id": service.id,
                "employee_id": employee_id,
                "available_starts": [],
            }
        employee_schedule = employee.availability_weekly
        appointments = business_appointments(session, business.id)

    # 3) Generate slots, subtract past times and appointments
    available = available_slots(
        business.opening_hours,
        on_date,
        service.duration_minutes,
        appointments,
        step_minutes=business.slot_minutes,
        employee_id=employee_id,
        employee_schedule=employee_schedule,
        now=local_now(business.timezone),
    )

    return {
        "business_id": business.id,
        "date": on_date,
        "service_id": service.id,
        "employee_id": employee_id,
        "available_starts": available,
    }


@router.post("/{business_id}/services", response_model=ServicePublic, status_code=201)
def create_service(
    business_id: int,
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)

    db_service = Service(
        business_id=business.id,
        name=service.name,
        duration_minutes=service.duration_minutes,
        price=service.price,
    )
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.get("/{business_id}/services", response_model=List[ServicePublic])
def list_services(
    business_id: int,
    session: Session = Depends(get_session),
):
    business = get_business_or_404(session, business_id)
    return session.exec(
        select(Service).where(Service.business_id == business.id).order_by(Service.name)
    ).all()


@router.delete("/{business_id}/services/{service_id}", status_code=204)
def delete_service(
    business_id: int,
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    service = session.get(Service, service_id)
    if service is None or service.business_id != business.id:
        raise HTTPException(status_code=404, detail="Service not found")

    # 1) Refuse while live bookings use the service
    appts = [a for a in business_appointments(session, business.id) if a.service_id == service.id]
    try:
        ensure_unblocked(appts)
    except BookingConflict as e:
        raise HTTPException(status_code=409, detail=f"Service is still booked: {e}")

    # 2) Keep history, drop the reference from appointments and employees
    detach_appointments(session, appts, "service_id")
    employees = session.exec(select(Employee).where(Employee.business_id == business.id)).all()
    for employee in employees:
        if service.id in (employee.service_ids or []):
            employee.service_ids = [sid for sid in employee.service_ids if sid != service.id]
            session.add(employee)

    session.delete(service)
    session.commit()
