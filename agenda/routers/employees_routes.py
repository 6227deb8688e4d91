# agenda/routers/employees_routes.py

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from agenda.auth import get_current_user
from agenda.booking import business_appointments, detach_appointments, ensure_unblocked
from agenda.core import filter_appointments
from agenda.db import get_session
from agenda.deps import get_business_or_404, get_owned_business
from agenda.exceptions import BookingConflict
from agenda.models import Business, Employee, Service
from agenda.schemas import (
    AppointmentPublic,
    EmployeeCreate,
    EmployeePublic,
    EmployeeUpdate,
    WeeklySchedule,
)

router = APIRouter(
    prefix="/businesses/{business_id}/employees",
    tags=["employees"],
)


def _get_employee(session: Session, business: Business, employee_id: int) -> Employee:
    employee = session.get(Employee, employee_id)
    if employee is None or employee.business_id != business.id:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


def _check_services(session: Session, business: Business, service_ids: List[int]):
    if len(service_ids) != len(set(service_ids)):
        raise HTTPException(status_code=422, detail="service_ids cannot contain duplicates")
    for service_id in service_ids:
        service = session.get(Service, service_id)
        if service is None or service.business_id != business.id:
            raise HTTPException(status_code=422, detail=f"Service {service_id} does not belong to this business")


def _commit(session: Session):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Employee could not be saved")


@router.get("", response_model=List[EmployeePublic])
def list_employees(
    business_id: int,
    session: Session = Depends(get_session),
):
    business = get_business_or_404(session, business_id)
    return session.exec(
        select(Employee)
        .where(Employee.business_id == business.id)
        .order_by(Employee.created_at, Employee.id)
    ).all()


@router.post("", response_model=EmployeePublic, status_code=201)
def add_employee(
    business_id: int,
    employee: EmployeeCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    _check_services(session, business, employee.service_ids)

    db_employee = Employee(
        business_id=business.id,
        name=employee.name,
        role=employee.role,
        role_type=employee.role_type.value,
        role_custom=employee.role_custom,
        photo_url=employee.photo_url,
        active=employee.active,
        service_ids=employee.service_ids,
        availability_weekly=(
            employee.availability_weekly.model_dump() if employee.availability_weekly else None
        ),
    )
    session.add(db_employee)
    _commit(session)
    session.refresh(db_employee)
    return db_employee


@router.patch("/{employee_id}", response_model=EmployeePublic)
def update_employee(
    business_id: int,
    employee_id: int,
    updates: EmployeeUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    employee = _get_employee(session, business, employee_id)

    data = updates.model_dump(exclude_unset=True)
    if data.get("service_ids") is not None:
        _check_services(session, business, data["service_ids"])
    if "role_type" in data and data["role_type"] is not None:
        data["role_type"] = updates.role_type.value
    if "availability_weekly" in data and updates.availability_weekly is not None:
        data["availability_weekly"] = updates.availability_weekly.model_dump()

    for key, value in data.items():
        setattr(employee, key, value)
    employee.updated_at = datetime.now()

    session.add(employee)
    _commit(session)
    session.refresh(employee)
    return employee


@router.put("/{employee_id}/availability", response_model=WeeklySchedule)
def set_employee_availability(
    business_id: int,
    employee_id: int,
    schedule: WeeklySchedule,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    employee = _get_employee(session, business, employee_id)

    employee.availability_weekly = schedule.model_dump()
    employee.updated_at = datetime.now()
    session.add(employee)
    session.commit()
    session.refresh(employee)

    return employee.availability_weekly


@router.delete("/{employee_id}", status_code=204)
def delete_employee(
    business_id: int,
    employee_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    employee = _get_employee(session, business, employee_id)

    # 1) Refuse while live bookings depend on the employee
    appts = filter_appointments(business_appointments(session, business.id), employee_id=employee.id)
    try:
        ensure_unblocked(appts)
    except BookingConflict as e:
        raise HTTPException(status_code=409, detail=f"Employee has upcoming work: {e}")

    # 2) Keep history, drop the reference
    detach_appointments(session, appts, "employee_id")
    session.delete(employee)
    session.commit()


@router.get("/{employee_id}/appointments", response_model=List[AppointmentPublic])
def employee_workload(
    business_id: int,
    employee_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    employee = _get_employee(session, business, employee_id)

    appts = filter_appointments(business_appointments(session, business.id), employee_id=employee.id)
    return sorted(appts, key=lambda a: a.date, reverse=True)
