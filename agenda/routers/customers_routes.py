# agenda/routers/customers_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from agenda import customers as crm
from agenda.auth import get_current_user
from agenda.db import get_session
from agenda.deps import get_owned_business
from agenda.exceptions import DuplicateCustomer
from agenda.models import Business, Customer
from agenda.schemas import (
    AppointmentPublic,
    CustomerCreate,
    CustomerPublic,
    CustomerUpdate,
    DeleteAction,
    DeleteResult,
)

router = APIRouter(
    prefix="/businesses/{business_id}/customers",
    tags=["customers"],
)


def _get_customer(session: Session, business: Business, customer_id: int) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None or customer.business_id != business.id:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("", response_model=List[CustomerPublic])
def list_customers(
    business_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    return crm.list_customers(session, business.id)


@router.post("", response_model=CustomerPublic, status_code=201)
def create_customer(
    business_id: int,
    customer: CustomerCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    try:
        return crm.create_customer(session, business.id, **customer.model_dump())
    except DuplicateCustomer as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Customer could not be saved")


@router.get("/{customer_id}", response_model=CustomerPublic)
def get_customer(
    business_id: int,
    customer_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    return _get_customer(session, business, customer_id)


@router.patch("/{customer_id}", response_model=CustomerPublic)
def update_customer(
    business_id: int,
    customer_id: int,
    updates: CustomerUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    customer = _get_customer(session, business, customer_id)
    try:
        return crm.update_customer(session, customer, **updates.model_dump(exclude_unset=True))
    except DuplicateCustomer as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Customer could not be saved")


@router.delete("/{customer_id}", response_model=DeleteResult)
def delete_customer(
    business_id: int,
    customer_id: int,
    action: DeleteAction = DeleteAction.archive,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    customer = _get_customer(session, business, customer_id)
    return crm.smart_delete(session, customer, action.value)


@router.get("/{customer_id}/appointments", response_model=List[AppointmentPublic])
def customer_history(
    business_id: int,
    customer_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    customer = _get_customer(session, business, customer_id)
    return sorted(crm.customer_appointments(session, customer), key=lambda a: a.date, reverse=True)
