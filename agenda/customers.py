# agenda/customers.py

# Duplicates are an exact phone or email match inside one business. The check
# and the write are separate statements, so concurrent creations can race.

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from .booking import detach_appointments
from .exceptions import DuplicateCustomer
from .models import Appointment, Customer

logger = logging.getLogger(__name__)


def is_duplicate(
    customers: Iterable[Customer],
    phone: Optional[str] = None,
    email: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> bool:
    if not phone and not email:
        return False
    for c in customers:
        if exclude_id is not None and c.id == exclude_id:
            continue
        if phone and c.phone == phone:
            return True
        if email and c.email == email:
            return True
    return False


def _business_customers(session: Session, business_id: int) -> List[Customer]:
    return list(session.exec(
        select(Customer).where(Customer.business_id == business_id)
    ).all())


def list_customers(session: Session, business_id: int) -> List[Customer]:
    """Non-archived customers ordered by name."""
    customers = [c for c in _business_customers(session, business_id) if not c.archived]
    return sorted(customers, key=lambda c: c.full_name.casefold())


def create_customer(session: Session, business_id: int, **fields) -> Customer:
    existing = _business_customers(session, business_id)
    if is_duplicate(existing, fields.get("phone"), fields.get("email")):
        logger.info(f"Duplicate customer rejected for business {business_id}")
        raise DuplicateCustomer("Customer with this phone or email already exists.")

    customer = Customer(business_id=business_id, **fields)
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


def update_customer(session: Session, customer: Customer, **updates) -> Customer:
    phone = updates.get("phone")
    email = updates.get("email")
    if phone or email:
        existing = _business_customers(session, customer.business_id)
        if is_duplicate(existing, phone, email, exclude_id=customer.id):
            raise DuplicateCustomer("Customer with this phone or email already exists.")

    for key, value in updates.items():
        setattr(customer, key, value)
    customer.updated_at = datetime.now()
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


def archive_customer(session: Session, customer: Customer) -> Customer:
    customer.archived = True
    customer.updated_at = datetime.now()
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


def upsert_from_appointment(
    session: Session,
    business_id: int,
    full_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Customer:
    """
    Find the customer behind a booking or create one.

    Email is matched first, then phone. A match gets its last interaction
    touched and any missing phone/email filled in from the booking.
    """
    customers = _business_customers(session, business_id)
    now = datetime.now()

    match = None
    if email:
        match = next((c for c in customers if c.email == email), None)
    if match is None and phone:
        match = next((c for c in customers if c.phone == phone), None)

    if match is not None:
        match.last_interaction_at = now
        match.updated_at = now
        if phone and not match.phone:
            match.phone = phone
        if email and not match.email:
            match.email = email
        session.add(match)
        session.commit()
        session.refresh(match)
        return match

    customer = Customer(
        business_id=business_id,
        full_name=full_name,
        email=email or None,
        phone=phone or None,
        archived=False,
        created_at=now,
        updated_at=now,
        last_interaction_at=now,
    )
    session.add(customer)
    session.commit()
    session.refresh(customer)
    logger.info(f"Customer {customer.id} created from booking for business {business_id}")
    return customer


def customer_appointments(session: Session, customer: Customer) -> List[Appointment]:
    return list(session.exec(
        select(Appointment)
        .where(Appointment.business_id == customer.business_id)
        .where(Appointment.customer_id == customer.id)
    ).all())


def smart_delete(session: Session, customer: Customer, action: str) -> dict:
    """
    Remove a customer and/or their appointment history.

    Writes are independent; a failure half way leaves earlier ones applied.
    """
    customer_id = customer.id
    result = {
        "action": action,
        "customer_deleted": False,
        "customer_archived": False,
        "appointments_deleted": 0,
    }

    if action == "archive":
        archive_customer(session, customer)
        result["customer_archived"] = True
        return result

    if action in ("all", "appointments_only"):
        for appt in customer_appointments(session, customer):
            session.delete(appt)
            session.commit()
            result["appointments_deleted"] += 1

    if action in ("all", "client_only"):
        # appointments kept by client_only lose the link, not their copied name
        detach_appointments(session, customer_appointments(session, customer), "customer_id")
        session.delete(customer)
        session.commit()
        result["customer_deleted"] = True

    logger.info(f"Customer {customer_id} smart delete '{action}': {result}")
    return result
