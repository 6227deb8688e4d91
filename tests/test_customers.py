"""
Tests for customer de-duplication and booking upserts.
"""

from datetime import datetime

import pytest

from agenda import customers as crm
from agenda.exceptions import DuplicateCustomer
from agenda.models import Appointment, Business, Customer, User


@pytest.fixture
def business_id(session):
    owner = User(email="o@example.com", password_hash="x", role="owner")
    session.add(owner)
    session.commit()
    business = Business(owner_id=owner.id, name="Spa", timezone="UTC", slot_minutes=30)
    session.add(business)
    session.commit()
    return business.id


class TestIsDuplicate:
    """Pure duplicate check."""

    customers = [
        Customer(id=1, business_id=1, full_name="Ana", phone="555-1", email="ana@example.com"),
        Customer(id=2, business_id=1, full_name="Bruno", phone="555-2", email=None),
    ]

    def test_no_contact_is_never_duplicate(self):
        assert not crm.is_duplicate(self.customers)
        assert not crm.is_duplicate(self.customers, phone="", email="")

    def test_phone_match(self):
        assert crm.is_duplicate(self.customers, phone="555-2")

    def test_email_match(self):
        assert crm.is_duplicate(self.customers, email="ana@example.com")

    def test_exact_match_only(self):
        assert not crm.is_duplicate(self.customers, email="ANA@example.com")
        assert not crm.is_duplicate(self.customers, phone="5552")

    def test_exclude_self(self):
        assert not crm.is_duplicate(self.customers, phone="555-1", exclude_id=1)
        assert crm.is_duplicate(self.customers, phone="555-1", exclude_id=2)


class TestCustomerStore:
    """Customer operations against the database."""

    def test_create_rejects_duplicates(self, session, business_id):
        crm.create_customer(session, business_id, full_name="Ana", email="ana@example.com")
        with pytest.raises(DuplicateCustomer):
            crm.create_customer(session, business_id, full_name="Ana B", email="ana@example.com")

    def test_update_rejects_duplicate_of_other(self, session, business_id):
        crm.create_customer(session, business_id, full_name="Ana", phone="555-1")
        bruno = crm.create_customer(session, business_id, full_name="Bruno", phone="555-2")
        with pytest.raises(DuplicateCustomer):
            crm.update_customer(session, bruno, phone="555-1")
        updated = crm.update_customer(session, bruno, phone="555-2", notes="regular")
        assert updated.notes == "regular"

    def test_list_hides_archived_and_sorts_by_name(self, session, business_id):
        crm.create_customer(session, business_id, full_name="zoe")
        crm.create_customer(session, business_id, full_name="Ana")
        gone = crm.create_customer(session, business_id, full_name="Mario")
        crm.archive_customer(session, gone)
        assert [c.full_name for c in crm.list_customers(session, business_id)] == ["Ana", "zoe"]

    def test_upsert_matches_email_first_and_fills_phone(self, session, business_id):
        ana = crm.create_customer(session, business_id, full_name="Ana", email="ana@example.com")
        found = crm.upsert_from_appointment(
            session, business_id, full_name="Ana Maria", email="ana@example.com", phone="555-9",
        )
        assert found.id == ana.id
        assert found.phone == "555-9"
        assert found.full_name == "Ana"

    def test_upsert_falls_back_to_phone(self, session, business_id):
        bruno = crm.create_customer(session, business_id, full_name="Bruno", phone="555-2")
        found = crm.upsert_from_appointment(
            session, business_id, full_name="Bruno", email="bruno@example.com", phone="555-2",
        )
        assert found.id == bruno.id
        assert found.email == "bruno@example.com"

    def test_upsert_creates_when_unknown(self, session, business_id):
        created = crm.upsert_from_appointment(session, business_id, full_name="Nuevo", phone="555-7")
        assert created.id is not None
        assert created.email is None
        assert not created.archived


class TestSmartDelete:
    """Smart delete actions against the database."""

    @pytest.fixture
    def customer(self, session, business_id):
        return crm.create_customer(session, business_id, full_name="Ana", phone="555-1")

    @pytest.fixture
    def history(self, session, business_id, customer):
        appts = [
            Appointment(
                business_id=business_id,
                service_name="Haircut",
                service_duration=30,
                customer_id=customer.id,
                customer_name="Ana",
                date=datetime(2025, 3, 3, hour, 0),
                status="completed",
            )
            for hour in (9, 10)
        ]
        session.add_all(appts)
        session.commit()
        return [a.id for a in appts]

    def test_client_only_keeps_unlinked_appointments(self, session, customer, history):
        result = crm.smart_delete(session, customer, "client_only")
        assert result["customer_deleted"] is True
        assert result["appointments_deleted"] == 0
        for appt_id in history:
            appt = session.get(Appointment, appt_id)
            assert appt.customer_id is None
            assert appt.customer_name == "Ana"

    def test_appointments_only_keeps_customer(self, session, customer, history):
        customer_id = customer.id
        result = crm.smart_delete(session, customer, "appointments_only")
        assert result["appointments_deleted"] == 2
        assert result["customer_deleted"] is False
        assert session.get(Customer, customer_id) is not None
        assert all(session.get(Appointment, appt_id) is None for appt_id in history)

    def test_datetimes_stay_naive(self, session, history):
        appt = session.get(Appointment, history[0])
        session.refresh(appt)
        assert appt.date == datetime(2025, 3, 3, 9, 0)
        assert appt.date.tzinfo is None
