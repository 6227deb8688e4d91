# agenda/notifications.py

# Rows written here are picked up by the push and email gateways; nothing is
# delivered from this module. Failed writes are logged and swallowed.

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, func

from .models import Appointment, Business, Notification
from .status import NEW_APPOINTMENT, notification_for

logger = logging.getLogger(__name__)

BUSINESS = "business"
CLIENT = "client"


def create_notification(
    session: Session,
    audience: str,
    recipient_id: int,
    type: str,
    title: str,
    body: str,
    related_id: Optional[int] = None,
    related_name: Optional[str] = None,
    client_email: Optional[str] = None,
) -> Optional[Notification]:
    notif = Notification(
        audience=audience,
        recipient_id=recipient_id,
        type=type,
        title=title,
        body=body,
        related_id=related_id,
        related_name=related_name,
        client_email=client_email,
    )
    try:
        session.add(notif)
        session.commit()
        session.refresh(notif)
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning(f"[{audience}-notif] create failed for {recipient_id}: {e}")
        return None
    logger.debug(f"[{audience}-notif] {type} -> {recipient_id}")
    return notif


def _when(appt: Appointment) -> str:
    return appt.date.strftime("%Y-%m-%d %H:%M")


def notify_new_appointment(session: Session, business: Business, appt: Appointment) -> Optional[Notification]:
    return create_notification(
        session,
        audience=BUSINESS,
        recipient_id=business.id,
        type=NEW_APPOINTMENT.type,
        title=NEW_APPOINTMENT.title,
        body=f"{appt.customer_name} requested {appt.service_name} on {_when(appt)}",
        related_id=appt.id,
        related_name=appt.customer_name,
        client_email=appt.customer_email,
    )


def notify_status_change(
    session: Session,
    business: Business,
    appt: Appointment,
    previous: str,
    by_client: bool = False,
) -> Optional[Notification]:
    notice = notification_for(previous, appt.status, by_client=by_client)
    if notice is None:
        return None
    if notice.audience == CLIENT and appt.client_user_id is None:
        # walk-in or manual entry, nobody to notify in-app
        logger.debug(f"Appointment {appt.id} has no client account, skipping {notice.type}")
        return None

    recipient_id = business.id if notice.audience == BUSINESS else appt.client_user_id
    return create_notification(
        session,
        audience=notice.audience,
        recipient_id=recipient_id,
        type=notice.type,
        title=notice.title,
        body=f"{business.name}: {appt.service_name} on {_when(appt)}",
        related_id=appt.id,
        related_name=business.name,
        client_email=appt.customer_email,
    )


def list_feed(session: Session, audience: str, recipient_id: int, limit: int) -> List[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.audience == audience)
        .where(Notification.recipient_id == recipient_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(session.exec(stmt).all())


def unread_count(session: Session, audience: str, recipient_id: int) -> int:
    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(Notification.audience == audience)
        .where(Notification.recipient_id == recipient_id)
        .where(Notification.read == False)  # noqa: E712
    )
    return session.exec(stmt).one()


def mark_read(session: Session, notif: Notification) -> Notification:
    if not notif.read:
        notif.read = True
        notif.read_at = datetime.now()
        session.add(notif)
        session.commit()
        session.refresh(notif)
    return notif


def mark_all_read(session: Session, audience: str, recipient_id: int) -> int:
    unread = session.exec(
        select(Notification)
        .where(Notification.audience == audience)
        .where(Notification.recipient_id == recipient_id)
        .where(Notification.read == False)  # noqa: E712
    ).all()

    now = datetime.now()
    for notif in unread:
        notif.read = True
        notif.read_at = now
        session.add(notif)
    session.commit()
    return len(unread)
