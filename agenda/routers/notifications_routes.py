# agenda/routers/notifications_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from agenda import notifications
from agenda.auth import get_current_user
from agenda.config import BUSINESS_FEED_LIMIT, CLIENT_FEED_LIMIT
from agenda.db import get_session
from agenda.deps import get_owned_business, require_role
from agenda.models import Business, Notification
from agenda.schemas import NotificationPublic, UnreadCount

router = APIRouter(
    tags=["notifications"],
)


@router.get("/businesses/{business_id}/notifications", response_model=List[NotificationPublic])
def business_feed(
    business_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    return notifications.list_feed(session, notifications.BUSINESS, business.id, BUSINESS_FEED_LIMIT)


@router.get("/businesses/{business_id}/notifications/unread-count", response_model=UnreadCount)
def business_unread_count(
    business_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    return {"unread": notifications.unread_count(session, notifications.BUSINESS, business.id)}


@router.post("/businesses/{business_id}/notifications/read-all", response_model=UnreadCount)
def business_mark_all_read(
    business_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    business = get_owned_business(session, business_id, current_user)
    notifications.mark_all_read(session, notifications.BUSINESS, business.id)
    return {"unread": 0}


@router.get("/notifications/me", response_model=List[NotificationPublic])
def client_feed(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")
    return notifications.list_feed(session, notifications.CLIENT, current_user["id"], CLIENT_FEED_LIMIT)


@router.get("/notifications/me/unread-count", response_model=UnreadCount)
def client_unread_count(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")
    return {"unread": notifications.unread_count(session, notifications.CLIENT, current_user["id"])}


@router.post("/notifications/me/read-all", response_model=UnreadCount)
def client_mark_all_read(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")
    notifications.mark_all_read(session, notifications.CLIENT, current_user["id"])
    return {"unread": 0}


@router.patch("/notifications/{notif_id}/read", response_model=NotificationPublic)
def mark_read(
    notif_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    notif = session.get(Notification, notif_id)
    if notif is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    # Authorization: the client it was written for, or the owner of the business
    if notif.audience == notifications.CLIENT:
        allowed = current_user["role"] == "client" and notif.recipient_id == current_user["id"]
    else:
        business = session.get(Business, notif.recipient_id)
        allowed = business is not None and business.owner_id == current_user["id"]
    if not allowed:
        raise HTTPException(status_code=403, detail="Forbidden")

    return notifications.mark_read(session, notif)
