# agenda/deps.py

from fastapi import HTTPException
from sqlmodel import Session

from .models import Business


def require_role(user: dict, role: str):
    if user["role"] != role:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_business_or_404(session: Session, business_id: int) -> Business:
    business = session.get(Business, business_id)
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


def get_owned_business(session: Session, business_id: int, user: dict) -> Business:
    """The business, provided the current user is an owner and owns it."""
    require_role(user, "owner")
    business = get_business_or_404(session, business_id)
    if business.owner_id != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")
    return business
