# agenda/routers/users_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from agenda.db import get_session
from agenda.models import User
from agenda.schemas import UserCreate, UserPublic
from agenda.auth import get_current_user, hash_password

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    # 1) Check if email already exists
    existing = session.exec(
        select(User).where(User.email == user.email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # 2) Create user in DB
    db_user = User(
        email=user.email,
        password_hash=hash_password(user.password),
        role=user.role.value,
        full_name=user.full_name,
        phone=user.phone,
    )

    session.add(db_user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    session.refresh(db_user)  # fills db_user.id
    logger.info(f"User {db_user.id} registered as {db_user.role}")
    return db_user
