# agenda/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from agenda.db import get_session
from agenda.models import User
from agenda.schemas import Token
from agenda.auth import verify_password, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # OAuth2 form field is "username"; accounts are keyed by email
    user = session.exec(
        select(User).where(User.email == form_data.username)
    ).first()

    if user is None or not verify_password(form_data.password, user.password_hash):
        logger.info(f"Failed login for {form_data.username}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(user)
    logger.debug(f"Issued token for user {user.id}")
    return {"access_token": token, "token_type": "bearer"}