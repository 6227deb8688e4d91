# agenda/auth.py

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session, select

from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from .db import get_session
from .models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user: User, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Signed bearer token carrying the user's email and role."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    claims = {"sub": user.email, "role": user.role, "exp": expire}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        raise _unauthorized("Invalid token")

    if claims.get("sub") is None:
        raise _unauthorized("Invalid token")
    return claims


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    claims = decode_access_token(token)

    user = session.exec(
        select(User).where(User.email == claims["sub"])
    ).first()
    if user is None:
        raise _unauthorized("User not found")

    # tokens issued before a role change are stale
    if claims.get("role") not in (None, user.role):
        raise _unauthorized("Invalid token")

    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "full_name": user.full_name,
        "phone": user.phone,
    }
