# chartjournal/auth.py
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from . import models

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 200_000


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password or hashed_password.count(":") != 2:
        return False

    algo, salt, stored_hash = hashed_password.split(":", 2)
    if algo != "pbkdf2_sha256":
        return False

    computed_hash = hashlib.pbkdf2_hmac(
        "sha256", plain_password.encode(), salt.encode(), PBKDF2_ITERATIONS
    ).hex()
    return hmac.compare_digest(stored_hash, computed_hash)


def get_password_hash(password: str) -> str:
    salt = secrets.token_hex(16)
    hex_hash = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS).hex()
    return f"pbkdf2_sha256:{salt}:{hex_hash}"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: str = "access") -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.debug("Rejected token: %s", e)
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def _token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get("access_token")


def get_current_user_optional(request: Request, db: Session = Depends(get_db)) -> Optional[models.User]:
    """Resolve the user from the bearer header or the access_token cookie"""
    token = _token_from_request(request)
    if not token:
        return None

    payload = verify_token(token)
    if not payload or not payload.get("sub"):
        return None

    user = db.query(models.User).filter(models.User.id == payload["sub"]).first()
    if not user or not user.is_active:
        return None
    return user


def get_current_user(user: Optional[models.User] = Depends(get_current_user_optional)) -> models.User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
