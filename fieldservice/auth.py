"""
Password hashing, JWT issuing and the FastAPI dependencies that resolve the
current user.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlmodel import Session

from . import config
from .database import get_session
from .errors import AuthenticationError, AuthorizationError
from .logger import logger
from .models import User

# auto_error=False: missing header becomes our 401 instead of FastAPI's default
security = HTTPBearer(auto_error=False)

ADMIN = "ADMIN"
OPERATOR = "OPERATOR"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password or not hashed_password.startswith(("$2a$", "$2b$", "$2y$")):
        logger.warning("Stored password hash is not bcrypt; refusing")
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as e:
        logger.debug(f"JWT decode failed: {e}")
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    session: Session = Depends(get_session),
) -> User:
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise AuthenticationError()

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError()

    user = session.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user


def require_admin(current: User = Depends(get_current_user)) -> User:
    if current.role != ADMIN:
        raise AuthorizationError("Admin only")
    return current
