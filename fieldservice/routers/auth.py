import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlmodel import Session, select

from .. import config, mailer
from ..auth import create_access_token, get_current_user, hash_password, verify_password
from ..crud import get_user_by_email, update_user_versioned
from ..database import atomic, get_session
from ..errors import AuthenticationError, ValidationError
from ..logger import logger
from ..models import User, utcnow
from ..schemas import ForgotPasswordRequest, MessageResponse, ResetPasswordRequest, Token, UserBrief, UserRead

router = APIRouter(prefix="/api/auth", tags=["auth"])

GENERIC_FORGOT_MESSAGE = "If the e-mail exists, instructions have been sent."


# Aceita JSON, form-data, x-www-form-urlencoded, ou query params.
@router.post("/login", response_model=Token)
async def login_any(
    request: Request,
    session: Session = Depends(get_session),
    q_email: Optional[str] = Query(default=None),
    q_password: Optional[str] = Query(default=None),
):
    email = None
    password = None

    # 1) JSON
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            email = data.get("email") or data.get("username")
            password = data.get("password")

    # 2) form (multipart ou x-www-form-urlencoded)
    if (email is None or password is None) and request.headers.get("content-type", "").startswith(
        ("multipart/form-data", "application/x-www-form-urlencoded")
    ):
        form = await request.form()
        email = email or form.get("email") or form.get("username")
        password = password or form.get("password")

    # 3) query params
    email = email or q_email
    password = password or q_password

    if not email or not password:
        raise ValidationError("email and password are required")

    user = get_user_by_email(session, str(email).strip())
    if not user or not verify_password(str(password), user.password_hash):
        logger.info(f"Failed login for {email}")
        raise AuthenticationError("Invalid credentials")

    token = create_access_token({"sub": str(user.id), "role": user.role})
    return Token(access_token=token, user=UserBrief.model_validate(user))


# Quem sou eu
@router.get("/me", response_model=UserRead)
def auth_me(current: User = Depends(get_current_user)):
    return UserRead.model_validate(current)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest, session: Session = Depends(get_session)):
    email = payload.email.strip()
    if not email:
        raise ValidationError("A valid e-mail is required")

    user = get_user_by_email(session, email)
    if not user:
        # resposta genérica (não revela se existe)
        return MessageResponse(message=GENERIC_FORGOT_MESSAGE)

    token = secrets.token_hex(32)
    with atomic(session):
        update_user_versioned(
            session, user,
            reset_token=token,
            reset_token_expires=utcnow() + timedelta(minutes=config.RESET_TOKEN_EXPIRE_MINUTES),
        )
    mailer.send_password_reset(email, token)
    return MessageResponse(message=GENERIC_FORGOT_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, session: Session = Depends(get_session)):
    if not payload.token or not payload.password:
        raise ValidationError("Token and new password are required")

    user = session.exec(
        select(User).where(User.reset_token == payload.token, User.reset_token_expires > utcnow())
    ).first()
    if not user:
        raise ValidationError("Invalid or expired token")

    with atomic(session):
        update_user_versioned(
            session, user,
            password_hash=hash_password(payload.password),
            reset_token=None,
            reset_token_expires=None,
        )
    logger.info(f"Password reset for user {user.id}")
    return MessageResponse(message="Password reset successfully.")
