from typing import List

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, update

from .. import audit
from ..auth import hash_password, require_admin
from ..crud import get_user_by_email, list_users, update_user_versioned
from ..database import atomic, get_session
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import ServiceRecord, User
from ..schemas import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[UserRead], dependencies=[Depends(require_admin)])
def users_list(session: Session = Depends(get_session)):
    return [UserRead.model_validate(u) for u in list_users(session)]


@router.post("", response_model=UserRead, status_code=201)
def users_create(payload: UserCreate, session: Session = Depends(get_session),
                 admin: User = Depends(require_admin)):
    if get_user_by_email(session, payload.email):
        raise ConflictError("Email already exists")
    if not payload.password.strip():
        raise ValidationError("Password is required")
    with atomic(session):
        user = User(
            email=payload.email,
            name=payload.name,
            role=payload.role,
            password_hash=hash_password(payload.password),
            assignments=[a.model_dump(by_alias=True) for a in payload.assignments],
        )
        session.add(user)
        session.flush()
        audit.log_action(session, admin, audit.CREATE_USER, f"Usuário {user.email} ({user.role}) criado")
    session.refresh(user)
    return UserRead.model_validate(user)


@router.put("/{user_id}", response_model=UserRead)
def users_update(user_id: int, payload: UserUpdate, session: Session = Depends(get_session),
                 admin: User = Depends(require_admin)):
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)

    # Atualiza campos básicos
    values = {}
    if payload.name is not None:
        values["name"] = payload.name
    if payload.email is not None and payload.email != user.email:
        if get_user_by_email(session, payload.email):
            raise ConflictError("Email already exists")
        values["email"] = payload.email
    if payload.role is not None:
        values["role"] = payload.role
    if payload.password is not None and payload.password.strip():
        values["password_hash"] = hash_password(payload.password)
    if payload.assignments is not None:
        values["assignments"] = [a.model_dump(by_alias=True) for a in payload.assignments]

    if values:
        with atomic(session):
            update_user_versioned(session, user, **values)
            changed = ", ".join(sorted(k for k in values if k != "password_hash"))
            if "password_hash" in values:
                changed = f"{changed}, password" if changed else "password"
            audit.log_action(session, admin, audit.UPDATE_USER, f"Usuário {user_id} atualizado: {changed}")
        session.refresh(user)
    return UserRead.model_validate(user)


@router.delete("/{user_id}", status_code=204)
def users_delete(user_id: int, session: Session = Depends(get_session),
                 admin: User = Depends(require_admin)):
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    if user.id == admin.id:
        raise ValidationError("You cannot delete your own account")
    email = user.email
    with atomic(session):
        # registros mantêm operator_name
        session.exec(
            update(ServiceRecord).where(ServiceRecord.operator_id == user_id).values(operator_id=None)
        )
        session.delete(user)
        audit.log_action(session, admin, audit.DELETE_USER, f"Usuário {user_id} ({email}) excluído")
    return Response(status_code=204)
