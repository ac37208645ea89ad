from typing import Any, Dict, List, Optional
from sqlmodel import Session, select, update
from .errors import ConflictError
from .models import User, Unit, Service, Goal, ContractConfig, AuditLog, utcnow

def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()

def create_user(session: Session, email: str, name: str, role: str, password_hash: str,
                assignments: Optional[List[Dict[str, Any]]] = None) -> User:
    user = User(email=email, name=name, role=role, password_hash=password_hash,
                assignments=assignments or [])
    session.add(user)
    session.commit()
    session.refresh(user)
    return user

def list_users(session: Session) -> List[User]:
    return session.exec(select(User).order_by(User.id.desc())).all()

def update_user_versioned(session: Session, user: User, **values: Any) -> None:
    """
    Compare-and-set write of a user row: only applies if ``version`` still
    matches what was loaded, and bumps it. Does not commit.

    ``assignments`` is a JSON document that is always rewritten whole, so two
    concurrent edits would otherwise silently lose one of them.
    """
    expected = user.version
    values.update(version=expected + 1, updated_at=utcnow())
    result = session.exec(
        update(User)
        .where(User.id == user.id, User.version == expected)
        .values(**values)
    )
    if result.rowcount != 1:
        raise ConflictError(f"User {user.id} was modified concurrently, try again")

def list_units(session: Session) -> List[Unit]:
    return session.exec(select(Unit).order_by(Unit.name)).all()

def list_services(session: Session) -> List[Service]:
    return session.exec(select(Service).order_by(Service.name)).all()

def get_service_by_name(session: Session, name: str) -> Optional[Service]:
    return session.exec(select(Service).where(Service.name == name)).first()

def list_goals(session: Session) -> List[Goal]:
    return session.exec(select(Goal).order_by(Goal.month.desc(), Goal.id.desc())).all()

def list_contract_configs(session: Session) -> List[ContractConfig]:
    return session.exec(select(ContractConfig).order_by(ContractConfig.contract_group)).all()

def list_audit_logs(session: Session) -> List[AuditLog]:
    return session.exec(select(AuditLog).order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())).all()

def save(session: Session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj

def ensure_admin(session: Session, email: str, password_hash: str) -> User:
    """Create the bootstrap admin, or reset its password and role if it exists."""
    user = get_user_by_email(session, email)
    if user:
        user.password_hash = password_hash
        user.role = "ADMIN"
        return save(session, user)
    return create_user(session, email, name="Admin", role="ADMIN", password_hash=password_hash)
