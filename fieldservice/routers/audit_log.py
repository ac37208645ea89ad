from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import audit
from ..auth import require_admin
from ..crud import list_audit_logs
from ..database import atomic, get_session
from ..models import User
from ..schemas import AuditLogCreate, AuditLogRead

router = APIRouter(prefix="/api/auditlog", tags=["auditlog"])


@router.get("", response_model=List[AuditLogRead], dependencies=[Depends(require_admin)])
def auditlog_list(session: Session = Depends(get_session)):
    return list_audit_logs(session)


@router.post("", response_model=AuditLogRead, status_code=201)
def auditlog_create(payload: AuditLogCreate, session: Session = Depends(get_session),
                    admin: User = Depends(require_admin)):
    with atomic(session):
        entry = audit.log_action(session, admin, payload.action, payload.details, record_id=payload.record_id)
    session.refresh(entry)
    return entry
