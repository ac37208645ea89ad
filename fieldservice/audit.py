"""
Audit trail for admin actions.
"""
from typing import Optional

from sqlmodel import Session

from .logger import logger
from .models import AuditLog, User

RENAME_CONTRACT_GROUP = "RENAME_CONTRACT_GROUP"
DELETE_CONTRACT_GROUP = "DELETE_CONTRACT_GROUP"
UPDATE_CONTRACT_CONFIGS = "UPDATE_CONTRACT_CONFIGS"
ADJUST_MEASUREMENT = "ADJUST_MEASUREMENT"
UPDATE_RECORD = "UPDATE_RECORD"
DELETE_RECORD = "DELETE_RECORD"
CREATE_LOCATION = "CREATE_LOCATION"
UPDATE_LOCATION = "UPDATE_LOCATION"
DELETE_LOCATION = "DELETE_LOCATION"
IMPORT_LOCATIONS = "IMPORT_LOCATIONS"
CREATE_USER = "CREATE_USER"
UPDATE_USER = "UPDATE_USER"
DELETE_USER = "DELETE_USER"


def log_action(
    session: Session,
    admin: Optional[User],
    action: str,
    details: str,
    record_id: Optional[int] = None,
) -> AuditLog:
    """
    Stage an audit entry on the session.

    Nothing is committed here: the entry belongs to the caller's transaction,
    so it is persisted together with the write it describes or not at all.
    """
    entry = AuditLog(
        admin_id=admin.id if admin else None,
        admin_username=admin.name if admin else None,
        action=action,
        record_id=record_id,
        details=details,
    )
    session.add(entry)
    logger.info(f"audit {action} by {entry.admin_username or '-'}: {details}")
    return entry
