"""
Rename and delete of a contract group.

A contract group is only a label, copied into Location.city,
ContractConfig.contract_group, ServiceRecord.contract_group and every
user's ``assignments`` entries. Renaming or deleting it touches all four, in
one transaction.
"""
from typing import Any, Dict, List, Tuple

from sqlalchemy import func
from sqlmodel import Session, select, update, delete

from .. import audit
from ..auth import verify_password
from ..crud import update_user_versioned
from ..database import atomic
from ..errors import AuthorizationError, ConflictError, ValidationError
from ..logger import logger
from ..models import ContractConfig, Location, ServiceRecord, User
from ..schemas import ContractGroupSummary, DeleteResult, RenameResult
from .locations import detach_locations


def _matches(entry: Any, name: str) -> bool:
    return isinstance(entry, dict) and entry.get("contractGroup") == name


def relabel_assignments(assignments: List[Any], old_name: str, new_name: str) -> Tuple[List[Any], bool]:
    """Replace the label in matching entries, keeping other keys and order."""
    changed = False
    result = []
    for entry in assignments:
        if _matches(entry, old_name):
            entry = {**entry, "contractGroup": new_name}
            changed = True
        result.append(entry)
    return result, changed


def strip_assignments(assignments: List[Any], name: str) -> Tuple[List[Any], bool]:
    """Drop matching entries, keeping the rest in order."""
    result = [entry for entry in assignments if not _matches(entry, name)]
    return result, len(result) != len(assignments)


def rename_contract_group(session: Session, old_name: str, new_name: Any, admin: User) -> RenameResult:
    if not isinstance(new_name, str) or not new_name.strip():
        raise ValidationError("The new contract group name is required")
    old_name = (old_name or "").strip()
    new_name = new_name.strip()
    if not old_name:
        raise ValidationError("The contract group name is required")

    if old_name == new_name:
        return RenameResult(
            message=f"Contract group '{old_name}' already has that name",
            old_name=old_name, new_name=new_name,
            locations=0, contract_configs=0, records=0, users=0,
        )

    with atomic(session):
        locations = session.exec(
            update(Location).where(Location.city == old_name).values(city=new_name)
        ).rowcount

        # contract_group é único: se o destino já tem configuração, ela prevalece
        target_config = session.exec(
            select(ContractConfig).where(ContractConfig.contract_group == new_name)
        ).first()
        if target_config is not None:
            configs = session.exec(
                delete(ContractConfig).where(ContractConfig.contract_group == old_name)
            ).rowcount
            if configs:
                logger.info(f"Rename '{old_name}' -> '{new_name}': kept existing config of '{new_name}'")
        else:
            configs = session.exec(
                update(ContractConfig)
                .where(ContractConfig.contract_group == old_name)
                .values(contract_group=new_name)
            ).rowcount

        records = session.exec(
            update(ServiceRecord)
            .where(ServiceRecord.contract_group == old_name)
            .values(contract_group=new_name)
        ).rowcount

        users = 0
        for user in session.exec(select(User)).all():
            assignments, changed = relabel_assignments(user.assignments or [], old_name, new_name)
            if changed:
                update_user_versioned(session, user, assignments=assignments)
                users += 1

        audit.log_action(
            session, admin, audit.RENAME_CONTRACT_GROUP,
            f"Grupo de contrato '{old_name}' renomeado para '{new_name}' "
            f"({locations} locais, {configs} configurações, {records} registros, {users} usuários)",
        )

    logger.info(f"Contract group '{old_name}' renamed to '{new_name}'")
    return RenameResult(
        message=f"Contract group '{old_name}' renamed to '{new_name}'",
        old_name=old_name, new_name=new_name,
        locations=locations, contract_configs=configs, records=records, users=users,
    )


def delete_contract_group(session: Session, name: str, password: str, admin_id: int) -> DeleteResult:
    name = (name or "").strip()
    if not name:
        raise ValidationError("The contract group name is required")
    if not password:
        raise ValidationError("The admin password is required")

    admin = session.get(User, admin_id)
    if not admin or not verify_password(password, admin.password_hash):
        raise AuthorizationError("Incorrect password")

    with atomic(session):
        # mesma transação da exclusão
        blocking = session.exec(
            select(func.count()).select_from(ServiceRecord).where(ServiceRecord.contract_group == name)
        ).one()
        if blocking > 0:
            raise ConflictError(
                f"Cannot delete contract group '{name}': it has {blocking} service records",
                blockingRecords=blocking,
            )

        locations = session.exec(select(Location).where(Location.city == name)).all()
        detach_locations(session, [loc.id for loc in locations])
        for loc in locations:
            session.delete(loc)

        configs = session.exec(
            delete(ContractConfig).where(ContractConfig.contract_group == name)
        ).rowcount

        users = 0
        for user in session.exec(select(User)).all():
            assignments, changed = strip_assignments(user.assignments or [], name)
            if changed:
                update_user_versioned(session, user, assignments=assignments)
                users += 1

        audit.log_action(
            session, admin, audit.DELETE_CONTRACT_GROUP,
            f"Grupo de contrato '{name}' excluído ({len(locations)} locais, {configs} configurações, "
            f"{users} usuários)",
        )

    logger.info(f"Contract group '{name}' deleted")
    return DeleteResult(
        message=f"Contract group '{name}' and its locations were deleted",
        locations=len(locations), contract_configs=configs, users=users,
    )


def list_contract_groups(session: Session) -> List[ContractGroupSummary]:
    summaries: Dict[str, ContractGroupSummary] = {}

    def _get(name: str) -> ContractGroupSummary:
        if name not in summaries:
            summaries[name] = ContractGroupSummary(name=name)
        return summaries[name]

    for city, count in session.exec(select(Location.city, func.count()).group_by(Location.city)).all():
        _get(city).locations = count
    for group, count in session.exec(
        select(ServiceRecord.contract_group, func.count())
        .where(ServiceRecord.contract_group.is_not(None))
        .group_by(ServiceRecord.contract_group)
    ).all():
        _get(group).records = count
    for config in session.exec(select(ContractConfig)).all():
        _get(config.contract_group).contract_configs += 1
    for user in session.exec(select(User)).all():
        groups = {e["contractGroup"] for e in (user.assignments or []) if isinstance(e, dict) and e.get("contractGroup")}
        for group in groups:
            _get(group).users += 1

    return [summaries[name] for name in sorted(summaries)]
