"""
Service record lifecycle: creation (optionally with a brand new location),
photo evidence, admin edits, measurement override and deletion.
"""
from typing import List, Optional

from fastapi import UploadFile
from sqlmodel import Session, select

from .. import audit, storage
from ..auth import ADMIN
from ..database import atomic
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..logger import logger
from ..models import Location, Service, ServiceRecord, User, as_naive_utc, utcnow
from ..schemas import MeasurementUpdate, RecordCreate, RecordRead, RecordUpdate
from .locations import stage_location

PHASES = ("BEFORE", "AFTER")


def _observations(session: Session, rec: ServiceRecord) -> Optional[str]:
    if rec.location_id is None:
        return None
    loc = session.get(Location, rec.location_id)
    return loc.observations if loc else None


def to_read(session: Session, rec: ServiceRecord) -> RecordRead:
    return RecordRead.from_record(rec, observations=_observations(session, rec))


def get_record(session: Session, record_id: int) -> ServiceRecord:
    rec = session.get(ServiceRecord, record_id)
    if not rec:
        raise NotFoundError("Record", record_id)
    return rec


def list_records(session: Session, contract_group: Optional[str] = None) -> List[RecordRead]:
    stmt = select(ServiceRecord).order_by(ServiceRecord.start_time.desc(), ServiceRecord.id.desc())
    if contract_group:
        stmt = stmt.where(ServiceRecord.contract_group == contract_group)
    records = session.exec(stmt).all()

    location_ids = {r.location_id for r in records if r.location_id is not None}
    observations = {}
    if location_ids:
        for loc in session.exec(select(Location).where(Location.id.in_(location_ids))).all():
            observations[loc.id] = loc.observations
    return [RecordRead.from_record(r, observations.get(r.location_id)) for r in records]


def create_record(session: Session, payload: RecordCreate, current: User) -> RecordRead:
    operator_id = payload.operator_id if payload.operator_id is not None else current.id
    if current.role != ADMIN and operator_id != current.id:
        raise AuthorizationError("Operators can only create their own records")

    with atomic(session):
        operator = session.get(User, operator_id)
        if not operator:
            raise NotFoundError("Operator", operator_id)
        service = session.get(Service, payload.service_id)
        if not service:
            raise NotFoundError("Service", payload.service_id)

        location_id = payload.location_id
        location_name = payload.location_name
        contract_group = payload.contract_group
        if payload.new_location_info is not None:
            loc = stage_location(session, payload.new_location_info)
            location_id = loc.id
            location_name = location_name or loc.name
            contract_group = contract_group or loc.city
            logger.info(f"Location {loc.id} '{loc.name}' created inline by {current.email}")
        elif location_id is not None:
            if not session.get(Location, location_id):
                raise NotFoundError("Location", location_id)

        rec = ServiceRecord(
            operator_id=operator.id,
            operator_name=operator.name,
            service_id=service.id,
            service_type=payload.service_type or service.name,
            service_unit=payload.service_unit or (service.unit.symbol if service.unit else None),
            contract_group=contract_group,
            location_id=location_id,
            location_name=location_name,
            location_area=payload.location_area,
            gps_used=payload.gps_used,
            start_time=as_naive_utc(payload.start_time) or utcnow(),
        )
        session.add(rec)

    session.refresh(rec)
    logger.info(f"Record {rec.id} created for operator {operator_id}")
    return to_read(session, rec)


async def attach_photos(session: Session, record_id: int, phase: str, files: List[UploadFile]) -> RecordRead:
    """
    Store the uploads, then append them to the record's phase list. If the
    record does not exist the files written by this call are removed again.
    """
    phase = (phase or "").strip().upper()
    if phase not in PHASES:
        raise ValidationError("phase must be BEFORE or AFTER")
    if not files:
        raise ValidationError("No files sent")

    saved: List[str] = []
    try:
        for f in files:
            saved.append(await storage.save_photo(f))
    except Exception:
        storage.delete_photos(saved)
        raise

    try:
        with atomic(session):
            # row lock + fresh read: the photo lists are rewritten whole
            rec = session.exec(
                select(ServiceRecord)
                .where(ServiceRecord.id == record_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).first()
            if not rec:
                raise NotFoundError("Record", record_id)
            if phase == "BEFORE":
                rec.before_photos = [*(rec.before_photos or []), *saved]
            else:
                rec.after_photos = [*(rec.after_photos or []), *saved]
                # foto "depois" = serviço concluído
                rec.end_time = utcnow()
            session.add(rec)
    except Exception:
        orphans = storage.delete_photos(saved)
        if orphans:
            logger.error(f"Could not clean up uploads for record {record_id}: {orphans}")
        raise

    session.refresh(rec)
    logger.info(f"Record {record_id}: {len(saved)} {phase} photo(s) attached")
    return to_read(session, rec)


def update_record(session: Session, record_id: int, payload: RecordUpdate, admin: User) -> RecordRead:
    data = payload.model_dump(exclude_unset=True)
    if "gps_used" in data and data["gps_used"] is None:
        raise ValidationError("gpsUsed cannot be null")
    with atomic(session):
        rec = get_record(session, record_id)
        previous = set(rec.before_photos or []) | set(rec.after_photos or [])
        for k, v in data.items():
            if k in ("start_time", "end_time"):
                v = as_naive_utc(v)
            elif k in ("before_photos", "after_photos") and v is None:
                v = []
            setattr(rec, k, v)
        session.add(rec)
        audit.log_action(
            session, admin, audit.UPDATE_RECORD,
            f"Registro {record_id} atualizado: {', '.join(sorted(data)) or 'nenhum campo'}",
            record_id=record_id,
        )

    session.refresh(rec)
    removed = previous - set(rec.before_photos or []) - set(rec.after_photos or [])
    if removed:
        storage.delete_photos(sorted(removed))
    return to_read(session, rec)


def _fmt(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:g}"


def override_measurement(session: Session, record_id: int, payload: MeasurementUpdate, admin: User) -> RecordRead:
    with atomic(session):
        rec = get_record(session, record_id)
        old_effective = rec.effective_measurement
        rec.override_measurement = payload.override_measurement
        new_effective = rec.effective_measurement
        session.add(rec)
        audit.log_action(
            session, admin, audit.ADJUST_MEASUREMENT,
            f"Medição do registro {record_id} ajustada de {_fmt(old_effective)} para {_fmt(new_effective)}",
            record_id=record_id,
        )
    session.refresh(rec)
    return to_read(session, rec)


def delete_record(session: Session, record_id: int, admin: User) -> None:
    rec = get_record(session, record_id)
    photos = [*(rec.before_photos or []), *(rec.after_photos or [])]
    failed = storage.delete_photos(photos)
    if failed:
        logger.warning(f"Record {record_id}: {len(failed)} photo file(s) could not be removed")

    details = (
        f"Registro {record_id} excluído ({rec.service_type or '-'} em {rec.location_name or '-'}, "
        f"{rec.contract_group or '-'}, operador {rec.operator_name or '-'}, {len(photos)} fotos)"
    )
    with atomic(session):
        session.delete(rec)
        audit.log_action(session, admin, audit.DELETE_RECORD, details, record_id=record_id)
