from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from sqlmodel import Session

from ..auth import get_current_user, require_admin
from ..database import get_session
from ..models import User
from ..schemas import MeasurementUpdate, RecordCreate, RecordRead, RecordUpdate
from ..services import records as svc

router = APIRouter(prefix="/api/records", tags=["records"])


@router.get("", response_model=List[RecordRead], dependencies=[Depends(get_current_user)])
def records_list(contract_group: Optional[str] = Query(None, alias="contractGroup"),
                 session: Session = Depends(get_session)):
    return svc.list_records(session, contract_group=contract_group)


@router.get("/{record_id}", response_model=RecordRead, dependencies=[Depends(get_current_user)])
def records_get(record_id: int, session: Session = Depends(get_session)):
    return svc.to_read(session, svc.get_record(session, record_id))


@router.post("", response_model=RecordRead, status_code=201)
def records_create(payload: RecordCreate, session: Session = Depends(get_session),
                   current: User = Depends(get_current_user)):
    return svc.create_record(session, payload, current)


@router.post("/{record_id}/photos", response_model=RecordRead, dependencies=[Depends(get_current_user)])
async def records_photos(
    record_id: int,
    phase: str = Form(...),
    files: List[UploadFile] = File(...),
    session: Session = Depends(get_session),
):
    return await svc.attach_photos(session, record_id, phase, files)


@router.put("/{record_id}", response_model=RecordRead)
def records_update(record_id: int, payload: RecordUpdate, session: Session = Depends(get_session),
                   admin: User = Depends(require_admin)):
    return svc.update_record(session, record_id, payload, admin)


@router.put("/{record_id}/measurement", response_model=RecordRead)
def records_measurement(record_id: int, payload: MeasurementUpdate, session: Session = Depends(get_session),
                        admin: User = Depends(require_admin)):
    return svc.override_measurement(session, record_id, payload, admin)


@router.delete("/{record_id}", status_code=204)
def records_delete(record_id: int, session: Session = Depends(get_session),
                   admin: User = Depends(require_admin)):
    svc.delete_record(session, record_id, admin)
    return Response(status_code=204)
