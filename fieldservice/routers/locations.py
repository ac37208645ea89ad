from typing import List

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlmodel import Session

from ..auth import get_current_user, require_admin
from ..database import get_session
from ..errors import ValidationError
from ..models import User
from ..schemas import ImportReport, LocationCreate, LocationNode, LocationRead, LocationUpdate
from ..services import locations as svc
from ..services.location_import import import_locations, parse_bytes

router = APIRouter(prefix="/api/locations", tags=["locations"])


@router.get("", response_model=List[LocationRead], dependencies=[Depends(get_current_user)])
def locations_list(session: Session = Depends(get_session)):
    return svc.list_locations(session)


@router.get("/tree", response_model=List[LocationNode], dependencies=[Depends(get_current_user)])
def locations_tree(session: Session = Depends(get_session)):
    return svc.build_tree(session)


@router.post("/import", response_model=ImportReport)
async def locations_import(file: UploadFile = File(...), session: Session = Depends(get_session),
                           admin: User = Depends(require_admin)):
    data = await file.read()
    if not data:
        raise ValidationError("Empty file")
    try:
        rows = parse_bytes(data)
    except UnicodeDecodeError:
        raise ValidationError("File must be UTF-8 encoded CSV")
    return import_locations(session, rows, admin=admin)


@router.get("/{location_id}", response_model=LocationRead, dependencies=[Depends(get_current_user)])
def locations_get(location_id: int, session: Session = Depends(get_session)):
    return LocationRead.from_location(svc.get_location(session, location_id))


@router.post("", response_model=LocationRead, status_code=201)
def locations_create(payload: LocationCreate, session: Session = Depends(get_session),
                     admin: User = Depends(require_admin)):
    return svc.create_location(session, payload, admin=admin)


@router.put("/{location_id}", response_model=LocationRead)
def locations_update(location_id: int, payload: LocationUpdate, session: Session = Depends(get_session),
                     admin: User = Depends(require_admin)):
    return svc.update_location(session, location_id, payload, admin=admin)


@router.delete("/{location_id}", status_code=204)
def locations_delete(location_id: int, session: Session = Depends(get_session),
                     admin: User = Depends(require_admin)):
    svc.delete_location(session, location_id, admin=admin)
    return Response(status_code=204)
