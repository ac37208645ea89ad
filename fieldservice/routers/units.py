from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy import func
from sqlmodel import Session, select

from ..auth import get_current_user, require_admin
from ..crud import list_units, save
from ..database import get_session
from ..errors import ConflictError, NotFoundError
from ..models import Service, Unit
from ..schemas import UnitCreate, UnitRead

router = APIRouter(prefix="/api/units", tags=["units"])


@router.get("", response_model=List[UnitRead], dependencies=[Depends(get_current_user)])
def units_list(session: Session = Depends(get_session)):
    return list_units(session)


@router.post("", response_model=UnitRead, status_code=201, dependencies=[Depends(require_admin)])
def units_create(payload: UnitCreate, session: Session = Depends(get_session)):
    return save(session, Unit(name=payload.name, symbol=payload.symbol))


@router.put("/{unit_id}", response_model=UnitRead, dependencies=[Depends(require_admin)])
def units_update(unit_id: int, payload: UnitCreate, session: Session = Depends(get_session)):
    unit = session.get(Unit, unit_id)
    if not unit:
        raise NotFoundError("Unit", unit_id)
    unit.name = payload.name
    unit.symbol = payload.symbol
    return save(session, unit)


@router.delete("/{unit_id}", status_code=204, dependencies=[Depends(require_admin)])
def units_delete(unit_id: int, session: Session = Depends(get_session)):
    unit = session.get(Unit, unit_id)
    if not unit:
        raise NotFoundError("Unit", unit_id)
    in_use = session.exec(select(func.count()).select_from(Service).where(Service.unit_id == unit_id)).one()
    if in_use > 0:
        raise ConflictError(f"Unit is used by {in_use} service(s)", blockingServices=in_use)
    session.delete(unit)
    session.commit()
    return Response(status_code=204)
