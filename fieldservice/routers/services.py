from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy import func
from sqlmodel import Session, select

from ..auth import get_current_user, require_admin
from ..crud import get_service_by_name, list_services, save
from ..database import get_session
from ..errors import ConflictError, NotFoundError
from ..models import Goal, LocationService, Service, Unit
from ..schemas import ServiceCreate, ServiceRead, ServiceUpdate

router = APIRouter(prefix="/api/services", tags=["services"])


def _read(service: Service) -> ServiceRead:
    return ServiceRead.model_validate(service)


@router.get("", response_model=List[ServiceRead], dependencies=[Depends(get_current_user)])
def services_list(session: Session = Depends(get_session)):
    return [_read(s) for s in list_services(session)]


@router.post("", response_model=ServiceRead, status_code=201, dependencies=[Depends(require_admin)])
def services_create(payload: ServiceCreate, session: Session = Depends(get_session)):
    if get_service_by_name(session, payload.name):
        raise ConflictError(f"Service '{payload.name}' already exists")
    if not session.get(Unit, payload.unit_id):
        raise NotFoundError("Unit", payload.unit_id)
    return _read(save(session, Service(name=payload.name, unit_id=payload.unit_id)))


@router.put("/{service_id}", response_model=ServiceRead, dependencies=[Depends(require_admin)])
def services_update(service_id: int, payload: ServiceUpdate, session: Session = Depends(get_session)):
    service = session.get(Service, service_id)
    if not service:
        raise NotFoundError("Service", service_id)
    if payload.name is not None and payload.name != service.name:
        if get_service_by_name(session, payload.name):
            raise ConflictError(f"Service '{payload.name}' already exists")
        service.name = payload.name
    if payload.unit_id is not None:
        if not session.get(Unit, payload.unit_id):
            raise NotFoundError("Unit", payload.unit_id)
        service.unit_id = payload.unit_id
    return _read(save(session, service))


@router.delete("/{service_id}", status_code=204, dependencies=[Depends(require_admin)])
def services_delete(service_id: int, session: Session = Depends(get_session)):
    service = session.get(Service, service_id)
    if not service:
        raise NotFoundError("Service", service_id)
    locations = session.exec(
        select(func.count()).select_from(LocationService).where(LocationService.service_id == service_id)
    ).one()
    goals = session.exec(select(func.count()).select_from(Goal).where(Goal.service_id == service_id)).one()
    if locations or goals:
        raise ConflictError(
            f"Service is used by {locations} location(s) and {goals} goal(s)",
            blockingLocations=locations, blockingGoals=goals,
        )
    session.delete(service)
    session.commit()
    return Response(status_code=204)
