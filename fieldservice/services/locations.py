"""
Location hierarchy: group locations (neighborhoods) with member locations
(streets) underneath, each carrying a set of service measurements.
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import selectinload
from sqlmodel import Session, select, update, delete

from .. import audit
from ..database import atomic
from ..errors import NotFoundError, ValidationError
from ..logger import logger
from ..models import Location, LocationService, Service, ServiceRecord, User
from ..schemas import LocationCreate, LocationNode, LocationRead, LocationServiceIn, LocationUpdate


def _with_services():
    return selectinload(Location.services).selectinload(LocationService.service).selectinload(Service.unit)


def list_locations(session: Session) -> List[LocationRead]:
    locations = session.exec(
        select(Location).options(_with_services()).order_by(Location.name, Location.id)
    ).all()
    return [LocationRead.from_location(loc) for loc in locations]


def get_location(session: Session, location_id: int) -> Location:
    loc = session.get(Location, location_id)
    if not loc:
        raise NotFoundError("Location", location_id)
    return loc


def build_tree(session: Session) -> List[LocationNode]:
    """
    Groups with their members nested under ``children``. Members whose group
    is missing (or is not a group) and standalone locations stay at the top.
    """
    locations = session.exec(
        select(Location).options(_with_services()).order_by(Location.name, Location.id)
    ).all()
    by_id = {loc.id: loc for loc in locations}
    nodes: Dict[int, LocationNode] = {}
    for loc in locations:
        parent = by_id.get(loc.parent_id) if loc.parent_id is not None else None
        mismatch = parent is not None and parent.city != loc.city
        nodes[loc.id] = LocationNode.from_location(loc, city_mismatch=mismatch)

    roots: List[LocationNode] = []
    for loc in locations:
        parent = by_id.get(loc.parent_id) if loc.parent_id is not None else None
        if parent is not None and parent.is_group and not loc.is_group:
            nodes[parent.id].children.append(nodes[loc.id])
        else:
            roots.append(nodes[loc.id])
    return roots


def _check_hierarchy(session: Session, city: str, is_group: bool, parent_id: Optional[int],
                     self_id: Optional[int] = None) -> None:
    if is_group and parent_id is not None:
        raise ValidationError("A group location cannot have a parent")
    if parent_id is None:
        return
    if self_id is not None and parent_id == self_id:
        raise ValidationError("A location cannot be its own parent")
    parent = session.get(Location, parent_id)
    if not parent:
        raise NotFoundError("Parent location", parent_id)
    if not parent.is_group:
        raise ValidationError(f"Location {parent_id} is not a group location")
    if parent.city != city:
        # tolerado, apenas sinalizado
        logger.warning(
            f"Location '{city}' placed under group {parent_id} of contract group '{parent.city}'"
        )


def _build_services(session: Session, items: Iterable[LocationServiceIn]) -> List[LocationService]:
    rows = []
    seen = set()
    for item in items:
        if item.service_id in seen:
            raise ValidationError(f"Service {item.service_id} listed more than once")
        seen.add(item.service_id)
        if not session.get(Service, item.service_id):
            raise NotFoundError("Service", item.service_id)
        rows.append(LocationService(service_id=item.service_id, measurement=item.measurement))
    return rows


def stage_location(session: Session, payload: LocationCreate) -> Location:
    """Validate and add a new location with its measurements; no commit."""
    city = payload.contract_group.strip()
    if not city:
        raise ValidationError("contractGroup is required")
    _check_hierarchy(session, city, payload.is_group, payload.parent_id)
    loc = Location(
        city=city,
        name=payload.name.strip(),
        lat=payload.lat,
        lng=payload.lng,
        observations=payload.observations,
        is_group=payload.is_group,
        parent_id=payload.parent_id,
    )
    loc.services = _build_services(session, payload.services)
    session.add(loc)
    session.flush()
    return loc


def create_location(session: Session, payload: LocationCreate, admin: Optional[User] = None) -> LocationRead:
    with atomic(session):
        loc = stage_location(session, payload)
        audit.log_action(session, admin, audit.CREATE_LOCATION, f"Local '{loc.name}' ({loc.city}) criado")
    session.refresh(loc)
    return LocationRead.from_location(loc)


def update_location(session: Session, location_id: int, payload: LocationUpdate,
                    admin: Optional[User] = None) -> LocationRead:
    """Scalar fields are patched; ``services``, when sent, replaces the whole set."""
    with atomic(session):
        loc = get_location(session, location_id)
        data = payload.model_dump(exclude_unset=True, exclude={"services"})
        if "is_group" in data and data["is_group"] is None:
            raise ValidationError("isGroup cannot be null")
        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                raise ValidationError("name is required")
            data["name"] = name
        if "contract_group" in data:
            city = (data.pop("contract_group") or "").strip()
            if not city:
                raise ValidationError("contractGroup is required")
            loc.city = city
        for k, v in data.items():
            setattr(loc, k, v)
        _check_hierarchy(session, loc.city, loc.is_group, loc.parent_id, self_id=loc.id)

        if payload.services is not None:
            new_rows = _build_services(session, payload.services)
            session.exec(delete(LocationService).where(LocationService.location_id == loc.id))
            # as linhas antigas precisam sair antes das novas (unique location/service)
            session.flush()
            session.expire(loc, ["services"])
            for row in new_rows:
                row.location_id = loc.id
                session.add(row)

        session.add(loc)
        audit.log_action(session, admin, audit.UPDATE_LOCATION, f"Local {loc.id} '{loc.name}' atualizado")
    session.refresh(loc)
    return LocationRead.from_location(loc)


def detach_locations(session: Session, location_ids: List[int]) -> None:
    """
    Clear every reference to the given locations from records and child
    locations so the rows can be removed.
    """
    if not location_ids:
        return
    session.exec(
        update(ServiceRecord)
        .where(ServiceRecord.location_id.in_(location_ids))
        .values(location_id=None)
    )
    session.exec(
        update(Location)
        .where(Location.parent_id.in_(location_ids))
        .values(parent_id=None)
    )


def delete_location(session: Session, location_id: int, admin: Optional[User] = None) -> None:
    with atomic(session):
        loc = get_location(session, location_id)
        name = loc.name
        detach_locations(session, [loc.id])
        session.delete(loc)
        audit.log_action(session, admin, audit.DELETE_LOCATION, f"Local {location_id} '{name}' excluído")
