"""
Bulk import of the neighborhood/street hierarchy from a CSV export.

The import is destructive: every location is removed and the tree is rebuilt
from the file, so running it twice on the same file gives the same result.
"""
import csv
import io
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, TextIO, Tuple

from sqlmodel import Session, select, update, delete

from .. import audit
from ..database import atomic
from ..logger import logger
from ..models import Location, LocationService, ServiceRecord, User
from ..schemas import ImportReport

# accepted header spellings -> canonical column
COLUMN_ALIASES = {
    "city": "city",
    "cidade": "city",
    "bairro": "group",
    "group": "group",
    "rua": "member",
    "member": "member",
    "lat": "lat",
    "lng": "lng",
    "observations": "observations",
    "observacoes": "observations",
    "observações": "observations",
}


@dataclass
class ImportRow:
    line: int
    city: str
    group: str
    member: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    observations: Optional[str] = None


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        return float(value.strip().replace(",", "."))
    except ValueError:
        return None


def parse_rows(stream: TextIO) -> List[ImportRow]:
    reader = csv.DictReader(stream)
    rows = []
    # line 1 is the header
    for line, raw in enumerate(reader, start=2):
        row = {}
        for key, value in raw.items():
            if key is None:
                continue
            column = COLUMN_ALIASES.get(key.strip().lower())
            if column:
                row[column] = (value or "").strip()
        rows.append(ImportRow(
            line=line,
            city=row.get("city", ""),
            group=row.get("group", ""),
            member=row.get("member", ""),
            lat=_to_float(row.get("lat")),
            lng=_to_float(row.get("lng")),
            observations=row.get("observations") or None,
        ))
    return rows


def parse_bytes(data: bytes) -> List[ImportRow]:
    # planilhas exportadas do Excel costumam vir com BOM
    return parse_rows(io.StringIO(data.decode("utf-8-sig")))


def import_locations(session: Session, rows: Iterable[ImportRow], admin: Optional[User] = None) -> ImportReport:
    rows = list(rows)
    report = ImportReport()

    with atomic(session):
        existing = len(session.exec(select(Location.id)).all())
        session.exec(
            update(ServiceRecord).where(ServiceRecord.location_id.is_not(None)).values(location_id=None)
        )
        session.exec(update(Location).values(parent_id=None))
        session.exec(delete(LocationService))
        session.exec(delete(Location))
        logger.info(f"Import: removed {existing} existing locations")

        # pass 1: groups, one per (city, group)
        group_ids: Dict[Tuple[str, str], int] = {}
        for row in rows:
            if not row.group or row.member:
                continue
            key = (row.city, row.group)
            if key in group_ids:
                continue
            group = Location(
                city=row.city,
                name=row.group,
                lat=row.lat,
                lng=row.lng,
                observations=row.observations,
                is_group=True,
                parent_id=None,
            )
            session.add(group)
            session.flush()
            group_ids[key] = group.id
            report.groups_created += 1

        # pass 2: members under their group
        for row in rows:
            if not row.group:
                if row.member or row.city:
                    report.warnings.append(f"line {row.line}: no group label, skipped")
                continue
            if not row.member:
                continue
            parent_id = group_ids.get((row.city, row.group))
            if parent_id is None:
                msg = f"line {row.line}: member '{row.member}' has no group '{row.group}' in '{row.city}', skipped"
                logger.warning(f"Import: {msg}")
                report.warnings.append(msg)
                continue
            session.add(Location(
                city=row.city,
                name=row.member,
                lat=row.lat,
                lng=row.lng,
                observations=row.observations,
                is_group=False,
                parent_id=parent_id,
            ))
            report.members_created += 1

        audit.log_action(
            session, admin, audit.IMPORT_LOCATIONS,
            f"Importação de locais: {report.groups_created} grupos, {report.members_created} membros, "
            f"{len(report.warnings)} avisos",
        )

    logger.info(
        f"Import finished: {report.groups_created} groups, {report.members_created} members, "
        f"{len(report.warnings)} warnings"
    )
    return report
