from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field, Relationship, Column, JSON, UniqueConstraint


def utcnow() -> datetime:
    # naive UTC, same as what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str
    role: str = Field(default="OPERATOR")  # ADMIN, OPERATOR
    password_hash: str
    reset_token: Optional[str] = Field(default=None, index=True)
    reset_token_expires: Optional[datetime] = None
    # [{"contractGroup": "...", ...}] - qualquer outra chave é preservada
    assignments: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Unit(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    symbol: str

    services: List["Service"] = Relationship(back_populates="unit")


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    unit_id: int = Field(foreign_key="unit.id")

    unit: Optional[Unit] = Relationship(back_populates="services")


class Location(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    city: str = Field(index=True)  # contract group label
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    observations: Optional[str] = None
    is_group: bool = Field(default=False)
    parent_id: Optional[int] = Field(default=None, foreign_key="location.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)

    services: List["LocationService"] = Relationship(
        back_populates="location",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class LocationService(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("location_id", "service_id", name="uq_location_service"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    location_id: int = Field(foreign_key="location.id", index=True)
    service_id: int = Field(foreign_key="service.id")
    measurement: float

    location: Optional[Location] = Relationship(back_populates="services")
    service: Optional[Service] = Relationship()


class ServiceRecord(SQLModel, table=True):
    __tablename__ = "record"

    id: Optional[int] = Field(default=None, primary_key=True)
    operator_id: Optional[int] = Field(default=None, foreign_key="user.id")
    operator_name: Optional[str] = None
    service_id: Optional[int] = Field(default=None, foreign_key="service.id")
    service_type: Optional[str] = None
    service_unit: Optional[str] = None
    contract_group: Optional[str] = Field(default=None, index=True)
    location_id: Optional[int] = Field(default=None, foreign_key="location.id")
    location_name: Optional[str] = None
    location_area: Optional[float] = None  # m² ou m linear
    override_measurement: Optional[float] = None
    gps_used: bool = True
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    before_photos: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    after_photos: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def effective_measurement(self) -> Optional[float]:
        if self.override_measurement is not None:
            return self.override_measurement
        return self.location_area


class ContractConfig(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    contract_group: str = Field(index=True, unique=True)
    cycle_start_day: int = Field(default=1)


class Goal(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    contract_group: str = Field(index=True)
    month: str  # YYYY-MM
    target_area: float
    service_id: int = Field(foreign_key="service.id")

    service: Optional[Service] = Relationship()


class AuditLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    admin_id: Optional[int] = None
    admin_username: Optional[str] = None
    action: str = Field(index=True)
    record_id: Optional[int] = None
    details: str
    timestamp: datetime = Field(default_factory=utcnow, index=True)
