from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import Location, ServiceRecord

DELETED_OPERATOR_NAME = "Operador Deletado"


class APIModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(BaseModel):
    message: str


# ==== Auth ====
class UserBrief(APIModel):
    id: int
    email: str
    name: str
    role: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserBrief] = None

class ForgotPasswordRequest(BaseModel):
    email: str

class ResetPasswordRequest(BaseModel):
    token: str
    password: str


# ==== Users ====
class Assignment(APIModel):
    # demais chaves (role, etc.) são mantidas como vieram
    model_config = ConfigDict(extra="allow")

    contract_group: str

    @field_validator("contract_group")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("contractGroup must not be empty")
        return v


class UserCreate(APIModel):
    email: EmailStr
    name: str
    password: str
    role: Literal["ADMIN", "OPERATOR"] = "OPERATOR"
    assignments: List[Assignment] = []

class UserUpdate(APIModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Literal["ADMIN", "OPERATOR"]] = None
    assignments: Optional[List[Assignment]] = None

class UserRead(APIModel):
    id: int
    email: str
    name: str
    role: str
    assignments: List[Dict[str, Any]] = []
    version: int
    created_at: datetime
    updated_at: datetime


# ==== Units / Services ====
class UnitCreate(APIModel):
    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1)

class UnitRead(APIModel):
    id: int
    name: str
    symbol: str


class ServiceCreate(APIModel):
    name: str = Field(min_length=1)
    unit_id: int

class ServiceUpdate(APIModel):
    name: Optional[str] = None
    unit_id: Optional[int] = None

class ServiceRead(APIModel):
    id: int
    name: str
    unit_id: int
    unit: Optional[UnitRead] = None


# ==== Locations ====
class LocationServiceIn(APIModel):
    service_id: int
    measurement: float = Field(gt=0)


class LocationCreate(APIModel):
    contract_group: str = Field(validation_alias=AliasChoices("contractGroup", "contract_group", "city"))
    name: str = Field(min_length=1)
    lat: Optional[float] = None
    lng: Optional[float] = None
    observations: Optional[str] = None
    is_group: bool = False
    parent_id: Optional[int] = None
    services: List[LocationServiceIn] = []

class LocationUpdate(APIModel):
    contract_group: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contractGroup", "contract_group", "city")
    )
    name: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    observations: Optional[str] = None
    is_group: Optional[bool] = None
    parent_id: Optional[int] = None
    # quando enviado, substitui todas as medições do local
    services: Optional[List[LocationServiceIn]] = None


class LocationServiceRead(APIModel):
    service_id: int
    name: str
    measurement: float
    unit: Optional[UnitRead] = None


class LocationRead(APIModel):
    id: int
    contract_group: str
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    observations: Optional[str] = None
    is_group: bool
    parent_id: Optional[int] = None
    created_at: datetime
    services: List[LocationServiceRead] = []

    @classmethod
    def from_location(cls, loc: Location, **extra: Any) -> "LocationRead":
        """The only place where the stored ``city`` becomes ``contractGroup``."""
        services = [
            LocationServiceRead(
                service_id=ls.service_id,
                name=ls.service.name if ls.service else "",
                measurement=ls.measurement,
                unit=UnitRead.model_validate(ls.service.unit) if ls.service and ls.service.unit else None,
            )
            for ls in loc.services
        ]
        return cls(
            id=loc.id,
            contract_group=loc.city,
            name=loc.name,
            lat=loc.lat,
            lng=loc.lng,
            observations=loc.observations,
            is_group=loc.is_group,
            parent_id=loc.parent_id,
            created_at=loc.created_at,
            services=services,
            **extra,
        )


class LocationNode(LocationRead):
    city_mismatch: bool = False
    children: List["LocationNode"] = []


class ImportReport(APIModel):
    groups_created: int = 0
    members_created: int = 0
    warnings: List[str] = []


# ==== Records ====
class RecordCreate(APIModel):
    operator_id: Optional[int] = None
    service_id: int
    service_type: Optional[str] = None
    service_unit: Optional[str] = None
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    contract_group: Optional[str] = None
    location_area: Optional[float] = None
    gps_used: bool = True
    start_time: Optional[datetime] = None
    new_location_info: Optional[LocationCreate] = None

class RecordUpdate(APIModel):
    service_type: Optional[str] = None
    service_unit: Optional[str] = None
    contract_group: Optional[str] = None
    location_name: Optional[str] = None
    location_area: Optional[float] = None
    gps_used: Optional[bool] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    before_photos: Optional[List[str]] = None
    after_photos: Optional[List[str]] = None

class MeasurementUpdate(APIModel):
    # obrigatório; null ou "" limpa o ajuste
    override_measurement: Optional[float] = Field(ge=0)

    @field_validator("override_measurement", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class RecordRead(APIModel):
    id: int
    operator_id: Optional[int] = None
    operator_name: str
    service_id: Optional[int] = None
    service_type: Optional[str] = None
    service_unit: Optional[str] = None
    contract_group: Optional[str] = None
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    location_area: Optional[float] = None
    override_measurement: Optional[float] = None
    effective_measurement: Optional[float] = None
    gps_used: bool
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    before_photos: List[str] = []
    after_photos: List[str] = []
    observations: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_record(cls, rec: ServiceRecord, observations: Optional[str] = None) -> "RecordRead":
        return cls(
            id=rec.id,
            operator_id=rec.operator_id,
            operator_name=rec.operator_name or DELETED_OPERATOR_NAME,
            service_id=rec.service_id,
            service_type=rec.service_type,
            service_unit=rec.service_unit,
            contract_group=rec.contract_group,
            location_id=rec.location_id,
            location_name=rec.location_name,
            location_area=rec.location_area,
            override_measurement=rec.override_measurement,
            effective_measurement=rec.effective_measurement,
            gps_used=rec.gps_used,
            start_time=rec.start_time,
            end_time=rec.end_time,
            before_photos=list(rec.before_photos or []),
            after_photos=list(rec.after_photos or []),
            observations=observations,
            created_at=rec.created_at,
        )


# ==== Contract groups / configs ====
class ContractGroupRename(APIModel):
    new_name: str

class ContractGroupDelete(APIModel):
    password: str

class RenameResult(APIModel):
    message: str
    old_name: str
    new_name: str
    locations: int
    contract_configs: int
    records: int
    users: int

class DeleteResult(APIModel):
    message: str
    locations: int
    contract_configs: int
    users: int

class ContractGroupSummary(APIModel):
    name: str
    locations: int = 0
    contract_configs: int = 0
    records: int = 0
    users: int = 0


class ContractConfigItem(APIModel):
    contract_group: str = Field(min_length=1)
    cycle_start_day: int = Field(default=1, ge=1, le=28)

class ContractConfigBulk(APIModel):
    configs: List[ContractConfigItem]

class ContractConfigRead(APIModel):
    id: int
    contract_group: str
    cycle_start_day: int


# ==== Goals ====
class GoalCreate(APIModel):
    contract_group: str = Field(min_length=1)
    month: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    target_area: float = Field(ge=0)
    service_id: int

class GoalUpdate(APIModel):
    contract_group: Optional[str] = None
    month: Optional[str] = Field(default=None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    target_area: Optional[float] = Field(default=None, ge=0)
    service_id: Optional[int] = None

class GoalRead(APIModel):
    id: int
    contract_group: str
    month: str
    target_area: float
    service_id: int
    service: Optional[ServiceRead] = None


# ==== Audit log ====
class AuditLogCreate(APIModel):
    action: str = Field(min_length=1)
    details: str = Field(min_length=1)
    record_id: Optional[int] = None

class AuditLogRead(APIModel):
    id: int
    admin_id: Optional[int] = None
    admin_username: Optional[str] = None
    action: str
    record_id: Optional[int] = None
    details: str
    timestamp: datetime


# ==== Reports ====
class ChartDataset(APIModel):
    label: str
    data: List[float]
    background_color: str
    border_color: str
    border_width: int = 1

class PerformanceGraph(APIModel):
    labels: List[str]
    datasets: List[ChartDataset]

class GoalProgress(APIModel):
    goal_id: int
    contract_group: str
    service_id: int
    service_name: Optional[str] = None
    month: str
    cycle_start: datetime
    cycle_end: datetime
    target_area: float
    achieved_area: float
    percent: float
