from typing import Optional, List
from pydantic import BaseModel, ConfigDict
from datetime import datetime


class RoleCreate(BaseModel):
    name: str
    description: Optional[str] = None
    activity_package: Optional[str] = None


class RoleRead(RoleCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


class HazardCreate(BaseModel):
    code: str
    name: str
    category: str
    description: Optional[str] = None
    risk: Optional[str] = None  # Critical | High | Medium | Low


class HazardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    category: str
    description: Optional[str] = None
    pre_control_risk: int
    post_control_risk: int
    risk: Optional[str] = None
    created_at: datetime


class ControlCreate(BaseModel):
    code: str
    title: str
    type: str = "Document"
    description: Optional[str] = None
    reference: Optional[str] = None
    validity_days: Optional[int] = None


class ControlUpdate(BaseModel):
    code: Optional[str] = None
    title: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    reference: Optional[str] = None
    validity_days: Optional[int] = None


class ControlRead(ControlCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


class HazardControlCreate(BaseModel):
    control_id: int
    is_critical: Optional[bool] = None
    priority: Optional[int] = None


class HazardControlRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    hazard_id: int
    control_id: int
    is_critical: bool
    priority: int
    control: Optional[ControlRead] = None


class HazardControlsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mapped: List[HazardControlRead]
    available: List[ControlRead]
    all_count: int


class PackImport(BaseModel):
    kind: str


class ClientCreate(BaseModel):
    name: str


class SiteCreate(BaseModel):
    name: str


class SiteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    name: str


class ClientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
    sites: List[SiteRead] = []
