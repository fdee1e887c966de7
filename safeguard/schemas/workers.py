from typing import Optional, List
from pydantic import BaseModel, ConfigDict
from datetime import datetime

from safeguard.models.evidence import EvidenceStatus
from safeguard.models.required_control import RequirementStatus
from safeguard.models.worker import WorkerStatus


class WorkerCreate(BaseModel):
    employee_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company_id: str = "default"


class WorkerRead(WorkerCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: WorkerStatus
    created_at: datetime


class WorkerRoleCreate(BaseModel):
    role_id: int
    is_primary: bool = False
    client_id: Optional[int] = None
    site_id: Optional[int] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    notes: Optional[str] = None


class WorkerRoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    worker_id: int
    role_id: int
    role_name: Optional[str] = None
    client_id: Optional[int] = None
    site_id: Optional[int] = None
    is_primary: bool
    start_at: datetime
    end_at: Optional[datetime] = None
    notes: Optional[str] = None


class SetPrimaryRole(BaseModel):
    worker_role_id: int


class EvidenceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    required_control_id: int
    type: str
    status: EvidenceStatus
    file_path: Optional[str] = None
    checksum: Optional[str] = None
    file_size: Optional[int] = None
    original_name: Optional[str] = None
    issued_date: datetime
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime


class RequiredControlRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    worker_id: int
    control_id: int
    control_code: Optional[str] = None
    control_title: Optional[str] = None
    status: RequirementStatus
    due_date: Optional[datetime] = None
    temp_valid_until: Optional[datetime] = None
    temp_evidence_id: Optional[int] = None
    temp_notes: Optional[str] = None
    evidence: List[EvidenceRead] = []


class WorkerDetail(WorkerRead):
    roles: List[WorkerRoleRead] = []
    required: List[RequiredControlRead] = []


class RecomputeRequest(BaseModel):
    client_id: Optional[int] = None
    site_id: Optional[int] = None
