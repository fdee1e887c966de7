from typing import Optional, List
from pydantic import BaseModel
from datetime import datetime


class EvidenceCreate(BaseModel):
    required_control_id: int
    type: str = "Certificate"
    file_path: Optional[str] = None
    checksum: Optional[str] = None
    file_size: Optional[int] = None
    original_name: Optional[str] = None
    issued_date: datetime
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = None


class TemporaryFixCreate(BaseModel):
    required_control_id: int
    notes: str
    valid_until: datetime


class TemporaryFixResult(BaseModel):
    success: bool = True
    evidence_id: Optional[int] = None
    error: Optional[str] = None


class BulkEvidenceCreate(BaseModel):
    control_id: int
    worker_ids: List[int]
    issued_date: datetime
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = None
    file_path: Optional[str] = None


class BulkEvidenceResult(BaseModel):
    created: int
    file_path: Optional[str] = None


class StoredFileRead(BaseModel):
    path: str
    checksum: str
    size: int
    original_name: str
