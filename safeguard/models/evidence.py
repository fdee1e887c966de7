from typing import Optional
from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field, Relationship


class EvidenceStatus(str, Enum):
    VALID = "Valid"
    SUPERSEDED = "Superseded"
    REJECTED = "Rejected"


TEMPORARY_EVIDENCE_TYPE = "Temporary"


class Evidence(SQLModel, table=True):
    """Append-only proof attached to a RequiredControl."""

    id: Optional[int] = Field(default=None, primary_key=True)
    required_control_id: int = Field(foreign_key="requiredcontrol.id", index=True, ondelete="CASCADE")
    type: str = "Certificate"
    status: EvidenceStatus = Field(default=EvidenceStatus.VALID)
    file_path: Optional[str] = None
    checksum: Optional[str] = None
    file_size: Optional[int] = None
    original_name: Optional[str] = None
    issued_date: datetime = Field(default_factory=datetime.utcnow)
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    required_control: Optional["RequiredControl"] = Relationship(back_populates="evidence")
