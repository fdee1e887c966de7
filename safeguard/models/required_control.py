from typing import Optional, List
from datetime import datetime
from enum import Enum
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship


class RequirementStatus(str, Enum):
    REQUIRED = "Required"
    SATISFIED = "Satisfied"
    TEMPORARY = "Temporary"
    OVERDUE = "Overdue"


# statuses that count as covered and are kept as history once no longer required
COVERED_STATUSES = (RequirementStatus.SATISFIED, RequirementStatus.TEMPORARY)


class RequiredControl(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("worker_id", "control_id", name="uq_requiredcontrol_worker_control"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    worker_id: int = Field(foreign_key="worker.id", index=True, ondelete="CASCADE")
    control_id: int = Field(foreign_key="control.id", index=True)
    status: RequirementStatus = Field(default=RequirementStatus.REQUIRED, index=True)
    due_date: Optional[datetime] = None

    # temporary fix
    temp_valid_until: Optional[datetime] = None
    temp_evidence_id: Optional[int] = None
    temp_notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    worker: Optional["Worker"] = Relationship(back_populates="required")
    control: Optional["Control"] = Relationship()
    evidence: List["Evidence"] = Relationship(
        back_populates="required_control", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
