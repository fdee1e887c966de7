from typing import Optional, List
from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field, Relationship


class WorkerStatus(str, Enum):
    ACTIVE = "active"
    RESTRICTED = "restricted"
    INACTIVE = "inactive"


class Worker(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    employee_id: str = Field(index=True, sa_column_kwargs={"unique": True})
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company_id: str = "default"
    # derived; written only by the assignment engine
    status: WorkerStatus = Field(default=WorkerStatus.ACTIVE, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    roles: List["WorkerRole"] = Relationship(
        back_populates="worker", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    required: List["RequiredControl"] = Relationship(
        back_populates="worker", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
