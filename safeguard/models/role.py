from typing import Optional, List
from datetime import datetime
from sqlmodel import SQLModel, Field, Relationship


class Role(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, sa_column_kwargs={"unique": True})
    description: Optional[str] = None
    activity_package: Optional[str] = None

    assignments: List["WorkerRole"] = Relationship(back_populates="role")


class WorkerRole(SQLModel, table=True):
    """Time-bounded assignment of a role to a worker, optionally scoped to a client/site."""

    id: Optional[int] = Field(default=None, primary_key=True)
    worker_id: int = Field(foreign_key="worker.id", index=True, ondelete="CASCADE")
    role_id: int = Field(foreign_key="role.id")
    client_id: Optional[int] = Field(default=None, foreign_key="client.id", index=True)
    site_id: Optional[int] = Field(default=None, foreign_key="site.id")
    is_primary: bool = False
    start_at: datetime = Field(default_factory=datetime.utcnow)
    end_at: Optional[datetime] = None
    notes: Optional[str] = None

    worker: Optional["Worker"] = Relationship(back_populates="roles")
    role: Optional[Role] = Relationship(back_populates="assignments")
    client: Optional["Client"] = Relationship(back_populates="worker_roles")
    site: Optional["Site"] = Relationship(back_populates="worker_roles")

    def is_active(self, now: datetime) -> bool:
        return self.end_at is None or self.end_at > now
