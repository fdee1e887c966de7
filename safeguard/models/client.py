from typing import Optional, List
from datetime import datetime
from sqlmodel import SQLModel, Field, Relationship


class Client(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column_kwargs={"unique": True})
    created_at: datetime = Field(default_factory=datetime.utcnow)

    sites: List["Site"] = Relationship(
        back_populates="client", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    worker_roles: List["WorkerRole"] = Relationship(back_populates="client")


class Site(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="client.id", ondelete="CASCADE")
    name: str

    client: Optional[Client] = Relationship(back_populates="sites")
    worker_roles: List["WorkerRole"] = Relationship(back_populates="site")
