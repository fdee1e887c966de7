from typing import Optional, List
from datetime import datetime
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship


class Hazard(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, sa_column_kwargs={"unique": True})
    name: str
    description: Optional[str] = None
    category: str = Field(index=True)
    pre_control_risk: int = 4
    post_control_risk: int = 4
    created_at: datetime = Field(default_factory=datetime.utcnow)

    controls: List["HazardControl"] = Relationship(
        back_populates="hazard", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


class HazardControl(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("hazard_id", "control_id", name="uq_hazardcontrol_pair"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    hazard_id: int = Field(foreign_key="hazard.id", index=True, ondelete="CASCADE")
    control_id: int = Field(foreign_key="control.id", index=True, ondelete="CASCADE")
    is_critical: bool = False
    # lower value is applied first
    priority: int = 0

    hazard: Optional[Hazard] = Relationship(back_populates="controls")
    control: Optional["Control"] = Relationship(back_populates="hazards")
