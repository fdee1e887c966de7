from typing import Optional, List
from datetime import datetime
from sqlmodel import SQLModel, Field, Relationship


CONTROL_TYPES = ("Training", "Document", "PPE", "Inspection", "Licence", "Verification", "Induction")


class Control(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, sa_column_kwargs={"unique": True})
    title: str
    type: str = "Document"
    description: Optional[str] = None
    reference: Optional[str] = None
    validity_days: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    hazards: List["HazardControl"] = Relationship(back_populates="control")
