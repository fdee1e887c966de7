from typing import Optional
from sqlmodel import SQLModel, Field


class KPI(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    period: str = Field(index=True, sa_column_kwargs={"unique": True})  # e.g. "2025-09"
    hours_worked: float = 0.0
    incidents: int = 0
    near_miss: int = 0
    crv_rate: float = 0.0
