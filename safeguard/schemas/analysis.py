from typing import Optional, List
from pydantic import BaseModel
from datetime import datetime


class Gap(BaseModel):
    id: int
    worker_id: int
    worker_name: str
    control_id: int
    control_code: str
    control_name: str
    control_type: str
    status: str  # Overdue | Expiring | Required
    risk_level: str
    due_date: Optional[datetime] = None
    days_until_due: Optional[int] = None
    hazards: List[str] = []
    priority: int


class GapSummary(BaseModel):
    total_gaps: int = 0
    critical_gaps: int = 0
    high_gaps: int = 0
    medium_gaps: int = 0
    low_gaps: int = 0
    expiring_within_30_days: int = 0
    overdue: int = 0


class CriticalityCoverage(BaseModel):
    critical: int = 100
    high: int = 100
    medium: int = 100
    low: int = 100


class Coverage(BaseModel):
    overall: int = 100
    by_criticality: CriticalityCoverage = CriticalityCoverage()
    approximate: bool = False


class Recommendation(BaseModel):
    id: str
    type: str
    priority: int
    title: str
    description: str
    affected_workers: int
    actions: List[str]


class GapReport(BaseModel):
    summary: GapSummary
    gaps: List[Gap]
    coverage: Coverage
    recommendations: List[Recommendation]


class WorkerScore(BaseModel):
    worker_id: int
    rbcs: int
    coverage: int
    quality: int
    effectiveness: int
    velocity: int


class DashboardSummary(BaseModel):
    operational_readiness: int
    audit_readiness: int
    temp_fix_count: int
    open_hazards: int
    expiring_soon: int
    trifr: float
    crv_rate: float
    rbcs: int
    compliance: int


class RecomputeResult(BaseModel):
    success: bool = True
    error: Optional[str] = None
    workers: Optional[int] = None
