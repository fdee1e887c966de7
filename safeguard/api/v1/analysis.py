from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.database import get_session
from safeguard.schemas.analysis import DashboardSummary, GapReport, WorkerScore
from safeguard.services.dashboard_service import dashboard_summary
from safeguard.services.gap_analysis import GapAnalysisEngine
from safeguard.services.scoring_engine import ScoringEngine

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.get("/gaps", response_model=GapReport)
async def client_gaps(client_id: Optional[int] = None, session: AsyncSession = Depends(get_session)):
    """Gap report for a client's workers, or for every worker when no client is given."""
    return await GapAnalysisEngine(session).analyze_client(client_id)


@router.get("/gaps/workers/{worker_id}", response_model=GapReport)
async def worker_gaps(worker_id: int, session: AsyncSession = Depends(get_session)):
    return await GapAnalysisEngine(session).analyze_worker(worker_id)


@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(client_id: Optional[int] = None, session: AsyncSession = Depends(get_session)):
    return await dashboard_summary(session, client_id)


@router.get("/scores/{worker_id}", response_model=WorkerScore)
async def worker_score(worker_id: int, session: AsyncSession = Depends(get_session)):
    return await ScoringEngine(session).calculate_worker_score(worker_id)
