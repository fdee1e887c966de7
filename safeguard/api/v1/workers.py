import logging
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.database import AsyncSessionLocal, get_session
from safeguard.core.exceptions import SafeGuardError, error_result
from safeguard.core.security import get_current_user, require_role
from safeguard.models.role import WorkerRole
from safeguard.models.user import UserRole
from safeguard.models.worker import Worker
from safeguard.schemas.analysis import RecomputeResult
from safeguard.schemas.workers import (
    EvidenceRead,
    RecomputeRequest,
    RequiredControlRead,
    SetPrimaryRole,
    WorkerCreate,
    WorkerDetail,
    WorkerRead,
    WorkerRoleCreate,
    WorkerRoleRead,
)
from safeguard.services.assignment_engine import AssignmentEngine
from safeguard.services.overlays import RecomputeContext
from safeguard.services.worker_ref import WorkerById
from safeguard.services import worker_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workers", tags=["workers"])


def get_assignment_engine(session: AsyncSession = Depends(get_session)) -> AssignmentEngine:
    return AssignmentEngine(session, session_factory=AsyncSessionLocal)


def _role_read(row: WorkerRole) -> WorkerRoleRead:
    return WorkerRoleRead(**row.model_dump(), role_name=row.role.name if row.role else None)


def _worker_detail(worker: Worker) -> WorkerDetail:
    required = [
        RequiredControlRead(
            **rc.model_dump(),
            control_code=rc.control.code,
            control_title=rc.control.title,
            evidence=[
                EvidenceRead.model_validate(ev)
                for ev in sorted(rc.evidence, key=lambda e: (e.issued_date, e.created_at, e.id), reverse=True)
            ],
        )
        for rc in worker.required
    ]
    roles = sorted(worker.roles, key=lambda r: r.start_at, reverse=True)
    return WorkerDetail(**worker.model_dump(), roles=[_role_read(r) for r in roles], required=required)


@router.get("", response_model=List[WorkerRead])
async def get_workers(client_id: Optional[int] = None, session: AsyncSession = Depends(get_session)):
    workers = await worker_service.list_workers(session, client_id=client_id)
    return [WorkerRead.model_validate(w) for w in workers]


@router.post("", response_model=WorkerRead, status_code=status.HTTP_201_CREATED)
async def create_worker_endpoint(
    payload: WorkerCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    worker = await worker_service.create_worker(session, **payload.model_dump())
    logger.info("Worker created", extra={"worker_id": worker.id, "by": user.username})
    return WorkerRead.model_validate(worker)


@router.post("/recompute-all", response_model=RecomputeResult)
async def recompute_all_endpoint(
    engine: AssignmentEngine = Depends(get_assignment_engine),
    user=Depends(require_role(UserRole.ADMIN)),
):
    try:
        count = await engine.recompute_all()
    except (SafeGuardError, SQLAlchemyError) as exc:
        logger.warning("Recompute of all workers failed", exc_info=True)
        return RecomputeResult(**error_result(exc))
    return RecomputeResult(workers=count)


@router.get("/{worker_id}", response_model=WorkerDetail)
async def get_worker_endpoint(worker_id: int, session: AsyncSession = Depends(get_session)):
    worker = await worker_service.get_worker_with_requirements(session, worker_id)
    if not worker:
        raise HTTPException(status_code=404, detail="Worker not found")
    return _worker_detail(worker)


@router.post("/{worker_ref}/recompute", response_model=RecomputeResult)
async def recompute_worker_endpoint(
    worker_ref: str,
    payload: Optional[RecomputeRequest] = Body(default=None),
    engine: AssignmentEngine = Depends(get_assignment_engine),
    user=Depends(get_current_user),
):
    """Recompute one worker, addressed by numeric id or employee id."""
    context = RecomputeContext(client_id=payload.client_id, site_id=payload.site_id) if payload else None
    try:
        await engine.recompute_worker(worker_ref, context)
    except (SafeGuardError, SQLAlchemyError) as exc:
        logger.warning("Recompute failed", extra={"worker_ref": worker_ref}, exc_info=True)
        return RecomputeResult(**error_result(exc))
    return RecomputeResult()


@router.get("/{worker_id}/roles", response_model=List[WorkerRoleRead])
async def get_worker_roles(worker_id: int, session: AsyncSession = Depends(get_session)):
    rows = await worker_service.list_worker_roles(session, worker_id)
    return [_role_read(r) for r in rows]


@router.post("/{worker_id}/roles", response_model=WorkerRoleRead, status_code=status.HTTP_201_CREATED)
async def add_worker_role_endpoint(
    worker_id: int,
    payload: WorkerRoleCreate,
    session: AsyncSession = Depends(get_session),
    engine: AssignmentEngine = Depends(get_assignment_engine),
    user=Depends(get_current_user),
):
    row = await worker_service.add_worker_role(session, worker_id, **payload.model_dump())
    await engine.recompute_worker(WorkerById(worker_id))
    return WorkerRoleRead(**row.model_dump())


@router.put("/{worker_id}/primary-role", response_model=WorkerRoleRead)
async def set_primary_role_endpoint(
    worker_id: int,
    payload: SetPrimaryRole,
    session: AsyncSession = Depends(get_session),
    engine: AssignmentEngine = Depends(get_assignment_engine),
    user=Depends(get_current_user),
):
    row = await worker_service.set_primary_role(session, worker_id, payload.worker_role_id)
    await engine.recompute_worker(WorkerById(worker_id))
    return WorkerRoleRead(**row.model_dump())


@router.delete("/{worker_id}/roles/{worker_role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_worker_role_endpoint(
    worker_id: int,
    worker_role_id: int,
    session: AsyncSession = Depends(get_session),
    engine: AssignmentEngine = Depends(get_assignment_engine),
    user=Depends(get_current_user),
):
    row = await session.get(WorkerRole, worker_role_id)
    if row is None or row.worker_id != worker_id:
        raise HTTPException(status_code=404, detail="Role assignment not found")
    await worker_service.remove_worker_role(session, worker_role_id)
    await engine.recompute_worker(WorkerById(worker_id))
