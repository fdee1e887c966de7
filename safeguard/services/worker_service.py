from typing import List, Optional
from datetime import datetime
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safeguard.core.exceptions import NotFoundError, ValidationError
from safeguard.models.required_control import RequiredControl
from safeguard.models.role import Role, WorkerRole
from safeguard.models.worker import Worker
from safeguard.services.assignment_engine import active_role_filter


async def create_worker(
    session: AsyncSession,
    employee_id: str,
    first_name: str,
    last_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    company_id: Optional[str] = None,
) -> Worker:
    employee_id = (employee_id or "").strip()
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not employee_id or not first_name or not last_name:
        raise ValidationError("employee_id, first_name, last_name are required")

    worker = Worker(
        employee_id=employee_id,
        first_name=first_name,
        last_name=last_name,
        email=email.strip() if email else None,
        phone=phone.strip() if phone else None,
        company_id=company_id or "default",
    )
    session.add(worker)
    await session.commit()
    await session.refresh(worker)
    return worker


async def list_workers(session: AsyncSession, client_id: Optional[int] = None) -> List[Worker]:
    stmt = select(Worker).order_by(Worker.last_name, Worker.first_name)
    if client_id is not None:
        now = datetime.utcnow()
        assigned = select(WorkerRole.worker_id).where(WorkerRole.client_id == client_id, active_role_filter(now))
        stmt = stmt.where(Worker.id.in_(assigned))
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_worker(session: AsyncSession, worker_id: int) -> Optional[Worker]:
    return await session.get(Worker, worker_id)


async def get_worker_with_requirements(session: AsyncSession, worker_id: int) -> Optional[Worker]:
    """Worker with roles, requirements, controls and full evidence history loaded."""
    stmt = (
        select(Worker)
        .where(Worker.id == worker_id)
        .options(
            selectinload(Worker.roles).selectinload(WorkerRole.role),
            selectinload(Worker.required).selectinload(RequiredControl.control),
            selectinload(Worker.required).selectinload(RequiredControl.evidence),
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def _close_active_primaries(session: AsyncSession, worker_id: int, now: datetime, keep_id: Optional[int] = None) -> None:
    stmt = select(WorkerRole).where(
        WorkerRole.worker_id == worker_id,
        WorkerRole.is_primary.is_(True),
        active_role_filter(now),
    )
    for row in (await session.execute(stmt)).scalars().all():
        if row.id == keep_id:
            continue
        row.end_at = now
        session.add(row)


async def add_worker_role(
    session: AsyncSession,
    worker_id: int,
    role_id: int,
    is_primary: bool = False,
    client_id: Optional[int] = None,
    site_id: Optional[int] = None,
    start_at: Optional[datetime] = None,
    end_at: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> WorkerRole:
    if not worker_id or not role_id:
        raise ValidationError("worker_id and role_id are required")
    if await session.get(Worker, worker_id) is None:
        raise NotFoundError(f"Worker {worker_id} not found")
    if await session.get(Role, role_id) is None:
        raise NotFoundError(f"Role {role_id} not found")

    now = datetime.utcnow()
    try:
        if is_primary:
            await _close_active_primaries(session, worker_id, now)
        row = WorkerRole(
            worker_id=worker_id,
            role_id=role_id,
            is_primary=is_primary,
            client_id=client_id,
            site_id=site_id,
            start_at=start_at or now,
            end_at=end_at,
            notes=notes,
        )
        session.add(row)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    await session.refresh(row)
    return row


async def set_primary_role(session: AsyncSession, worker_id: int, worker_role_id: int) -> WorkerRole:
    if not worker_id or not worker_role_id:
        raise ValidationError("worker_id and worker_role_id are required")
    row = await session.get(WorkerRole, worker_role_id)
    if row is None or row.worker_id != worker_id:
        raise NotFoundError(f"Role assignment {worker_role_id} not found for worker {worker_id}")

    now = datetime.utcnow()
    try:
        await _close_active_primaries(session, worker_id, now, keep_id=worker_role_id)
        row.is_primary = True
        row.start_at = now
        row.end_at = None
        session.add(row)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    await session.refresh(row)
    return row


async def list_worker_roles(session: AsyncSession, worker_id: int) -> List[WorkerRole]:
    stmt = (
        select(WorkerRole)
        .where(WorkerRole.worker_id == worker_id)
        .options(selectinload(WorkerRole.role))
        .order_by(WorkerRole.start_at.desc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def remove_worker_role(session: AsyncSession, worker_role_id: int) -> bool:
    if not worker_role_id:
        raise ValidationError("worker_role_id is required")
    result = await session.execute(delete(WorkerRole).where(WorkerRole.id == worker_role_id))
    await session.commit()
    return result.rowcount > 0
