"""Assignment engine.

Keeps each worker's RequiredControl rows in step with the hazards their
active roles expose them to, and derives every requirement's status from its
evidence trail and temporary-fix state.
"""
import asyncio
import logging
import weakref
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from sqlalchemy import select, delete, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safeguard.core.config import Settings, settings as default_settings
from safeguard.core.exceptions import NotFoundError
from safeguard.models.evidence import Evidence, EvidenceStatus
from safeguard.models.hazard import Hazard
from safeguard.models.required_control import RequiredControl, RequirementStatus, COVERED_STATUSES
from safeguard.models.role import Role, WorkerRole
from safeguard.models.worker import Worker, WorkerStatus
from safeguard.services.overlays import NullOverlaySource, OverlayHazardSource, RecomputeContext
from safeguard.services.role_hazard_map import RoleHazardMap, load_role_hazard_map
from safeguard.services.status_rules import derive_status, derive_worker_status
from safeguard.services.worker_ref import WorkerById, resolve_worker_id

logger = logging.getLogger(__name__)

# one lock per worker id while a recompute holds or awaits it; serializes overlapping recomputes
_worker_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


def worker_lock(worker_id: int) -> asyncio.Lock:
    lock = _worker_locks.get(worker_id)
    if lock is None:
        lock = asyncio.Lock()
        _worker_locks[worker_id] = lock
    return lock


def active_role_filter(now: datetime):
    return or_(WorkerRole.end_at.is_(None), WorkerRole.end_at > now)


def _ordered_mappings(hazard: Hazard):
    return sorted(hazard.controls, key=lambda m: (m.priority, -(m.id or 0)))


def insert_required_controls(session: AsyncSession, rows: List[dict]):
    """INSERT of RequiredControl rows that skips (worker_id, control_id) pairs already present."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(RequiredControl).values(rows)
    elif dialect == "sqlite":
        stmt = sqlite.insert(RequiredControl).values(rows)
    else:
        raise NotImplementedError(f"upsert not supported for dialect {dialect}")
    return stmt.on_conflict_do_nothing(index_elements=["worker_id", "control_id"])


async def latest_evidence_by_requirement(
    session: AsyncSession, required_control_ids: Iterable[int], valid_only: bool = False
) -> Dict[int, Evidence]:
    """Latest evidence per requirement, by issued date then creation time."""
    ids = list(required_control_ids)
    if not ids:
        return {}
    stmt = (
        select(Evidence)
        .where(Evidence.required_control_id.in_(ids))
        .order_by(
            Evidence.required_control_id,
            Evidence.issued_date.desc(),
            Evidence.created_at.desc(),
            Evidence.id.desc(),
        )
    )
    if valid_only:
        stmt = stmt.where(Evidence.status == EvidenceStatus.VALID)

    latest: Dict[int, Evidence] = {}
    for ev in (await session.execute(stmt)).scalars().all():
        latest.setdefault(ev.required_control_id, ev)
    return latest


class AssignmentEngine:
    def __init__(
        self,
        session: AsyncSession,
        role_hazard_map: Optional[RoleHazardMap] = None,
        overlay_source: Optional[OverlayHazardSource] = None,
        session_factory: Optional[Callable[[], Any]] = None,
        config: Settings = default_settings,
    ):
        self.session = session
        self.config = config
        self.role_hazard_map = role_hazard_map or load_role_hazard_map(config)
        self.overlay_source = overlay_source or NullOverlaySource()
        self.session_factory = session_factory

    def _for_session(self, session: AsyncSession) -> "AssignmentEngine":
        return AssignmentEngine(
            session,
            role_hazard_map=self.role_hazard_map,
            overlay_source=self.overlay_source,
            session_factory=self.session_factory,
            config=self.config,
        )

    # ------------------------------------------------------------------
    # public operations
    # ------------------------------------------------------------------

    async def recompute_worker(self, worker_ref: Any, context: Optional[RecomputeContext] = None) -> None:
        worker_id = await resolve_worker_id(self.session, worker_ref)
        if worker_id is None:
            logger.info("No worker matches %r - skipping", worker_ref)
            return

        async with worker_lock(worker_id):
            await self._recompute(worker_id, context or RecomputeContext())

    async def recompute_all(self) -> int:
        result = await self.session.execute(
            select(Worker.id).where(Worker.status != WorkerStatus.INACTIVE).order_by(Worker.id)
        )
        worker_ids = list(result.scalars().all())
        logger.info(f"Starting recompute for {len(worker_ids)} workers")

        if self.config.RECOMPUTE_PARALLEL and self.session_factory is not None:
            semaphore = asyncio.Semaphore(max(1, self.config.RECOMPUTE_CONCURRENCY))

            async def run(worker_id: int) -> None:
                async with semaphore:
                    async with self.session_factory() as session:
                        await self._for_session(session).recompute_worker(WorkerById(worker_id))

            await asyncio.gather(*(run(worker_id) for worker_id in worker_ids))
        else:
            for worker_id in worker_ids:
                await self.recompute_worker(WorkerById(worker_id))

        logger.info(f"All workers recomputed ({len(worker_ids)})")
        return len(worker_ids)

    async def recompute_by_hazard(self, hazard_id: int) -> int:
        hazard = await self.session.get(Hazard, hazard_id)
        if hazard is None:
            raise NotFoundError(f"Hazard {hazard_id} not found")

        role_names = self.role_hazard_map.roles_for_category(hazard.category)
        if not role_names:
            logger.info("No roles map to hazard category %s - nothing to recompute", hazard.category)
            return 0

        now = datetime.utcnow()
        stmt = (
            select(WorkerRole.worker_id)
            .join(Role, Role.id == WorkerRole.role_id)
            .where(Role.name.in_(role_names), active_role_filter(now))
            .distinct()
        )
        worker_ids = sorted((await self.session.execute(stmt)).scalars().all())
        logger.info(
            "Recomputing workers exposed to hazard",
            extra={"hazard_id": hazard_id, "category": hazard.category, "workers": len(worker_ids)},
        )
        for worker_id in worker_ids:
            await self.recompute_worker(WorkerById(worker_id))
        return len(worker_ids)

    async def get_overlay_hazards(self, context: Optional[RecomputeContext] = None) -> List[Hazard]:
        return await self.overlay_source.hazards_for(self.session, context or RecomputeContext())

    async def update_worker_status(self, worker_id: int, critical_control_ids: Optional[Set[int]] = None) -> None:
        worker = await self.session.get(Worker, worker_id)
        if worker is None:
            return
        rows = await self._required_controls(worker_id)
        new_status = derive_worker_status(
            rows, critical_control_ids or set(), self.config.RESTRICTED_COVERAGE_THRESHOLD
        )
        if worker.status == WorkerStatus.INACTIVE or worker.status == new_status:
            return

        worker.status = new_status
        self.session.add(worker)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    # ------------------------------------------------------------------
    # recompute steps
    # ------------------------------------------------------------------

    async def _recompute(self, worker_id: int, context: RecomputeContext) -> None:
        now = datetime.utcnow()
        worker = await self.session.get(Worker, worker_id)
        if worker is None:
            logger.info(f"Worker {worker_id} not found - skipping")
            return

        role_names = await self._active_role_names(worker_id, now)
        if not role_names:
            logger.info(f"Worker {worker_id} has no active roles - skipping")
            return

        categories: List[str] = []
        for name in role_names:
            for category in self.role_hazard_map.categories_for(name):
                if category not in categories:
                    categories.append(category)
        if not categories:
            logger.info(f"No hazard categories mapped for roles {role_names} - skipping")
            return

        logger.info(f"Recomputing controls for {worker.full_name} ({', '.join(role_names)})")

        hazards = await self._hazards_for_categories(categories)
        overlays = await self.get_overlay_hazards(context)

        required_now: Dict[int, None] = {}
        critical_control_ids: Set[int] = set()
        seen_hazards: Set[int] = set()
        for hazard in [*hazards, *overlays]:
            if hazard.id in seen_hazards:
                continue
            seen_hazards.add(hazard.id)
            for mapping in _ordered_mappings(hazard):
                required_now.setdefault(mapping.control_id, None)
                if mapping.is_critical:
                    critical_control_ids.add(mapping.control_id)

        existing = await self._required_controls(worker_id)
        existing_control_ids = {rc.control_id for rc in existing}
        to_create = [cid for cid in required_now if cid not in existing_control_ids]
        to_retire = [
            rc.id for rc in existing
            if rc.control_id not in required_now and rc.status not in COVERED_STATUSES
        ]
        await self._apply_membership(worker_id, to_create, to_retire, now)

        refreshed = await self._required_controls(worker_id)
        current = [rc for rc in refreshed if rc.control_id in required_now]
        latest = await latest_evidence_by_requirement(self.session, [rc.id for rc in current])
        updated = await self._apply_statuses(current, latest, now)

        logger.info(
            "Recompute complete",
            extra={
                "worker_id": worker_id,
                "hazards": len(seen_hazards),
                "required": len(required_now),
                "created_rows": len(to_create),
                "retired_rows": len(to_retire),
                "updated": updated,
            },
        )
        await self.update_worker_status(worker_id, critical_control_ids)

    async def _active_role_names(self, worker_id: int, now: datetime) -> List[str]:
        stmt = (
            select(Role.name)
            .join(WorkerRole, WorkerRole.role_id == Role.id)
            .where(WorkerRole.worker_id == worker_id, active_role_filter(now))
            .order_by(WorkerRole.is_primary.desc(), WorkerRole.start_at)
        )
        names: List[str] = []
        for name in (await self.session.execute(stmt)).scalars().all():
            if name not in names:
                names.append(name)
        return names

    async def _hazards_for_categories(self, categories: List[str]) -> List[Hazard]:
        stmt = (
            select(Hazard)
            .where(Hazard.category.in_(categories))
            .options(selectinload(Hazard.controls))
            .order_by(Hazard.id)
            .execution_options(populate_existing=True)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def _required_controls(self, worker_id: int) -> List[RequiredControl]:
        stmt = (
            select(RequiredControl)
            .where(RequiredControl.worker_id == worker_id)
            .options(selectinload(RequiredControl.control))
            .order_by(RequiredControl.id)
            .execution_options(populate_existing=True)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def _apply_membership(
        self, worker_id: int, to_create: List[int], to_retire: List[int], now: datetime
    ) -> None:
        """Create newly required rows and drop transient rows that are no longer required, atomically."""
        if not to_create and not to_retire:
            return
        try:
            if to_create:
                rows = [
                    {
                        "worker_id": worker_id,
                        "control_id": control_id,
                        "status": RequirementStatus.REQUIRED,
                        "due_date": None,
                        "created_at": now,
                        "updated_at": now,
                    }
                    for control_id in to_create
                ]
                await self.session.execute(insert_required_controls(self.session, rows))
            if to_retire:
                await self.session.execute(delete(Evidence).where(Evidence.required_control_id.in_(to_retire)))
                await self.session.execute(delete(RequiredControl).where(RequiredControl.id.in_(to_retire)))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def _apply_statuses(
        self, required_controls: List[RequiredControl], latest: Dict[int, Evidence], now: datetime
    ) -> int:
        updated = 0
        for rc in required_controls:
            status, due_date = derive_status(rc, latest.get(rc.id), rc.control, now)
            if status == rc.status and due_date == rc.due_date:
                continue
            rc.status = status
            rc.due_date = due_date
            rc.updated_at = now
            self.session.add(rc)
            updated += 1

        if not updated:
            return 0
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return updated
