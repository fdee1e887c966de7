import logging
from typing import List, Optional, Dict, Any
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safeguard.core.exceptions import NotFoundError, SafeGuardError, ValidationError
from safeguard.models.control import Control
from safeguard.models.evidence import Evidence, EvidenceStatus, TEMPORARY_EVIDENCE_TYPE
from safeguard.models.required_control import RequiredControl, RequirementStatus
from safeguard.models.worker import Worker
from safeguard.services.assignment_engine import AssignmentEngine, insert_required_controls
from safeguard.services.status_rules import derive_status
from safeguard.services.worker_ref import WorkerById

logger = logging.getLogger(__name__)


async def _get_required_control(session: AsyncSession, required_control_id: int) -> RequiredControl:
    if not required_control_id:
        raise ValidationError("required_control_id is required")
    result = await session.execute(
        select(RequiredControl)
        .where(RequiredControl.id == required_control_id)
        .options(selectinload(RequiredControl.control))
    )
    rc = result.scalars().first()
    if rc is None:
        raise NotFoundError(f"Required control {required_control_id} not found")
    return rc


def _apply_permanent_evidence(rc: RequiredControl, evidence: Evidence, now: datetime) -> None:
    # permanent evidence ends any temporary fix
    rc.temp_valid_until = None
    rc.temp_evidence_id = None
    rc.temp_notes = None
    rc.status, rc.due_date = derive_status(rc, evidence, rc.control, now)
    rc.updated_at = now


async def add_evidence(
    session: AsyncSession,
    required_control_id: int,
    issued_date: datetime,
    type: str = "Certificate",
    expiry_date: Optional[datetime] = None,
    file_path: Optional[str] = None,
    checksum: Optional[str] = None,
    file_size: Optional[int] = None,
    original_name: Optional[str] = None,
    notes: Optional[str] = None,
    engine: Optional[AssignmentEngine] = None,
) -> Evidence:
    """Append evidence to a requirement and bring the owning worker up to date.

    Permanent evidence ends any temporary fix on the requirement. The row's
    status is set from the new evidence straight away so it is correct even
    for workers whose roles no longer require the control.
    """
    rc = await _get_required_control(session, required_control_id)
    now = datetime.utcnow()

    evidence = Evidence(
        required_control_id=rc.id,
        type=type or "Certificate",
        status=EvidenceStatus.VALID,
        file_path=file_path,
        checksum=checksum,
        file_size=file_size,
        original_name=original_name,
        issued_date=issued_date or now,
        expiry_date=expiry_date,
        notes=notes,
    )
    try:
        session.add(evidence)
        if evidence.type != TEMPORARY_EVIDENCE_TYPE:
            _apply_permanent_evidence(rc, evidence, now)
            session.add(rc)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    await session.refresh(evidence)

    engine = engine or AssignmentEngine(session)
    await engine.recompute_worker(WorkerById(rc.worker_id))
    return evidence


async def create_temporary_fix(
    session: AsyncSession,
    required_control_id: int,
    notes: str,
    valid_until: datetime,
) -> Evidence:
    rc = await _get_required_control(session, required_control_id)
    now = datetime.utcnow()
    if valid_until is None or valid_until <= now:
        raise ValidationError("valid_until must be in the future")

    try:
        evidence = Evidence(
            required_control_id=rc.id,
            type=TEMPORARY_EVIDENCE_TYPE,
            status=EvidenceStatus.VALID,
            issued_date=now,
            expiry_date=valid_until,
            notes=notes,
        )
        session.add(evidence)
        await session.flush()

        rc.status = RequirementStatus.TEMPORARY
        rc.due_date = valid_until
        rc.temp_valid_until = valid_until
        rc.temp_evidence_id = evidence.id
        rc.temp_notes = notes
        rc.updated_at = now
        session.add(rc)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    await session.refresh(evidence)
    logger.info("Temporary fix recorded", extra={"required_control_id": rc.id, "valid_until": valid_until.isoformat()})
    return evidence


async def bulk_add_evidence(
    session: AsyncSession,
    control_id: int,
    worker_ids: List[int],
    issued_date: datetime,
    expiry_date: Optional[datetime] = None,
    notes: Optional[str] = None,
    file_path: Optional[str] = None,
    original_name: Optional[str] = None,
    checksum: Optional[str] = None,
    file_size: Optional[int] = None,
    engine: Optional[AssignmentEngine] = None,
) -> Dict[str, Any]:
    """Record one shared piece of evidence (e.g. an attendance sheet) for many workers."""
    worker_ids = list(dict.fromkeys(worker_ids or []))
    if not control_id or not worker_ids:
        raise ValidationError("control_id and worker_ids are required")
    if await session.get(Control, control_id) is None:
        raise NotFoundError(f"Control {control_id} not found")
    known = set((await session.execute(select(Worker.id).where(Worker.id.in_(worker_ids)))).scalars().all())
    unknown = [wid for wid in worker_ids if wid not in known]
    if unknown:
        raise NotFoundError(f"Workers not found: {unknown}")

    now = datetime.utcnow()
    if original_name is None and file_path:
        original_name = file_path.replace("\\", "/").rsplit("/", 1)[-1]

    try:
        rows = [
            {
                "worker_id": worker_id,
                "control_id": control_id,
                "status": RequirementStatus.REQUIRED,
                "due_date": None,
                "created_at": now,
                "updated_at": now,
            }
            for worker_id in worker_ids
        ]
        await session.execute(insert_required_controls(session, rows))

        by_worker = {
            rc.worker_id: rc for rc in (await session.execute(
                select(RequiredControl)
                .where(RequiredControl.control_id == control_id, RequiredControl.worker_id.in_(worker_ids))
                .options(selectinload(RequiredControl.control))
                .execution_options(populate_existing=True)
            )).scalars().all()
        }
        created = []
        for worker_id in worker_ids:
            rc = by_worker[worker_id]
            evidence = Evidence(
                required_control_id=rc.id,
                type="Attendance",
                status=EvidenceStatus.VALID,
                issued_date=issued_date,
                expiry_date=expiry_date,
                file_path=file_path,
                checksum=checksum,
                file_size=file_size,
                original_name=original_name,
                notes=notes,
            )
            session.add(evidence)
            created.append(evidence)
            _apply_permanent_evidence(rc, evidence, now)
            session.add(rc)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    engine = engine or AssignmentEngine(session)
    for worker_id in worker_ids:
        try:
            await engine.recompute_worker(WorkerById(worker_id))
        except (SafeGuardError, SQLAlchemyError):
            logger.warning("Bulk recompute failed for worker", extra={"worker_id": worker_id}, exc_info=True)
            await session.rollback()

    return {"created": len(created), "file_path": file_path}


async def list_evidence(session: AsyncSession, required_control_id: int) -> List[Evidence]:
    result = await session.execute(
        select(Evidence)
        .where(Evidence.required_control_id == required_control_id)
        .order_by(Evidence.issued_date.desc(), Evidence.created_at.desc(), Evidence.id.desc())
    )
    return result.scalars().all()
