from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.config import Settings, settings as default_settings
from safeguard.models.evidence import Evidence, EvidenceStatus
from safeguard.models.hazard import Hazard
from safeguard.models.kpi import KPI
from safeguard.models.required_control import RequiredControl, RequirementStatus, COVERED_STATUSES
from safeguard.models.role import WorkerRole
from safeguard.schemas.analysis import DashboardSummary
from safeguard.services.assignment_engine import active_role_filter
from safeguard.services.status_rules import percent

# residual risk above this counts as an open hazard
OPEN_HAZARD_RISK = 5


async def _count(session: AsyncSession, stmt) -> int:
    return (await session.execute(stmt)).scalar_one()


async def dashboard_summary(
    session: AsyncSession, client_id: Optional[int] = None, config: Settings = default_settings
) -> DashboardSummary:
    """Readiness percentages and headline counts, optionally scoped to one client's workers.

    Hazards and KPIs are global; requirement and evidence counts follow the
    client filter.
    """
    now = datetime.utcnow()

    def scoped(stmt):
        if client_id is None:
            return stmt
        assigned = select(WorkerRole.worker_id).where(WorkerRole.client_id == client_id, active_role_filter(now))
        return stmt.where(RequiredControl.worker_id.in_(assigned))

    base = select(func.count()).select_from(RequiredControl)
    total = await _count(session, scoped(base))
    operational = await _count(session, scoped(base.where(RequiredControl.status.in_(COVERED_STATUSES))))
    audit = await _count(session, scoped(base.where(RequiredControl.status == RequirementStatus.SATISFIED)))
    temp_fixes = await _count(session, scoped(base.where(RequiredControl.status == RequirementStatus.TEMPORARY)))

    open_hazards = await _count(
        session, select(func.count()).select_from(Hazard).where(Hazard.post_control_risk > OPEN_HAZARD_RISK)
    )

    window_end = now + timedelta(days=config.EXPIRING_WINDOW_DAYS)
    expiring = await _count(session, scoped(
        select(func.count())
        .select_from(Evidence)
        .join(RequiredControl, RequiredControl.id == Evidence.required_control_id)
        .where(Evidence.status == EvidenceStatus.VALID, Evidence.expiry_date <= window_end)
    ))

    kpi = (await session.execute(select(KPI).order_by(KPI.period.desc()))).scalars().first()
    trifr = (kpi.incidents / kpi.hours_worked) * 1_000_000 if kpi and kpi.hours_worked else 0.0

    operational_readiness = percent(operational, total)
    audit_readiness = percent(audit, total)
    return DashboardSummary(
        operational_readiness=operational_readiness,
        audit_readiness=audit_readiness,
        temp_fix_count=temp_fixes,
        open_hazards=open_hazards,
        expiring_soon=expiring,
        trifr=trifr,
        crv_rate=kpi.crv_rate if kpi else 0.0,
        rbcs=operational_readiness,
        compliance=audit_readiness,
    )
