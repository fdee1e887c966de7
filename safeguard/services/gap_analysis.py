"""Gap analysis engine.

Read-only: turns RequiredControl, Evidence and Hazard state into a ranked
gap list with summary counts, coverage percentages and recommendations,
for one worker or for every worker assigned to a client.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safeguard.core.config import Settings, settings as default_settings
from safeguard.core.exceptions import NotFoundError
from safeguard.models.evidence import Evidence
from safeguard.models.hazard import Hazard, HazardControl
from safeguard.models.required_control import RequiredControl, RequirementStatus
from safeguard.models.role import WorkerRole
from safeguard.models.worker import Worker
from safeguard.schemas.analysis import (
    Coverage,
    CriticalityCoverage,
    Gap,
    GapReport,
    GapSummary,
    Recommendation,
)
from safeguard.services.assignment_engine import active_role_filter, latest_evidence_by_requirement
from safeguard.services.status_rules import (
    RISK_CRITICAL,
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    calculate_priority,
    days_until,
    determine_risk_level,
    percent,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (RequirementStatus.REQUIRED, RequirementStatus.OVERDUE, RequirementStatus.TEMPORARY)

GAP_OVERDUE = "Overdue"
GAP_EXPIRING = "Expiring"
GAP_REQUIRED = "Required"


def summarize(gaps: Sequence[Gap]) -> GapSummary:
    return GapSummary(
        total_gaps=len(gaps),
        critical_gaps=sum(1 for g in gaps if g.risk_level == RISK_CRITICAL),
        high_gaps=sum(1 for g in gaps if g.risk_level == RISK_HIGH),
        medium_gaps=sum(1 for g in gaps if g.risk_level == RISK_MEDIUM),
        low_gaps=sum(1 for g in gaps if g.risk_level == RISK_LOW),
        expiring_within_30_days=sum(1 for g in gaps if g.status == GAP_EXPIRING),
        overdue=sum(1 for g in gaps if g.status == GAP_OVERDUE),
    )


def generate_recommendations(gaps: Sequence[Gap]) -> List[Recommendation]:
    recommendations: List[Recommendation] = []

    critical = [g for g in gaps if g.risk_level == RISK_CRITICAL]
    if critical:
        workers = len({g.worker_id for g in critical})
        recommendations.append(Recommendation(
            id="critical-gaps",
            type="missing_control",
            priority=100,
            title=f"{len(critical)} Critical Safety Gaps Detected",
            description=f"{workers} worker(s) have critical safety controls missing or expired. Immediate action required.",
            affected_workers=workers,
            actions=[
                "Review critical gaps immediately",
                "Assign temporary fixes if needed",
                "Schedule training or evidence collection",
                "Consider work restrictions until resolved",
            ],
        ))

    expiring = [g for g in gaps if g.status == GAP_EXPIRING]
    if expiring:
        workers = len({g.worker_id for g in expiring})
        recommendations.append(Recommendation(
            id="expiring-evidence",
            type="expiring_evidence",
            priority=80,
            title=f"{len(expiring)} Controls Expiring Within 30 Days",
            description=f"{workers} worker(s) have evidence expiring soon. Schedule renewals now to prevent gaps.",
            affected_workers=workers,
            actions=[
                "Schedule refresher training",
                "Book assessment dates",
                "Send renewal reminders to workers",
                "Update calendar with renewal deadlines",
            ],
        ))

    overdue = [g for g in gaps if g.status == GAP_OVERDUE]
    if overdue:
        workers = len({g.worker_id for g in overdue})
        recommendations.append(Recommendation(
            id="overdue-controls",
            type="overdue_control",
            priority=95,
            title=f"{len(overdue)} Overdue Controls",
            description=f"{workers} worker(s) have overdue controls. These workers may need work restrictions.",
            affected_workers=workers,
            actions=[
                "Implement work restrictions if applicable",
                "Contact workers to schedule updates",
                "Apply temporary fixes if work must continue",
                "Escalate to management if unresolved",
            ],
        ))

    recommendations.sort(key=lambda r: r.priority, reverse=True)
    return recommendations


class GapAnalysisEngine:
    def __init__(self, session: AsyncSession, config: Settings = default_settings):
        self.session = session
        self.config = config

    async def analyze_client(self, client_id: Optional[int] = None) -> GapReport:
        """Gap report for every worker with an active role at ``client_id`` (all workers when None)."""
        now = datetime.utcnow()
        stmt = select(Worker).order_by(Worker.id)
        if client_id is not None:
            assigned = select(WorkerRole.worker_id).where(
                WorkerRole.client_id == client_id, active_role_filter(now)
            )
            stmt = stmt.where(Worker.id.in_(assigned))
        workers = list((await self.session.execute(stmt)).scalars().all())

        gaps = await self._gaps_for(workers, now)
        coverage = await self._client_coverage([w.id for w in workers], gaps)
        logger.info("Client gap analysis", extra={"client_id": client_id, "workers": len(workers), "gaps": len(gaps)})
        return GapReport(
            summary=summarize(gaps),
            gaps=gaps,
            coverage=coverage,
            recommendations=generate_recommendations(gaps),
        )

    async def analyze_worker(self, worker_id: int) -> GapReport:
        worker = await self.session.get(Worker, worker_id)
        if worker is None:
            raise NotFoundError("Worker not found")

        now = datetime.utcnow()
        gaps = await self._gaps_for([worker], now)

        total, satisfied = await self._requirement_counts([worker_id])
        # per-criticality coverage is not broken down for a single worker
        coverage = Coverage(overall=percent(satisfied, total), by_criticality=CriticalityCoverage())
        return GapReport(
            summary=summarize(gaps),
            gaps=gaps,
            coverage=coverage,
            recommendations=generate_recommendations(gaps),
        )

    # ------------------------------------------------------------------

    async def _gaps_for(self, workers: List[Worker], now: datetime) -> List[Gap]:
        if not workers:
            return []
        by_id = {w.id: w for w in workers}
        stmt = (
            select(RequiredControl)
            .where(RequiredControl.worker_id.in_(list(by_id)), RequiredControl.status.in_(OPEN_STATUSES))
            .options(selectinload(RequiredControl.control))
            .order_by(RequiredControl.id)
        )
        open_rows = list((await self.session.execute(stmt)).scalars().all())
        latest = await latest_evidence_by_requirement(self.session, [rc.id for rc in open_rows], valid_only=True)
        window_end = now + timedelta(days=self.config.EXPIRING_WINDOW_DAYS)

        candidates: List[Tuple[RequiredControl, Optional[Evidence], bool]] = []
        for rc in open_rows:
            evidence = latest.get(rc.id)
            is_open = rc.status in (RequirementStatus.REQUIRED, RequirementStatus.OVERDUE)
            is_expiring = bool(evidence and evidence.expiry_date and evidence.expiry_date <= window_end)
            if is_open or is_expiring:
                candidates.append((rc, evidence, is_expiring))

        hazards = await self._hazards_by_control({rc.control_id for rc, _, _ in candidates})

        gaps: List[Gap] = []
        for rc, evidence, is_expiring in candidates:
            linked = hazards.get(rc.control_id, [])
            risk_level = determine_risk_level(risk for _, risk in linked)
            due = rc.due_date or (evidence.expiry_date if evidence else None)
            days_until_due = days_until(due, now)

            if rc.status == RequirementStatus.OVERDUE:
                status = GAP_OVERDUE
            elif is_expiring:
                status = GAP_EXPIRING
            else:
                status = GAP_REQUIRED

            worker = by_id[rc.worker_id]
            gaps.append(Gap(
                id=rc.id,
                worker_id=worker.id,
                worker_name=worker.full_name,
                control_id=rc.control_id,
                control_code=rc.control.code,
                control_name=rc.control.title,
                control_type=rc.control.type,
                status=status,
                risk_level=risk_level,
                due_date=rc.due_date,
                days_until_due=days_until_due,
                hazards=[name for name, _ in linked],
                priority=calculate_priority(risk_level, days_until_due, status),
            ))

        gaps.sort(key=lambda g: g.priority, reverse=True)
        return gaps

    async def _hazards_by_control(self, control_ids: Iterable[int]) -> Dict[int, List[Tuple[str, int]]]:
        ids = list(control_ids)
        if not ids:
            return {}
        stmt = (
            select(HazardControl.control_id, Hazard.name, Hazard.pre_control_risk)
            .join(Hazard, Hazard.id == HazardControl.hazard_id)
            .where(HazardControl.control_id.in_(ids))
            .order_by(HazardControl.priority, HazardControl.id.desc())
        )
        linked: Dict[int, List[Tuple[str, int]]] = defaultdict(list)
        for control_id, name, risk in (await self.session.execute(stmt)).all():
            linked[control_id].append((name, risk))
        return linked

    async def _requirement_counts(self, worker_ids: List[int]) -> Tuple[int, int]:
        if not worker_ids:
            return 0, 0
        total = (await self.session.execute(
            select(func.count()).select_from(RequiredControl).where(RequiredControl.worker_id.in_(worker_ids))
        )).scalar_one()
        satisfied = (await self.session.execute(
            select(func.count()).select_from(RequiredControl).where(
                RequiredControl.worker_id.in_(worker_ids),
                RequiredControl.status == RequirementStatus.SATISFIED,
            )
        )).scalar_one()
        return total, satisfied

    async def _client_coverage(self, worker_ids: List[int], gaps: List[Gap]) -> Coverage:
        total, satisfied = await self._requirement_counts(worker_ids)
        overall = percent(satisfied, total)
        gaps_at = {level: sum(1 for g in gaps if g.risk_level == level) for level in
                   (RISK_CRITICAL, RISK_HIGH, RISK_MEDIUM, RISK_LOW)}

        if self.config.COVERAGE_MODE == "exact":
            totals = await self._requirements_by_risk_level(worker_ids)
            by_level = {
                level: percent(max(totals.get(level, 0) - gaps_at[level], 0), totals.get(level, 0))
                for level in gaps_at
            }
            approximate = False
        else:
            # no per-level denominator is stored; estimate one from the gap and satisfied counts
            by_level = {}
            for level, count in gaps_at.items():
                level_total = max(1, count + satisfied // 4)
                by_level[level] = percent(level_total - count, level_total)
            approximate = True

        return Coverage(
            overall=overall,
            by_criticality=CriticalityCoverage(
                critical=by_level[RISK_CRITICAL],
                high=by_level[RISK_HIGH],
                medium=by_level[RISK_MEDIUM],
                low=by_level[RISK_LOW],
            ),
            approximate=approximate,
        )

    async def _requirements_by_risk_level(self, worker_ids: List[int]) -> Dict[str, int]:
        if not worker_ids:
            return {}
        rows = (await self.session.execute(
            select(RequiredControl.control_id).where(RequiredControl.worker_id.in_(worker_ids))
        )).scalars().all()
        hazards = await self._hazards_by_control(set(rows))
        totals: Dict[str, int] = defaultdict(int)
        for control_id in rows:
            totals[determine_risk_level(risk for _, risk in hazards.get(control_id, []))] += 1
        return totals
