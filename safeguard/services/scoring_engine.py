"""Risk-Based Control Score (RBCS) per worker.

rbcs = 100 * (0.40 coverage + 0.25 quality + 0.25 effectiveness + 0.10 velocity)

Effectiveness and velocity are pluggable async callables returning a score
in [0, 1]; the baselines stand in until incident and action-closure data is
recorded.
"""
from datetime import datetime
from typing import Awaitable, Callable, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.exceptions import NotFoundError
from safeguard.models.evidence import Evidence, EvidenceStatus
from safeguard.models.required_control import RequiredControl
from safeguard.models.worker import Worker
from safeguard.schemas.analysis import WorkerScore

SubScore = Callable[[AsyncSession, int], Awaitable[float]]

WEIGHTS: Dict[str, float] = {
    "coverage": 0.40,
    "quality": 0.25,
    "effectiveness": 0.25,
    "velocity": 0.10,
}


async def baseline_effectiveness(session: AsyncSession, worker_id: int) -> float:
    return 0.85


async def baseline_velocity(session: AsyncSession, worker_id: int) -> float:
    return 0.80


def coverage_score(required: List[RequiredControl], evidence: List[Evidence]) -> float:
    """Share of requirements backed by at least one valid evidence row."""
    if not required:
        return 1.0
    backed = {ev.required_control_id for ev in evidence if ev.status == EvidenceStatus.VALID}
    return sum(1 for rc in required if rc.id in backed) / len(required)


def quality_score(evidence: List[Evidence], now: datetime) -> float:
    """Share of evidence rows that are valid and unexpired."""
    if not evidence:
        return 1.0
    good = [
        ev for ev in evidence
        if ev.status == EvidenceStatus.VALID and (ev.expiry_date is None or ev.expiry_date > now)
    ]
    return len(good) / len(evidence)


class ScoringEngine:
    def __init__(
        self,
        session: AsyncSession,
        effectiveness: SubScore = baseline_effectiveness,
        velocity: SubScore = baseline_velocity,
    ):
        self.session = session
        self.effectiveness = effectiveness
        self.velocity = velocity

    async def calculate_worker_score(self, worker_id: int) -> WorkerScore:
        if await self.session.get(Worker, worker_id) is None:
            raise NotFoundError("Worker not found")

        required = list((await self.session.execute(
            select(RequiredControl).where(RequiredControl.worker_id == worker_id)
        )).scalars().all())
        evidence = list((await self.session.execute(
            select(Evidence)
            .join(RequiredControl, RequiredControl.id == Evidence.required_control_id)
            .where(RequiredControl.worker_id == worker_id)
            .order_by(Evidence.created_at.desc())
        )).scalars().all())

        now = datetime.utcnow()
        coverage = coverage_score(required, evidence)
        quality = quality_score(evidence, now)
        effectiveness = await self.effectiveness(self.session, worker_id)
        velocity = await self.velocity(self.session, worker_id)

        rbcs = (
            WEIGHTS["coverage"] * coverage
            + WEIGHTS["quality"] * quality
            + WEIGHTS["effectiveness"] * effectiveness
            + WEIGHTS["velocity"] * velocity
        ) * 100
        return WorkerScore(
            worker_id=worker_id,
            rbcs=_round(rbcs),
            coverage=_round(coverage * 100),
            quality=_round(quality * 100),
            effectiveness=_round(effectiveness * 100),
            velocity=_round(velocity * 100),
        )


def _round(value: float) -> int:
    return int(value + 0.5)
