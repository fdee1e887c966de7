"""Status, risk and priority rules shared by the assignment and gap analysis engines.

Everything here is a pure function of its arguments; callers pass ``now``
explicitly so results are reproducible.
"""
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional, Set, Tuple

from safeguard.models.control import Control
from safeguard.models.evidence import Evidence
from safeguard.models.required_control import RequiredControl, RequirementStatus, COVERED_STATUSES
from safeguard.models.worker import WorkerStatus


RISK_CRITICAL = "Critical"
RISK_HIGH = "High"
RISK_MEDIUM = "Medium"
RISK_LOW = "Low"
RISK_LEVELS = (RISK_CRITICAL, RISK_HIGH, RISK_MEDIUM, RISK_LOW)

_BASE_PRIORITY = {RISK_CRITICAL: 90, RISK_HIGH: 70, RISK_MEDIUM: 50, RISK_LOW: 30}
_LABEL_TO_SCORE = {"critical": 9, "high": 7, "medium": 4, "low": 2}


def calculate_due_date(control: Optional[Control], now: datetime) -> Optional[datetime]:
    if control is None or not control.validity_days:
        return None
    return now + timedelta(days=control.validity_days)


def derive_status(
    required_control: RequiredControl,
    latest_evidence: Optional[Evidence],
    control: Optional[Control],
    now: datetime,
) -> Tuple[RequirementStatus, Optional[datetime]]:
    """Return ``(status, due_date)`` for a requirement at ``now``.

    Rules, first match wins:
      1. an unexpired temporary fix -> Temporary, due at the fix expiry
      2. no evidence -> Required, due after the control's validity period (if any)
      3. latest evidence expired -> Overdue, due at the expiry date
      4. otherwise -> Satisfied, due at the expiry date (None when perpetual)

    A requirement that is already Required keeps the due date it was given,
    so repeated evaluation does not keep pushing the deadline out.
    """
    if required_control.temp_valid_until is not None and required_control.temp_valid_until > now:
        return RequirementStatus.TEMPORARY, required_control.temp_valid_until

    if latest_evidence is None:
        if required_control.status == RequirementStatus.REQUIRED and required_control.due_date is not None:
            return RequirementStatus.REQUIRED, required_control.due_date
        return RequirementStatus.REQUIRED, calculate_due_date(control, now)

    if latest_evidence.expiry_date is not None and latest_evidence.expiry_date <= now:
        return RequirementStatus.OVERDUE, latest_evidence.expiry_date

    return RequirementStatus.SATISFIED, latest_evidence.expiry_date


def derive_worker_status(
    required_controls: Iterable[RequiredControl],
    critical_control_ids: Set[int],
    threshold: float = 0.80,
) -> WorkerStatus:
    rows = list(required_controls)
    if not rows:
        return WorkerStatus.ACTIVE

    covered = [rc for rc in rows if rc.status in COVERED_STATUSES]
    coverage = len(covered) / len(rows)

    missing_critical = any(
        rc.control_id in critical_control_ids for rc in rows if rc.status not in COVERED_STATUSES
    )
    if missing_critical or coverage < threshold:
        return WorkerStatus.RESTRICTED
    return WorkerStatus.ACTIVE


def risk_level_for_score(score: Optional[float]) -> str:
    s = 4 if score is None else score
    if s >= 9:
        return RISK_CRITICAL
    if s >= 7:
        return RISK_HIGH
    if s >= 4:
        return RISK_MEDIUM
    return RISK_LOW


def risk_label_to_score(label: Optional[str]) -> int:
    return _LABEL_TO_SCORE.get((label or "").lower(), 4)


def determine_risk_level(pre_control_risks: Iterable[float]) -> str:
    """Bucket the highest pre-control risk of the hazards linked to a control."""
    risks = list(pre_control_risks)
    if not risks:
        return RISK_LOW
    return risk_level_for_score(max(risks))


def days_until(target: Optional[datetime], now: datetime) -> Optional[int]:
    if target is None:
        return None
    return math.floor((target - now).total_seconds() / 86400)


def calculate_priority(risk_level: str, days_until_due: Optional[int], status: str) -> int:
    """Urgency score in 0..100; higher is more urgent."""
    score = _BASE_PRIORITY.get(risk_level, 0)
    if status == RequirementStatus.OVERDUE.value:
        score += 10
    if days_until_due is not None and days_until_due < 30:
        score += max(0, 10 - days_until_due // 3)
    return min(100, score)


def percent(part: int, whole: int) -> int:
    """Round half up like a dashboard would; an empty denominator is full coverage."""
    if whole <= 0:
        return 100
    return int(math.floor(part * 100 / whole + 0.5))
