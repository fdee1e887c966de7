# models package for SQLModel models
from .user import User, UserRole  # noqa: F401  (import for metadata registration)
from .worker import Worker, WorkerStatus  # noqa: F401
from .client import Client, Site  # noqa: F401
from .role import Role, WorkerRole  # noqa: F401
from .control import Control, CONTROL_TYPES  # noqa: F401
from .hazard import Hazard, HazardControl  # noqa: F401
from .required_control import RequiredControl, RequirementStatus, COVERED_STATUSES  # noqa: F401
from .evidence import Evidence, EvidenceStatus, TEMPORARY_EVIDENCE_TYPE  # noqa: F401
from .kpi import KPI  # noqa: F401
