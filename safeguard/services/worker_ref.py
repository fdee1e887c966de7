"""Worker references accepted by the engines.

A reference is one of ``WorkerById``, ``WorkerByRef`` (an id carried inside
a record) or ``WorkerByEmployeeId``. Loose inputs such as ints, strings and
dicts from API payloads are coerced by ``to_worker_ref`` and resolved to a
single worker id by ``resolve_worker_id``.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.exceptions import MissingWorkerIdError
from safeguard.models.worker import Worker


@dataclass(frozen=True)
class WorkerById:
    worker_id: int


@dataclass(frozen=True)
class WorkerByRef:
    worker_id: int


@dataclass(frozen=True)
class WorkerByEmployeeId:
    employee_id: str


WorkerRef = Union[WorkerById, WorkerByRef, WorkerByEmployeeId]


def _as_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def to_worker_ref(value: Any) -> WorkerRef:
    if isinstance(value, (WorkerById, WorkerByRef, WorkerByEmployeeId)):
        return value

    worker_id = _as_id(value)
    if worker_id is not None:
        return WorkerById(worker_id)

    # ids are integers, so any other non-empty string can only be an employee id
    if isinstance(value, str) and value.strip():
        return WorkerByEmployeeId(value.strip())

    if isinstance(value, Mapping):
        for key in ("workerId", "worker_id", "id"):
            worker_id = _as_id(value.get(key))
            if worker_id is not None:
                return WorkerByRef(worker_id)
        for key in ("employeeId", "employee_id"):
            employee_id = value.get(key)
            if isinstance(employee_id, str) and employee_id.strip():
                return WorkerByEmployeeId(employee_id.strip())

    raise MissingWorkerIdError()


async def resolve_worker_id(session: AsyncSession, value: Any) -> Optional[int]:
    """Return the worker id for ``value``.

    Raises ``MissingWorkerIdError`` when nothing usable was supplied. Returns
    None when an employee id does not match any worker.
    """
    ref = to_worker_ref(value)
    if isinstance(ref, WorkerByEmployeeId):
        result = await session.execute(select(Worker.id).where(Worker.employee_id == ref.employee_id))
        return result.scalars().first()
    return ref.worker_id
