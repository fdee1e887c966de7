"""
Shared fixtures: a throwaway SQLite database per test and a small factory
for seeding workers, roles, hazards, controls and evidence.
"""
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

import safeguard.models  # noqa: F401  (register tables on the metadata)
from safeguard.models.control import Control
from safeguard.models.evidence import Evidence, EvidenceStatus
from safeguard.models.hazard import Hazard, HazardControl
from safeguard.models.required_control import RequiredControl
from safeguard.models.role import Role, WorkerRole
from safeguard.models.worker import Worker


class Factory:
    """Seeds rows directly, bypassing the services under test."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def worker(self, first_name: str = "Sam", last_name: str = "Taylor", employee_id: Optional[str] = None) -> Worker:
        return await self._save(Worker(
            employee_id=employee_id or f"EMP-{self._next():03d}",
            first_name=first_name,
            last_name=last_name,
        ))

    async def role(self, name: str) -> Role:
        existing = (await self.session.execute(select(Role).where(Role.name == name))).scalars().first()
        if existing:
            return existing
        return await self._save(Role(name=name))

    async def control(self, code: Optional[str] = None, title: Optional[str] = None, type: str = "Training",
                      validity_days: Optional[int] = None) -> Control:
        code = code or f"CTRL-{self._next():03d}"
        return await self._save(Control(code=code, title=title or code, type=type, validity_days=validity_days))

    async def hazard(self, category: str, pre_control_risk: int = 4, name: Optional[str] = None,
                     controls: Iterable[Tuple[Control, bool, int]] = ()) -> Hazard:
        n = self._next()
        hazard = await self._save(Hazard(
            code=f"HAZ-{n:03d}",
            name=name or f"{category} hazard {n}",
            category=category,
            pre_control_risk=pre_control_risk,
            post_control_risk=pre_control_risk,
        ))
        for control, is_critical, priority in controls:
            self.session.add(HazardControl(
                hazard_id=hazard.id, control_id=control.id, is_critical=is_critical, priority=priority
            ))
        await self.session.commit()
        return hazard

    async def assign(self, worker: Worker, role: Role, is_primary: bool = True, client_id: Optional[int] = None,
                     end_at: Optional[datetime] = None) -> WorkerRole:
        return await self._save(WorkerRole(
            worker_id=worker.id,
            role_id=role.id,
            is_primary=is_primary,
            client_id=client_id,
            start_at=datetime.utcnow() - timedelta(days=1),
            end_at=end_at,
        ))

    async def evidence(self, rc: RequiredControl, issued_date: Optional[datetime] = None,
                       expiry_date: Optional[datetime] = None, type: str = "Certificate",
                       status: EvidenceStatus = EvidenceStatus.VALID) -> Evidence:
        return await self._save(Evidence(
            required_control_id=rc.id,
            type=type,
            status=status,
            issued_date=issued_date or datetime.utcnow() - timedelta(days=1),
            expiry_date=expiry_date,
        ))

    async def required(self, worker: Worker) -> dict:
        """Current RequiredControl rows for a worker keyed by control code."""
        result = await self.session.execute(
            select(RequiredControl, Control.code)
            .join(Control, Control.id == RequiredControl.control_id)
            .where(RequiredControl.worker_id == worker.id)
            .execution_options(populate_existing=True)
        )
        return {code: rc for rc, code in result.all()}


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'safeguard-test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(session):
    return Factory(session)


@pytest.fixture
async def welder_setup(factory):
    """A Welder with hot-work and confined-space hazards mapped to three controls."""
    hot_work_training = await factory.control("TR-HOT", validity_days=365)
    permit = await factory.control("DOC-PERMIT", type="Document")
    confined_space = await factory.control("TR-CSE", validity_days=730)

    hot_work = await factory.hazard("Hot Work", pre_control_risk=7, name="Hot Work", controls=[
        (hot_work_training, True, 1),
        (permit, False, 2),
    ])
    confined = await factory.hazard("Confined Space", pre_control_risk=9, name="Confined Space", controls=[
        (confined_space, True, 1),
    ])
    # a category no Welder is exposed to
    electrical_training = await factory.control("TR-ELEC", validity_days=365)
    await factory.hazard("Electrical", pre_control_risk=9, controls=[(electrical_training, True, 1)])

    worker = await factory.worker("Alex", "Morgan")
    welder = await factory.role("Welder")
    assignment = await factory.assign(worker, welder)
    return {
        "worker": worker,
        "role": welder,
        "assignment": assignment,
        "hazards": {"hot_work": hot_work, "confined": confined},
        "controls": {
            "TR-HOT": hot_work_training,
            "DOC-PERMIT": permit,
            "TR-CSE": confined_space,
            "TR-ELEC": electrical_training,
        },
    }
