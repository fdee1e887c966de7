"""
Tests for evidence capture, temporary fixes and bulk evidence.
"""
from datetime import datetime, timedelta

import pytest

from safeguard.core.exceptions import NotFoundError, ValidationError
from safeguard.models.evidence import TEMPORARY_EVIDENCE_TYPE
from safeguard.models.required_control import RequirementStatus
from safeguard.services import evidence_service
from safeguard.services.assignment_engine import AssignmentEngine


@pytest.fixture
async def requirements(session, factory, welder_setup):
    """The welder's RequiredControl rows after a first recompute."""
    await AssignmentEngine(session).recompute_worker(welder_setup["worker"].id)
    return await factory.required(welder_setup["worker"])


class TestAddEvidence:
    """Test single evidence uploads."""

    @pytest.mark.asyncio
    async def test_evidence_satisfies_requirement(self, session, factory, welder_setup, requirements):
        expiry = datetime.utcnow() + timedelta(days=365)

        evidence = await evidence_service.add_evidence(
            session, requirements["TR-HOT"].id, issued_date=datetime.utcnow(), expiry_date=expiry,
            original_name="hot-work.pdf",
        )

        rows = await factory.required(welder_setup["worker"])
        assert evidence.id is not None
        assert evidence.original_name == "hot-work.pdf"
        assert rows["TR-HOT"].status == RequirementStatus.SATISFIED
        assert rows["TR-HOT"].due_date == expiry

    @pytest.mark.asyncio
    async def test_permanent_evidence_ends_temporary_fix(self, session, factory, welder_setup, requirements):
        rc_id = requirements["TR-HOT"].id
        await evidence_service.create_temporary_fix(
            session, rc_id, "Buddy system", datetime.utcnow() + timedelta(days=7)
        )

        await evidence_service.add_evidence(
            session, rc_id, issued_date=datetime.utcnow(), expiry_date=datetime.utcnow() + timedelta(days=365)
        )

        rc = (await factory.required(welder_setup["worker"]))["TR-HOT"]
        assert rc.status == RequirementStatus.SATISFIED
        assert rc.temp_valid_until is None
        assert rc.temp_evidence_id is None
        assert rc.temp_notes is None

    @pytest.mark.asyncio
    async def test_unknown_requirement(self, session):
        with pytest.raises(NotFoundError):
            await evidence_service.add_evidence(session, 4242, issued_date=datetime.utcnow())

    @pytest.mark.asyncio
    async def test_history_is_listed_newest_first(self, session, requirements):
        rc_id = requirements["TR-CSE"].id
        now = datetime.utcnow()
        older = await evidence_service.add_evidence(session, rc_id, issued_date=now - timedelta(days=800),
                                                    expiry_date=now - timedelta(days=70))
        newer = await evidence_service.add_evidence(session, rc_id, issued_date=now,
                                                    expiry_date=now + timedelta(days=730))

        history = await evidence_service.list_evidence(session, rc_id)

        assert [e.id for e in history] == [newer.id, older.id]


class TestTemporaryFix:
    """Test temporary fixes on open requirements."""

    @pytest.mark.asyncio
    async def test_temporary_fix(self, session, factory, welder_setup, requirements):
        valid_until = datetime.utcnow() + timedelta(days=14)

        evidence = await evidence_service.create_temporary_fix(
            session, requirements["TR-CSE"].id, "Standby person at entry", valid_until
        )

        rc = (await factory.required(welder_setup["worker"]))["TR-CSE"]
        assert evidence.type == TEMPORARY_EVIDENCE_TYPE
        assert evidence.expiry_date == valid_until
        assert rc.status == RequirementStatus.TEMPORARY
        assert rc.due_date == valid_until
        assert rc.temp_evidence_id == evidence.id
        assert rc.temp_notes == "Standby person at entry"

    @pytest.mark.asyncio
    async def test_temporary_fix_survives_recompute(self, session, factory, welder_setup, requirements):
        valid_until = datetime.utcnow() + timedelta(days=14)
        await evidence_service.create_temporary_fix(session, requirements["TR-CSE"].id, "Standby", valid_until)

        await AssignmentEngine(session).recompute_worker(welder_setup["worker"].id)

        rc = (await factory.required(welder_setup["worker"]))["TR-CSE"]
        assert rc.status == RequirementStatus.TEMPORARY
        assert rc.due_date == valid_until

    @pytest.mark.asyncio
    async def test_valid_until_must_be_in_the_future(self, session, requirements):
        with pytest.raises(ValidationError):
            await evidence_service.create_temporary_fix(
                session, requirements["TR-CSE"].id, "Too late", datetime.utcnow() - timedelta(minutes=1)
            )


class TestBulkEvidence:
    """Test one attendance record shared by several workers."""

    @pytest.mark.asyncio
    async def test_bulk_evidence(self, session, factory, welder_setup, requirements):
        welder = welder_setup["worker"]
        apprentice = await factory.worker("Lee", "Park")
        control = welder_setup["controls"]["TR-HOT"]
        expiry = datetime.utcnow() + timedelta(days=365)

        result = await evidence_service.bulk_add_evidence(
            session, control.id, [welder.id, apprentice.id, welder.id],
            issued_date=datetime.utcnow(), expiry_date=expiry, file_path="evidence/2025/09/abc_sheet.pdf",
        )

        assert result == {"created": 2, "file_path": "evidence/2025/09/abc_sheet.pdf"}
        welder_row = (await factory.required(welder))["TR-HOT"]
        apprentice_row = (await factory.required(apprentice))["TR-HOT"]
        assert welder_row.id == requirements["TR-HOT"].id
        assert welder_row.status == RequirementStatus.SATISFIED
        assert apprentice_row.status == RequirementStatus.SATISFIED

        history = await evidence_service.list_evidence(session, apprentice_row.id)
        assert [(e.type, e.original_name) for e in history] == [("Attendance", "abc_sheet.pdf")]

    @pytest.mark.asyncio
    async def test_bulk_evidence_unknown_worker(self, session, welder_setup):
        with pytest.raises(NotFoundError):
            await evidence_service.bulk_add_evidence(
                session, welder_setup["controls"]["TR-HOT"].id, [welder_setup["worker"].id, 999],
                issued_date=datetime.utcnow(),
            )

    @pytest.mark.asyncio
    async def test_bulk_evidence_requires_inputs(self, session, welder_setup):
        with pytest.raises(ValidationError):
            await evidence_service.bulk_add_evidence(
                session, welder_setup["controls"]["TR-HOT"].id, [], issued_date=datetime.utcnow()
            )
        with pytest.raises(NotFoundError):
            await evidence_service.bulk_add_evidence(
                session, 999, [welder_setup["worker"].id], issued_date=datetime.utcnow()
            )
