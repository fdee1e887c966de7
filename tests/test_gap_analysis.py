"""
Tests for gap analysis, recommendations and coverage.
"""
from datetime import datetime, timedelta

import pytest

from safeguard.core.config import Settings
from safeguard.core.exceptions import NotFoundError
from safeguard.schemas.analysis import Gap
from safeguard.services import catalog_service, evidence_service
from safeguard.services.assignment_engine import AssignmentEngine
from safeguard.services.gap_analysis import GapAnalysisEngine, generate_recommendations, summarize


def _gap(worker_id=1, risk_level="Low", status="Required", priority=30) -> Gap:
    return Gap(
        id=worker_id * 100 + priority,
        worker_id=worker_id,
        worker_name="A B",
        control_id=1,
        control_code="C",
        control_name="C",
        control_type="Training",
        status=status,
        risk_level=risk_level,
        priority=priority,
    )


class TestRecommendations:
    """Test summary counts and recommendation rules."""

    def test_no_gaps_no_recommendations(self):
        assert generate_recommendations([]) == []
        assert summarize([]).total_gaps == 0

    def test_recommendations_sorted_by_priority(self):
        gaps = [
            _gap(1, "Critical", "Required", 90),
            _gap(2, "Critical", "Overdue", 100),
            _gap(2, "Low", "Expiring", 40),
            _gap(3, "Medium", "Overdue", 60),
        ]

        recs = generate_recommendations(gaps)

        assert [r.id for r in recs] == ["critical-gaps", "overdue-controls", "expiring-evidence"]
        assert [r.priority for r in recs] == [100, 95, 80]
        critical, overdue, expiring = recs
        assert critical.affected_workers == 2
        assert critical.title == "2 Critical Safety Gaps Detected"
        assert overdue.affected_workers == 2
        assert expiring.affected_workers == 1
        assert len(critical.actions) == 4

    def test_summary_counts(self):
        gaps = [
            _gap(1, "Critical", "Overdue", 100),
            _gap(1, "High", "Expiring", 75),
            _gap(1, "High", "Required", 70),
            _gap(1, "Low", "Required", 30),
        ]

        summary = summarize(gaps)

        assert summary.total_gaps == 4
        assert summary.critical_gaps == 1
        assert summary.high_gaps == 2
        assert summary.medium_gaps == 0
        assert summary.low_gaps == 1
        assert summary.overdue == 1
        assert summary.expiring_within_30_days == 1


class TestGapAnalysisEngine:
    """Test gap reports built from recomputed requirements."""

    @pytest.fixture
    async def recomputed(self, session, welder_setup):
        await AssignmentEngine(session).recompute_worker(welder_setup["worker"].id)
        return welder_setup

    @pytest.mark.asyncio
    async def test_worker_gaps_ranked_by_priority(self, session, recomputed):
        report = await GapAnalysisEngine(session).analyze_worker(recomputed["worker"].id)

        assert [g.control_code for g in report.gaps][0] == "TR-CSE"
        assert [g.priority for g in report.gaps] == sorted((g.priority for g in report.gaps), reverse=True)
        first = report.gaps[0]
        assert first.risk_level == "Critical"
        assert first.status == "Required"
        assert first.hazards == ["Confined Space"]
        assert first.worker_name == "Alex Morgan"
        assert report.summary.total_gaps == 3
        assert report.summary.critical_gaps == 1
        assert report.summary.high_gaps == 2
        assert [r.id for r in report.recommendations] == ["critical-gaps"]
        assert report.coverage.overall == 0

    @pytest.mark.asyncio
    async def test_overdue_gap(self, session, factory, recomputed):
        worker = recomputed["worker"]
        rows = await factory.required(worker)
        expiry = datetime.utcnow() - timedelta(days=3)
        await factory.evidence(rows["TR-HOT"], issued_date=expiry - timedelta(days=365), expiry_date=expiry)
        await AssignmentEngine(session).recompute_worker(worker.id)

        report = await GapAnalysisEngine(session).analyze_worker(worker.id)

        overdue = next(g for g in report.gaps if g.control_code == "TR-HOT")
        assert overdue.status == "Overdue"
        assert overdue.days_until_due < 0
        assert overdue.priority > 80
        assert report.summary.overdue == 1
        assert [r.id for r in report.recommendations] == ["critical-gaps", "overdue-controls"]

    @pytest.mark.asyncio
    async def test_temporary_fix_expiring_is_a_gap(self, session, factory, recomputed):
        worker = recomputed["worker"]
        rows = await factory.required(worker)
        await evidence_service.create_temporary_fix(
            session, rows["TR-HOT"].id, "Supervised work only", datetime.utcnow() + timedelta(days=10)
        )

        report = await GapAnalysisEngine(session).analyze_worker(worker.id)

        expiring = next(g for g in report.gaps if g.control_code == "TR-HOT")
        assert expiring.status == "Expiring"
        assert report.summary.expiring_within_30_days == 1
        assert "expiring-evidence" in [r.id for r in report.recommendations]

    @pytest.mark.asyncio
    async def test_long_temporary_fix_is_not_a_gap(self, session, factory, recomputed):
        worker = recomputed["worker"]
        rows = await factory.required(worker)
        await evidence_service.create_temporary_fix(
            session, rows["TR-HOT"].id, "Supervised work only", datetime.utcnow() + timedelta(days=90)
        )

        report = await GapAnalysisEngine(session).analyze_worker(worker.id)

        assert "TR-HOT" not in [g.control_code for g in report.gaps]
        assert report.summary.total_gaps == 2

    @pytest.mark.asyncio
    async def test_unknown_worker_raises(self, session):
        with pytest.raises(NotFoundError):
            await GapAnalysisEngine(session).analyze_worker(31337)

    @pytest.mark.asyncio
    async def test_worker_without_requirements_has_full_coverage(self, session, factory):
        worker = await factory.worker()

        report = await GapAnalysisEngine(session).analyze_worker(worker.id)

        assert report.gaps == []
        assert report.coverage.overall == 100
        assert report.coverage.by_criticality.critical == 100

    @pytest.mark.asyncio
    async def test_empty_client_report(self, session):
        report = await GapAnalysisEngine(session).analyze_client(None)

        assert report.summary.total_gaps == 0
        assert report.coverage.overall == 100
        assert report.coverage.by_criticality.low == 100
        assert report.recommendations == []

    @pytest.mark.asyncio
    async def test_client_scope_filters_workers(self, session, factory, welder_setup):
        client = await catalog_service.create_client(session, "Acme Fabrication")
        on_site = await factory.worker("Kim", "Onsite")
        await factory.assign(on_site, welder_setup["role"], client_id=client.id)
        engine = AssignmentEngine(session)
        await engine.recompute_worker(on_site.id)
        await engine.recompute_worker(welder_setup["worker"].id)

        scoped = await GapAnalysisEngine(session).analyze_client(client.id)
        everyone = await GapAnalysisEngine(session).analyze_client(None)

        assert {g.worker_id for g in scoped.gaps} == {on_site.id}
        assert {g.worker_id for g in everyone.gaps} == {on_site.id, welder_setup["worker"].id}

    @pytest.mark.asyncio
    async def test_approximate_coverage_by_criticality(self, session, recomputed):
        report = await GapAnalysisEngine(session).analyze_client(None)

        assert report.coverage.approximate is True
        assert report.coverage.by_criticality.critical == 0
        assert report.coverage.by_criticality.high == 0
        assert report.coverage.by_criticality.medium == 100

    @pytest.mark.asyncio
    async def test_exact_coverage_by_criticality(self, session, factory, recomputed):
        rows = await factory.required(recomputed["worker"])
        await factory.evidence(rows["TR-HOT"], expiry_date=datetime.utcnow() + timedelta(days=365))
        await AssignmentEngine(session).recompute_worker(recomputed["worker"].id)

        report = await GapAnalysisEngine(session, config=Settings(COVERAGE_MODE="exact")).analyze_client(None)

        assert report.coverage.approximate is False
        assert report.coverage.overall == 33
        assert report.coverage.by_criticality.critical == 0
        assert report.coverage.by_criticality.high == 50
        assert report.coverage.by_criticality.low == 100
