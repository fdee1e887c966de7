"""
End-to-end tests for the HTTP API over an in-process ASGI transport.
"""
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from safeguard.api.v1.evidence import get_file_store
from safeguard.core.database import get_session
from safeguard.main import app
from safeguard.utils.file_utils import EvidenceFileStore


@pytest.fixture
async def client(session_factory, tmp_path):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_file_store] = lambda: EvidenceFileStore(root=str(tmp_path / "evidence"))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _login(client: AsyncClient, username: str = "supervisor", role: str = "SUPERVISOR") -> dict:
    resp = await client.post("/api/v1/auth/signup", json={"username": username, "password": "s3cret-pass", "role": role})
    assert resp.status_code == 201
    resp = await client.post("/api/v1/auth/token", data={"username": username, "password": "s3cret-pass"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


class TestAuth:
    """Test signup, login and access control."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
        assert resp.headers["x-correlation-id"]

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client):
        resp = await client.get("/api/health", headers={"x-correlation-id": "abc-123"})
        assert resp.headers["x-correlation-id"] == "abc-123"

    @pytest.mark.asyncio
    async def test_duplicate_signup(self, client):
        await _login(client)

        resp = await client.post("/api/v1/auth/signup", json={"username": "supervisor", "password": "other"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Username already exists"}

    @pytest.mark.asyncio
    async def test_wrong_password(self, client):
        await _login(client)

        resp = await client.post("/api/v1/auth/token", data={"username": "supervisor", "password": "nope"})

        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_write_requires_token(self, client):
        resp = await client.post(
            "/api/v1/workers", json={"employee_id": "E1", "first_name": "A", "last_name": "B"}
        )

        assert resp.status_code == 401
        assert "error" in resp.json()

    @pytest.mark.asyncio
    async def test_recompute_all_requires_admin(self, client):
        supervisor = await _login(client)
        admin = await _login(client, "admin", "ADMIN")

        denied = await client.post("/api/v1/workers/recompute-all", headers=supervisor)
        allowed = await client.post("/api/v1/workers/recompute-all", headers=admin)

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json() == {"success": True, "error": None, "workers": 0}


class TestComplianceFlow:
    """Test the catalog to gap report flow through the API."""

    @pytest.fixture
    async def headers(self, client):
        return await _login(client)

    @pytest.fixture
    async def welder(self, client, headers):
        role = (await client.post("/api/v1/roles", json={"name": "Welder"}, headers=headers)).json()
        control = (await client.post("/api/v1/controls", json={
            "code": "TR-HOT", "title": "Hot Work Training", "type": "Training", "validity_days": 365,
        }, headers=headers)).json()
        hazard_resp = await client.post("/api/v1/hazards", json={
            "code": "HOT-001", "name": "Hot Work", "category": "Hot Work", "risk": "High",
        }, headers=headers)
        hazard = hazard_resp.json()
        mapping = await client.post(f"/api/v1/hazards/{hazard['id']}/controls", json={
            "control_id": control["id"], "is_critical": True, "priority": 1,
        }, headers=headers)
        worker = (await client.post("/api/v1/workers", json={
            "employee_id": "EMP-900", "first_name": "Rae", "last_name": "Lopez",
        }, headers=headers)).json()
        assignment = await client.post(f"/api/v1/workers/{worker['id']}/roles", json={
            "role_id": role["id"], "is_primary": True,
        }, headers=headers)

        assert hazard_resp.status_code == 201
        assert hazard["risk"] == "High"
        assert mapping.status_code == 201
        assert assignment.status_code == 201
        return worker

    @pytest.mark.asyncio
    async def test_role_assignment_creates_requirements(self, client, welder):
        resp = await client.get(f"/api/v1/workers/{welder['id']}")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "restricted"
        assert [r["role_name"] for r in body["roles"]] == ["Welder"]
        assert [(rc["control_code"], rc["status"]) for rc in body["required"]] == [("TR-HOT", "Required")]

    @pytest.mark.asyncio
    async def test_temporary_fix_and_gap_report(self, client, headers, welder):
        detail = (await client.get(f"/api/v1/workers/{welder['id']}")).json()
        rc_id = detail["required"][0]["id"]
        valid_until = (datetime.utcnow() + timedelta(days=10)).isoformat()

        fix = await client.post("/api/v1/evidence/temporary-fix", json={
            "required_control_id": rc_id, "notes": "Fire watch", "valid_until": valid_until,
        }, headers=headers)
        recompute = await client.post("/api/v1/workers/EMP-900/recompute", headers=headers)
        gaps = await client.get(f"/api/v1/analysis/gaps/workers/{welder['id']}")
        dashboard = await client.get("/api/v1/analysis/dashboard")

        assert fix.json()["success"] is True
        assert fix.json()["evidence_id"]
        assert recompute.json() == {"success": True, "error": None, "workers": None}
        assert [g["status"] for g in gaps.json()["gaps"]] == ["Expiring"]
        assert dashboard.json()["temp_fix_count"] == 1
        worker = (await client.get(f"/api/v1/workers/{welder['id']}")).json()
        assert worker["status"] == "active"

    @pytest.mark.asyncio
    async def test_temporary_fix_failure_is_reported(self, client, headers):
        resp = await client.post("/api/v1/evidence/temporary-fix", json={
            "required_control_id": 999, "notes": "x",
            "valid_until": (datetime.utcnow() + timedelta(days=1)).isoformat(),
        }, headers=headers)

        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert "not found" in resp.json()["error"]

    @pytest.mark.asyncio
    async def test_evidence_upload_and_attach(self, client, headers, welder):
        detail = (await client.get(f"/api/v1/workers/{welder['id']}")).json()
        rc_id = detail["required"][0]["id"]

        upload = await client.post(
            "/api/v1/evidence/upload", files={"file": ("cert.pdf", b"%PDF-1.4 cert", "application/pdf")}, headers=headers
        )
        stored = upload.json()
        added = await client.post("/api/v1/evidence", json={
            "required_control_id": rc_id,
            "issued_date": datetime.utcnow().isoformat(),
            "expiry_date": (datetime.utcnow() + timedelta(days=365)).isoformat(),
            "file_path": stored["path"],
            "checksum": stored["checksum"],
            "file_size": stored["size"],
            "original_name": stored["original_name"],
        }, headers=headers)
        score = await client.get(f"/api/v1/analysis/scores/{welder['id']}")

        assert upload.status_code == 201
        assert stored["size"] == len(b"%PDF-1.4 cert")
        assert added.status_code == 201
        assert added.json()["status"] == "Valid"
        assert score.json()["coverage"] == 100
        detail = (await client.get(f"/api/v1/workers/{welder['id']}")).json()
        assert detail["required"][0]["status"] == "Satisfied"
        assert detail["status"] == "active"

    @pytest.mark.asyncio
    async def test_unknown_worker_errors(self, client):
        gaps = await client.get("/api/v1/analysis/gaps/workers/999")
        worker = await client.get("/api/v1/workers/999")

        assert gaps.status_code == 404
        assert gaps.json() == {"success": False, "error": "Worker not found"}
        assert worker.status_code == 404
        assert worker.json() == {"error": "Worker not found"}

    @pytest.mark.asyncio
    async def test_unknown_employee_recompute_is_a_no_op(self, client, headers):
        resp = await client.post("/api/v1/workers/NOBODY/recompute", headers=headers)

        assert resp.status_code == 200
        assert resp.json()["success"] is True
