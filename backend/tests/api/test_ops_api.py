import pytest

from campusjam.infra import postgres
from campusjam.settings import settings


@pytest.mark.asyncio
async def test_liveness(api_client):
    response = await api_client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_reports_missing_pool(api_client):
    response = await api_client.get("/health/ready")
    assert response.status_code == 503
    checks = response.json()["checks"]
    assert checks["redis"]["ok"] is True
    assert checks["postgres"] == {"ok": False, "error": "pool_unavailable"}


@pytest.mark.asyncio
async def test_readiness_degrades_when_postgres_unreachable(monkeypatch, api_client):
    async def _refused():
        raise ConnectionRefusedError("postgres down")

    monkeypatch.setattr(postgres, "get_pool_or_none", _refused)

    response = await api_client.get("/health/ready")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["postgres"] == {"ok": False, "error": "ConnectionRefusedError"}


@pytest.mark.asyncio
async def test_metrics_require_admin_token(monkeypatch, api_client):
    monkeypatch.setattr(settings, "obs_metrics_public", False)
    monkeypatch.setattr(settings, "obs_admin_token", "ops-secret")

    denied = await api_client.get("/metrics")
    assert denied.status_code == 403

    allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-secret"})
    assert allowed.status_code == 200
    assert "campusjam_" in allowed.text


@pytest.mark.asyncio
async def test_request_id_header_is_echoed(api_client):
    response = await api_client.get("/health/live", headers={"X-Request-Id": "req-123"})
    assert response.headers["X-Request-Id"] == "req-123"
