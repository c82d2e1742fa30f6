import pytest


@pytest.mark.asyncio
async def test_liveness(api_client):
    response = await api_client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_reports_degraded_without_postgres(api_client):
    response = await api_client.get("/health/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["checks"]["redis"]["ok"] is True
    assert body["checks"]["postgres"]["ok"] is False


@pytest.mark.asyncio
async def test_metrics_requires_admin_token(api_client):
    denied = await api_client.get("/metrics")
    assert denied.status_code == 403

    allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "test-admin-token"})
    assert allowed.status_code == 200
    assert "cc_group_queues_created_total" in allowed.text
