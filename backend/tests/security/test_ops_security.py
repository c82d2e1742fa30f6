from fastapi import status
from fastapi.testclient import TestClient

from app.main import app


def test_metrics_fail_closed_without_token(monkeypatch):
    from app import settings
    monkeypatch.setattr(settings.settings, "obs_admin_token", None)
    monkeypatch.setattr(settings.settings, "obs_metrics_public", False)

    client = TestClient(app)
    response = client.get("/metrics", headers={"X-Admin-Token": "whatever"})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "admin_token_not_configured"


def test_metrics_accepts_bearer_admin_token(monkeypatch):
    from app import settings
    monkeypatch.setattr(settings.settings, "obs_admin_token", "secret-token")

    client = TestClient(app)
    wrong = client.get("/metrics", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == status.HTTP_403_FORBIDDEN
    assert wrong.json()["code"] == "forbidden"

    right = client.get("/metrics", headers={"Authorization": "Bearer secret-token"})
    assert right.status_code == status.HTTP_200_OK


def test_metrics_public_flag_skips_token(monkeypatch):
    from app import settings
    monkeypatch.setattr(settings.settings, "obs_admin_token", None)
    monkeypatch.setattr(settings.settings, "obs_metrics_public", True)

    client = TestClient(app)
    assert client.get("/metrics").status_code == status.HTTP_200_OK
