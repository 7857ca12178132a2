import jwt
import pytest

from centerhub.infra import jwt as jwt_helper
from centerhub.obs import metrics
from centerhub.settings import settings


@pytest.mark.asyncio
async def test_health_endpoints(api_client):
	live = await api_client.get("/health/live")
	assert live.json() == {"status": "ok"}

	ready = await api_client.get("/health/ready")
	assert ready.status_code == 200
	checks = ready.json()["checks"]
	assert checks["store"]["ok"] is True
	assert checks["change_feed"] == {"ok": True, "enabled": False}


@pytest.mark.asyncio
async def test_ready_degrades_without_change_feed(api_client, monkeypatch):
	monkeypatch.setattr(settings, "tree_feed_enabled", True)

	ready = await api_client.get("/health/ready")

	assert ready.status_code == 503
	assert ready.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "secret")

	denied = await api_client.get("/metrics")
	assert denied.status_code == 403

	allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "secret"})
	assert allowed.status_code == 200
	assert "centerhub_tree_writes_total" in allowed.text


@pytest.mark.asyncio
async def test_permission_denials_are_counted(api_client, seed_center):
	center_id = await seed_center(students=["st"])
	before = metrics.PERMISSION_DENIED.labels(rule="owner")._value.get()

	response = await api_client.delete(
		f"/api/centers/v1/centers/{center_id}",
		headers={"X-User-Id": "st"},
	)

	assert response.status_code == 403
	assert metrics.PERMISSION_DENIED.labels(rule="owner")._value.get() == before + 1


@pytest.mark.asyncio
async def test_bearer_token_identifies_user(api_client, monkeypatch, seed_center):
	center_id = await seed_center(students=["st"])
	monkeypatch.setattr(settings, "environment", "production")
	token = jwt_helper.issue_access("st", name="Sofía")
	forged_token = jwt.encode({"sub": "st"}, "not-the-secret", algorithm="HS256")

	ok = await api_client.get(f"/api/centers/v1/centers/{center_id}/me", headers={"Authorization": f"Bearer {token}"})
	headers_only = await api_client.get(f"/api/centers/v1/centers/{center_id}/me", headers={"X-User-Id": "st"})
	forged = await api_client.get(
		f"/api/centers/v1/centers/{center_id}/me",
		headers={"Authorization": f"Bearer {forged_token}"},
	)

	assert ok.status_code == 200
	assert ok.json()["role"] == "student"
	assert headers_only.status_code == 401
	assert forged.status_code == 401
