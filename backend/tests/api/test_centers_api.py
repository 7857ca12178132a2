"""API surface tests for center routes."""

from __future__ import annotations

import pytest

from centerhub.ai.flows import GenerationError
from centerhub.centers.api import ai as ai_api
from centerhub.centers.api import notifications as notifications_api
from centerhub.centers.schemas import dto

BASE = "/api/centers/v1"


def _headers(user_id: str) -> dict[str, str]:
	return {"X-User-Id": user_id, "X-User-Name": user_id.title()}


async def _create_center(api_client) -> dict:
	response = await api_client.post(
		f"{BASE}/centers",
		json={
			"name": "Centro de Estudiantes",
			"school_name": "Escuela Normal",
			"country": "Argentina",
			"courses": ["4A", "4B"],
		},
		headers=_headers("owner"),
	)
	assert response.status_code == 201
	return response.json()


@pytest.mark.asyncio
async def test_requires_identity(api_client):
	response = await api_client.get(f"{BASE}/centers")
	assert response.status_code == 401
	assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_create_join_and_list(api_client, tree_store):
	center = await _create_center(api_client)
	assert center["my_role"] == "owner"

	preview = await api_client.get(f"{BASE}/codes/{center['codes']['student']}", headers=_headers("st"))
	assert preview.status_code == 200
	assert preview.json()["role"] == "student"

	joined = await api_client.post(
		f"{BASE}/join",
		json={"code": center["codes"]["student"], "course": "4B"},
		headers=_headers("st"),
	)
	assert joined.status_code == 200
	assert joined.json()["codes"] is None

	again = await api_client.post(
		f"{BASE}/join",
		json={"code": center["codes"]["student"], "course": "4B"},
		headers=_headers("st"),
	)
	assert again.status_code == 409

	listing = await api_client.get(f"{BASE}/centers", headers=_headers("st"))
	assert [item["id"] for item in listing.json()["items"]] == [center["id"]]


@pytest.mark.asyncio
async def test_error_mapping(api_client, tree_store, seed_center):
	center_id = await seed_center(students=["st"])

	missing = await api_client.get(f"{BASE}/centers/nope", headers=_headers("owner"))
	assert missing.status_code == 404
	assert missing.json()["detail"] == "center_not_found"

	stranger = await api_client.get(f"{BASE}/centers/{center_id}", headers=_headers("stranger"))
	assert stranger.status_code == 403
	assert stranger.json()["detail"] == "membership_required"

	invalid = await api_client.post(
		f"{BASE}/centers/{center_id}/posts",
		json={"content": "no"},
		headers=_headers("st"),
	)
	assert invalid.status_code == 422
	assert invalid.json()["detail"] == "validation_error"

	created = await api_client.post(
		f"{BASE}/centers/{center_id}/posts",
		json={"content": "Hola a todos"},
		headers=_headers("st"),
	)
	assert created.status_code == 201
	assert "request_id" in missing.json()


@pytest.mark.asyncio
async def test_notifications_list_endpoint(api_client, monkeypatch):
	class StubService:
		async def list_notifications(self, user, *, center_id, limit):
			assert user.id == "st"
			assert center_id is None
			assert limit == 5
			return dto.NotificationListResponse(items=[], unread_count=0)

	monkeypatch.setattr(notifications_api, "_service", StubService())

	response = await api_client.get(f"{BASE}/notifications", params={"limit": 5}, headers=_headers("st"))

	assert response.status_code == 200
	assert response.json() == {"items": [], "unread_count": 0}


@pytest.mark.asyncio
async def test_generation_failure_maps_to_503(api_client, monkeypatch):
	class StubService:
		async def fixture(self, user, center_id, payload):
			raise GenerationError("fixture")

	monkeypatch.setattr(ai_api, "_service", StubService())

	response = await api_client.post(
		f"{BASE}/centers/center-1/ai/fixture",
		json={
			"teams": [{"id": "t1", "name": "Pumas"}, {"id": "t2", "name": "Halcones"}],
			"description": "Final única",
			"classification_type": "elimination",
		},
		headers=_headers("owner"),
	)

	assert response.status_code == 503
	assert response.json()["detail"] == "generation_failed"
