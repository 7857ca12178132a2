import sys
from pathlib import Path
from typing import Iterable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from centerhub.ai import client as ai_client
from centerhub.centers.domain import paths
from centerhub.centers.domain.fanout import NotificationFanout
from centerhub.infra import tree
from centerhub.main import app
from centerhub.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from centerhub.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Name headers, which are only
	accepted in dev mode. Text generation never reaches the network and no
	change feed runs, since the ASGI transport skips the lifespan.
	"""
	original_env = settings.environment
	original_ai = settings.ai_enabled
	original_feed = settings.tree_feed_enabled
	settings.environment = "dev"
	settings.ai_enabled = False
	settings.tree_feed_enabled = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.ai_enabled = original_ai
		settings.tree_feed_enabled = original_feed
		ai_client.set_generator(None)


@pytest.fixture()
def tree_store():
	store = tree.TreeStore()
	tree.set_store(store)
	try:
		yield store
	finally:
		tree.set_store(None)


class RecordingEmitter:
	def __init__(self) -> None:
		self.calls: list[tuple[str, str, dict]] = []

	async def __call__(self, user_id: str, event: str, payload: dict) -> None:
		self.calls.append((user_id, event, payload))

	def recipients(self) -> list[str]:
		return [user_id for user_id, _, _ in self.calls]


@pytest.fixture()
def emitter() -> RecordingEmitter:
	return RecordingEmitter()


@pytest.fixture()
def fanout(tree_store, emitter) -> NotificationFanout:
	return NotificationFanout(store=tree_store, emitter=emitter)


@pytest.fixture()
def seed_center(tree_store):
	"""Write a center record directly, bypassing access codes."""

	async def _seed(
		center_id: str = "center-1",
		*,
		owner: str = "owner",
		admins_plus: Iterable[str] = (),
		admins: Iterable[str] = (),
		students: Iterable[str] = (),
		courses: Iterable[str] = ("5A", "5B", "6A"),
		name: str = "Centro de Estudiantes",
	) -> str:
		await tree_store.set(
			paths.center(center_id),
			{
				"name": name,
				"school_name": "Colegio Nacional",
				"country": "Argentina",
				"owner_id": owner,
				"courses": list(courses),
				"created_at": "2024-03-01T12:00:00+00:00",
				"members": {
					"admins_plus": {uid: True for uid in admins_plus},
					"admins": {uid: True for uid in admins},
					"students": {uid: True for uid in students},
				},
				"codes": {"admin": "A" * 20, "student": "S" * 20},
			},
		)
		return center_id

	return _seed


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
