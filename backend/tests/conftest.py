import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

from campusjam.domain.chat import sockets
from campusjam.infra import postgres
from campusjam.infra.memory import memory_db
from campusjam.main import app
from campusjam.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from campusjam.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def memory_store():
	memory_db.reset()
	yield memory_db
	memory_db.reset()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Most API tests authenticate via X-User-Id, which is only accepted in dev mode."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture(autouse=True)
def detached_realtime():
	original = sockets.get_namespace()
	sockets.set_namespace(None)
	yield
	sockets.set_namespace(original)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


@pytest.fixture
def make_user():
	"""Register users through the identity service with unique emails."""
	from datetime import date

	from campusjam.domain.identity import service as identity_service
	from campusjam.domain.identity.schemas import RegisterRequest

	counter = {"n": 0}

	async def _make(name=None):
		counter["n"] += 1
		n = counter["n"]
		return await identity_service.register_user(
			RegisterRequest(
				name=name or f"Player {n}",
				email=f"player{n}@campus.edu",
				password="correct-horse-battery",
				date_of_birth=date(2001, 5, 17),
			)
		)

	return _make
