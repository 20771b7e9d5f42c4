"""Shared test fixtures for the portal backend."""

from __future__ import annotations

import asyncio
import os

os.environ.setdefault("MAGIC_LINK_SECRET", "test-magic-secret")
os.environ.setdefault("INTERNAL_API_SECRET", "test-internal-secret")
os.environ.setdefault("DEVELOPER_PASSWORDS", "dev-pass-1,dev-pass-2")
os.environ.setdefault("DEVELOPER_EMAIL", "dev@webstability.nl")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone  # noqa: E402

import fakeredis  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
from redis.exceptions import ConnectionError as RedisConnectionError  # noqa: E402

from portal.dependencies import get_clock  # noqa: E402
from portal.main import app  # noqa: E402
from portal.models.project import Project  # noqa: E402
from portal.services.credentials import CredentialService  # noqa: E402
from portal.services.notifications import NotificationDispatcher, get_dispatcher  # noqa: E402
from portal.services.payment_reconciler import PaymentReconciler  # noqa: E402
from portal.services.phase_engine import PhaseEngine  # noqa: E402
from portal.services.project_store import ProjectStore  # noqa: E402
from portal.storage.kv import KeyValueStore, get_kv_store  # noqa: E402

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class HangingRedis:
    """Redis client stand-in whose reads never complete."""

    async def get(self, key: str) -> None:
        await asyncio.sleep(5)


class BrokenRedis:
    """Redis client stand-in whose server refuses connections."""

    async def get(self, key: str) -> None:
        raise RedisConnectionError("connection refused")

    async def ping(self) -> None:
        raise RedisConnectionError("connection refused")


class FakeClock:
    """Settable clock so tests can move time forward."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> None:
        self.current += timedelta(**delta)


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher that records jobs instead of queueing them."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[str, str, dict]] = []
        self.fail = fail

    async def _enqueue(self, event: str, recipient: str, context: dict) -> None:
        if self.fail:
            raise ConnectionError("queue unreachable")
        self.sent.append((event, recipient, context))

    def events(self) -> list[str]:
        return [event for event, _, _ in self.sent]


@pytest.fixture
async def redis_client():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def kv(redis_client) -> KeyValueStore:
    return KeyValueStore(redis_client, timeout=1.0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def projects(kv: KeyValueStore, clock: FakeClock) -> ProjectStore:
    return ProjectStore(kv, now=clock)


@pytest.fixture
def credentials(kv, projects, dispatcher, clock) -> CredentialService:
    return CredentialService(kv, projects, dispatcher, now=clock)


@pytest.fixture
def phases(projects, dispatcher, clock) -> PhaseEngine:
    return PhaseEngine(projects, dispatcher, now=clock)


@pytest.fixture
def reconciler(projects, phases) -> PaymentReconciler:
    return PaymentReconciler(projects, phases)


@pytest.fixture
async def project(projects: ProjectStore) -> Project:
    return await projects.create({
        "id": "WS-TEST1",
        "customer": {"name": "Anna de Vries", "email": "a@b.nl", "companyName": "Bakkerij Anna"},
        "onboardingData": {"isComplete": False},
    })


@pytest.fixture
async def client(kv: KeyValueStore, dispatcher: RecordingDispatcher, clock: FakeClock):
    app.dependency_overrides[get_kv_store] = lambda: kv
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_clock] = lambda: clock
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
