import pytest
from fastapi.testclient import TestClient

from bullet_journal.main import app, get_auth, get_store
from bullet_journal.store import MemoryTaskStore, RedisTaskStore

from .fakes import FakeRedis


@pytest.fixture()
def memory_store():
    return MemoryTaskStore()


@pytest.fixture(params=["memory", "redis"])
def store(request):
    if request.param == "memory":
        return MemoryTaskStore()
    return RedisTaskStore(FakeRedis())


@pytest.fixture()
def client(memory_store):
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_auth] = lambda: None
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
