import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from extractdb.app import create_app, get_client_factory
from extractdb.auth.credentials import CredentialStore
from extractdb.auth.session import SessionManager
from extractdb.config import PreconfiguredConnection, Settings

START = 1_700_000_000


class FakeClock:
    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ------------------ Fake MongoDB ------------------


class FakeCursor(list):
    def limit(self, n):
        return FakeCursor(self[:n])


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.acknowledged = True
        self.inserted_id = inserted_id


class FakeCollection:
    def __init__(self, docs=None):
        self.docs = list(docs or [])
        self.filters = []
        self.pipelines = []

    def count_documents(self, filter_):
        return len(self.docs)

    def find(self, filter_=None):
        self.filters.append(filter_)
        return FakeCursor(self.docs)

    def aggregate(self, pipeline):
        self.pipelines.append(pipeline)
        size = pipeline[0]["$sample"]["size"]
        return iter(self.docs[:size])

    def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self.docs.append(document)
        return FakeInsertResult(document["_id"])


class FakeDatabase:
    def __init__(self, name, collections=None):
        self.name = name
        self.collections = dict(collections or {})

    def list_collection_names(self):
        return list(self.collections)

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


class FakeMongoClient:
    def __init__(self, databases=None):
        self.databases = dict(databases or {})
        self.uris = []
        self.closed = 0
        self.fail = False

    def __call__(self, uri, **kwargs):
        # Acts as the client factory too.
        self.uris.append(uri)
        return self

    def list_database_names(self):
        if self.fail:
            raise ServerSelectionTimeoutError("No servers found yet")
        return list(self.databases)

    def __getitem__(self, name):
        return self.databases.setdefault(name, FakeDatabase(name))

    def close(self):
        self.closed += 1


@pytest.fixture()
def mongo() -> FakeMongoClient:
    orders = [
        {"_id": ObjectId(), "n": i, "placed": datetime(2024, 1, i + 1, tzinfo=timezone.utc)}
        for i in range(5)
    ]
    users = [{"_id": ObjectId(), "name": "ada"}, {"_id": ObjectId(), "name": "grace"}]
    shop = FakeDatabase(
        "shop",
        {"users": FakeCollection(users), "orders": FakeCollection(orders), "empty": FakeCollection()},
    )
    return FakeMongoClient({"shop": shop, "admin": FakeDatabase("admin")})


# ------------------ App ------------------


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        admin_identifier="admin",
        admin_password="secret",
        connections=(
            PreconfiguredConnection(id="preconfigured-1", name="Local", uri="mongodb://fake:27017"),
        ),
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def manager(settings, clock) -> SessionManager:
    return SessionManager(CredentialStore.from_settings(settings), clock=clock)


@pytest.fixture()
def app(settings, clock, mongo):
    application = create_app(settings, clock=clock)
    application.dependency_overrides[get_client_factory] = lambda: mongo
    return application


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def logged_in(client) -> TestClient:
    r = client.post("/api/auth/login", json={"identifier": "admin", "password": "secret"})
    assert r.status_code == 200
    return client
