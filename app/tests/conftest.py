import os

# settings are read at import time by app.db.session / app.main
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("MONGODB_URI", None)

from typing import Any, Dict, List

import httpx
import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.session import get_db
from app.main import create_app
from app.core.config import Settings
from app.services.metadata_mirror import ProjectMetadataMirror
from app.services.object_storage import ObjectStorage
from app.services.processing_gateway import ProcessingGateway

# FORCE model registration
from app.models.project import Project  # noqa: F401
from app.models.proposal import Proposal  # noqa: F401
from app.models.metadata_outbox import MetadataOutboxEntry  # noqa: F401

GATEWAY_URL = "http://gateway.test"
PROCESSOR_URL = "http://processor.test/run"
BUCKET = "test-bucket"


class FakeS3Client:
    """Records put_object calls; `fail` makes every call raise."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.fail = False

    def put_object(self, **kwargs):
        if self.fail:
            from botocore.exceptions import ClientError

            raise ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
            )
        self.calls.append(kwargs)
        return {"ETag": '"etag"'}


class GatewayStub:
    """httpx.MockTransport handler standing in for the processing service."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.fail = False
        self.task_id = "task-123"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(502, json={"error": "gateway down"})

        path = request.url.path
        if request.url.host == "processor.test" and path == "/run":
            return httpx.Response(200, json={"id": self.task_id})
        if path == "/process":
            return httpx.Response(200, json={"task_id": self.task_id})
        if path.startswith("/tasks/") and path.endswith("/status"):
            tid = path.split("/")[2]
            return httpx.Response(200, json={"task_id": tid, "status": "running", "progress": 40})
        return httpx.Response(404, json={"error": "not found"})


class DownCollection:
    """A Mongo collection whose server is unreachable."""

    def _down(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("mongo unreachable")

    find = update_one = delete_one = _down


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
    )


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def s3():
    return FakeS3Client()


@pytest.fixture()
def storage(s3):
    return ObjectStorage(s3, BUCKET)


@pytest.fixture()
def gateway_stub():
    return GatewayStub()


@pytest.fixture()
def gateway(gateway_stub):
    gw = ProcessingGateway(
        httpx.Client(transport=httpx.MockTransport(gateway_stub)),
        gateway_url=GATEWAY_URL,
        processor_url=PROCESSOR_URL,
    )
    try:
        yield gw
    finally:
        gw.close()


@pytest.fixture()
def mongo_collection():
    return mongomock.MongoClient()["dashboard"]["projects"]


@pytest.fixture()
def mirror(mongo_collection):
    return ProjectMetadataMirror(mongo_collection)


@pytest.fixture()
def down_mirror():
    return ProjectMetadataMirror(DownCollection())


@pytest.fixture()
def app(session_factory, storage, gateway, mirror):
    application = create_app(Settings(database_url="sqlite://"))

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    application.state.object_storage = storage
    application.state.processing_gateway = gateway
    application.state.metadata_mirror = mirror
    return application


@pytest.fixture()
def client(app):
    return TestClient(app)
