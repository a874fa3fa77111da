import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from dealflow.main import app
from dealflow.services.pipeline.mailer import LoggingIntroductionMailer
from dealflow.services.pipeline.repositories import InMemoryPipelineRepository
from dealflow.services.pipeline.service import DealPipelineService, get_pipeline_service
from tests.helpers.pipeline_factory import FrozenClock


class _SyncASGIClient:
    """Minimal synchronous wrapper around httpx.AsyncClient for ASGI apps."""

    def __init__(self, app):
        transport = httpx.ASGITransport(app=app)
        self._client = httpx.AsyncClient(transport=transport, base_url="http://testserver")

    def request(self, method: str, url: str, **kwargs):
        return asyncio.run(self._client.request(method, url, **kwargs))

    def get(self, url: str, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs):
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs):
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs):
        return self.request("DELETE", url, **kwargs)

    def close(self) -> None:
        asyncio.run(self._client.aclose())


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def mailer() -> LoggingIntroductionMailer:
    return LoggingIntroductionMailer()


@pytest.fixture
def repository() -> InMemoryPipelineRepository:
    return InMemoryPipelineRepository()


@pytest.fixture
def service(repository, mailer, clock) -> DealPipelineService:
    return DealPipelineService(repository=repository, mailer=mailer, clock=clock)


@pytest.fixture
def client(service):
    """Test client wired to an in-memory pipeline service."""
    app.dependency_overrides[get_pipeline_service] = lambda: service
    try:
        try:
            test_client = TestClient(app)
            yield test_client
        except TypeError:
            fallback_client = _SyncASGIClient(app)
            try:
                yield fallback_client
            finally:
                fallback_client.close()
    finally:
        app.dependency_overrides.pop(get_pipeline_service, None)
