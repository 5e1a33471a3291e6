import gzip

import httpx
import pytest
from fastapi.testclient import TestClient
from sse_starlette import sse

from app.config import Settings
from app.dependencies import get_http_client, get_identity_provider, get_settings
from app.main import app
from app.services.framing import encode_frame
from app.services.identity import ClientIdentity
from app.services.schema import ResMessage

TEST_TOKEN = "test-upstream-token"
TEST_CHECKSUM = "zo-test-checksum"


def make_fragment_frame(text: str) -> bytes:
    """Build one inbound frame carrying a ResMessage with ``text``."""
    return encode_frame(ResMessage(msg=text).SerializeToString())


def make_compressed_chunk(text: str) -> bytes:
    """Build a 5-byte-header gzip payload as upstream sends for errors."""
    return b"\x02\x00\x00\x00\x00" + gzip.compress(text.encode("utf-8"))


class _FakeIdentityProvider:
    def identify(self, checksum: str | None = None) -> ClientIdentity:
        return ClientIdentity(
            checksum=checksum or TEST_CHECKSUM,
            trace_id="trace-0000",
            request_id="request-0000",
            client_version="0.42.3",
            timezone="Asia/Shanghai",
        )


class FakeUpstream:
    """Records upstream requests and replies with canned chunks."""

    def __init__(self, chunks: list[bytes] | None = None, status_code: int = 200, json_body=None):
        self.chunks = chunks or []
        self.status_code = status_code
        self.json_body = json_body
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            if self.json_body is None:
                return httpx.Response(self.status_code, content=b"not json")
            return httpx.Response(self.status_code, json=self.json_body)

        async def body():
            for chunk in self.chunks:
                yield chunk

        return httpx.Response(200, content=body())


@pytest.fixture(autouse=True)
def _reset_sse_app_status():
    # sse-starlette keeps a module-level exit event bound to the first loop
    app_status = getattr(sse, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield


@pytest.fixture
def settings() -> Settings:
    return Settings(cursor_checksum=None, upstream_url="https://upstream.test/StreamChat")


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def client(settings, fake_upstream):
    """Test client wired to a fake upstream and a deterministic identity."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_upstream.handler))

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = lambda: http_client
    app.dependency_overrides[get_identity_provider] = lambda: _FakeIdentityProvider()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}
