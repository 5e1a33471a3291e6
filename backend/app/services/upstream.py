import json
import logging
from collections.abc import AsyncIterator

import httpx

from app.config import Settings
from app.models.envelope import OutboundEnvelope
from app.services.framing import encode_envelope, iter_stream_text
from app.services.identity import ClientIdentity

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Upstream answered with a non-success status."""

    def __init__(self, status_code: int, body: dict):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API request failed with status {status_code}: {json.dumps(body)}")


class UpstreamStream:
    """An open upstream response whose body yields decoded reply text.

    Must be closed with ``aclose()`` once the caller stops reading.
    """

    def __init__(self, response: httpx.Response):
        self.response = response

    def __aiter__(self) -> AsyncIterator[str]:
        return iter_stream_text(self.response.aiter_bytes())

    async def aclose(self) -> None:
        await self.response.aclose()


class UpstreamClient:
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self.settings = settings
        self.http_client = http_client

    def build_headers(self, auth_token: str, identity: ClientIdentity) -> dict[str, str]:
        return {
            "Content-Type": "application/connect+proto",
            "authorization": f"Bearer {auth_token}",
            "connect-accept-encoding": "gzip,br",
            "connect-protocol-version": "1",
            "user-agent": self.settings.user_agent,
            "x-amzn-trace-id": f"Root={identity.trace_id}",
            "x-cursor-checksum": identity.checksum,
            "x-cursor-client-version": identity.client_version,
            "x-cursor-timezone": identity.timezone,
            "x-ghost-mode": "false",
            "x-request-id": identity.request_id,
        }

    async def open_stream(
        self,
        envelope: OutboundEnvelope,
        auth_token: str,
        identity: ClientIdentity,
    ) -> UpstreamStream:
        """POST the framed envelope and return the open response stream.

        Raises:
            UpstreamError if upstream answers with a non-success status.
            httpx.HTTPError on transport failures.
        """
        request = self.http_client.build_request(
            "POST",
            self.settings.upstream_url,
            headers=self.build_headers(auth_token, identity),
            content=encode_envelope(envelope),
        )
        logger.info(
            "Calling upstream model=%s request_id=%s messages=%d",
            envelope.model_name, identity.request_id, len(envelope.messages),
        )
        response = await self.http_client.send(request, stream=True)

        if not response.is_success:
            try:
                await response.aread()
                body = response.json()
            except (httpx.HTTPError, ValueError):
                body = {}
            finally:
                await response.aclose()
            logger.warning("Upstream returned %d: %s", response.status_code, body)
            raise UpstreamError(response.status_code, body)

        return UpstreamStream(response)
