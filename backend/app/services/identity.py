import uuid
from dataclasses import dataclass

from app.config import Settings
from app.utils.random_id import generate


@dataclass
class ClientIdentity:
    checksum: str
    trace_id: str
    request_id: str
    client_version: str
    timezone: str


class IdentityProvider:
    """Supply the per-call client identity headers sent upstream.

    Checksum precedence: the caller's ``x-cursor-checksum`` header, then
    ``settings.cursor_checksum``, then a freshly generated one.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def identify(self, checksum: str | None = None) -> ClientIdentity:
        return ClientIdentity(
            checksum=checksum or self.settings.cursor_checksum or self.random_checksum(),
            trace_id=str(uuid.uuid4()),
            request_id=str(uuid.uuid4()),
            client_version=self.settings.client_version,
            timezone=self.settings.client_timezone,
        )

    @staticmethod
    def random_checksum() -> str:
        return f"zo{generate(6, 'max')}{generate(64, 'max')}/{generate(64, 'max')}"
