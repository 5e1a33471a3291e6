import uuid
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class Role(IntEnum):
    USER = 1
    OTHER = 2

    @classmethod
    def from_name(cls, name: str) -> "Role":
        return cls.USER if name == "user" else cls.OTHER


class EnvelopeValidationError(Exception):
    """Raised when an outbound envelope fails schema validation."""

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__("; ".join(violations))


class ChatRequestMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))


class OutboundEnvelope(BaseModel):
    """One upstream StreamChat request, built per inbound call and never mutated."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[ChatRequestMessage, ...]
    instruction: str
    project_path: str
    model_name: str = Field(min_length=1)
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    conversation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    summary: str = ""


def _format_error(error: dict) -> str:
    loc = ".".join(str(part) for part in error["loc"])
    return f"{loc}: {error['msg']}"


def validate_envelope(value: dict) -> list[str]:
    """Return the list of schema violations for a raw envelope dict.

    An empty list means the value would build a valid ``OutboundEnvelope``.
    """
    try:
        OutboundEnvelope.model_validate(value)
    except ValidationError as e:
        return [_format_error(err) for err in e.errors()]
    return []


def build_envelope(
    messages: list[dict],
    model_name: str,
    *,
    instruction: str,
    project_path: str,
) -> OutboundEnvelope:
    """Build a validated envelope from role/content dicts.

    Raises:
        EnvelopeValidationError if any message or the model name is invalid.
    """
    raw = {
        "messages": [
            {
                "role": Role.from_name(msg["role"]) if msg.get("role") else None,
                "content": msg.get("content"),
                **({"message_id": msg["message_id"]} if msg.get("message_id") else {}),
            }
            for msg in messages
        ],
        "instruction": instruction,
        "project_path": project_path,
        "model_name": model_name,
    }

    violations = validate_envelope(raw)
    if violations:
        raise EnvelopeValidationError(violations)

    return OutboundEnvelope.model_validate(raw)
