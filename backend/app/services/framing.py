"""Length-prefixed framing for the upstream StreamChat protocol.

Every frame is a 5-byte big-endian length (10 hex digits) followed by exactly
that many bytes of schema payload.

Decoding works on one chunk at a time. A partial frame at the end of a chunk
is dropped, not carried into the next chunk: upstream delivers frames aligned
to chunk boundaries, and chunks that do not parse as frames are compressed
error payloads handled by the fallback path.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from google.protobuf.message import DecodeError

from app.models.envelope import OutboundEnvelope
from app.services.fallback import decompress_fallback
from app.services.schema import parse_fragment, serialize_envelope

logger = logging.getLogger(__name__)

PREFIX_SIZE = 5
PREFIX_HEX_WIDTH = PREFIX_SIZE * 2
MAX_PAYLOAD_SIZE = 1 << (PREFIX_SIZE * 8)


def encode_frame(payload: bytes) -> bytes:
    """Prefix a payload with its byte length as 10 uppercase hex digits."""
    if len(payload) >= MAX_PAYLOAD_SIZE:
        raise ValueError(f"Payload too large for frame: {len(payload)} bytes")
    hex_frame = f"{len(payload):0{PREFIX_HEX_WIDTH}X}" + payload.hex().upper()
    return bytes.fromhex(hex_frame)


def encode_envelope(envelope: OutboundEnvelope) -> bytes:
    """Serialize an envelope and wrap it in a single frame (the request body)."""
    return encode_frame(serialize_envelope(envelope))


@dataclass(frozen=True)
class Frames:
    fragments: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.fragments)


@dataclass(frozen=True)
class NoFrames:
    pass


@dataclass(frozen=True)
class FrameDecodeError:
    error: Exception


DecodeResult = Frames | NoFrames | FrameDecodeError


def decode_frames(chunk: bytes) -> DecodeResult:
    """Extract every complete frame in a chunk, in order.

    Returns ``Frames`` when at least one frame decoded, ``NoFrames`` when
    the chunk holds no complete frame, and ``FrameDecodeError`` when any
    payload fails to decode.
    """
    data = bytes(chunk)
    fragments: list[str] = []
    offset = 0

    while len(data) - offset >= PREFIX_SIZE:
        length = int.from_bytes(data[offset:offset + PREFIX_SIZE], "big")
        offset += PREFIX_SIZE

        if len(data) - offset < length:
            logger.debug("Dropping partial frame: need %d bytes, have %d", length, len(data) - offset)
            break

        payload = data[offset:offset + length]
        offset += length

        try:
            fragments.append(parse_fragment(payload))
        except (DecodeError, UnicodeDecodeError) as e:
            return FrameDecodeError(e)

    if not fragments:
        return NoFrames()
    return Frames(fragments)


def chunk_to_text(chunk: bytes) -> str:
    """Decode one upstream chunk into reply text, falling back to gzip."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Upstream chunk: %s", chunk.hex())

    result = decode_frames(chunk)
    match result:
        case Frames():
            logger.debug("Decoded %d frame(s)", len(result.fragments))
            return result.text
        case FrameDecodeError(error=error):
            logger.debug("Frame decode failed, trying fallback: %s", error)
        case NoFrames():
            logger.debug("No complete frame in chunk, trying fallback")

    return decompress_fallback(chunk)


async def iter_stream_text(chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Yield the non-empty text of each upstream chunk in arrival order."""
    async for chunk in chunks:
        text = chunk_to_text(chunk)
        if text:
            yield text
