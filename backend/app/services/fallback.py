import gzip
import logging
import zlib

from app.utils.text import is_prompt_echo

logger = logging.getLogger(__name__)

HEADER_SIZE = 5


def decompress_fallback(chunk: bytes) -> str:
    """Interpret a chunk as a header-prefixed gzip blob (upstream error payloads).

    Returns "" when the blob does not decompress or when it only echoes
    the original prompt; otherwise the decompressed text.
    """
    try:
        decompressed = gzip.decompress(chunk[HEADER_SIZE:])
    except (OSError, EOFError, zlib.error) as e:
        logger.debug("Chunk is not a compressed payload (%d bytes): %s", len(chunk), e)
        return ""

    text = decompressed.decode("utf-8", errors="replace")
    if is_prompt_echo(text):
        logger.debug("Dropping compressed payload that echoes the prompt")
        return ""

    return text
