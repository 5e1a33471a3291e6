import asyncio
import json
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from app.config import Settings
from app.dependencies import get_auth_token, get_http_client, get_identity_provider, get_settings
from app.models.chat import (
    AssistantMessage,
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    CompletionChoice,
    new_completion_id,
)
from app.models.envelope import EnvelopeValidationError, build_envelope
from app.services.identity import IdentityProvider
from app.services.upstream import UpstreamClient, UpstreamError
from app.utils.text import clean_reply

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/chat", tags=["chat"])


@router.post("/completions")
async def chat_completions(
    body: ChatCompletionRequest,
    request: Request,
    auth_token: str = Depends(get_auth_token),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    if body.stream and body.model.startswith(settings.stream_unsupported_prefix):
        raise HTTPException(status_code=400, detail="Model not supported stream")

    try:
        envelope = build_envelope(
            [msg.model_dump() for msg in body.messages],
            body.model,
            instruction=settings.instruction,
            project_path=settings.project_path,
        )
    except EnvelopeValidationError as e:
        raise HTTPException(status_code=400, detail=e.violations)

    identity = identity_provider.identify(request.headers.get("x-cursor-checksum"))
    upstream = UpstreamClient(settings, http_client)

    try:
        stream = await upstream.open_stream(envelope, auth_token, identity)
    except UpstreamError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except httpx.HTTPError as e:
        logger.exception("Upstream request failed")
        raise HTTPException(status_code=502, detail=f"Upstream request failed: {e}")

    if body.stream:
        completion_id = new_completion_id()

        async def event_generator():
            try:
                async for text in stream:
                    chunk = ChatCompletionChunk.for_text(completion_id, body.model, text)
                    yield {"data": chunk.model_dump_json()}
            except httpx.HTTPError as e:
                # Headers are already sent, so report the failure in-band
                logger.warning("Upstream stream failed mid-response: %s", e)
                yield {"data": json.dumps({"error": "Upstream stream failed", "details": str(e)})}
                return
            finally:
                # Runs on client disconnect too; shield so the upstream is released
                await asyncio.shield(stream.aclose())

            yield {"data": "[DONE]"}

        return EventSourceResponse(event_generator(), sep="\n")

    fragments: list[str] = []
    try:
        async for text in stream:
            fragments.append(text)
    except httpx.HTTPError as e:
        logger.exception("Upstream stream failed")
        raise HTTPException(status_code=502, detail=f"Upstream stream failed: {e}")
    finally:
        await stream.aclose()

    return ChatCompletionResponse(
        model=body.model,
        choices=[CompletionChoice(message=AssistantMessage(content=clean_reply("".join(fragments))))],
    )
