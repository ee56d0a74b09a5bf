"""FastAPI relay exposing the chat client over HTTP.

The relay accepts chat completion requests under ``/v1/chat/completions``
and forwards them with :class:`chat_client.client.ChatClient` to the
endpoint configured by ``CHAT_ENDPOINT``:

1. Authenticate the caller via the ``X-API-Key`` header (if relay keys are
   configured).
2. Validate ``messages`` and split the remaining body fields into payload
   overrides.
3. Forward the request.  Non-streaming requests return the completion JSON
   once the top choice has finished with ``"stop"``; streaming requests are
   re-emitted frame by frame as ``text/event-stream``.

Failures reported by the chat endpoint become HTTP 502 responses.  Once a
stream has started the status can no longer change, so a failure mid-stream
is sent as a final ``data: {"error": {"message": ...}}`` frame instead.
"""

import json
import logging
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, List

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from .auth import require_relay_key
from .client import ChatClient, ChatStream
from .config import get_settings
from .errors import ChatClientError
from .models import ChatMessage, PayloadOverrides

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

# Errors from the chat endpoint that the relay turns into a 502
UPSTREAM_ERRORS = (ChatClientError, httpx.HTTPError, json.JSONDecodeError)

app = FastAPI(title="Chat Client Relay")


@lru_cache
def get_chat_client() -> ChatClient:
    """Return the client built from the current settings."""
    return ChatClient.from_settings()


def _format_frame(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"


async def _relay_stream(stream: ChatStream) -> AsyncIterator[str]:
    try:
        async for event in stream:
            yield _format_frame(event)
    except UPSTREAM_ERRORS as e:
        logger.error(f"Stream aborted: {type(e).__name__} {e}")
        yield _format_frame({"error": {"message": str(e)}})
    finally:
        await stream.aclose()


@app.post("/v1/chat/completions")
async def chat_completions(
    request: Request,
    relay_key: str = Depends(require_relay_key),
    client: ChatClient = Depends(get_chat_client),
) -> Response:
    """Forward a chat completion request to the configured endpoint."""
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
        raise HTTPException(status_code=422, detail="'messages' must be a list")
    stream = body.pop("stream", False)
    if not isinstance(stream, bool):
        raise HTTPException(status_code=422, detail="'stream' must be a boolean")
    try:
        messages: List[ChatMessage] = [ChatMessage.model_validate(m) for m in body.pop("messages")]
        overrides = PayloadOverrides.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    if relay_key:
        logger.debug(f"Relaying request for key ending {relay_key[-4:]}")
    try:
        if not stream:
            result = await client.get_chat_response(messages, overrides)
            return JSONResponse(status_code=200, content=result)
        chat_stream = await client.get_chat_stream(messages, overrides)
    except UPSTREAM_ERRORS as e:
        raise HTTPException(status_code=502, detail=str(e))
    return StreamingResponse(_relay_stream(chat_stream), media_type="text/event-stream")
