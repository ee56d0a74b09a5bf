"""Client for a remote chat completions endpoint.

Two calls are offered.  :meth:`ChatClient.get_chat_response` sends one
request and returns the parsed completion once the service has finished.
:meth:`ChatClient.get_chat_stream` asks for an event stream and returns a
:class:`ChatStream` which yields decoded stream events one at a time as
their frames arrive.

Calls are made asynchronously using httpx.  Each call opens its own
``httpx.AsyncClient``; nothing is shared between calls.  There are no
retries and no rate limiting: every failure is raised to the caller.
"""

import asyncio
from typing import Any, Dict, Iterator, Optional, Sequence

import httpx

from .config import Settings, get_settings
from .errors import AbnormalCompletionError, ChatHTTPError, ServerSignaledError
from .observability import ChatObserver
from .payload import MessageLike, OverridesLike, build_payload, encode_payload
from .reassembler import FrameReassembler


class ChatStream:
    """Pull-based async iterator over the events of one streaming response.

    The stream owns the HTTP response and the ``httpx.AsyncClient`` that
    produced it and closes both once iteration ends, fails, is cancelled or
    :meth:`aclose` is called.  It cannot be restarted.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self._client = client
        self._response = response
        self._cancel_event = cancel_event
        self._chunks = response.aiter_bytes()
        self._reassembler = FrameReassembler()
        self._pending: Iterator[Dict[str, Any]] = iter(())
        self._exhausted = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> Dict[str, Any]:
        try:
            return await self._next_event()
        except BaseException:
            await self.aclose()
            raise

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the response and its client.  Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()

    def _cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    async def _next_event(self) -> Dict[str, Any]:
        while True:
            if self._closed or self._cancelled():
                raise StopAsyncIteration
            event = next(self._pending, None)
            if event is not None:
                return event
            if self._exhausted:
                raise StopAsyncIteration
            chunk = await self._read_chunk()
            if chunk is None:
                # End of stream, or the cancel event fired mid-read.
                self._exhausted = True
                self._pending = iter(()) if self._cancelled() else self._reassembler.flush()
            else:
                self._pending = self._reassembler.feed(chunk)

    async def _next_chunk(self) -> Optional[bytes]:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            return None

    async def _read_chunk(self) -> Optional[bytes]:
        """Read the next chunk, giving up as soon as the cancel event is set."""
        if self._cancel_event is None:
            return await self._next_chunk()
        read = asyncio.ensure_future(self._next_chunk())
        cancelled = asyncio.ensure_future(self._cancel_event.wait())
        try:
            await asyncio.wait({read, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            read.cancel()
            raise
        finally:
            cancelled.cancel()
        if read.done():
            return read.result()
        read.cancel()
        await asyncio.wait({read})
        return None


class ChatClient:
    """Send chat completion requests to one endpoint with one API key."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        *,
        api_key_header: str = "api-key",
        timeout: Optional[float] = None,
        observer: Optional[ChatObserver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.api_key_header = api_key_header
        self.timeout = timeout
        self.observer = observer or ChatObserver()
        self.transport = transport
        self.observer.client_created(endpoint)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "ChatClient":
        """Build a client from ``CHAT_*`` environment settings."""
        settings = settings or get_settings()
        return cls(
            settings.chat_endpoint,
            settings.chat_api_key,
            api_key_header=settings.api_key_header,
            timeout=settings.request_timeout,
            **kwargs,
        )

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", self.api_key_header: self.api_key}

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def get_chat_response(
        self,
        messages: Sequence[MessageLike],
        config: Optional[OverridesLike] = None,
    ) -> Dict[str, Any]:
        """Request a completion and wait for the whole response.

        Parameters
        ----------
        messages: sequence of ChatMessage or dict
            The conversation to complete.
        config: PayloadOverrides or dict, optional
            Overrides for the default sampling parameters.

        Returns
        -------
        dict
            The parsed response body.

        Raises
        ------
        ServerSignaledError
            The body carries an ``error.message``.
        AbnormalCompletionError
            The top choice did not finish with ``"stop"``, even when it
            carries content.
        """
        payload = build_payload(messages, config)
        try:
            async with self._http_client() as client:
                resp = await client.post(self.endpoint, headers=self._headers(), content=encode_payload(payload))
            result = resp.json()
            error = result.get("error")
            if error:
                raise ServerSignaledError(error.get("message", "") if isinstance(error, dict) else str(error))
            choices = result.get("choices") or []
            finish_reason = choices[0].get("finish_reason") if choices else None
            if finish_reason != "stop":
                raise AbnormalCompletionError(finish_reason, result)
        except Exception as e:
            self.observer.completion_failed(payload, e)
            raise
        self.observer.completion_succeeded(payload, result)
        return result

    async def get_chat_stream(
        self,
        messages: Sequence[MessageLike],
        config: Optional[OverridesLike] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ChatStream:
        """Request a streamed completion.

        The request is sent and its status checked before this returns.
        Iterate the returned :class:`ChatStream` to receive events.  Setting
        ``cancel_event`` stops the stream at its next read and closes the
        connection.

        Raises
        ------
        ChatHTTPError
            The service answered with a non-success status.
        """
        payload = build_payload(messages, config, stream=True)
        client = self._http_client()
        request = client.build_request(
            "POST", self.endpoint, headers=self._headers(), content=encode_payload(payload)
        )
        try:
            response = await client.send(request, stream=True)
        except BaseException as e:
            await client.aclose()
            if isinstance(e, Exception):
                self.observer.stream_failed(payload, e)
            raise
        if not response.is_success:
            try:
                await response.aread()
                error = ChatHTTPError(response.status_code, response.reason_phrase, response.text)
            finally:
                await response.aclose()
                await client.aclose()
            self.observer.stream_failed(payload, error)
            raise error
        return ChatStream(client, response, cancel_event)
