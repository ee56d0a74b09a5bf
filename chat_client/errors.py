"""Errors raised by the chat client.

Transport failures (``httpx.TransportError``) and undecodable stream
payloads (``json.JSONDecodeError``) are not wrapped; they reach the caller
exactly as the underlying library raised them.
"""

from typing import Optional


class ChatClientError(Exception):
    """Base class for failures reported by the remote service."""


class ChatHTTPError(ChatClientError):
    """The streaming request was answered with a non-success status."""

    def __init__(self, status_code: int, reason_phrase: str, body: str) -> None:
        super().__init__(f"Request failed: {status_code} {reason_phrase} {body}")
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.body = body


class ServerSignaledError(ChatClientError):
    """The service answered with an ``error.message`` payload."""


class AbnormalCompletionError(ChatClientError):
    """The top choice finished for any reason other than ``"stop"``."""

    def __init__(self, finish_reason: Optional[str], response: Optional[dict] = None) -> None:
        super().__init__(f"Chat stopped due to {finish_reason}")
        self.finish_reason = finish_reason
        self.response = response or {}


class InvalidResponseError(ChatClientError):
    """A stream frame did not carry a ``choices`` list."""
