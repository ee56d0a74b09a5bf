"""Logging of client activity.

:class:`ChatClient` never logs directly.  It reports to an observer after
each outcome, and :class:`ChatObserver` turns those reports into log
records.  Any object providing the same methods can be passed to the client
instead, e.g. to feed a metrics system.
"""

import logging
from typing import Any, Dict, Optional

from .payload import DEFAULT_PAYLOAD


def top_choice_content(response: Dict[str, Any]) -> str:
    """Return the first choice's message content, or ``""``."""
    choices = response.get("choices") or []
    if not choices:
        return ""
    return (choices[0].get("message") or {}).get("content") or ""


class ChatObserver:
    """Log completions and failures of chat calls."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def client_created(self, endpoint: str) -> None:
        self.logger.info(f"Instantiating ChatClient for {endpoint}")

    def completion_succeeded(self, payload: Dict[str, Any], response: Dict[str, Any]) -> None:
        total_tokens = (response.get("usage") or {}).get("total_tokens")
        overrides = {k: v for k, v in payload.items() if k in DEFAULT_PAYLOAD and v != DEFAULT_PAYLOAD[k]}
        self.logger.info(
            f"Chat {total_tokens} tokens",
            extra={
                "messages": payload.get("messages", []),
                "overrides": overrides,
                "top_choice": top_choice_content(response),
                "token_usage": total_tokens,
            },
        )

    def completion_failed(self, payload: Dict[str, Any], error: BaseException) -> None:
        self.logger.error(
            f"Completion error: {type(error).__name__} {error}",
            extra={"messages": payload.get("messages", [])},
        )

    def stream_failed(self, payload: Dict[str, Any], error: BaseException) -> None:
        self.logger.error(
            f"Stream request error: {type(error).__name__} {error}",
            extra={"messages": payload.get("messages", [])},
        )
