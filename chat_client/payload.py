"""Request payload construction.

The defaults below are the only place default sampling parameters are
defined.  :func:`build_payload` merges a caller's overrides over them:

=====================  =======
field                  default
=====================  =======
``temperature``        0.7
``top_p``              1
``frequency_penalty``  0
``presence_penalty``   0
``max_tokens``         60
``stop``               ``""``
=====================  =======

``response_format`` and ``seed`` have no default and are only sent when a
caller sets them.
"""

import json
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .models import ChatMessage, PayloadOverrides

DEFAULT_PAYLOAD: Dict[str, Any] = {
    "temperature": 0.7,
    "top_p": 1,
    "frequency_penalty": 0,
    "presence_penalty": 0,
    "max_tokens": 60,
    "stop": "",
}

MessageLike = Union[ChatMessage, Mapping[str, Any]]
OverridesLike = Union[PayloadOverrides, Mapping[str, Any]]


def _serialise_message(message: MessageLike) -> Dict[str, Any]:
    if not isinstance(message, ChatMessage):
        message = ChatMessage.model_validate(message)
    return message.model_dump(mode="json", exclude_none=True)


def merge_overrides(overrides: Optional[OverridesLike] = None) -> Dict[str, Any]:
    """Return the default parameters with ``overrides`` applied on top.

    Only fields explicitly present in ``overrides`` replace a default, so
    passing ``temperature=0`` or ``stop=None`` is honoured rather than
    ignored.
    """
    merged = dict(DEFAULT_PAYLOAD)
    if overrides is None:
        return merged
    if not isinstance(overrides, PayloadOverrides):
        overrides = PayloadOverrides.model_validate(overrides)
    merged.update(overrides.model_dump(mode="json", exclude_unset=True))
    return merged


def build_payload(
    messages: Sequence[MessageLike],
    overrides: Optional[OverridesLike] = None,
    stream: bool = False,
) -> Dict[str, Any]:
    """Compose the JSON request body for a chat completion call.

    Parameters
    ----------
    messages: sequence of ChatMessage or dict
        The conversation to send, in order.
    overrides: PayloadOverrides or dict, optional
        Per-call replacements for the default sampling parameters.
    stream: bool
        Add ``"stream": true`` so the service answers with an event stream.

    Returns
    -------
    dict
        The payload, ready for :func:`encode_payload`.
    """
    payload: Dict[str, Any] = {"messages": [_serialise_message(m) for m in messages]}
    payload.update(merge_overrides(overrides))
    if stream:
        payload["stream"] = True
    return payload


def encode_payload(payload: Mapping[str, Any]) -> bytes:
    """Serialise a payload to compact UTF-8 JSON."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
