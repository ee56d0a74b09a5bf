"""Request models for the chat completions API.

Messages and per-call overrides are validated with pydantic before they are
serialised.  Responses and stream events are returned as the plain dicts the
service sent, so no response models live here.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ImageURL(BaseModel):
    url: str
    detail: Optional[Literal["auto", "low", "high"]] = None


class ImagePart(BaseModel):
    """An image reference inside a multi-part message."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


MessagePart = Union[TextPart, ImagePart]


class ChatMessage(BaseModel):
    """One entry of the ``messages`` list.

    ``content`` is either plain text or an ordered list of text and image
    parts.
    """

    role: Literal["system", "user", "assistant"]
    content: Union[str, List[MessagePart]]


class ResponseFormat(BaseModel):
    type: Literal["json_object", "text"]


class PayloadOverrides(BaseModel):
    """Per-call overrides for the request payload.

    Every field is optional.  Only the fields a caller actually sets are
    merged over the defaults in :data:`chat_client.payload.DEFAULT_PAYLOAD`.
    """

    model_config = ConfigDict(extra="forbid")

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    max_tokens: Optional[int] = Field(None, ge=1)
    stop: Optional[Union[str, List[str]]] = None
    response_format: Optional[ResponseFormat] = None
    seed: Optional[int] = None
