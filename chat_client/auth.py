"""Caller authentication for the relay app.

Relay callers present one of the ``RELAY_API_KEYS`` in the ``X-API-Key``
header.  The relay keys only guard the relay; the credential sent on to the
chat endpoint is always ``CHAT_API_KEY``.  With no relay keys configured the
relay is open.
"""

import secrets
from typing import Iterable, Optional

from fastapi import Header, HTTPException, status

from .config import get_settings


def match_relay_key(candidate: str, allowed: Iterable[str]) -> Optional[str]:
    """Return the configured key equal to ``candidate``, or ``None``.

    Every configured key is compared in constant time, so neither the
    position of the match nor a shared prefix shows up in the timing.
    """
    matched = None
    supplied = candidate.encode("utf-8")
    for key in sorted(allowed):
        if secrets.compare_digest(supplied, key.encode("utf-8")):
            matched = key
    return matched


async def require_relay_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> str:
    """FastAPI dependency returning the relay key the caller matched.

    Returns ``""`` while the relay is open.  A missing or unknown key is
    answered with a single 401 so callers cannot tell the two apart.
    """
    allowed = get_settings().parsed_relay_api_keys
    if not allowed:
        return ""
    matched = match_relay_key((x_api_key or "").strip(), allowed)
    if matched is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Relay key missing or not recognised",
            headers={"WWW-Authenticate": 'ApiKey header="X-API-Key"'},
        )
    return matched
