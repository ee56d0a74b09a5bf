import pytest
from fastapi import HTTPException

from chat_client import auth, config


def test_match_relay_key_reports_the_matching_key():
    assert auth.match_relay_key("beta", {"alpha", "beta", "gamma"}) == "beta"


def test_match_relay_key_rejects_prefixes_and_unknown_keys():
    allowed = {"relay-key-1"}
    assert auth.match_relay_key("relay-key", allowed) is None
    assert auth.match_relay_key("relay-key-10", allowed) is None
    assert auth.match_relay_key("", allowed) is None


def test_match_relay_key_handles_non_ascii():
    assert auth.match_relay_key("clé", {"clé"}) == "clé"


@pytest.mark.asyncio
async def test_open_relay_when_no_keys_configured(monkeypatch):
    monkeypatch.setenv("RELAY_API_KEYS", " , ")
    config.get_settings.cache_clear()
    assert await auth.require_relay_key(None) == ""


@pytest.mark.asyncio
async def test_configured_key_is_returned_stripped(monkeypatch):
    monkeypatch.setenv("RELAY_API_KEYS", "first, second")
    config.get_settings.cache_clear()
    assert await auth.require_relay_key("  second ") == "second"


@pytest.mark.asyncio
@pytest.mark.parametrize("supplied", [None, "", "third"])
async def test_missing_and_unknown_keys_get_the_same_401(monkeypatch, supplied):
    monkeypatch.setenv("RELAY_API_KEYS", "first,second")
    config.get_settings.cache_clear()
    with pytest.raises(HTTPException) as exc:
        await auth.require_relay_key(supplied)
    assert exc.value.status_code == 401
    assert exc.value.detail == "Relay key missing or not recognised"
    assert exc.value.headers["WWW-Authenticate"] == 'ApiKey header="X-API-Key"'
