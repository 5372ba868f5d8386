"""
Tests for the OAuth2 jwt-bearer token exchange against a local endpoint.
"""

import datetime
from typing import Any

import aiohttp
import pytest

from firepush.auth.token import (
    JWT_BEARER_GRANT,
    TokenExchangeError,
    exchange_assertion,
    fetch_access_token,
)
from firepush.models.credentials import ServiceAccountKey

from conftest import ACCESS_TOKEN


async def test_exchange_posts_form_and_returns_token(fake_google: Any) -> None:
    async with aiohttp.ClientSession() as session:
        token = await exchange_assertion(
            session, "a.b.c", f"{fake_google.base_url}/token"
        )
    assert token == ACCESS_TOKEN
    assert fake_google.token_requests == [
        {"grant_type": JWT_BEARER_GRANT, "assertion": "a.b.c"}
    ]


async def test_non_2xx_is_fatal(fake_google: Any) -> None:
    fake_google.token_status = 401
    async with aiohttp.ClientSession() as session:
        with pytest.raises(TokenExchangeError) as exc_info:
            await exchange_assertion(session, "a.b.c", f"{fake_google.base_url}/token")
    assert exc_info.value.status == 401
    assert exc_info.value.body == "invalid_grant"
    assert "OAuth failed (401): invalid_grant" in str(exc_info.value)
    assert len(fake_google.token_requests) == 1


async def test_response_without_access_token(fake_google: Any) -> None:
    fake_google.token_payload = {"token_type": "Bearer"}
    async with aiohttp.ClientSession() as session:
        with pytest.raises(TokenExchangeError, match="usable access_token"):
            await exchange_assertion(session, "a.b.c", f"{fake_google.base_url}/token")


@pytest.mark.parametrize(
    "payload",
    [
        {"access_token": "", "token_type": "Bearer"},
        {"access_token": 12345},
        ["not", "an", "object"],
    ],
)
async def test_unusable_token_response(fake_google: Any, payload: Any) -> None:
    fake_google.token_payload = payload
    async with aiohttp.ClientSession() as session:
        with pytest.raises(TokenExchangeError, match="usable access_token") as exc_info:
            await exchange_assertion(session, "a.b.c", f"{fake_google.base_url}/token")
    assert exc_info.value.status == 200


async def test_extra_response_fields_are_ignored(fake_google: Any) -> None:
    fake_google.token_payload = {"access_token": "tok", "id_token": "x", "scope": "s"}
    async with aiohttp.ClientSession() as session:
        token = await exchange_assertion(session, "a.b.c", f"{fake_google.base_url}/token")
    assert token == "tok"


async def test_network_failure_is_wrapped() -> None:
    async with aiohttp.ClientSession() as session:
        with pytest.raises(TokenExchangeError, match="OAuth request failed"):
            await exchange_assertion(session, "a.b.c", "http://127.0.0.1:1/token")


async def test_fetch_access_token(fake_google: Any, private_key_pem: str) -> None:
    key = ServiceAccountKey(**fake_google.key_dict(private_key_pem))
    before = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
    async with aiohttp.ClientSession() as session:
        token = await fetch_access_token(session, key, fake_google.settings())

    assert token.token == ACCESS_TOKEN
    assert token.issued_at >= before - datetime.timedelta(seconds=1)
    assert token.expires_at - token.issued_at == datetime.timedelta(seconds=3600)
    assert not token.is_expired()
    assert fake_google.token_requests[0]["assertion"].count(".") == 2
