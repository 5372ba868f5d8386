"""
firepush/auth/token.py

Exchanges a signed JWT assertion for an OAuth2 access token (RFC 7523
jwt-bearer grant) using aiohttp.

The exchange happens once per upload run and is never retried: any failure
is fatal for the run.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import time
from typing import Optional

import aiohttp
from pydantic import ValidationError

from firepush.auth.assertion import ASSERTION_LIFETIME_SECONDS, build_signed_assertion
from firepush.models.credentials import ServiceAccountKey
from firepush.models.settings import UploadSettings
from firepush.models.upload import AccessToken, TokenResponse

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class TokenExchangeError(Exception):
    """Represents a failed token exchange.

    Attributes:
        status (Optional[int]): HTTP status of the token endpoint response, if one was received.
        body (Optional[str]): Response body text, if one was received.
    """

    def __init__(
        self, message: str, status: Optional[int] = None, body: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


async def exchange_assertion(
    session: aiohttp.ClientSession,
    assertion: str,
    token_uri: str,
    *,
    verify_ssl: bool = True,
) -> str:
    """
    POST the assertion to the token endpoint and return the access token.

    Args:
        session (aiohttp.ClientSession): Session used for the request.
        assertion (str): Signed JWT assertion.
        token_uri (str): OAuth2 token endpoint URL.
        verify_ssl (bool): Whether to verify TLS certificates.

    Returns:
        str: The access_token field of the JSON response.

    Raises:
        TokenExchangeError: On a non-2xx response, a response without an access
            token, or a network-level failure.
    """
    form = {"grant_type": JWT_BEARER_GRANT, "assertion": assertion}
    try:
        async with session.post(token_uri, data=form, ssl=verify_ssl) as resp:
            text = await resp.text()
            status = resp.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise TokenExchangeError(f"OAuth request failed: {exc!r}") from exc

    if not 200 <= status < 300:
        raise TokenExchangeError(
            f"OAuth failed ({status}): {text}", status=status, body=text
        )

    try:
        payload = TokenResponse.model_validate_json(text)
    except ValidationError as exc:
        raise TokenExchangeError(
            f"OAuth response did not contain a usable access_token: {text}",
            status=status,
            body=text,
        ) from exc
    return payload.access_token


async def fetch_access_token(
    session: aiohttp.ClientSession,
    credentials: ServiceAccountKey,
    settings: UploadSettings,
) -> AccessToken:
    """
    Sign an assertion for the service account and exchange it for a bearer token.

    Raises:
        SigningError: If the assertion cannot be built.
        TokenExchangeError: If the token endpoint rejects it or cannot be reached.
    """
    issued_at = int(time.time())
    assertion = build_signed_assertion(credentials, settings.scope, now=issued_at)

    logger.info("Requesting access token from %s", credentials.token_uri)
    token = await exchange_assertion(
        session, assertion, credentials.token_uri, verify_ssl=settings.verify_ssl
    )

    issued = datetime.datetime.fromtimestamp(issued_at, tz=datetime.timezone.utc)
    access_token = AccessToken(
        token=token,
        issued_at=issued,
        expires_at=issued + datetime.timedelta(seconds=ASSERTION_LIFETIME_SECONDS),
    )
    logger.info(
        "Access token obtained for %s, valid until %s",
        credentials.client_email,
        access_token.expires_at.isoformat(),
    )
    return access_token


__all__ = [
    "JWT_BEARER_GRANT",
    "TokenExchangeError",
    "exchange_assertion",
    "fetch_access_token",
]
