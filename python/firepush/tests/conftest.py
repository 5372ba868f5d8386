"""
Pytest configuration and shared fixtures.

Provides a throwaway RSA service account key and a local aiohttp server that
stands in for both the OAuth2 token endpoint and the Firestore REST API.
"""

import asyncio
from typing import Any, Dict, List

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from firepush.models.settings import UploadSettings

ACCESS_TOKEN = "test-access-token"


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def make_key_dict(
    private_key: str, token_uri: str = "https://oauth2.googleapis.com/token"
) -> Dict[str, Any]:
    """Build the decoded JSON of a service account key file."""
    return {
        "type": "service_account",
        "project_id": "demo-project",
        "private_key_id": "abc123",
        "private_key": private_key,
        "client_email": "uploader@demo-project.iam.gserviceaccount.com",
        "client_id": "1234567890",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": token_uri,
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
        "client_x509_cert_url": "https://www.googleapis.com/robot/v1/metadata/x509/uploader",
    }


@pytest.fixture
def key_dict(private_key_pem: str) -> Dict[str, Any]:
    return make_key_dict(private_key_pem)


class FakeGoogle:
    """In-process token endpoint plus Firestore create-document endpoint.

    Documents whose "fail" field is true are answered with HTTP 500.
    """

    def __init__(self) -> None:
        self.base_url = ""
        self.token_status = 200
        self.token_payload: Dict[str, Any] = {
            "access_token": ACCESS_TOKEN,
            "expires_in": 3600,
            "token_type": "Bearer",
        }
        self.token_requests: List[Dict[str, str]] = []
        self.writes: List[Dict[str, Any]] = []
        self.write_paths: List[str] = []
        self.write_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self.flaky_failures = 0

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/token", self._token)
        app.router.add_post(
            "/v1/projects/{project}/databases/{database}/documents/{collection}",
            self._create_document,
        )
        return app

    async def _token(self, request: web.Request) -> web.Response:
        form = await request.post()
        self.token_requests.append({k: str(v) for k, v in form.items()})
        if self.token_status != 200:
            return web.Response(status=self.token_status, text="invalid_grant")
        return web.json_response(self.token_payload)

    async def _create_document(self, request: web.Request) -> web.Response:
        if request.headers.get("Authorization") != f"Bearer {ACCESS_TOKEN}":
            return web.Response(status=401, text="unauthenticated")
        body = await request.json()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.write_delay)
        finally:
            self.in_flight -= 1

        if self.flaky_failures > 0:
            self.flaky_failures -= 1
            return web.Response(status=503, text="try again")
        fail = body["fields"].get("fail", {})
        if fail.get("booleanValue") is True:
            return web.Response(status=500, text="boom")

        self.writes.append(body)
        self.write_paths.append(request.path)
        return web.json_response({"name": "doc", "fields": body["fields"]})

    def key_dict(self, private_key: str) -> Dict[str, Any]:
        return make_key_dict(private_key, token_uri=f"{self.base_url}/token")

    def settings(self, **overrides: Any) -> UploadSettings:
        values: Dict[str, Any] = {
            "firestore_url": self.base_url,
            "batch_delay_seconds": 0.0,
        }
        values.update(overrides)
        return UploadSettings(**values)


@pytest.fixture
async def fake_google() -> Any:
    fake = FakeGoogle()
    server = TestServer(fake.build_app())
    await server.start_server()
    fake.base_url = str(server.make_url("/")).rstrip("/")
    try:
        yield fake
    finally:
        await server.close()

