"""
firepush/models/credentials.py

Provides the ServiceAccountKey pydantic model for the service-account JSON key
used to authenticate uploads, plus helpers to parse and load it.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

import aiofiles
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.functional_validators import field_validator

REQUIRED_FIELDS: List[str] = [
    "type",
    "project_id",
    "private_key_id",
    "private_key",
    "client_email",
    "client_id",
    "auth_uri",
    "token_uri",
]


class CredentialError(ValueError):
    """Raised when a service-account key payload is missing, malformed, or of the wrong type.

    Attributes:
        missing_fields (List[str]): Required fields that were absent or empty.
    """

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.missing_fields = missing_fields or []


class ServiceAccountKey(BaseModel):
    """Pydantic model for a service account JSON key as downloaded from the console.

    The model is frozen: a key is parsed once, handed to the uploader and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["service_account"]
    project_id: str
    private_key_id: str
    private_key: str = Field(..., repr=False)
    client_email: str
    client_id: str
    auth_uri: str
    token_uri: str
    auth_provider_x509_cert_url: Optional[str] = None
    client_x509_cert_url: Optional[str] = None
    universe_domain: Optional[str] = Field(
        default=None, description="Typically 'googleapis.com'"
    )

    @field_validator(
        "project_id",
        "private_key_id",
        "private_key",
        "client_email",
        "client_id",
        "auth_uri",
        "token_uri",
    )
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


def parse_service_account_key(
    obj: Union[ServiceAccountKey, Mapping[str, Any]]
) -> ServiceAccountKey:
    """
    Validate a decoded credentials object into a ServiceAccountKey.

    Args:
        obj: Either an already-built ServiceAccountKey (returned as is) or the
            decoded JSON mapping of a key file.

    Returns:
        ServiceAccountKey: The validated key.

    Raises:
        CredentialError: If required fields are missing/empty, the type is not
            "service_account", or any field fails validation.
    """
    if isinstance(obj, ServiceAccountKey):
        return obj
    if not isinstance(obj, Mapping):
        raise CredentialError(
            f"Credentials must be a JSON object, got {type(obj).__name__}."
        )

    missing = [name for name in REQUIRED_FIELDS if not obj.get(name)]
    if missing:
        raise CredentialError(
            f"Missing required fields: {', '.join(missing)}", missing_fields=missing
        )
    if obj.get("type") != "service_account":
        raise CredentialError(
            "Invalid credentials file. Expected service account credentials."
        )

    try:
        return ServiceAccountKey.model_validate(dict(obj))
    except ValidationError as exc:
        raise CredentialError(f"Invalid service account credentials: {exc}") from exc


def parse_service_account_json(text: str) -> ServiceAccountKey:
    """Decode a key file's JSON text and validate it."""
    try:
        raw: Dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CredentialError(
            "Invalid JSON file. Please check your credentials file format."
        ) from exc
    return parse_service_account_key(raw)


async def load_service_account_key(path: str) -> ServiceAccountKey:
    """
    Read and validate a service account key file.

    Args:
        path (str): Path to the JSON key file.

    Returns:
        ServiceAccountKey: The validated key.

    Raises:
        CredentialError: If the file cannot be read or does not hold a valid key.
    """
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            text = await f.read()
    except OSError as exc:
        raise CredentialError(f"Failed to read credentials file '{path}': {exc}") from exc
    return parse_service_account_json(text)


__all__ = [
    "CredentialError",
    "ServiceAccountKey",
    "parse_service_account_key",
    "parse_service_account_json",
    "load_service_account_key",
]
