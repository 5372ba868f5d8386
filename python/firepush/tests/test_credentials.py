"""
Unit tests for service account key parsing.
"""

import json
from typing import Any, Dict

import pytest

from firepush.models.credentials import (
    CredentialError,
    ServiceAccountKey,
    load_service_account_key,
    parse_service_account_json,
    parse_service_account_key,
)


class TestParseServiceAccountKey:
    def test_valid_key(self, key_dict: Dict[str, Any]) -> None:
        key = parse_service_account_key(key_dict)
        assert isinstance(key, ServiceAccountKey)
        assert key.project_id == "demo-project"
        assert key.token_uri == "https://oauth2.googleapis.com/token"

    def test_model_passes_through(self, key_dict: Dict[str, Any]) -> None:
        key = ServiceAccountKey(**key_dict)
        assert parse_service_account_key(key) is key

    def test_cert_urls_are_optional(self, key_dict: Dict[str, Any]) -> None:
        del key_dict["auth_provider_x509_cert_url"]
        del key_dict["client_x509_cert_url"]
        key = parse_service_account_key(key_dict)
        assert key.client_x509_cert_url is None

    @pytest.mark.parametrize(
        "field", ["project_id", "client_email", "private_key", "token_uri", "client_id"]
    )
    def test_missing_required_field(self, key_dict: Dict[str, Any], field: str) -> None:
        del key_dict[field]
        with pytest.raises(CredentialError) as exc_info:
            parse_service_account_key(key_dict)
        assert exc_info.value.missing_fields == [field]
        assert f"Missing required fields: {field}" in str(exc_info.value)

    def test_empty_field_counts_as_missing(self, key_dict: Dict[str, Any]) -> None:
        key_dict["client_email"] = ""
        key_dict["token_uri"] = ""
        with pytest.raises(CredentialError) as exc_info:
            parse_service_account_key(key_dict)
        assert exc_info.value.missing_fields == ["client_email", "token_uri"]

    def test_blank_field_is_rejected(self, key_dict: Dict[str, Any]) -> None:
        key_dict["project_id"] = "   "
        with pytest.raises(CredentialError):
            parse_service_account_key(key_dict)

    def test_wrong_type(self, key_dict: Dict[str, Any]) -> None:
        key_dict["type"] = "authorized_user"
        with pytest.raises(CredentialError, match="Expected service account"):
            parse_service_account_key(key_dict)

    def test_not_a_mapping(self) -> None:
        with pytest.raises(CredentialError, match="JSON object"):
            parse_service_account_key(["not", "a", "dict"])  # type: ignore[arg-type]

    def test_private_key_hidden_from_repr(self, key_dict: Dict[str, Any]) -> None:
        key = parse_service_account_key(key_dict)
        assert "PRIVATE KEY" not in repr(key)

    def test_key_is_frozen(self, key_dict: Dict[str, Any]) -> None:
        key = parse_service_account_key(key_dict)
        with pytest.raises(ValueError):
            key.project_id = "other"  # type: ignore[misc]


class TestLoadServiceAccountKey:
    async def test_load_from_file(self, tmp_path: Any, key_dict: Dict[str, Any]) -> None:
        path = tmp_path / "key.json"
        path.write_text(json.dumps(key_dict), encoding="utf-8")
        key = await load_service_account_key(str(path))
        assert key.client_email == key_dict["client_email"]

    async def test_missing_file(self, tmp_path: Any) -> None:
        with pytest.raises(CredentialError, match="Failed to read"):
            await load_service_account_key(str(tmp_path / "nope.json"))

    def test_invalid_json(self) -> None:
        with pytest.raises(CredentialError, match="Invalid JSON"):
            parse_service_account_json("{not json")
