from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.functional_validators import model_validator


class UploadSettings(BaseModel):
    """
    Tunables for a single upload run.

    The token endpoint is not configured here: it is taken from the
    service account key's token_uri, which is also the JWT audience.
    """

    firestore_url: str = Field(default="https://firestore.googleapis.com")
    database: str = "(default)"
    scope: str = "https://www.googleapis.com/auth/datastore"
    batch_size: int = Field(default=5, ge=1)
    batch_delay_seconds: float = Field(default=0.2, ge=0.0)
    write_attempts: int = Field(default=1, ge=1)
    write_retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    total_timeout: float = Field(default=30.0, gt=0.0)
    verify_ssl: bool = True
    max_log_entries: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def strip_trailing_slash(self) -> UploadSettings:
        """
        Normalize firestore_url so document URLs can be joined with a single '/'.
        Runs after fields are validated, returning 'self' or raising an error.
        """
        if not self.firestore_url.startswith(("http://", "https://")):
            raise ValueError("firestore_url must start with http:// or https://")
        self.firestore_url = self.firestore_url.rstrip("/")
        return self

    def collection_url(self, project_id: str, collection_name: str) -> str:
        """Return the create-document endpoint for a collection."""
        return (
            f"{self.firestore_url}/v1/projects/{project_id}"
            f"/databases/{self.database}/documents/{collection_name}"
        )
