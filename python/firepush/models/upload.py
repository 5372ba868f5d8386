"""
firepush/models/upload.py

Holds the Pydantic models describing an upload run:
  - LogKind (Enum)
  - UploadLogEntry
  - UploadProgress
  - TokenResponse
  - AccessToken
  - UploadResult
"""

from __future__ import annotations

import datetime
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import model_validator


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class LogKind(str, Enum):
    """
    Enum for the outcome category of a log entry.
    """

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class UploadLogEntry(BaseModel):
    """
    A single user-facing event emitted while an upload runs.

    Attributes:
        id (str): Unique identifier of the entry.
        timestamp (datetime): When the entry was emitted (UTC).
        kind (LogKind): success, error or info.
        message (str): Short human-readable description.
        details (Optional[str]): Extra text, typically an error message.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime.datetime = Field(default_factory=_utcnow)
    kind: LogKind
    message: str
    details: Optional[str] = None


class UploadProgress(BaseModel):
    """
    Snapshot of upload counters.

    Attributes:
        total (int): Number of documents handed to the uploader.
        completed (int): Documents written successfully.
        failed (int): Documents that failed to encode or write.
        percentage (int): round(100 * (completed + failed) / total), 0 when total is 0.
    """

    model_config = ConfigDict(frozen=True)

    total: int = Field(0, ge=0)
    completed: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    percentage: int = Field(0, ge=0, le=100)

    @model_validator(mode="after")
    def check_counts(self) -> UploadProgress:
        """Ensure completed + failed never exceeds total."""
        if self.completed + self.failed > self.total:
            raise ValueError(
                f"completed ({self.completed}) + failed ({self.failed}) "
                f"exceeds total ({self.total})"
            )
        return self

    @classmethod
    def from_counts(cls, completed: int, failed: int, total: int) -> UploadProgress:
        """Build a snapshot, computing the percentage with half-up rounding."""
        done = completed + failed
        percentage = (200 * done + total) // (2 * total) if total > 0 else 0
        return cls(
            total=total, completed=completed, failed=failed, percentage=percentage
        )

    @property
    def settled(self) -> int:
        return self.completed + self.failed


class TokenResponse(BaseModel):
    """
    Body of a successful OAuth2 token endpoint response. Unknown keys are ignored.

    Attributes:
        access_token (str): The bearer token; must be non-empty.
        token_type (str, optional): Usually "Bearer".
        expires_in (int, optional): Lifetime in seconds as reported by the server.
    """

    access_token: str = Field(..., min_length=1, repr=False)
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class AccessToken(BaseModel):
    """
    A short-lived OAuth2 bearer token owned by one upload run.

    Attributes:
        token (str): The opaque bearer string.
        issued_at (datetime): Issue instant used for the JWT assertion.
        expires_at (datetime): issued_at + assertion lifetime.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., repr=False)
    issued_at: datetime.datetime
    expires_at: datetime.datetime

    def is_expired(self, now: Optional[datetime.datetime] = None) -> bool:
        return (now or _utcnow()) >= self.expires_at


class UploadResult(BaseModel):
    """
    Final outcome of an upload call.

    Attributes:
        collection (str): Target collection name.
        progress (UploadProgress): Final counters; completed + failed == total.
        logs (List[UploadLogEntry]): Log entries, most recent first.
    """

    collection: str
    progress: UploadProgress
    logs: List[UploadLogEntry]

    @property
    def ok(self) -> bool:
        return self.progress.failed == 0


__all__ = [
    "LogKind",
    "UploadLogEntry",
    "UploadProgress",
    "AccessToken",
    "UploadResult",
]
