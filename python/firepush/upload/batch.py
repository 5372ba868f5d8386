"""
firepush/upload/batch.py

Provides a BatchUploader for writing documents into a Firestore collection
through the REST API with aiohttp, authenticated as a service account.

Flow of one upload call:
    - validate the collection name and the service account key
    - sign a JWT assertion and exchange it for a bearer token (fatal on failure)
    - split the documents into groups of `batch_size`
    - write every document of a group concurrently, wait for the whole group
    - pause `batch_delay_seconds` before the next group

A failure to encode or write one document is counted and logged, and never
stops the other documents.
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any, Dict, Mapping, Optional, Sequence, Type, TypeVar, Union

import aiohttp

from firepush.auth.token import fetch_access_token
from firepush.encoding.wire import encode_document
from firepush.models.credentials import ServiceAccountKey, parse_service_account_key
from firepush.models.document import Document
from firepush.models.settings import UploadSettings
from firepush.models.upload import AccessToken, LogKind, UploadResult
from firepush.upload.progress import ProgressReporter
from firepush.utils.async_retry import async_retry
from firepush.utils.collection import validate_collection_name

T = TypeVar("T", bound=BaseException)

logger = logging.getLogger(__name__)

CredentialsInput = Union[ServiceAccountKey, Mapping[str, Any]]


class DocumentWriteError(RuntimeError):
    """Represents a non-2xx response to a create-document request.

    Attributes:
        status (int): HTTP status code.
        body (str): Response body text.
    """

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"HTTP {status}: {body}")
        self.status = status
        self.body = body


def _error_text(exc: BaseException) -> str:
    return str(exc) or repr(exc)


class BatchUploader:
    """
    An asynchronous uploader that pushes documents into one Firestore collection.

    The uploader reuses a single aiohttp session for the token exchange and all
    document writes. A session passed in by the caller is left open on exit.
    """

    def __init__(
        self,
        credentials: CredentialsInput,
        settings: Optional[UploadSettings] = None,
        reporter: Optional[ProgressReporter] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Initialize the BatchUploader.

        Args:
            credentials: A ServiceAccountKey, or the decoded JSON of a key file
                (validated when an upload starts).
            settings (UploadSettings, optional): Endpoint and pacing settings.
            reporter (ProgressReporter, optional): Receives counters and log entries.
                Defaults to a fresh reporter sized by settings.max_log_entries.
            session (aiohttp.ClientSession, optional): Externally owned session.
        """
        self._credentials = credentials
        self._settings = settings or UploadSettings()
        self.reporter = reporter or ProgressReporter(
            max_entries=self._settings.max_log_entries
        )
        self._session = session
        self._owns_session = session is None
        self._is_uploading = False
        self._completed = 0
        self._failed = 0
        self._total = 0

    async def __aenter__(self) -> BatchUploader:
        """Enter the async context, creating an aiohttp session if none was given."""
        self._ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[T]],
        exc_val: Optional[T],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Exit the async context, closing the session if we created it."""
        await self.close()

    async def close(self) -> None:
        """Close the internal aiohttp session if we own it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def is_uploading(self) -> bool:
        return self._is_uploading

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._settings.total_timeout)
            )
            self._owns_session = True
        return self._session

    async def upload(
        self, collection_name: str, documents: Sequence[Document]
    ) -> UploadResult:
        """
        Upload every document into `collection_name`.

        Args:
            collection_name (str): Target collection.
            documents (Sequence[Document]): Documents to create, in order.

        Returns:
            UploadResult: Final counters (completed + failed == len(documents)) and the log.

        Raises:
            ValueError: If the collection name is invalid.
            CredentialError: If the service account key is invalid.
            SigningError: If the JWT assertion cannot be built.
            TokenExchangeError: If no access token could be obtained.
        """
        if self._is_uploading:
            raise RuntimeError("An upload is already running on this uploader.")

        self._is_uploading = True
        self._completed = 0
        self._failed = 0
        self._total = len(documents)
        reporter = self.reporter

        try:
            reporter.update_progress(0, 0, self._total)
            name_error = validate_collection_name(collection_name)
            if name_error:
                raise ValueError(name_error)
            credentials = parse_service_account_key(self._credentials)

            reporter.emit(
                LogKind.INFO,
                f"Getting access token for project: {credentials.project_id}",
            )
            token = await fetch_access_token(
                self._ensure_session(), credentials, self._settings
            )
            reporter.emit(LogKind.SUCCESS, "Access token obtained successfully")

            reporter.emit(
                LogKind.INFO,
                f"Starting upload of {self._total} documents to collection: {collection_name}",
            )
            url = self._settings.collection_url(credentials.project_id, collection_name)
            await self._upload_groups(url, token, documents)
        except Exception as exc:
            logger.error("Upload to '%s' failed: %s", collection_name, exc)
            reporter.emit(LogKind.ERROR, "Upload failed", _error_text(exc))
            raise
        finally:
            self._is_uploading = False

        reporter.emit(
            LogKind.SUCCESS,
            f"Upload completed: {self._completed} successful, {self._failed} failed",
        )
        logger.info(
            "Upload to '%s' finished: %d completed, %d failed of %d",
            collection_name,
            self._completed,
            self._failed,
            self._total,
        )
        return UploadResult(
            collection=collection_name,
            progress=reporter.snapshot,
            logs=reporter.logs,
        )

    async def _upload_groups(
        self, url: str, token: AccessToken, documents: Sequence[Document]
    ) -> None:
        batch_size = self._settings.batch_size
        for start in range(0, len(documents), batch_size):
            if start > 0:
                await self._pace()
            if token.is_expired():
                logger.warning(
                    "Access token expired at %s; remaining writes will likely fail",
                    token.expires_at.isoformat(),
                )
            group = documents[start : start + batch_size]
            logger.info(
                "Uploading documents %d-%d of %d",
                start + 1,
                start + len(group),
                len(documents),
            )
            await asyncio.gather(
                *(
                    self._upload_one(url, token, start + offset + 1, doc)
                    for offset, doc in enumerate(group)
                )
            )

    async def _pace(self) -> None:
        """Fixed pause between groups to limit the request burst rate."""
        await asyncio.sleep(self._settings.batch_delay_seconds)

    async def _upload_one(
        self, url: str, token: AccessToken, position: int, doc: Document
    ) -> None:
        """Encode and write one document; never raises for per-document failures."""
        try:
            body = encode_document(doc)
            await self._write_with_retry(url, token.token, body)
        except Exception as exc:
            self._failed += 1
            logger.debug("Document %d failed: %s", position, exc)
            self.reporter.emit(
                LogKind.ERROR,
                f"Failed to upload document {position}",
                _error_text(exc),
            )
        else:
            self._completed += 1
            logger.debug("Document %d uploaded", position)
            self.reporter.emit(
                LogKind.SUCCESS, f"Document {position} uploaded successfully"
            )
        self.reporter.update_progress(self._completed, self._failed, self._total)

    async def _write_with_retry(
        self, url: str, access_token: str, body: Dict[str, Any]
    ) -> None:
        attempts = self._settings.write_attempts
        write = async_retry(
            retries=attempts,
            delay=self._settings.write_retry_delay_seconds,
            noisy=attempts > 1,
            retry_on=(DocumentWriteError, aiohttp.ClientError, asyncio.TimeoutError),
        )(self._write_document)
        await write(url, access_token, body)

    async def _write_document(
        self, url: str, access_token: str, body: Dict[str, Any]
    ) -> None:
        """
        POST one encoded document to the collection's create endpoint.

        Raises:
            DocumentWriteError: If the response status is not 2xx.
            aiohttp.ClientError: On network-level failures.
        """
        session = self._ensure_session()
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        async with session.post(
            url, json=body, headers=headers, ssl=self._settings.verify_ssl
        ) as resp:
            if not 200 <= resp.status < 300:
                raise DocumentWriteError(resp.status, await resp.text())


async def upload_documents(
    collection_name: str,
    documents: Sequence[Document],
    credentials: CredentialsInput,
    settings: Optional[UploadSettings] = None,
    reporter: Optional[ProgressReporter] = None,
) -> UploadResult:
    """
    Upload documents with a short-lived BatchUploader.

    See BatchUploader.upload for the returned result and raised errors.
    """
    async with BatchUploader(credentials, settings=settings, reporter=reporter) as uploader:
        return await uploader.upload(collection_name, documents)


__all__ = ["BatchUploader", "DocumentWriteError", "upload_documents"]
