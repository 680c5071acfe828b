"""Google Drive storage client implementation."""

import asyncio
import io
from typing import Any, Callable, Dict, Optional, Set

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .base import BaseStorageClient, RemoteFileRecord
from ..auth.credentials import CredentialStore
from ..exceptions import (
    AuthError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RemoteApiError,
)
from ..utils.logging import log_async_execution_time


class TokenRejectedError(AuthError):
    """Raised when Google Drive rejects the access token of a request."""
    pass


class GoogleDriveClient(BaseStorageClient):
    """Google Drive v3 client scoped to a single parent folder per call.

    Every call builds its own Drive service from the current access token,
    so a refresh between calls is always picked up.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        api_version: str = "v3",
        page_size: int = 1000,
        timeout_seconds: Optional[float] = 120.0
    ):
        """Initialize Google Drive client.

        Args:
            credential_store: Supplies valid access tokens
            api_version: Drive API version
            page_size: Page size for list requests (Drive caps it at 1000)
            timeout_seconds: Upper bound for a single API request, None for no limit
        """
        super().__init__()
        self.credential_store = credential_store
        self.api_version = api_version
        self.page_size = min(page_size, 1000)
        self.timeout_seconds = timeout_seconds

    @log_async_execution_time
    async def list_files(self, folder_id: str) -> Set[RemoteFileRecord]:
        """List non-trashed files directly inside a Drive folder.

        Args:
            folder_id: Drive folder id (``root`` for My Drive)

        Returns:
            Set of RemoteFileRecord for every file found
        """
        query = self._build_query(folder_id)
        records: Set[RemoteFileRecord] = set()
        page_token = None

        self.logger.debug("Listing Google Drive folder", folder_id=folder_id, query=query)

        while True:
            def make_request(service, token=page_token):
                return service.files().list(
                    q=query,
                    fields="nextPageToken, files(id, name)",
                    pageSize=self.page_size,
                    pageToken=token,
                    spaces="drive"
                )

            result = await self._call(make_request, "list_files")

            for file_data in result.get("files", []):
                records.add(RemoteFileRecord(id=file_data["id"], name=file_data.get("name", "")))

            page_token = result.get("nextPageToken")
            if not page_token:
                break

        self.logger.info("Listed Google Drive folder", folder_id=folder_id, files_count=len(records))
        return records

    @log_async_execution_time
    async def create_file(
        self,
        folder_id: str,
        name: str,
        mime_type: str,
        content: bytes
    ) -> RemoteFileRecord:
        """Upload bytes as a new file in a Drive folder."""
        metadata = {
            "name": name,
            "mimeType": mime_type,
            "parents": [folder_id],
        }

        def make_request(service):
            media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type, resumable=False)
            return service.files().create(body=metadata, media_body=media, fields="id, name")

        result = await self._call(make_request, "create_file")

        self.logger.info(
            "Uploaded file to Google Drive",
            file_id=result.get("id"),
            file_name=name,
            mime_type=mime_type,
            size=len(content)
        )
        return RemoteFileRecord(id=result["id"], name=result.get("name", name))

    @log_async_execution_time
    async def delete_file(self, file_id: str) -> None:
        """Permanently delete a Drive file by id."""
        def make_request(service):
            return service.files().delete(fileId=file_id)

        await self._call(make_request, "delete_file")
        self.logger.info("Deleted file from Google Drive", file_id=file_id)

    def _build_query(self, folder_id: str) -> str:
        """Build the Drive query selecting a folder's non-trashed children."""
        escaped = folder_id.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}' in parents and trashed = false"

    def _build_service(self, access_token: str):
        credentials = Credentials(token=access_token)
        return build("drive", self.api_version, credentials=credentials, cache_discovery=False)

    async def _call(self, make_request: Callable[[Any], Any], operation: str) -> Dict[str, Any]:
        """Run a Drive request with a fresh token, retrying once if the token is rejected."""
        access_token = await self.credential_store.get_access_token()

        try:
            return await self._execute(access_token, make_request, operation)
        except TokenRejectedError as e:
            self.logger.warning("Access token rejected, refreshing", operation=operation, error=str(e))

        access_token = await self.credential_store.get_access_token(stale_token=access_token)

        try:
            return await self._execute(access_token, make_request, operation)
        except TokenRejectedError as e:
            raise AuthError(f"Google Drive rejected refreshed credentials during {operation}") from e

    async def _execute(
        self,
        access_token: str,
        make_request: Callable[[Any], Any],
        operation: str
    ) -> Dict[str, Any]:
        def run():
            service = self._build_service(access_token)
            return make_request(service).execute()

        loop = asyncio.get_running_loop()
        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(None, run),
                timeout=self.timeout_seconds
            )
        except HttpError as e:
            if self._status(e) == 401:
                raise TokenRejectedError(str(e)) from e
            raise self._translate_http_error(e, operation) from e
        except RefreshError as e:
            # The authorized transport answers a 401 by trying to refresh
            # token-only credentials itself, which always fails
            raise TokenRejectedError(str(e)) from e
        except asyncio.TimeoutError:
            raise NetworkError(f"Google Drive request timed out after {self.timeout_seconds}s")
        except (httplib2.HttpLib2Error, TransportError, OSError) as e:
            raise NetworkError(f"Google Drive transport error: {e}")

        # files().delete() returns an empty body
        return result or {}

    @staticmethod
    def _status(error: HttpError) -> int:
        return int(getattr(error.resp, "status", 0) or 0)

    def _translate_http_error(self, error: HttpError, operation: str) -> RemoteApiError:
        status = self._status(error)

        if status == 404:
            return NotFoundError(f"Google Drive object not found during {operation}")

        if status == 429:
            retry_after = error.resp.get("retry-after") if hasattr(error.resp, "get") else None
            return RateLimitError(
                "Google Drive rate limit exceeded",
                int(retry_after) if retry_after and str(retry_after).isdigit() else None
            )

        if status == 403:
            self.logger.error("Google Drive denied access", operation=operation, error=str(error))
        else:
            self.logger.error("Google Drive API error", operation=operation, status=status, error=str(error))

        return RemoteApiError(f"Google Drive API error during {operation}: {error}", status=status)
