"""
Google Drive API client for file operations.

This module provides the Drive operations the recipe walker and content
extractor rely on: listing folders, resolving folder names, downloading and
exporting file content, and copying/deleting files for server-side
conversion. Each call is a single blocking API request run in the default
executor; nothing here retries.
"""

import asyncio
import io
from typing import Any, Iterable, List, Optional

from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from recipe_importer.config import get_settings
from recipe_importer.google_drive.auth import GoogleDriveAuth
from recipe_importer.models import FOLDER_MIME_TYPE, FileDescriptor
from recipe_importer.utils.errors import (
    DriveFileNotFoundError,
    DriveQuotaExceededError,
    GoogleDriveError,
    ListingError,
    NameLookupError,
)
from recipe_importer.utils.logging import get_logger

logger = get_logger(__name__)

DOWNLOAD_CHUNK_SIZE = 5 * 1024 * 1024


def build_listing_query(folder_id: str, mime_types: Iterable[str]) -> str:
    """Drive query selecting sub-folders and files of the given types in a folder."""
    type_clauses = [f"mimeType = '{t}'" for t in mime_types]
    type_clauses.append(f"mimeType = '{FOLDER_MIME_TYPE}'")
    return f"'{folder_id}' in parents and trashed = false and ({' or '.join(type_clauses)})"


class GoogleDriveClient:
    """Client for Google Drive operations."""

    def __init__(
        self,
        auth_manager: Optional[GoogleDriveAuth] = None,
        service: Optional[Resource] = None,
        page_size: Optional[int] = None,
    ) -> None:
        """
        Initialize Google Drive client.

        Args:
            auth_manager: Authentication manager
            service: Already built Drive v3 service (skips authentication)
            page_size: Maximum number of entries requested per folder listing
        """
        self.settings = get_settings()
        self.auth_manager = auth_manager or GoogleDriveAuth()
        self.page_size = page_size or self.settings.drive_page_size

        self._service: Optional[Resource] = service

    async def connect(self) -> None:
        """
        Connect to Google Drive API.

        Raises:
            DriveAuthenticationError: If authentication fails
            GoogleDriveError: If the service cannot be built
        """
        if self._service:
            return

        if not self.auth_manager.is_authenticated:
            await self.auth_manager.authenticate()

        try:
            self._service = build(
                "drive",
                "v3",
                credentials=self.auth_manager.credentials,
            )
            logger.info("Connected to Google Drive API")
        except Exception as e:
            logger.error(f"Failed to build Drive service: {e}")
            raise GoogleDriveError(f"Failed to connect to Drive API: {e}")

    def ensure_connected(self) -> None:
        """Ensure client is connected to Drive API."""
        if not self._service:
            raise GoogleDriveError("Not connected to Drive API. Call connect() first.")

    async def _execute(self, request: Any) -> Any:
        """Run a prepared API request without blocking the event loop."""
        return await asyncio.get_running_loop().run_in_executor(None, request.execute)

    async def list_folder(self, folder_id: str, mime_types: Iterable[str]) -> List[FileDescriptor]:
        """
        List the sub-folders and supported files directly inside a folder.

        Args:
            folder_id: Google Drive folder ID
            mime_types: File MIME types to include besides folders

        Returns:
            Children in the order Drive returns them

        Raises:
            ListingError: If the folder cannot be listed
        """
        self.ensure_connected()
        query = build_listing_query(folder_id, mime_types)

        try:
            response = await self._execute(
                self._service.files().list(
                    q=query,
                    fields="nextPageToken, files(id, name, mimeType)",
                    pageSize=self.page_size,
                )
            )
        except HttpError as e:
            logger.error(f"Failed to list files in folder {folder_id}: {e}")
            raise ListingError(folder_id, str(e)) from e
        except Exception as e:
            raise ListingError(folder_id, str(e)) from e

        if response.get("nextPageToken"):
            # TODO: follow nextPageToken once it is settled whether folders this large should be imported
            logger.warning(
                f"Folder {folder_id} has more than {self.page_size} entries; only the first page is processed"
            )

        return [FileDescriptor.model_validate(f) for f in response.get("files", [])]

    async def get_folder_name(self, folder_id: str) -> str:
        """
        Resolve a folder's display name.

        Raises:
            NameLookupError: If the name cannot be resolved
        """
        self.ensure_connected()

        try:
            metadata = await self._execute(self._service.files().get(fileId=folder_id, fields="name"))
        except Exception as e:
            raise NameLookupError(folder_id, str(e)) from e

        name = metadata.get("name")
        if not name:
            raise NameLookupError(folder_id, "response has no name")
        return name

    async def download(self, file_id: str) -> bytes:
        """
        Download a regular (non Google-native) file's bytes.

        Raises:
            DriveFileNotFoundError: If file not found
            GoogleDriveError: For other download errors
        """
        self.ensure_connected()
        request = self._service.files().get_media(fileId=file_id)
        buffer = io.BytesIO()

        def _download() -> None:
            downloader = MediaIoBaseDownload(buffer, request, chunksize=DOWNLOAD_CHUNK_SIZE)
            done = False
            while not done:
                _, done = downloader.next_chunk()

        try:
            await asyncio.get_running_loop().run_in_executor(None, _download)
        except HttpError as e:
            raise self._translate(e, file_id, "download") from e

        return buffer.getvalue()

    async def export(self, file_id: str, mime_type: str) -> bytes:
        """
        Export a Google-native document to another format.

        Raises:
            DriveFileNotFoundError: If file not found
            GoogleDriveError: For other export errors
        """
        self.ensure_connected()

        try:
            data = await self._execute(self._service.files().export(fileId=file_id, mimeType=mime_type))
        except HttpError as e:
            raise self._translate(e, file_id, "export") from e

        if isinstance(data, str):
            return data.encode("utf-8")
        return data

    async def copy(self, file_id: str, name: str, mime_type: str) -> str:
        """
        Copy a file, letting Drive convert it to ``mime_type``.

        Returns:
            ID of the new file
        """
        self.ensure_connected()

        try:
            response = await self._execute(
                self._service.files().copy(
                    fileId=file_id,
                    body={"name": name, "mimeType": mime_type},
                    fields="id",
                )
            )
        except HttpError as e:
            raise self._translate(e, file_id, "copy") from e

        return response["id"]

    async def delete(self, file_id: str) -> None:
        """Permanently delete a file."""
        self.ensure_connected()

        try:
            await self._execute(self._service.files().delete(fileId=file_id))
        except HttpError as e:
            raise self._translate(e, file_id, "delete") from e

        logger.debug(f"Deleted file {file_id}")

    @staticmethod
    def _translate(error: HttpError, file_id: str, action: str) -> GoogleDriveError:
        status = error.resp.status
        if status == 404:
            return DriveFileNotFoundError(file_id)
        if status == 429:
            retry_after = str(error.resp.get("retry-after", ""))
            return DriveQuotaExceededError(retry_after=int(retry_after) if retry_after.isdigit() else None)
        return GoogleDriveError(f"Failed to {action} file {file_id}: {error}", {"status": status})


def create_drive_client() -> GoogleDriveClient:
    """Create a Google Drive client with default settings."""
    from recipe_importer.google_drive.auth import create_auth_manager

    return GoogleDriveClient(create_auth_manager())
