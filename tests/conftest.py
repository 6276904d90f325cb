"""
Shared fixtures for the recipe importer tests.
"""

from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from recipe_importer.config import reset_settings
from recipe_importer.models import FOLDER_MIME_TYPE, FileDescriptor, MimeType
from recipe_importer.utils.errors import NameLookupError


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Give every test settings built from a clean environment."""
    for var in (
        "GOOGLE_DRIVE_FOLDER_ID",
        "INCLUDE_ROOT_FOLDER_AS_TAG",
        "DRIVE_CREDENTIALS_PATH",
        "DRIVE_TOKEN_PATH",
        "OAUTH_PORT",
        "DRIVE_PAGE_SIZE",
        "OPENAI_API_KEY",
        "OPENAI_MODEL",
        "OPENAI_TEMPERATURE",
        "LOG_FILE_PATH",
        "ERROR_LOG_FILE_PATH",
        "DEV_MODE",
        "MEALIE_API_URL",
        "MEALIE_API_KEY",
        "LOG_LEVEL",
        "RECIPE_OUTPUT_DIR",
        "MAX_RETRIES",
        "RETRY_BASE_DELAY",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    yield
    reset_settings()


def make_folder(name: str, folder_id: Optional[str] = None) -> FileDescriptor:
    return FileDescriptor(id=folder_id or f"{name}-id", name=name, mime_type=FOLDER_MIME_TYPE)


def make_file(name: str, mime_type: str = MimeType.PLAIN_TEXT.value, file_id: Optional[str] = None) -> FileDescriptor:
    return FileDescriptor(id=file_id or f"{name}-id", name=name, mime_type=mime_type)


class FakeDrive:
    """
    In-memory stand-in for ``GoogleDriveClient``.

    ``tree`` maps folder IDs to their children, ``names`` folder IDs to names
    and ``contents`` file IDs to the bytes a download or export returns.
    Every method is an ``AsyncMock`` so tests can assert on calls.
    """

    def __init__(
        self,
        tree: Dict[str, List[FileDescriptor]],
        names: Optional[Dict[str, str]] = None,
        contents: Optional[Dict[str, bytes]] = None,
    ) -> None:
        self.tree = tree
        self.names = names or {}
        self.contents = contents or {}

        self.list_folder = AsyncMock(side_effect=self._list_folder)
        self.get_folder_name = AsyncMock(side_effect=self._get_folder_name)
        self.download = AsyncMock(side_effect=self._content)
        self.export = AsyncMock(side_effect=self._export)
        self.copy = AsyncMock(return_value="copy-id")
        self.delete = AsyncMock(return_value=None)
        self.connect = AsyncMock(return_value=None)

    async def _list_folder(self, folder_id, mime_types):
        return list(self.tree.get(folder_id, []))

    async def _get_folder_name(self, folder_id):
        if folder_id not in self.names:
            raise NameLookupError(folder_id, "Folder not found")
        return self.names[folder_id]

    async def _content(self, file_id):
        return self.contents[file_id]

    async def _export(self, file_id, mime_type):
        return self.contents[file_id]


@pytest.fixture
def mock_drive_service():
    """A MagicMock shaped like ``build('drive', 'v3')``."""
    return MagicMock()
