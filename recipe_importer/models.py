"""
Core data models for the Drive recipe importer.

This module defines the Pydantic models passed between the Drive walker,
the content extractor and the import pipeline.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_APPS_PREFIX = "application/vnd.google-apps."


# =============================================================================
# Enums
# =============================================================================


class MimeType(str, Enum):
    """MIME types the importer can read recipes from."""

    GOOGLE_DOC = "application/vnd.google-apps.document"
    GOOGLE_SHEET = "application/vnd.google-apps.spreadsheet"
    PLAIN_TEXT = "text/plain"
    DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    DOC = "application/msword"
    PDF = "application/pdf"

    @property
    def is_google_native(self) -> bool:
        """Whether Drive stores this type natively (export only, no download)."""
        return self.value.startswith(GOOGLE_APPS_PREFIX)


# =============================================================================
# Drive Models
# =============================================================================


class FileDescriptor(BaseModel):
    """A file or folder entry returned by a Drive folder listing."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Google Drive file ID")
    name: str = Field(..., description="Display name")
    mime_type: str = Field(..., alias="mimeType", description="Declared MIME type")

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


# =============================================================================
# Recipe Models
# =============================================================================


class RecipeRecord(BaseModel):
    """Text extracted from one recipe file, tagged with its folder lineage."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="File name in Drive")
    content: str = Field(..., description="Extracted plain text")
    mime_type: str = Field(..., description="MIME type of the source file")
    tags: List[str] = Field(
        default_factory=list,
        description="Ancestor folder names, root to leaf",
    )


class RecipeCollector:
    """Ordered accumulator of the records found during one traversal."""

    def __init__(self) -> None:
        self._records: List[RecipeRecord] = []

    def add(self, record: RecipeRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> List[RecipeRecord]:
        """Records in discovery order (a copy)."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class ImportOutcome(BaseModel):
    """What happened to one recipe document during an import run."""

    name: str
    tags: List[str] = Field(default_factory=list)
    slug: Optional[str] = Field(None, description="Mealie recipe slug when imported")
    error: Optional[str] = Field(None, description="Error message when the import failed")

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ImportSummary(BaseModel):
    """Outcome of one import run."""

    discovered: int = Field(0, ge=0, description="Recipe documents found in Drive")
    outcomes: List[ImportOutcome] = Field(default_factory=list)

    @property
    def imported(self) -> List[ImportOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> List[ImportOutcome]:
        return [o for o in self.outcomes if not o.succeeded]
