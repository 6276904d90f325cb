"""
Recursive Google Drive folder walker.

Walks a folder tree depth-first, extracts the text of every supported file
and tags each resulting record with the names of the folders above it.

Failure policy:
- a file that cannot be extracted (unsupported type, fetch/decode error,
  empty text) is logged and skipped;
- a folder whose name cannot be resolved adds no tag, its contents are still
  walked with the parent's tags;
- a folder that cannot be listed raises ``ListingError`` out of ``traverse``.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from recipe_importer.config import get_settings
from recipe_importer.extraction.extractor import ContentExtractor
from recipe_importer.google_drive.client import GoogleDriveClient
from recipe_importer.models import FileDescriptor, RecipeCollector, RecipeRecord
from recipe_importer.utils.errors import ExtractionError, NameLookupError, UnsupportedTypeError
from recipe_importer.utils.logging import LogContext, get_logger, log_performance

logger = get_logger(__name__)


@dataclass
class _OpenFolder:
    """A listed folder whose children are still being visited."""

    folder_id: str
    lineage: Tuple[str, ...]
    children: Iterator[FileDescriptor]


class FolderWalker:
    """Collect recipe documents from a Drive folder tree."""

    def __init__(
        self,
        drive_client: GoogleDriveClient,
        extractor: Optional[ContentExtractor] = None,
        include_root_folder: Optional[bool] = None,
    ) -> None:
        """
        Initialize the walker.

        Args:
            drive_client: Connected Drive client
            extractor: Content extractor (defaults to one over ``drive_client``)
            include_root_folder: Tag records with the root folder's name
                (read from settings when each traversal starts if None)
        """
        self.drive_client = drive_client
        self.extractor = extractor or ContentExtractor(drive_client)
        self.include_root_folder = include_root_folder

    @log_performance
    async def traverse(self, root_folder_id: str) -> List[RecipeRecord]:
        """
        Extract every supported file below a folder.

        Records come back in depth-first pre-order: a folder's children are
        handled in listing order and a sub-folder's contents are collected
        before the sub-folder's later siblings.

        Args:
            root_folder_id: Google Drive folder ID to start from

        Returns:
            One record per successfully extracted file

        Raises:
            ListingError: If any folder in the tree cannot be listed
        """
        include_root = self.include_root_folder
        if include_root is None:
            include_root = get_settings().include_root_folder_as_tag

        collector = RecipeCollector()
        stack = [await self._open_folder(root_folder_id, (), contributes_name=include_root)]

        while stack:
            folder = stack[-1]
            child = next(folder.children, None)

            if child is None:
                stack.pop()
            elif child.is_folder:
                stack.append(await self._open_folder(child.id, folder.lineage))
            else:
                record = await self._extract_record(child, folder)
                if record is not None:
                    collector.add(record)

        logger.info(f"Collected {len(collector)} recipe documents from folder {root_folder_id}")
        return collector.records

    async def _open_folder(
        self,
        folder_id: str,
        parent_lineage: Tuple[str, ...],
        contributes_name: bool = True,
    ) -> _OpenFolder:
        lineage = parent_lineage

        if contributes_name:
            try:
                lineage = parent_lineage + (await self.drive_client.get_folder_name(folder_id),)
            except NameLookupError as e:
                logger.error(f"Error getting folder name for {folder_id}: {e.message}")

        with LogContext(folder_id=folder_id):
            children = await self.drive_client.list_folder(folder_id, self.extractor.supported_mime_types)
            logger.debug(f"Listed {len(children)} entries in folder {folder_id}")

        return _OpenFolder(folder_id=folder_id, lineage=lineage, children=iter(children))

    async def _extract_record(self, file: FileDescriptor, folder: _OpenFolder) -> Optional[RecipeRecord]:
        with LogContext(folder_id=folder.folder_id, file_id=file.id):
            try:
                content = await self.extractor.extract(file)
            except UnsupportedTypeError as e:
                logger.warning(f"Skipping {file.name}: {e.message}")
                return None
            except ExtractionError as e:
                logger.error(f"Error getting content for file {file.name} ({file.mime_type}): {e.message}")
                return None

            tags = list(folder.lineage)
            logger.info(f"Adding tags for {file.name}: {', '.join(tags)}")
            logger.info(f"Successfully processed {file.name} ({file.mime_type})")
            return RecipeRecord(name=file.name, content=content, mime_type=file.mime_type, tags=tags)


async def get_all_recipe_docs(
    drive_client: GoogleDriveClient,
    root_folder_id: str,
    include_root_folder: Optional[bool] = None,
) -> Sequence[RecipeRecord]:
    """Collect every recipe document below ``root_folder_id``."""
    walker = FolderWalker(drive_client, include_root_folder=include_root_folder)
    return await walker.traverse(root_folder_id)
