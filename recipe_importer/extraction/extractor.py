"""
Recipe text extraction from Google Drive files.

This module dispatches a Drive file to the strategy registered for its MIME
type and returns the file's plain text.
"""

from typing import List, Mapping

from recipe_importer.extraction.strategies import STRATEGIES, ExtractionStrategy
from recipe_importer.google_drive.client import GoogleDriveClient
from recipe_importer.models import FileDescriptor, MimeType
from recipe_importer.utils.errors import ExtractionError, UnsupportedTypeError
from recipe_importer.utils.logging import get_logger

logger = get_logger(__name__)


class ContentExtractor:
    """Extract plain text from the recipe file types Drive can hold."""

    def __init__(
        self,
        drive_client: GoogleDriveClient,
        strategies: Mapping[MimeType, ExtractionStrategy] = STRATEGIES,
    ) -> None:
        """
        Initialize the extractor.

        Args:
            drive_client: Connected Drive client used to fetch content
            strategies: Strategy per supported MIME type
        """
        self.drive_client = drive_client
        self.strategies = strategies

    @property
    def supported_mime_types(self) -> List[str]:
        return [mime_type.value for mime_type in self.strategies]

    async def extract(self, file: FileDescriptor) -> str:
        """
        Extract the plain text of a Drive file.

        Args:
            file: Listing entry of the file

        Returns:
            Non-empty extracted text

        Raises:
            UnsupportedTypeError: If no strategy handles the file's MIME type
            ExtractionError: If fetching or decoding fails, or no text was found
        """
        mime_type, strategy = self._strategy_for(file.mime_type)

        try:
            if strategy.convert_remotely:
                data = await self._convert_remotely(file, strategy)
            elif mime_type.is_google_native:
                data = await self.drive_client.export(file.id, strategy.export_mime_type)
            else:
                data = await self.drive_client.download(file.id)

            text = strategy.decoder(data)
        except Exception as e:
            raise ExtractionError(
                f"Failed to extract {file.name}: {e}",
                {"file_id": file.id, "name": file.name, "mime_type": file.mime_type},
            ) from e

        if not text or not text.strip():
            raise ExtractionError(
                f"No content extracted from file {file.name}",
                {"file_id": file.id, "name": file.name, "mime_type": file.mime_type},
            )

        return text

    def _strategy_for(self, mime_type: str) -> tuple[MimeType, ExtractionStrategy]:
        try:
            member = MimeType(mime_type)
        except ValueError:
            raise UnsupportedTypeError(mime_type) from None

        strategy = self.strategies.get(member)
        if strategy is None:
            raise UnsupportedTypeError(mime_type)
        return member, strategy

    async def _convert_remotely(self, file: FileDescriptor, strategy: ExtractionStrategy) -> bytes:
        """
        Have Drive convert the file into a Google Doc and export that copy.

        The temporary copy is deleted whether or not the export succeeds; a
        failed delete is logged and does not hide the export's outcome.
        """
        copy_id = await self.drive_client.copy(
            file.id,
            f"{file.name} (converted)",
            MimeType.GOOGLE_DOC.value,
        )
        logger.debug(f"Converted {file.name} to Google Doc {copy_id}")

        try:
            return await self.drive_client.export(copy_id, strategy.export_mime_type)
        finally:
            try:
                await self.drive_client.delete(copy_id)
            except Exception as e:
                logger.error(f"Error deleting temporary file {copy_id}: {e}")
