"""
End-to-end recipe import pipeline.

This module ties the pieces together: it walks the configured Google Drive
folder, converts every recipe document with the LLM converter and publishes
the result to Mealie, tagged with the document's folder names.
"""

from typing import Optional

import httpx

from recipe_importer.config import get_settings
from recipe_importer.conversion.converter import RecipeConverter
from recipe_importer.google_drive.client import GoogleDriveClient
from recipe_importer.google_drive.walker import FolderWalker
from recipe_importer.mealie.client import MealieClient
from recipe_importer.models import ImportOutcome, ImportSummary, RecipeRecord
from recipe_importer.utils.errors import MissingConfigurationError
from recipe_importer.utils.logging import LogContext, get_logger, log_performance
from recipe_importer.utils.retry import with_retry

logger = get_logger(__name__)

# The create endpoint is not idempotent: only retry when the request never reached Mealie
UPLOAD_RETRY_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


class RecipeImportPipeline:
    """
    Import recipes from Google Drive into Mealie.

    A recipe that fails to convert, upload or tag is recorded in the summary
    and the run moves on to the next one. Conversion is retried with
    exponential backoff; the upload only when Mealie could not be reached.
    """

    def __init__(
        self,
        drive_client: Optional[GoogleDriveClient] = None,
        converter: Optional[RecipeConverter] = None,
        mealie_client: Optional[MealieClient] = None,
        walker: Optional[FolderWalker] = None,
        include_root_folder: Optional[bool] = None,
    ) -> None:
        """
        Initialize the pipeline.

        All components are optional and will be created with defaults if not provided.
        """
        self.settings = get_settings()
        self.drive_client = drive_client or GoogleDriveClient()
        self.converter = converter or RecipeConverter()
        self.mealie_client = mealie_client or MealieClient()
        self.walker = walker or FolderWalker(self.drive_client, include_root_folder=include_root_folder)

    def resolve_folder_id(self, folder_id: Optional[str] = None) -> str:
        folder_id = folder_id or self.settings.google_drive_folder_id
        if not folder_id:
            raise MissingConfigurationError("GOOGLE_DRIVE_FOLDER_ID")
        return folder_id

    @log_performance
    async def run(self, folder_id: Optional[str] = None) -> ImportSummary:
        """
        Import every recipe document below a Drive folder.

        Args:
            folder_id: Root folder ID (defaults to ``GOOGLE_DRIVE_FOLDER_ID``)

        Returns:
            Summary of imported and failed documents

        Raises:
            MissingConfigurationError: If no folder ID is available
            ListingError: If a Drive folder cannot be listed
        """
        folder_id = self.resolve_folder_id(folder_id)
        logger.info("Starting recipe import process")
        logger.info(f"Using folder ID: {folder_id}")

        await self.drive_client.connect()
        records = await self.walker.traverse(folder_id)

        summary = ImportSummary(discovered=len(records))
        for record in records:
            summary.outcomes.append(await self.import_record(record))

        logger.info(
            f"Recipe import process completed: {len(summary.imported)} imported, "
            f"{len(summary.failed)} failed"
        )
        return summary

    async def import_record(self, record: RecipeRecord) -> ImportOutcome:
        """Convert, upload and tag one recipe document."""
        with LogContext(recipe=record.name):
            try:
                recipe = await with_retry(lambda: self.converter.convert(record.content, record.tags))
                slug = await with_retry(
                    lambda: self.mealie_client.upload_recipe(recipe),
                    retry_on=UPLOAD_RETRY_ERRORS,
                )
                if record.tags:
                    await self.mealie_client.add_recipe_tags(slug, record.tags)
            except Exception as e:
                logger.error(f"Failed to process recipe {record.name}: {e}")
                return ImportOutcome(name=record.name, tags=record.tags, error=str(e))

            logger.info(f"Successfully processed recipe: {record.name}")
            return ImportOutcome(name=record.name, tags=record.tags, slug=slug)

    async def close(self) -> None:
        await self.mealie_client.close()


def create_import_pipeline(include_root_folder: Optional[bool] = None) -> RecipeImportPipeline:
    """Create an import pipeline with default components."""
    return RecipeImportPipeline(include_root_folder=include_root_folder)
