"""
Tests for the end-to-end import pipeline.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from recipe_importer.models import RecipeRecord
from recipe_importer.pipeline import RecipeImportPipeline
from recipe_importer.utils.errors import ListingError, MealieAPIError, MissingConfigurationError
from tests.conftest import FakeDrive, make_file, make_folder


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setenv("MAX_RETRIES", "2")
    monkeypatch.setenv("RETRY_BASE_DELAY", "0")


@pytest.fixture
def recipe_drive():
    """Recipes > [Pancakes.txt, Soups > [Chili.txt]]"""
    soups = make_folder("Soups")
    pancakes = make_file("Pancakes.txt")
    chili = make_file("Chili.txt")
    return FakeDrive(
        tree={"root": [pancakes, soups], soups.id: [chili]},
        names={"root": "Recipes", soups.id: "Soups"},
        contents={pancakes.id: b"eggs, flour", chili.id: b"beans"},
    )


def make_converter():
    converter = MagicMock()

    async def convert(text, tags):
        return {"name": text.split(",")[0].title()}

    converter.convert = AsyncMock(side_effect=convert)
    return converter


def make_mealie():
    mealie = MagicMock()

    async def upload(recipe):
        return recipe["name"].lower()

    mealie.upload_recipe = AsyncMock(side_effect=upload)
    mealie.add_recipe_tags = AsyncMock(return_value={})
    mealie.close = AsyncMock()
    return mealie


class TestRecipeImportPipeline:
    """Test the Drive -> converter -> Mealie flow."""

    @pytest.mark.asyncio
    async def test_run_imports_every_record(self, recipe_drive):
        converter, mealie = make_converter(), make_mealie()
        pipeline = RecipeImportPipeline(
            drive_client=recipe_drive, converter=converter, mealie_client=mealie, include_root_folder=True
        )

        summary = await pipeline.run("root")

        assert summary.discovered == 2
        assert [o.slug for o in summary.imported] == ["eggs", "beans"]
        assert summary.failed == []
        recipe_drive.connect.assert_awaited_once()
        converter.convert.assert_any_await("beans", ["Recipes", "Soups"])
        mealie.add_recipe_tags.assert_any_await("eggs", ["Recipes"])
        mealie.add_recipe_tags.assert_any_await("beans", ["Recipes", "Soups"])

    @pytest.mark.asyncio
    async def test_untagged_record_skips_tagging(self, recipe_drive):
        mealie = make_mealie()
        pipeline = RecipeImportPipeline(
            drive_client=recipe_drive, converter=make_converter(), mealie_client=mealie, include_root_folder=False
        )

        summary = await pipeline.run("root")

        assert [o.tags for o in summary.outcomes] == [[], ["Soups"]]
        mealie.add_recipe_tags.assert_awaited_once_with("beans", ["Soups"])

    @pytest.mark.asyncio
    async def test_failed_recipe_does_not_stop_run(self, recipe_drive):
        mealie = make_mealie()
        mealie.upload_recipe = AsyncMock(
            side_effect=[MealieAPIError(500, "Internal Server Error", "http://mealie/api"), "beans"]
        )
        pipeline = RecipeImportPipeline(
            drive_client=recipe_drive, converter=make_converter(), mealie_client=mealie, include_root_folder=False
        )

        summary = await pipeline.run("root")

        assert [o.name for o in summary.failed] == ["Pancakes.txt"]
        assert "500" in summary.failed[0].error
        assert [o.slug for o in summary.imported] == ["beans"]
        assert mealie.upload_recipe.await_count == 2

    @pytest.mark.asyncio
    async def test_conversion_is_retried(self):
        converter = MagicMock()
        converter.convert = AsyncMock(side_effect=[TimeoutError("slow"), {"name": "Soup"}])
        mealie = make_mealie()
        pipeline = RecipeImportPipeline(drive_client=FakeDrive(tree={}), converter=converter, mealie_client=mealie)

        outcome = await pipeline.import_record(
            RecipeRecord(name="Soup.txt", content="broth", mime_type="text/plain", tags=[])
        )

        assert outcome.succeeded
        assert outcome.slug == "soup"
        assert converter.convert.await_count == 2

    @pytest.mark.asyncio
    async def test_upload_retried_when_mealie_unreachable(self):
        mealie = make_mealie()
        mealie.upload_recipe = AsyncMock(side_effect=[httpx.ConnectError("refused"), "soup"])
        pipeline = RecipeImportPipeline(drive_client=FakeDrive(tree={}), converter=make_converter(), mealie_client=mealie)

        outcome = await pipeline.import_record(
            RecipeRecord(name="Soup.txt", content="soup", mime_type="text/plain", tags=[])
        )

        assert outcome.slug == "soup"
        assert mealie.upload_recipe.await_count == 2

    @pytest.mark.asyncio
    async def test_configuration_error_not_retried(self):
        converter = MagicMock()
        converter.convert = AsyncMock(side_effect=MissingConfigurationError("OPENAI_API_KEY"))
        pipeline = RecipeImportPipeline(
            drive_client=FakeDrive(tree={}), converter=converter, mealie_client=make_mealie()
        )

        outcome = await pipeline.import_record(
            RecipeRecord(name="Soup.txt", content="broth", mime_type="text/plain", tags=[])
        )

        assert "OPENAI_API_KEY" in outcome.error
        assert converter.convert.await_count == 1

    def test_missing_openai_key_is_fatal_before_traversal(self, recipe_drive):
        with pytest.raises(MissingConfigurationError, match="OPENAI_API_KEY"):
            RecipeImportPipeline(drive_client=recipe_drive, mealie_client=make_mealie())

        recipe_drive.connect.assert_not_awaited()
        recipe_drive.list_folder.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_folder_id_from_settings(self, monkeypatch, recipe_drive):
        monkeypatch.setenv("GOOGLE_DRIVE_FOLDER_ID", "root")
        pipeline = RecipeImportPipeline(
            drive_client=recipe_drive, converter=make_converter(), mealie_client=make_mealie()
        )

        summary = await pipeline.run()

        assert summary.discovered == 2

    @pytest.mark.asyncio
    async def test_missing_folder_id(self, recipe_drive):
        pipeline = RecipeImportPipeline(
            drive_client=recipe_drive, converter=make_converter(), mealie_client=make_mealie()
        )

        with pytest.raises(MissingConfigurationError, match="GOOGLE_DRIVE_FOLDER_ID"):
            await pipeline.run()
        recipe_drive.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_listing_error_aborts_run(self):
        drive = FakeDrive(tree={})
        drive.list_folder = AsyncMock(side_effect=ListingError("root", "forbidden"))
        converter = make_converter()
        pipeline = RecipeImportPipeline(drive_client=drive, converter=converter, mealie_client=make_mealie())

        with pytest.raises(ListingError):
            await pipeline.run("root")
        converter.convert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close(self):
        mealie = make_mealie()
        pipeline = RecipeImportPipeline(drive_client=FakeDrive(tree={}), converter=make_converter(), mealie_client=mealie)

        await pipeline.close()

        mealie.close.assert_awaited_once()
