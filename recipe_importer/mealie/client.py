"""
Mealie REST client for publishing and tagging recipes.
"""

import json
import re
from typing import Any, Dict, List, Optional

import httpx

from recipe_importer.config import get_settings
from recipe_importer.utils.errors import MealieError, MealieAPIError, MissingConfigurationError
from recipe_importer.utils.logging import get_logger

logger = get_logger(__name__)

CREATE_RECIPE_PATH = "/api/recipes/create/html-or-json"
TAGS_PATH = "/api/organizers/tags"


def tag_slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


class MealieClient:
    """Async client for the parts of the Mealie API the importer uses."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the Mealie client.

        Args:
            base_url: Mealie server URL (defaults to settings)
            api_key: Mealie API token (defaults to settings)
            http_client: Pre-built HTTP client, e.g. with a mock transport
        """
        settings = get_settings()
        self.base_url = (base_url or settings.mealie_api_url or "").rstrip("/")
        self.api_key = api_key or settings.mealie_api_key

        if not self.base_url:
            raise MissingConfigurationError("MEALIE_API_URL")
        if not self.api_key:
            raise MissingConfigurationError("MEALIE_API_KEY")

        self._http = http_client or httpx.AsyncClient()
        self._owns_http = http_client is None

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "MealieClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        response = await self._http.request(
            method,
            url,
            json=payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        if not response.is_success:
            raise MealieAPIError(response.status_code, response.reason_phrase, url)
        if not response.content:
            return None
        return response.json()

    async def upload_recipe(self, recipe: Dict[str, Any]) -> str:
        """
        Create a recipe from schema.org/Recipe JSON.

        Returns:
            Slug of the created recipe
        """
        name = recipe.get("name", "<unnamed>")
        try:
            slug = await self._request(
                "POST",
                CREATE_RECIPE_PATH,
                {"includeTags": True, "data": json.dumps(recipe)},
            )
        except MealieError as e:
            logger.error(f"Failed to upload recipe {name}: {e.message}")
            raise

        logger.info(f"Successfully uploaded recipe: {name}")
        return slug

    async def fetch_existing_tags(self) -> List[Dict[str, Any]]:
        """Fetch every tag already defined in Mealie."""
        data = await self._request("GET", TAGS_PATH)
        tags = data.get("items", []) if data else []
        logger.info(f"Fetched {len(tags)} existing tags")
        return tags

    async def fetch_matching_tags(self, names: List[str]) -> List[Dict[str, Any]]:
        """
        Resolve tag names to Mealie tag objects, creating missing tags.

        Existing tags are matched case-insensitively.
        """
        existing = {tag["name"].lower(): tag for tag in await self.fetch_existing_tags()}
        resolved = []

        for name in names:
            tag = existing.get(name.lower())
            if tag is None:
                tag = await self._request("POST", TAGS_PATH, {"name": name, "slug": tag_slug(name)})
                existing[name.lower()] = tag
                logger.info(f"Created new tag: {name}")
            resolved.append(tag)

        logger.info(f"Processed {len(resolved)} tags")
        return resolved

    async def add_recipe_tags(self, slug: str, names: List[str]) -> Dict[str, Any]:
        """
        Attach tags to a recipe, creating tags Mealie does not know yet.

        Raises:
            MealieError: If the recipe has no group or a request fails
        """
        path = f"/api/recipes/{slug}"

        try:
            recipe = await self._request("GET", path)
            group_id = (recipe or {}).get("groupId")
            if not group_id:
                raise MealieError("No group ID found", {"slug": slug})

            logger.info(f"Adding tags to recipe {slug}: {', '.join(names)}")
            tags = await self.fetch_matching_tags(names)
            updated = await self._request("PATCH", path, {"groupId": group_id, "tags": tags})
        except MealieError as e:
            logger.error(f"Failed to add tags to recipe {slug}: {e.message}")
            raise

        logger.info(f"Successfully added tags to recipe: {slug}")
        return updated
