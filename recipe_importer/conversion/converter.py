"""
Recipe text to schema.org/Recipe conversion using an OpenAI chat model.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from recipe_importer.config import get_settings
from recipe_importer.utils.errors import MissingConfigurationError, RecipeConversionError
from recipe_importer.utils.logging import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are a recipe parser that converts recipe text to schema.org/Recipe JSON format."

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def build_prompt(text: str, tags: List[str]) -> str:
    return (
        "Convert this recipe text into a JSON format following the schema.org/Recipe standard.\n"
        f"Include the following tags: {', '.join(tags)}\n\n"
        f"Recipe text:\n{text}\n\n"
        "Return only the JSON with no other text."
    )


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", name.lower())


class RecipeConverter:
    """Turn free-form recipe text into a schema.org/Recipe dictionary."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        output_dir: Optional[Path] = None,
        llm_client: Any = None,
    ) -> None:
        """
        Initialize the converter.

        Args:
            api_key: OpenAI API key (defaults to settings)
            model_name: Chat model name (defaults to settings)
            temperature: Sampling temperature (defaults to settings)
            output_dir: Where to save converted recipes as JSON (defaults to settings)
            llm_client: Pre-built ``AsyncOpenAI`` client

        Raises:
            MissingConfigurationError: If no client is given and no API key is configured
        """
        self.settings = get_settings()
        self.api_key = api_key or self.settings.openai_api_key
        self.model_name = model_name or self.settings.openai_model
        self.temperature = temperature if temperature is not None else self.settings.openai_temperature
        self.output_dir = output_dir or self.settings.recipe_output_dir

        self._llm_client = llm_client
        if self._llm_client is None and not self.api_key:
            raise MissingConfigurationError("OPENAI_API_KEY")

    def _ensure_llm_client(self) -> None:
        """Ensure LLM client is initialized."""
        if self._llm_client is not None:
            return

        import openai

        self._llm_client = openai.AsyncOpenAI(api_key=self.api_key)

    async def convert(self, text: str, tags: List[str]) -> Dict[str, Any]:
        """
        Convert recipe text into a schema.org/Recipe document.

        Args:
            text: Extracted recipe text
            tags: Folder tags to include in the recipe

        Returns:
            Parsed recipe JSON

        Raises:
            RecipeConversionError: If the model call fails, returns no usable JSON
                object, or the recipe cannot be saved
        """
        self._ensure_llm_client()

        try:
            completion = await self._llm_client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(text, tags)},
                ],
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise RecipeConversionError(f"OpenAI request failed: {e}") from e

        try:
            raw = (completion.choices[0].message.content or "").strip()
        except (AttributeError, IndexError) as e:
            raise RecipeConversionError(f"OpenAI response has no message: {e}") from e

        match = _FENCE_RE.match(raw)
        if match:
            raw = match.group(1)

        try:
            recipe = json.loads(raw)
        except json.JSONDecodeError as e:
            raise RecipeConversionError(f"Model did not return valid JSON: {e}", {"response": raw[:500]}) from e

        if not isinstance(recipe, dict):
            raise RecipeConversionError("Model returned JSON that is not an object", {"response": raw[:500]})

        if self.output_dir:
            try:
                self._save(recipe)
            except OSError as e:
                raise RecipeConversionError(
                    f"Failed to save converted recipe: {e}", {"output_dir": str(self.output_dir)}
                ) from e

        return recipe

    def _save(self, recipe: Dict[str, Any]) -> Path:
        """Write the converted recipe to the output directory."""
        name = str(recipe.get("name") or "recipe")
        path = Path(self.output_dir) / f"{slugify(name)}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(recipe, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug(f"Saved converted recipe to {path}")
        return path
