"""Spoonacular recipe search client.

Wraps the findByIngredients endpoint: given an ingredient list, return the
recipes that use the most of them. One GET per call, no retries.
"""

import asyncio
from typing import Any, Sequence

import aiohttp

from chefgpt.utils.config import require_credential
from chefgpt.utils.errors import MalformedResponse, UpstreamError
from chefgpt.utils.logger import logger


SPOONACULAR_FIND_BY_INGREDIENTS_URL = "https://api.spoonacular.com/recipes/findByIngredients"


class SpoonacularClient:
    """Recipe lookup by ingredients against the Spoonacular REST API."""

    service = "spoonacular"

    def __init__(
        self,
        api_key: str,
        number: int = 5,
        timeout_seconds: float = 30,
        url: str = SPOONACULAR_FIND_BY_INGREDIENTS_URL,
    ) -> None:
        """Initialize SpoonacularClient.

        Args:
            api_key: Spoonacular API key. Checked when a search runs.
            number: Maximum number of recipes to request.
            timeout_seconds: Total timeout for the HTTP call.
            url: findByIngredients endpoint.
        """
        self.api_key = api_key
        self.number = number
        self.timeout_seconds = timeout_seconds
        self.url = url

    async def find_by_ingredients(self, ingredients: Sequence[str]) -> list[dict[str, Any]]:
        """Search recipes that use the given ingredients.

        Returns:
            The raw recipe dicts as returned by Spoonacular (possibly empty).

        Raises:
            ConfigError: If SPOONACULAR_API_KEY is not set.
            UpstreamError: On a non-200 status or network failure.
            MalformedResponse: If the body is not a JSON list.
        """
        require_credential("SPOONACULAR_API_KEY", self.api_key)

        params = {
            "ingredients": ",".join(ingredients),
            "number": str(self.number),
            "apiKey": self.api_key,
        }
        logger.debug(f"Searching Spoonacular for {len(ingredients)} ingredient(s)")

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)) as session:
                async with session.get(self.url, params=params) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise UpstreamError(self.service, status=response.status, message=body[:200])
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamError(self.service, status=None, message=str(e) or type(e).__name__) from e

        if not isinstance(data, list):
            raise MalformedResponse("Spoonacular findByIngredients did not return a list")

        logger.info(f"Spoonacular returned {len(data)} recipe(s)")
        return data
