"""Keyword heuristic for recipe intent and ingredient extraction.

This is a heuristic, not a parser. Known limitations, kept on purpose:
- Multi-word ingredients are split ("olive oil" -> "olive", "oil").
- Only commas are treated as punctuation; "eggs." or "please!" keep their marks.
- Any message containing "recipe" (or another keyword) counts as recipe intent,
  so non-ingredient words ("give", "me", "please") can end up in the list.
"""

import re

from chefgpt.utils.logger import logger


RECIPE_INTENT_KEYWORDS = ("ingredients", "recipe", "make with", "cook with", "have some", "got some")

STOP_WORDS = frozenset(
    {
        "i", "have", "some", "a", "the", "with", "and", "to", "of", "in",
        "for", "on", "ingredients", "recipe", "make", "cook", "got",
    }
)

_TOKEN_SEPARATORS = re.compile(r",|\band\b|\s+")


def has_recipe_intent(text: str) -> bool:
    """True if the lower-cased text contains any recipe-intent keyword."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in RECIPE_INTENT_KEYWORDS)


def extract_ingredients(text: str) -> list[str]:
    """Guess the ingredient list of a chat message.

    Args:
        text: The latest user message.

    Returns:
        Lower-case candidate ingredients in message order (duplicates kept),
        or an empty list when the message shows no recipe intent.

    Example:
        >>> extract_ingredients("I have chicken, rice and broccoli, give me a recipe")
        ['chicken', 'rice', 'broccoli', 'give', 'me']
    """
    if not text or not has_recipe_intent(text):
        return []

    tokens = _TOKEN_SEPARATORS.split(text.lower())
    ingredients = [token for token in tokens if len(token) > 1 and token not in STOP_WORDS]
    logger.debug(f"Recipe intent detected, extracted {len(ingredients)} candidate ingredient(s)")
    return ingredients


def split_caption_ingredients(answer: str) -> list[str]:
    """Split a vision answer like "Tomato, basil , mozzarella" into ingredients."""
    if not answer:
        return []
    return [part.strip().lower() for part in answer.split(",") if part.strip()]
