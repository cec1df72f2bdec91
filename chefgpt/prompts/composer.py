"""Prompt composition: persona + profile + history + current turn -> ModelRequest.

Message order is fixed: one system message, then every prior turn verbatim,
then the final user message. Changing that order changes model behavior.
The composer never summarizes or truncates history; bounding its length is
the caller's job.
"""

from typing import Optional, Sequence

from chefgpt.models.models import ChatTurn, ModelMessage, ModelRequest, Role, UserProfile
from chefgpt.prompts.prompts import (
    IMAGE_ANALYSIS_TEMPLATE,
    NOT_SPECIFIED,
    PROFILE_BLOCK_TEMPLATE,
    RECIPE_REQUEST_TEMPLATE,
    SKILL_LEVELS,
    Persona,
)


def skill_level_label(value: Optional[int | str]) -> Optional[str]:
    """Map a 1-7 skill ordinal (int or numeric string) to its label."""
    if value is None:
        return None
    try:
        level = int(value)
    except (TypeError, ValueError):
        return None
    entry = SKILL_LEVELS.get(level)
    return entry[0] if entry else None


def render_profile_block(profile: UserProfile) -> str:
    """Render the cook profile section of the system prompt."""
    label = skill_level_label(profile.skill_level)
    if label:
        skill = f"{label} ({SKILL_LEVELS[profile.skill_level][1]})"
    else:
        skill = NOT_SPECIFIED

    restrictions = ", ".join(profile.dietary_restrictions)
    if profile.freeform_restrictions:
        restrictions = f"{restrictions}; {profile.freeform_restrictions}" if restrictions else profile.freeform_restrictions

    return PROFILE_BLOCK_TEMPLATE.format(
        age=profile.age_years if profile.age_years is not None else NOT_SPECIFIED,
        skill=skill,
        restrictions=restrictions or "None",
        appliances=", ".join(profile.available_appliances) or NOT_SPECIFIED,
        bio=profile.freeform_bio or NOT_SPECIFIED,
    )


def render_system_prompt(persona: Persona, profile: Optional[UserProfile] = None) -> str:
    """Persona description, followed by the profile block when a profile is given."""
    if profile is None:
        return persona.description.strip()
    return f"{persona.description.strip()}\n\n{render_profile_block(profile)}"


def derive_user_prompt(user_text: str, ingredients: Optional[Sequence[str]] = None) -> str:
    """Replace the raw text with a recipe instruction when ingredients were detected."""
    if ingredients:
        return RECIPE_REQUEST_TEMPLATE.format(ingredients=", ".join(ingredients))
    return user_text


def compose(
    persona: Persona,
    history: Sequence[ChatTurn],
    user_text: str,
    user_profile: Optional[UserProfile] = None,
    image_analysis: Optional[str] = None,
    ingredients: Optional[Sequence[str]] = None,
) -> ModelRequest:
    """Assemble the language-model request for one chat turn.

    Args:
        persona: Assistant persona providing the system description.
        history: Prior turns, oldest first. Replayed with role and text unchanged.
        user_text: Raw text of the current user turn.
        user_profile: Optional cook profile rendered into the system message.
        image_analysis: Optional caption of an attached image, prefixed to the
            final prompt as an [Image Analysis: ...] annotation.
        ingredients: Ingredients detected in user_text. When non-empty the raw
            text is replaced by a single-recipe instruction naming them.

    Returns:
        ModelRequest ordered system -> history -> final user message.
    """
    messages = [ModelMessage(role=Role.SYSTEM, text=render_system_prompt(persona, user_profile))]
    messages.extend(ModelMessage(role=turn.role, text=turn.text) for turn in history)

    prompt = derive_user_prompt(user_text, ingredients)
    if image_analysis:
        prompt = IMAGE_ANALYSIS_TEMPLATE.format(analysis=image_analysis.strip(), prompt=prompt)

    messages.append(ModelMessage(role=Role.USER, text=prompt))
    return ModelRequest(messages=messages)
