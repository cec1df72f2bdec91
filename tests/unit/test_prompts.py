"""Unit tests for personas and prompt composition."""

import pytest

from chefgpt.models.models import ChatTurn, Role, UserProfile
from chefgpt.prompts.composer import (
    compose,
    derive_user_prompt,
    render_profile_block,
    render_system_prompt,
    skill_level_label,
)
from chefgpt.prompts.prompts import PERSONAS, SKILL_LEVELS, get_persona


CHEF = PERSONAS["chef"]
KEI = PERSONAS["kei"]


class TestPersonas:
    """Test persona data."""

    def test_get_persona_is_case_insensitive(self):
        assert get_persona(" Chef ") is CHEF

    def test_unknown_persona(self):
        with pytest.raises(KeyError):
            get_persona("sommelier")

    def test_personas_carry_signature_and_error_message(self):
        for persona in PERSONAS.values():
            assert persona.signature
            assert persona.error_message.startswith("⚠️")

    def test_kei_analysis_prompt_is_templated(self):
        prompt = KEI.render_analysis_prompt("domainValidation", "Acme", "acme.io")

        assert "Acme" in prompt
        assert "acme.io" in prompt

    def test_unknown_analysis_type_falls_back_to_tech_stack(self):
        prompt = KEI.render_analysis_prompt("somethingElse", "Acme", None)

        assert prompt.startswith("Analyze likely tech stack for Acme")

    def test_chef_has_no_analysis_prompts(self):
        with pytest.raises(KeyError):
            CHEF.render_analysis_prompt("techStack", "Acme", "acme.io")


class TestSkillLevels:
    """Test the 1-7 skill level table."""

    def test_table_is_complete(self):
        assert sorted(SKILL_LEVELS) == [1, 2, 3, 4, 5, 6, 7]

    @pytest.mark.parametrize(
        "value,label",
        [(1, "Beginner"), ("3", "Intermediate"), (4, "Advanced Intermediate"), (7, "Professional")],
    )
    def test_label(self, value, label):
        assert skill_level_label(value) == label

    @pytest.mark.parametrize("value", [None, 0, 8, "expert"])
    def test_unknown_levels(self, value):
        assert skill_level_label(value) is None


class TestSystemPrompt:
    """Test persona + profile rendering."""

    def test_without_profile_is_persona_description(self):
        assert render_system_prompt(CHEF) == CHEF.description.strip()

    def test_profile_block_contents(self):
        profile = UserProfile.model_validate(
            {
                "age": 41,
                "cookingLevel": "3",
                "dietaryRestrictions": ["Vegan", "Nut-free"],
                "otherRestrictions": "no mushrooms",
                "appliances": ["Oven"],
                "description": "Busy parent",
            }
        )

        block = render_profile_block(profile)

        assert "41" in block
        assert "Intermediate" in block
        assert SKILL_LEVELS[3][1] in block
        assert "Vegan, Nut-free; no mushrooms" in block
        assert "Oven" in block
        assert "Busy parent" in block

    def test_empty_profile_renders_placeholders(self):
        block = render_profile_block(UserProfile())

        assert "Not specified" in block
        assert "Dietary restrictions: None" in block


class TestDeriveUserPrompt:
    def test_raw_text_when_no_ingredients(self):
        assert derive_user_prompt("How do I poach an egg?") == "How do I poach an egg?"

    def test_recipe_instruction_names_ingredients(self):
        prompt = derive_user_prompt("I have eggs and cheese, recipe please", ["eggs", "cheese"])

        assert "eggs, cheese" in prompt
        assert "one complete recipe" in prompt


class TestCompose:
    """Test ModelRequest ordering and content."""

    def test_single_turn_starts_with_one_system_message(self):
        profile = UserProfile(skill_level="3")

        request = compose(CHEF, [], "What is a roux?", user_profile=profile)

        assert request.messages[0].role == Role.SYSTEM
        assert len(request.system_messages) == 1
        assert "Intermediate" in request.messages[0].text
        assert request.final_user_message.text == "What is a roux?"
        assert len(request.messages) == 2

    def test_history_is_replayed_verbatim_and_in_order(self):
        """N prior turns -> system + N turns + final user message."""
        history = [
            ChatTurn(role="user", text="Hi chef"),
            ChatTurn(role="assistant", text="Bonjour!  "),
            ChatTurn(role="user", text="Ideas for lunch?"),
            ChatTurn(role="assistant", text="A salade niçoise."),
        ]

        request = compose(CHEF, history, "Something warmer?")

        assert len(request.messages) == len(history) + 2
        assert [(m.role, m.text) for m in request.messages[1:-1]] == [(t.role, t.text) for t in history]
        assert request.messages[-1].role == Role.USER

    def test_history_system_turn_is_kept(self):
        history = [ChatTurn(role="system", text="User switched to metric units")]

        request = compose(CHEF, history, "How much flour?")

        assert request.messages[1].role == Role.SYSTEM
        assert request.messages[1].text == "User switched to metric units"

    def test_ingredients_replace_raw_text(self):
        request = compose(CHEF, [], "I have eggs and cheese, recipe please", ingredients=["eggs", "cheese"])

        final = request.final_user_message.text
        assert "eggs" in final and "cheese" in final
        assert "recipe please" not in final

    def test_image_analysis_prefixes_prompt(self):
        request = compose(CHEF, [], "What is this?", image_analysis=" A tray of croissants. ")

        assert request.final_user_message.text == "[Image Analysis: A tray of croissants.]\n\nWhat is this?"

    def test_image_analysis_wraps_recipe_instruction(self):
        request = compose(CHEF, [], "recipe with eggs", image_analysis="eggs in a carton", ingredients=["eggs"])

        final = request.final_user_message.text
        assert final.startswith("[Image Analysis: eggs in a carton]")
        assert "one complete recipe" in final

    def test_persona_changes_only_system_message(self):
        chef_request = compose(CHEF, [], "Hello")
        kei_request = compose(KEI, [], "Hello")

        assert chef_request.messages[0].text != kei_request.messages[0].text
        assert chef_request.messages[1:] == kei_request.messages[1:]
