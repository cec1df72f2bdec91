"""Unit tests for the ad hoc query runner (query.py)."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import query
from chefgpt.models.models import ChatResponse, RecipeLookupResponse, RecipeSummary
from chefgpt.prompts.prompts import PERSONAS
from chefgpt.utils.errors import UpstreamError


@pytest.fixture
def orchestrator():
    fake = MagicMock()
    fake.handle_chat = AsyncMock(return_value=ChatResponse(content="Try a frittata."))
    fake.handle_recipe_lookup = AsyncMock(
        return_value=RecipeLookupResponse(
            ingredients=["eggs"],
            recipes=[RecipeSummary(id=1, title="Frittata", used_ingredient_count=1, missed_ingredient_count=2)],
        )
    )
    return fake


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestParseArgs:
    def test_flags_and_query(self):
        options = query.parse_args(["--debug", "--persona", "kei", "--conversation", "abc", "What", "now?"])

        assert options == {"debug": True, "persona_name": "kei", "conversation_id": "abc", "query": "What now?"}

    def test_flag_missing_value(self):
        with pytest.raises(ValueError, match="--image flag requires a value"):
            query.parse_args(["--image"])

    def test_unknown_flag(self):
        with pytest.raises(ValueError, match="Unknown flag"):
            query.parse_args(["--verbose", "hi"])


class TestConversationStore:
    """Test the JSON conversation files."""

    def test_missing_conversation_is_empty(self, tmp_path):
        assert query.load_conversation("nope", store_dir=tmp_path) == []

    def test_save_and_load(self, tmp_path):
        turns = [query.new_turn("user", "Hi"), query.new_turn("assistant", "Bonjour")]

        query.save_conversation("c1", turns, store_dir=tmp_path)

        assert query.load_conversation("c1", store_dir=tmp_path) == turns

    def test_error_turns_are_not_replayed(self):
        turns = [
            query.new_turn("user", "Hi"),
            query.new_turn("assistant", PERSONAS["chef"].error_message, is_error=True),
            query.new_turn("user", "Hello?"),
        ]

        assert [t["content"] for t in query.history_for_request(turns)] == ["Hi", "Hello?"]


class TestLoadImage:
    def test_data_url(self, tmp_path, png_bytes):
        image = tmp_path / "dish.png"
        image.write_bytes(png_bytes)

        assert query.load_image(str(image)).startswith("data:image/png;base64,")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            query.load_image(str(tmp_path / "missing.jpg"))


class TestRunQuery:
    """Test run_query end to end with a fake orchestrator."""

    @pytest.mark.asyncio
    async def test_failed_turn_recorded_and_history_kept(self, workdir, orchestrator):
        orchestrator.handle_chat.side_effect = [UpstreamError("gemini", status=503), ChatResponse(content="Omelette!")]

        with patch("query.initialize_orchestrator", return_value=orchestrator):
            assert await query.run_query("I have eggs", conversation_id="breakfast") == 1
            assert await query.run_query("Any idea?", conversation_id="breakfast") == 0

        stored = json.loads((workdir / ".chefgpt" / "conversations" / "breakfast.json").read_text())
        assert [t["content"] for t in stored] == [
            "I have eggs",
            PERSONAS["chef"].error_message,
            "Any idea?",
            "Omelette!",
        ]
        assert stored[1]["isError"] is True

        second_request = orchestrator.handle_chat.await_args_list[1].args[0]
        assert [t.text for t in second_request.messages] == ["I have eggs", "Any idea?"]

    @pytest.mark.asyncio
    async def test_lookup_mode(self, workdir, orchestrator):
        with patch("query.initialize_orchestrator", return_value=orchestrator):
            assert await query.run_query("recipe with eggs", lookup=True) == 0

        request = orchestrator.handle_recipe_lookup.await_args.args[0]
        assert request.messages[-1].text == "recipe with eggs"
        orchestrator.handle_chat.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_persona(self, workdir, orchestrator):
        with patch("query.initialize_orchestrator", return_value=orchestrator):
            assert await query.run_query("Hi", persona_name="pirate") == 1

        orchestrator.handle_chat.assert_not_awaited()
