"""Pytest configuration and fixtures for integration tests.

Loads .env from the project root and skips the whole suite when the
language-model key is missing. Tests that also need the vision or recipe
APIs skip individually when their key is absent.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env before test collection so chefgpt.utils.config sees it."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    # Keep live runs short and deterministic in cost
    os.environ.setdefault("MAX_RETRIES", "1")
    os.environ.setdefault("MAX_OUTPUT_TOKENS", "1024")


@pytest.fixture(scope="session", autouse=True)
def check_api_keys():
    """Skip integration tests when GEMINI_API_KEY is not configured."""
    if not os.getenv("GEMINI_API_KEY"):
        pytest.skip(
            "Integration tests skipped. Missing API key: GEMINI_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture
def require_key():
    """require_key("SPOONACULAR_API_KEY") skips the test when the key is unset."""

    def _require(name: str) -> None:
        if not os.getenv(name):
            pytest.skip(f"{name} not set")

    return _require
