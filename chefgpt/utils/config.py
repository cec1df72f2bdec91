"""Configuration management for the ChefGPT service.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults

API credentials are NOT validated at import time. Each one is only required
by the operation that needs it: clients pass their key through
require_credential() and get a ConfigError when it is missing.
"""

import os
from typing import Optional

from dotenv import load_dotenv

from chefgpt.utils.errors import ConfigError


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def require_credential(name: str, value: Optional[str]) -> str:
    """Return value, or raise ConfigError naming the unset credential."""
    if not value:
        raise ConfigError(name)
    return value


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Language model (chat completion)
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        # Vision captioning: "moondream" (REST query API) or "gemini" (vision model)
        self.VISION_PROVIDER: str = os.getenv("VISION_PROVIDER", "moondream").lower()
        self.MOONDREAM_API_KEY: str = os.getenv("MOONDREAM_API_KEY", "")
        self.MOONDREAM_API_URL: str = os.getenv("MOONDREAM_API_URL", "https://api.moondream.ai/v1/query")
        # Only used when VISION_PROVIDER=gemini
        self.VISION_MODEL: str = os.getenv("VISION_MODEL", "gemini-2.5-flash-lite")
        # Recipe lookup
        self.SPOONACULAR_API_KEY: str = os.getenv("SPOONACULAR_API_KEY", "")
        # Server
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "8888"))
        # Persona used when a request does not name one
        self.DEFAULT_PERSONA: str = os.getenv("DEFAULT_PERSONA", "chef")
        # Maximum number of prior turns replayed to the model. 0 = no bound
        self.MAX_HISTORY: int = int(os.getenv("MAX_HISTORY", "20"))
        # Number of recipes requested from Spoonacular findByIngredients
        self.MAX_RECIPES: int = int(os.getenv("MAX_RECIPES", "5"))
        # Maximum decoded image size (in MB) accepted for captioning
        self.MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
        # Image Compression: re-encode large uploads as JPEG before sending upstream
        self.COMPRESS_IMG: bool = _env_bool("COMPRESS_IMG", "true")
        # Only compress if image size is above this (in KB)
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))
        # LLM Model Parameters
        self.TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.7"))
        self.MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "2048"))
        # Chat completion retry: attempts after the first call, doubling delay (seconds)
        self.MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))
        self.RETRY_INITIAL_DELAY: float = float(os.getenv("RETRY_INITIAL_DELAY", "1.0"))
        # Total timeout for aiohttp calls (Moondream, Spoonacular)
        self.HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    def require(self, name: str) -> str:
        """Return a credential, failing the current operation if it is unset.

        Args:
            name: Attribute name, e.g. "GEMINI_API_KEY".

        Returns:
            The non-empty credential value.

        Raises:
            ConfigError: If the credential is missing or empty.
        """
        return require_credential(name, getattr(self, name, ""))

    def validate(self) -> None:
        """Validate non-credential configuration.

        Raises:
            ValueError: If a setting has an invalid value.
        """
        if self.VISION_PROVIDER not in ("moondream", "gemini"):
            raise ValueError(
                f"VISION_PROVIDER must be 'moondream' or 'gemini', got: {self.VISION_PROVIDER}"
            )
        if not (0.0 <= self.TEMPERATURE <= 2.0):
            raise ValueError(f"TEMPERATURE must be between 0.0 and 2.0, got: {self.TEMPERATURE}")
        if self.MAX_OUTPUT_TOKENS < 256:
            raise ValueError(f"MAX_OUTPUT_TOKENS must be at least 256, got: {self.MAX_OUTPUT_TOKENS}")
        if self.MAX_RETRIES < 0:
            raise ValueError(f"MAX_RETRIES must be at least 0, got: {self.MAX_RETRIES}")
        if self.RETRY_INITIAL_DELAY <= 0:
            raise ValueError(f"RETRY_INITIAL_DELAY must be positive, got: {self.RETRY_INITIAL_DELAY}")
        if self.MAX_HISTORY < 0:
            raise ValueError(f"MAX_HISTORY must be at least 0, got: {self.MAX_HISTORY}")
        if not (1 <= self.MAX_RECIPES <= 100):
            raise ValueError(f"MAX_RECIPES must be between 1 and 100, got: {self.MAX_RECIPES}")
        if self.MAX_IMAGE_SIZE_MB < 1:
            raise ValueError(f"MAX_IMAGE_SIZE_MB must be at least 1, got: {self.MAX_IMAGE_SIZE_MB}")
        if self.HTTP_TIMEOUT_SECONDS <= 0:
            raise ValueError(f"HTTP_TIMEOUT_SECONDS must be positive, got: {self.HTTP_TIMEOUT_SECONDS}")


# Create module-level config instance and validate immediately
config = Config()
config.validate()
