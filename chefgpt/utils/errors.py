"""Exception hierarchy for the ChefGPT service.

All service errors inherit from ChefGPTError so the HTTP boundary can map
them to structured error payloads:

- ConfigError        -> 500, never retried
- UpstreamError      -> 500, retried only around the chat-completion call
- MalformedResponse  -> degraded to a fixed fallback string by the caller
- InvalidInput       -> 400
"""

from typing import Optional


class ChefGPTError(Exception):
    """Base exception for all service errors."""


class ConfigError(ChefGPTError):
    """Raised when a required credential or setting is missing."""

    def __init__(self, setting: str) -> None:
        self.setting = setting
        super().__init__(f"{setting} environment variable is required")


class UpstreamError(ChefGPTError):
    """Raised when an external API call fails.

    Attributes:
        service: Upstream name ("gemini", "moondream", "spoonacular", ...).
        status: HTTP status code, or None when the call never got a response
            (connection error, timeout).
    """

    def __init__(self, service: str, status: Optional[int] = None, message: str = "") -> None:
        self.service = service
        self.status = status
        self.message = message
        status_text = f"status {status}" if status is not None else "no response"
        detail = f": {message}" if message else ""
        super().__init__(f"{service} API failed with {status_text}{detail}")

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429


class MalformedResponse(ChefGPTError):
    """Raised when an upstream call succeeded but the expected field is absent."""


class InvalidInput(ChefGPTError):
    """Raised when a request carries no usable image or message."""
