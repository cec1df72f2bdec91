"""Gemini language-model client.

Translates a ModelRequest into a single google-genai generate_content call:
- the leading system message becomes the system instruction
- user turns keep role "user", assistant turns use Gemini's "model" role
- any later system turn is sent as a user turn prefixed with "System note:"

SDK failures are mapped to UpstreamError so RetryingClient can decide what
is transient. The client performs exactly one call per generate(); retries
live in the orchestrator.
"""

import asyncio
from typing import Any, Optional

import aiohttp
import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from chefgpt.models.models import ModelRequest, Role
from chefgpt.utils.config import require_credential
from chefgpt.utils.errors import MalformedResponse, UpstreamError
from chefgpt.utils.logger import logger


_GEMINI_ROLES = {Role.USER: "user", Role.ASSISTANT: "model"}


def _field(obj: Any, name: str) -> Any:
    """Read name from an SDK object or a decoded JSON dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def first_candidate_text(response: Any) -> str:
    """Return candidates[0].content.parts[0].text of a Gemini response.

    Accepts SDK response objects and raw REST JSON alike.

    Raises:
        MalformedResponse: If any step of the path is missing or the text is empty.
    """
    candidates = _field(response, "candidates") or []
    if not candidates:
        raise MalformedResponse("Gemini response has no candidates")
    content = _field(candidates[0], "content")
    parts = (_field(content, "parts") if content is not None else None) or []
    if not parts:
        raise MalformedResponse("Gemini candidate has no content parts")
    text = _field(parts[0], "text")
    if not text:
        raise MalformedResponse("Gemini candidate part has no text")
    return text


def map_genai_error(error: Exception, service: str) -> Optional[UpstreamError]:
    """Translate google-genai / transport failures into UpstreamError.

    Returns None for errors that are not upstream failures (bugs stay bugs).
    """
    if isinstance(error, genai_errors.APIError):
        return UpstreamError(service, status=error.code, message=error.message or "")
    if isinstance(error, (httpx.TransportError, aiohttp.ClientError, asyncio.TimeoutError)):
        return UpstreamError(service, status=None, message=str(error) or type(error).__name__)
    return None


def to_gemini_contents(request: ModelRequest) -> tuple[Optional[str], list[types.Content]]:
    """Split a ModelRequest into (system_instruction, contents)."""
    messages = list(request.messages)
    system_instruction = None
    if messages and messages[0].role == Role.SYSTEM:
        system_instruction = messages.pop(0).text

    contents = []
    for message in messages:
        if not message.text:
            logger.debug(f"Skipping empty {message.role.value} turn")
            continue
        if message.role == Role.SYSTEM:
            role, text = "user", f"System note: {message.text}"
        else:
            role, text = _GEMINI_ROLES[message.role], message.text
        contents.append(types.Content(role=role, parts=[types.Part(text=text)]))

    return system_instruction, contents


class GeminiChatModel:
    """Chat-completion access to a Gemini model."""

    service = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
        client: Optional[genai.Client] = None,
    ) -> None:
        """Initialize GeminiChatModel.

        The API key is only checked when generate() runs, so a service
        missing it can still serve the endpoints that do not need it.

        Args:
            api_key: Gemini API key (may be empty; see generate()).
            model: Model id, e.g. "gemini-2.5-flash".
            temperature: Sampling temperature.
            max_output_tokens: Maximum reply length.
            client: Pre-built genai client (tests inject fakes here).
        """
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=require_credential("GEMINI_API_KEY", self.api_key))
        return self._client

    async def generate(self, request: ModelRequest) -> Any:
        """Send the request and return the raw Gemini response (single attempt).

        Raises:
            ConfigError: If GEMINI_API_KEY is not set.
            UpstreamError: If the API answers with an error status or is unreachable.
        """
        client = self._get_client()
        system_instruction, contents = to_gemini_contents(request)
        logger.debug(f"Calling {self.model} with {len(contents)} content turn(s)")

        try:
            return await client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as e:
            upstream = map_genai_error(e, self.service)
            if upstream is None:
                raise
            raise upstream from e
