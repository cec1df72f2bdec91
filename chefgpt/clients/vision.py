"""Image captioning through a vision query API.

Two interchangeable backends, selected by VISION_PROVIDER:

1. MOONDREAM (default): POST {image_url, question} to the Moondream query API
   and read the answer from whichever field the API filled in.
2. GEMINI: send the image and question to a Gemini vision model.

Both expose `await caption(image_base64, question=None) -> str` and make
exactly one outbound call per invocation. The returned text is an opaque,
best-effort natural-language answer.

Core Functions:
- decode_image_data(): Decode plain base64 or data URLs
- validate_image_format(): Check JPEG/PNG only
- validate_image_size(): Check MAX_IMAGE_SIZE_MB limit
- compress_image(): Re-encode large images as JPEG before upload
- prepare_image(): All of the above, raising InvalidInput on bad input
- build_captioner(): Backend factory from configuration
"""

import asyncio
import base64
import binascii
from io import BytesIO
from typing import Any, Optional

import aiohttp
import filetype
from google import genai
from google.genai import types
from PIL import Image

from chefgpt.clients.gemini import first_candidate_text, map_genai_error
from chefgpt.prompts.prompts import CAPTION_QUESTION
from chefgpt.utils.config import Config, require_credential
from chefgpt.utils.errors import InvalidInput, MalformedResponse, UpstreamError
from chefgpt.utils.logger import logger


SUPPORTED_EXTENSIONS = ("jpg", "jpeg", "png")


def decode_image_data(image_data: str) -> bytes:
    """Decode a plain base64 string or a data URL (data:image/png;base64,...).

    Raises:
        InvalidInput: If the payload is empty or not valid base64.
    """
    if not image_data or not image_data.strip():
        raise InvalidInput("Image data is empty")

    encoded = image_data.strip()
    if encoded.startswith("data:"):
        if "," not in encoded:
            raise InvalidInput("Malformed data URL: missing ',' separator")
        encoded = encoded.split(",", 1)[1]

    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput(f"Image is not valid base64: {e}") from e


def validate_image_format(image_bytes: bytes) -> bool:
    """Validate image format (JPEG or PNG only).

    Uses the filetype library to detect the real format from magic bytes.
    """
    kind = filetype.guess(image_bytes)
    if kind is None or kind.extension not in SUPPORTED_EXTENSIONS:
        logger.warning(f"Invalid image format: {kind.mime if kind else 'unknown'}. Only JPEG and PNG supported.")
        return False
    return True


def validate_image_size(image_bytes: bytes, max_size_mb: int) -> bool:
    """Validate decoded image size against max_size_mb."""
    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > max_size_mb:
        logger.warning(f"Image size {size_mb:.2f}MB exceeds limit of {max_size_mb}MB")
        return False
    return True


def image_mime_type(image_bytes: bytes) -> str:
    kind = filetype.guess(image_bytes)
    return kind.mime if kind is not None else "image/jpeg"


def compress_image(image_bytes: bytes, threshold_kb: int, max_width: int = 1024) -> bytes:
    """Re-encode an image as JPEG for upload using Pillow.

    Images below threshold_kb are returned unchanged. Oversized images are
    resized to max_width and converted to RGB. If Pillow cannot read the
    image the original bytes are returned.
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < threshold_kb:
        logger.debug(f"Image size {size_kb:.1f}KB below compression threshold ({threshold_kb}KB), skipping")
        return image_bytes

    try:
        img = Image.open(BytesIO(image_bytes))

        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            rgb_img = Image.new("RGB", img.size, (255, 255, 255))
            rgb_img.paste(img, mask=img.split()[-1])
            img = rgb_img
        elif img.mode != "RGB":
            img = img.convert("RGB")

        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed = output.getvalue()
    except (OSError, ValueError) as e:
        logger.warning(f"Image compression failed, sending original: {e}")
        return image_bytes

    logger.debug(f"Image compressed: {size_kb:.1f}KB -> {len(compressed) / 1024:.1f}KB")
    return compressed


def prepare_image(image_data: str, max_size_mb: int, compress: bool, threshold_kb: int) -> bytes:
    """Decode, validate and optionally compress an uploaded image.

    Raises:
        InvalidInput: If the image cannot be decoded, is not JPEG/PNG, or is too large.
    """
    image_bytes = decode_image_data(image_data)
    if not validate_image_format(image_bytes):
        raise InvalidInput("Invalid image format. Only JPEG and PNG are supported.")
    if not validate_image_size(image_bytes, max_size_mb):
        raise InvalidInput(f"Image too large. Maximum size is {max_size_mb}MB")
    if compress:
        image_bytes = compress_image(image_bytes, threshold_kb)
    return image_bytes


def extract_moondream_answer(data: Any) -> Optional[str]:
    """Find the answer text in a Moondream query response.

    The API has answered under different keys over time; check them in order.
    """
    candidates = []
    if isinstance(data, dict):
        candidates = [data.get("response"), data.get("text"), data.get("answer")]
    elif isinstance(data, list) and data and isinstance(data[0], dict):
        candidates = [data[0].get("response"), data[0].get("text")]

    for answer in candidates:
        if isinstance(answer, str) and answer.strip():
            return answer.strip()
    return None


class MoondreamCaptioner:
    """Captioner backed by the Moondream query API."""

    service = "moondream"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.moondream.ai/v1/query",
        timeout_seconds: float = 30,
        max_image_size_mb: int = 5,
        compress: bool = True,
        compress_threshold_kb: int = 300,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self.max_image_size_mb = max_image_size_mb
        self.compress = compress
        self.compress_threshold_kb = compress_threshold_kb

    async def caption(self, image_base64: str, question: Optional[str] = None) -> str:
        """Ask Moondream a question about the image.

        Raises:
            ConfigError: If MOONDREAM_API_KEY is not set.
            InvalidInput: If the image is unusable.
            UpstreamError: On a non-200 status or network failure.
            MalformedResponse: If the response carries no answer.
        """
        require_credential("MOONDREAM_API_KEY", self.api_key)

        image_bytes = await asyncio.to_thread(
            prepare_image, image_base64, self.max_image_size_mb, self.compress, self.compress_threshold_kb
        )
        data_url = f"data:{image_mime_type(image_bytes)};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        payload = {"image_url": data_url, "question": question or CAPTION_QUESTION, "stream": False}
        headers = {"X-Moondream-Auth": self.api_key, "Content-Type": "application/json"}

        logger.debug(f"Querying Moondream ({len(image_bytes) / 1024:.1f}KB image)")
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)) as session:
                async with session.post(self.api_url, json=payload, headers=headers) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise UpstreamError(self.service, status=response.status, message=body[:200])
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamError(self.service, status=None, message=str(e) or type(e).__name__) from e

        answer = extract_moondream_answer(data)
        if answer is None:
            raise MalformedResponse("Moondream response has no answer field")
        return answer


class GeminiCaptioner:
    """Captioner backed by a Gemini vision model."""

    service = "gemini-vision"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_image_size_mb: int = 5,
        compress: bool = True,
        compress_threshold_kb: int = 300,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.max_image_size_mb = max_image_size_mb
        self.compress = compress
        self.compress_threshold_kb = compress_threshold_kb
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=require_credential("GEMINI_API_KEY", self.api_key))
        return self._client

    async def caption(self, image_base64: str, question: Optional[str] = None) -> str:
        """Ask the Gemini vision model a question about the image.

        Raises:
            ConfigError: If GEMINI_API_KEY is not set.
            InvalidInput: If the image is unusable.
            UpstreamError: If the API answers with an error status or is unreachable.
            MalformedResponse: If the response carries no text.
        """
        client = self._get_client()
        image_bytes = await asyncio.to_thread(
            prepare_image, image_base64, self.max_image_size_mb, self.compress, self.compress_threshold_kb
        )

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[
                    question or CAPTION_QUESTION,
                    types.Part.from_bytes(data=image_bytes, mime_type=image_mime_type(image_bytes)),
                ],
            )
        except Exception as e:
            upstream = map_genai_error(e, self.service)
            if upstream is None:
                raise
            raise upstream from e

        return first_candidate_text(response).strip()


def build_captioner(config: Config):
    """Create the captioner selected by VISION_PROVIDER."""
    if config.VISION_PROVIDER == "gemini":
        logger.info(f"Image captioning via Gemini vision ({config.VISION_MODEL})")
        return GeminiCaptioner(
            api_key=config.GEMINI_API_KEY,
            model=config.VISION_MODEL,
            max_image_size_mb=config.MAX_IMAGE_SIZE_MB,
            compress=config.COMPRESS_IMG,
            compress_threshold_kb=config.COMPRESS_IMG_THRESHOLD_KB,
        )

    logger.info("Image captioning via Moondream")
    return MoondreamCaptioner(
        api_key=config.MOONDREAM_API_KEY,
        api_url=config.MOONDREAM_API_URL,
        timeout_seconds=config.HTTP_TIMEOUT_SECONDS,
        max_image_size_mb=config.MAX_IMAGE_SIZE_MB,
        compress=config.COMPRESS_IMG,
        compress_threshold_kb=config.COMPRESS_IMG_THRESHOLD_KB,
    )
