"""Shared fixtures for unit tests: fake aiohttp sessions and sample images."""

import base64
from io import BytesIO
from typing import Any, Optional

import pytest
from PIL import Image


class FakeResponse:
    """Async context manager standing in for aiohttp.ClientResponse."""

    def __init__(self, status: int = 200, payload: Any = None, body: str = "") -> None:
        self.status = status
        self.payload = payload
        self.body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        return self.payload

    async def text(self):
        return self.body


class FakeSession:
    """Replacement for aiohttp.ClientSession that records requests.

    Patched in place of the ClientSession class, so calling it (with the
    timeout kwargs) returns the session itself.
    """

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response or FakeResponse()
        self.error = error
        self.calls: list[tuple[str, str, dict]] = []
        self.session_kwargs: dict = {}

    def __call__(self, *args, **kwargs):
        self.session_kwargs = kwargs
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def _request(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)


@pytest.fixture
def fake_http():
    """Factory: fake_http(status=200, payload=..., body=..., error=...) -> FakeSession."""

    def _make(status: int = 200, payload: Any = None, body: str = "", error: Optional[Exception] = None):
        return FakeSession(FakeResponse(status=status, payload=payload, body=body), error=error)

    return _make


def _image_bytes(fmt: str, size=(16, 16), mode="RGB") -> bytes:
    output = BytesIO()
    Image.new(mode, size, (200, 80, 40) if mode == "RGB" else (200, 80, 40, 128)).save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def png_base64(png_bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def wide_rgba_png_bytes() -> bytes:
    return _image_bytes("PNG", size=(2048, 64), mode="RGBA")
