"""Shared pytest fixtures for Monument Mixer tests."""

import shutil
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, Mock

import pytest
from google.genai import types
from PIL import Image

from monumentmixer.core.backends import GenerationBackend
from monumentmixer.core.config import MonumentConfig
from monumentmixer.core.image_codec import ImagePayload


def make_png(color: str = "red", size: tuple[int, int] = (4, 4)) -> bytes:
    """Return the bytes of a tiny solid-colour PNG."""
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_jpeg(color: str = "blue") -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), color).save(buf, format="JPEG")
    return buf.getvalue()


def make_mpo() -> bytes:
    """Return a two-frame multi-picture JPEG, as many phone cameras write."""
    buf = BytesIO()
    first = Image.new("RGB", (4, 4), "blue")
    first.save(buf, format="MPO", save_all=True, append_images=[Image.new("RGB", (4, 4), "red")])
    return buf.getvalue()


def image_response(*parts: types.Part) -> types.GenerateContentResponse:
    """Build a real SDK response whose first candidate holds *parts*."""
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


def inline_part(data: bytes, mime_type: str | None = "image/png") -> types.Part:
    return types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))


def text_part(text: str, thought: bool | None = None) -> types.Part:
    return types.Part(text=text, thought=thought)


class FakeGenaiClient:
    """Stand-in for ``genai.Client`` exposing ``aio.models.generate_content``.

    Every instance built by :meth:`factory` shares one ``generate_content``
    mock, and the ``api_key`` each instance was built with is recorded.
    """

    def __init__(self, response=None, side_effect=None):
        self.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
        self.api_keys: list[str] = []

    def factory(self, api_key: str):
        self.api_keys.append(api_key)
        client = Mock()
        client.aio.models.generate_content = self.generate_content
        return client


class FakeBackend(GenerationBackend):
    """In-memory backend whose operations are AsyncMocks.

    Args:
        client_supplied: Whether the backend behaves like a session-key backend.
        has_key: Initial key presence for session-key backends.
    """

    name = "fake"

    def __init__(self, client_supplied: bool = False, has_key: bool = True):
        self._client_supplied = client_supplied
        self._has_key = has_key
        self.generate_monument_from_prompt = AsyncMock()
        self.generate_monument_from_image = AsyncMock()
        self.describe_scene = AsyncMock()
        self.generate_scene = AsyncMock()
        self.place_monument = AsyncMock()

    @property
    def client_supplied_credentials(self) -> bool:
        return self._client_supplied

    @property
    def has_credentials(self) -> bool:
        return self._has_key if self._client_supplied else True

    def set_api_key(self, key: str) -> None:
        self._has_key = bool(key and key.strip())

    def forget_credentials(self) -> None:
        self._has_key = False

    # Abstract methods are replaced per instance by the AsyncMocks above.
    async def generate_monument_from_prompt(self, prompt):  # pragma: no cover
        raise NotImplementedError

    async def generate_monument_from_image(self, image, style):  # pragma: no cover
        raise NotImplementedError

    async def describe_scene(self, image):  # pragma: no cover
        raise NotImplementedError

    async def generate_scene(self, prompt):  # pragma: no cover
        raise NotImplementedError

    async def place_monument(self, scene, monument, instruction):  # pragma: no cover
        raise NotImplementedError


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config() -> MonumentConfig:
    """Configuration with a fake server key and no .env influence."""
    return MonumentConfig(
        _env_file=None,
        gemini_api_key="test-server-key",
        image_model="test-image-model",
        text_model="test-text-model",
        ui_credential_mode="server",
        proxy_url="http://proxy.test",
        request_timeout=5.0,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def png_file(temp_dir: Path, png_bytes: bytes) -> Path:
    """A PNG written to disk, as Gradio hands uploads over."""
    path = temp_dir / "upload.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def monument_payload() -> ImagePayload:
    return ImagePayload.from_bytes(make_png("gray"), "image/png")


@pytest.fixture
def scene_payload() -> ImagePayload:
    return ImagePayload.from_bytes(make_png("green"), "image/png")


@pytest.fixture
def final_payload() -> ImagePayload:
    return ImagePayload.from_bytes(make_png("yellow"), "image/png")


@pytest.fixture
def fake_backend(monument_payload, scene_payload, final_payload) -> FakeBackend:
    """Server-key backend whose calls all succeed."""
    backend = FakeBackend()
    backend.generate_monument_from_prompt.return_value = monument_payload
    backend.generate_monument_from_image.return_value = monument_payload
    backend.describe_scene.return_value = "A sunny city park"
    backend.generate_scene.return_value = scene_payload
    backend.place_monument.return_value = final_payload
    return backend
