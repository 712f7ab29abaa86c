"""Generation backends: the operation-level capability the workflow runs on.

The workflow never talks to the Gemini SDK or the HTTP proxy directly.  It is
constructed with one :class:`GenerationBackend`, chosen once per session:

- :class:`DirectGenerationBackend` composes prompts and calls
  :class:`~monumentmixer.core.generation.GenerationClient` in-process.  Its
  credential provider decides whether the key is server-held or typed in by
  the user.  The API server uses this backend with the server-held key.
- :class:`ProxyGenerationBackend` posts each operation to the API server's
  ``POST /api/generate`` endpoint, so the key never reaches the client.

Both expose the same five operations and raise the same error types, so the
workflow code has a single path regardless of where the key lives.

Usage
-----
::

    backend = create_backend(config, mode="client")
    monument = await backend.generate_monument_from_prompt("a lion")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .config import MonumentConfig
from .credentials import (
    CredentialProvider,
    EnvironmentCredentialProvider,
    SessionCredentialProvider,
)
from .generation import (
    EmptyResponse,
    GenerationClient,
    ImageResult,
    TextOnlyRequest,
    TextPlusOneImageRequest,
    TextPlusTwoImagesRequest,
    TextResult,
    TransportError,
)
from .image_codec import FormatError, ImagePayload, parse_data_url
from .prompts import (
    DESCRIBE_SCENE_PROMPT,
    build_monument_from_image_prompt,
    build_monument_from_text_prompt,
    build_scene_composite_prompt,
    build_scene_prompt,
)

logger = logging.getLogger(__name__)


class GenerationBackend(ABC):
    """Operations the monument workflow needs from a generation service.

    Attributes:
        name: Short label used in logs.
    """

    name: str = "base"

    @property
    def client_supplied_credentials(self) -> bool:
        """True when the end user supplies the API key for this backend."""
        return False

    @property
    def has_credentials(self) -> bool:
        """Whether a call could be authorized right now."""
        return True

    def set_api_key(self, key: str) -> None:
        """Store a user-supplied key.  Only meaningful for client credentials."""
        raise ValueError(
            f"The {self.name} backend uses the server API key and does not accept user keys."
        )

    def forget_credentials(self) -> None:
        """Drop a rejected user-supplied key."""

    @abstractmethod
    async def generate_monument_from_prompt(self, prompt: str) -> ImagePayload:
        """Generate a monument image from a text description."""

    @abstractmethod
    async def generate_monument_from_image(self, image: ImagePayload, style: str) -> ImagePayload:
        """Generate a monument from a reference image and a style description."""

    @abstractmethod
    async def describe_scene(self, image: ImagePayload) -> str:
        """Return a one-line description of the environment in *image*."""

    @abstractmethod
    async def generate_scene(self, prompt: str) -> ImagePayload:
        """Generate a scene image from a text description."""

    @abstractmethod
    async def place_monument(
        self, scene: ImagePayload, monument: ImagePayload, instruction: str
    ) -> ImagePayload:
        """Composite *monument* into *scene* following *instruction*."""


class DirectGenerationBackend(GenerationBackend):
    """Calls Gemini in-process through a :class:`GenerationClient`."""

    name = "direct"

    def __init__(self, client: GenerationClient) -> None:
        self.client = client

    @property
    def credentials(self) -> CredentialProvider:
        return self.client.credentials

    @property
    def client_supplied_credentials(self) -> bool:
        return self.credentials.client_supplied

    @property
    def has_credentials(self) -> bool:
        if isinstance(self.credentials, SessionCredentialProvider):
            return self.credentials.has_key
        return True

    def set_api_key(self, key: str) -> None:
        if not isinstance(self.credentials, SessionCredentialProvider):
            super().set_api_key(key)
        self.credentials.set_api_key(key)

    def forget_credentials(self) -> None:
        self.credentials.forget()

    async def _generate_image(self, request) -> ImagePayload:
        result = await self.client.generate(request)
        if not isinstance(result, ImageResult):
            raise EmptyResponse("The model did not return an image.")
        return result.image

    async def generate_monument_from_prompt(self, prompt: str) -> ImagePayload:
        return await self._generate_image(TextOnlyRequest(build_monument_from_text_prompt(prompt)))

    async def generate_monument_from_image(self, image: ImagePayload, style: str) -> ImagePayload:
        return await self._generate_image(
            TextPlusOneImageRequest(build_monument_from_image_prompt(style), image)
        )

    async def describe_scene(self, image: ImagePayload) -> str:
        result = await self.client.generate(
            TextPlusOneImageRequest(DESCRIBE_SCENE_PROMPT, image, modality="text")
        )
        if not isinstance(result, TextResult):
            raise EmptyResponse("The model did not return a description.")
        return result.text

    async def generate_scene(self, prompt: str) -> ImagePayload:
        return await self._generate_image(TextOnlyRequest(build_scene_prompt(prompt)))

    async def place_monument(
        self, scene: ImagePayload, monument: ImagePayload, instruction: str
    ) -> ImagePayload:
        return await self._generate_image(
            TextPlusTwoImagesRequest(build_scene_composite_prompt(instruction), scene, monument)
        )


def _image_json(image: ImagePayload) -> dict[str, str]:
    return {"data": image.data, "mimeType": image.mime_type}


class ProxyGenerationBackend(GenerationBackend):
    """Delegates every operation to a remote ``POST /api/generate`` endpoint.

    Args:
        base_url: Root URL of the API server (e.g. ``http://localhost:8000``).
        timeout: Per-request timeout in seconds.
        transport: Optional ``httpx`` transport, used by tests.
    """

    name = "proxy"

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        logger.info(f"Proxying {body['type']} to {self.base_url}/api/generate")
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as http:
                resp = await http.post("/api/generate", json=body)
        except httpx.HTTPError as e:
            logger.error(f"Proxy request failed: {e}")
            raise TransportError(f"Could not reach the generation server: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            raise TransportError(
                message or f"Generation server returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        if not isinstance(data, dict):
            raise EmptyResponse("Generation server returned an unexpected response.")
        return data

    @staticmethod
    def _image_from(data: dict[str, Any], key: str) -> ImagePayload:
        url = data.get(key)
        if not url:
            raise EmptyResponse("Generation server did not return an image.")
        try:
            return parse_data_url(url)
        except FormatError as e:
            raise EmptyResponse(f"Generation server returned an unreadable image: {e}") from e

    async def generate_monument_from_prompt(self, prompt: str) -> ImagePayload:
        data = await self._post({"type": "generateMonumentFromPrompt", "prompt": prompt})
        return self._image_from(data, "imageUrl")

    async def generate_monument_from_image(self, image: ImagePayload, style: str) -> ImagePayload:
        data = await self._post(
            {"type": "generateMonumentFromImage", "image": _image_json(image), "prompt": style}
        )
        return self._image_from(data, "imageUrl")

    async def describe_scene(self, image: ImagePayload) -> str:
        data = await self._post({"type": "describeScene", "image": _image_json(image)})
        description = (data.get("description") or "").strip()
        if not description:
            raise EmptyResponse("Generation server did not return a description.")
        return description

    async def generate_scene(self, prompt: str) -> ImagePayload:
        data = await self._post({"type": "generateScene", "prompt": prompt})
        return self._image_from(data, "imageUrl")

    async def place_monument(
        self, scene: ImagePayload, monument: ImagePayload, instruction: str
    ) -> ImagePayload:
        data = await self._post(
            {
                "type": "placeMonument",
                "sceneImage": _image_json(scene),
                "monumentImage": _image_json(monument),
                "prompt": instruction,
            }
        )
        return self._image_from(data, "finalImageUrl")


def create_backend(config: MonumentConfig, mode: str | None = None) -> GenerationBackend:
    """Build the backend for *mode* (defaults to ``config.ui_credential_mode``).

    Args:
        config: Application configuration.
        mode: ``"client"`` (key typed by the user), ``"server"`` (key from the
            environment), or ``"proxy"`` (remote API server holds the key).

    Raises:
        ValueError: If *mode* is unknown.
    """
    mode = mode or config.ui_credential_mode
    logger.info(f"Creating {mode} generation backend")

    if mode == "proxy":
        return ProxyGenerationBackend(config.proxy_url, timeout=config.request_timeout)

    if mode == "client":
        credentials: CredentialProvider = SessionCredentialProvider()
    elif mode == "server":
        credentials = EnvironmentCredentialProvider(config)
    else:
        raise ValueError(f"Unknown credential mode: {mode}")

    return DirectGenerationBackend(
        GenerationClient(credentials, image_model=config.image_model, text_model=config.text_model)
    )
