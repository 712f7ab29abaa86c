"""Client for the hosted Gemini multimodal generation endpoint.

:class:`GenerationClient` turns a typed :class:`GenerationRequest` into one
``generate_content`` call and extracts a typed :class:`GenerationResult`
from the response.  It holds no per-call state and never retries: each
request is exactly one call to the endpoint.

Request Shapes
--------------
The union of request types fixes which call is legal:

========================  ============  ==========================================
Request                   Image parts   Used for
========================  ============  ==========================================
TextOnlyRequest           0             Monument from text, scene from text
TextPlusOneImageRequest   1             Monument from image, scene description
TextPlusTwoImagesRequest  2             Scene composite (scene first, monument)
========================  ============  ==========================================

Image parts always precede the single text part.  The response modality
chooses both the model and the extraction rule: ``"image"`` returns the first
part carrying inline image data, ``"text"`` returns the aggregated text.

Errors
------
- :class:`TransportError` wraps anything the SDK call raises (network
  failures, rejected keys, quota errors, malformed requests).  The client does
  not classify these further.
- :class:`EmptyResponse` is raised when the call succeeded but produced no
  image (or no text, for text calls).

Credentials
-----------
The API key is fetched from the credential provider for each call and used to
build a short-lived ``genai.Client``.  It is never logged or stored on the
generation client.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Union

from google import genai
from google.genai import types

from .image_codec import ImagePayload

if TYPE_CHECKING:
    from .credentials import CredentialProvider

logger = logging.getLogger(__name__)

Modality = Literal["image", "text"]


class GenerationError(Exception):
    """Base class for generation failures."""


class TransportError(GenerationError):
    """The call to the generation endpoint itself failed.

    Attributes:
        status_code: HTTP status reported by the endpoint, when known.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MissingCredentialError(TransportError):
    """No API key is available to authorize the call."""


class EmptyResponse(GenerationError):
    """The endpoint answered but returned no usable image or text."""


# ---------------------------------------------------------------------------
# Requests and results.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextOnlyRequest:
    prompt: str
    modality: Modality = "image"

    @property
    def images(self) -> tuple[ImagePayload, ...]:
        return ()


@dataclass(frozen=True)
class TextPlusOneImageRequest:
    prompt: str
    image: ImagePayload
    modality: Modality = "image"

    @property
    def images(self) -> tuple[ImagePayload, ...]:
        return (self.image,)


@dataclass(frozen=True)
class TextPlusTwoImagesRequest:
    prompt: str
    first_image: ImagePayload
    second_image: ImagePayload
    modality: Modality = "image"

    @property
    def images(self) -> tuple[ImagePayload, ...]:
        return (self.first_image, self.second_image)


GenerationRequest = Union[TextOnlyRequest, TextPlusOneImageRequest, TextPlusTwoImagesRequest]


@dataclass(frozen=True)
class ImageResult:
    image: ImagePayload


@dataclass(frozen=True)
class TextResult:
    text: str


GenerationResult = Union[ImageResult, TextResult]


# ---------------------------------------------------------------------------
# Payload and response helpers.
# ---------------------------------------------------------------------------


def build_parts(request: GenerationRequest) -> list[types.Part]:
    """Build the ordered part list: inline images first, then the prompt."""
    parts = [
        types.Part.from_bytes(data=image.to_bytes(), mime_type=image.mime_type)
        for image in request.images
    ]
    parts.append(types.Part.from_text(text=request.prompt))
    return parts


def first_candidate_parts(response: types.GenerateContentResponse) -> Iterable[types.Part]:
    """Return the parts of the first candidate, or nothing if there is none."""
    if not response.candidates:
        return ()
    content = response.candidates[0].content
    if content is None or not content.parts:
        return ()
    return content.parts


def first_image_part(parts: Iterable[types.Part]) -> types.Part | None:
    """Return the first part carrying inline image data.

    Scanning stops at the first match; later parts are never inspected.
    """
    return next(
        (p for p in parts if p.inline_data is not None and p.inline_data.data),
        None,
    )


def extract_image(response: types.GenerateContentResponse) -> ImagePayload:
    """Extract the first inline image from *response*.

    Raises:
        EmptyResponse: If no part carries image data.
    """
    part = first_image_part(first_candidate_parts(response))
    if part is None:
        raise EmptyResponse("The model did not return an image. Try rephrasing your request.")
    blob = part.inline_data
    return ImagePayload.from_bytes(blob.data, blob.mime_type or "image/png")


def extract_text(response: types.GenerateContentResponse) -> str:
    """Extract the aggregated text of *response*.

    Raises:
        EmptyResponse: If the response has no text.
    """
    text = "".join(
        p.text for p in first_candidate_parts(response) if p.text and not p.thought
    ).strip()
    if not text:
        raise EmptyResponse("The model did not return any text.")
    return text


# ---------------------------------------------------------------------------
# Client.
# ---------------------------------------------------------------------------


class GenerationClient:
    """Stateless per-call client for the Gemini ``generate_content`` endpoint.

    Args:
        credentials: Provider consulted once per call for the API key.
        image_model: Model used for ``"image"`` modality requests.
        text_model: Model used for ``"text"`` modality requests.
        client_factory: Callable that builds a ``genai.Client`` from an
            ``api_key`` keyword.  Tests substitute a fake.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        image_model: str = "gemini-2.5-flash-image",
        text_model: str = "gemini-2.5-flash",
        client_factory: Callable[..., genai.Client] = genai.Client,
    ) -> None:
        self.credentials = credentials
        self.image_model = image_model
        self.text_model = text_model
        self._client_factory = client_factory

    def _model_for(self, modality: Modality) -> str:
        return self.image_model if modality == "image" else self.text_model

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Send *request* once and extract the result.

        Returns:
            :class:`ImageResult` for image requests, :class:`TextResult` for
            text requests.

        Raises:
            TransportError: If the endpoint call raises, or no key is available.
            EmptyResponse: If the response holds no usable image or text.
        """
        model = self._model_for(request.modality)
        parts = build_parts(request)
        gen_config = types.GenerateContentConfig(
            response_modalities=["IMAGE"] if request.modality == "image" else ["TEXT"],
        )

        logger.info(
            f"Calling {model} with {len(request.images)} image part(s), "
            f"modality={request.modality}"
        )

        try:
            client = self._client_factory(api_key=self.credentials.get_api_key())
            response = await client.aio.models.generate_content(
                model=model,
                contents=[types.Content(role="user", parts=parts)],
                config=gen_config,
            )
        except TransportError:
            raise
        except Exception as e:
            logger.error(f"Generation call to {model} failed: {type(e).__name__}: {e}")
            code = getattr(e, "code", None)
            raise TransportError(str(e), status_code=code if isinstance(code, int) else None) from e

        if request.modality == "image":
            image = extract_image(response)
            logger.info(f"Received {image.mime_type} image from {model}")
            return ImageResult(image=image)

        text = extract_text(response)
        logger.info(f"Received {len(text)} characters of text from {model}")
        return TextResult(text=text)
