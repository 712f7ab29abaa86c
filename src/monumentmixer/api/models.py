"""Pydantic request and response models for the Monument Mixer API.

These models define the JSON schema of ``POST /api/generate``.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

The request body is a union discriminated on ``type``; field names are
camelCase on the wire (``sceneImage``, ``mimeType``) and snake_case in Python.

Models
------
ImageData
    An inline image: base64 ``data`` plus ``mimeType``.
GenerateMonumentFromPromptRequest, GenerateMonumentFromImageRequest,
DescribeSceneRequest, GenerateSceneRequest, PlaceMonumentRequest
    One model per operation.
GenerateRequest
    The discriminated union of all operation requests, read from the body.
ImageResponse, FinalImageResponse, DescriptionResponse
    Successful results; ``GenerateResponse`` is their union.
ErrorResponse
    The ``{"error": ...}`` body of every failure.
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, Literal, Union

from fastapi import Body
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from monumentmixer.core.image_codec import ImagePayload


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_text(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be empty")
    return value.strip()


NonBlankText = Annotated[str, AfterValidator(_require_text)]


class ImageData(_CamelModel):
    """An inline image.

    Attributes:
        data: Base64-encoded image bytes, without a ``data:`` prefix.
        mime_type: MIME type of the image (e.g. ``image/png``).
    """

    data: str = Field(..., description="Base64-encoded image bytes.")
    mime_type: str = Field(..., description="Image MIME type, e.g. 'image/png'.")

    @field_validator("data")
    @classmethod
    def _check_base64(cls, value: str) -> str:
        if not value:
            raise ValueError("image data must not be empty")
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("image data is not valid base64") from e
        return value

    @field_validator("mime_type")
    @classmethod
    def _check_mime(cls, value: str) -> str:
        if not value.startswith("image/"):
            raise ValueError("mimeType must be an image type")
        return value

    def to_payload(self) -> ImagePayload:
        return ImagePayload(data=self.data, mime_type=self.mime_type)


class GenerateMonumentFromPromptRequest(_CamelModel):
    """Generate a monument from a text description."""

    type: Literal["generateMonumentFromPrompt"]
    prompt: NonBlankText = Field(..., description="Monument description.")


class GenerateMonumentFromImageRequest(_CamelModel):
    """Generate a monument from a reference image and a style description."""

    type: Literal["generateMonumentFromImage"]
    image: ImageData
    prompt: NonBlankText = Field(..., description="Style of the monument.")


class DescribeSceneRequest(_CamelModel):
    """Describe the environment of a scene image in one line."""

    type: Literal["describeScene"]
    image: ImageData


class GenerateSceneRequest(_CamelModel):
    """Generate a scene image from a text description."""

    type: Literal["generateScene"]
    prompt: NonBlankText = Field(..., description="Scene description.")


class PlaceMonumentRequest(_CamelModel):
    """Composite a monument into a scene."""

    type: Literal["placeMonument"]
    scene_image: ImageData
    monument_image: ImageData
    prompt: NonBlankText = Field(..., description="Placement instruction.")


GenerateRequest = Annotated[
    Union[
        GenerateMonumentFromPromptRequest,
        GenerateMonumentFromImageRequest,
        DescribeSceneRequest,
        GenerateSceneRequest,
        PlaceMonumentRequest,
    ],
    Body(discriminator="type"),
]


class ImageResponse(_CamelModel):
    """Result of the operations that produce a monument or scene image."""

    image_url: str = Field(..., description="Generated image as a data URL.")


class FinalImageResponse(_CamelModel):
    """Result of ``placeMonument``."""

    final_image_url: str = Field(..., description="Composited scene as a data URL.")


class DescriptionResponse(_CamelModel):
    """Result of ``describeScene``."""

    description: str = Field(..., description="One-line description of the scene.")


class ErrorResponse(_CamelModel):
    """Body of every non-2xx response."""

    error: str = Field(..., description="User-facing error message.")


GenerateResponse = Union[ImageResponse, FinalImageResponse, DescriptionResponse]
