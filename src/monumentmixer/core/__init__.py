"""Core functionality for Monument Mixer.

This package provides the building blocks the workflow and the HTTP API are
assembled from:

- **config**: Environment-based configuration using Pydantic Settings
  (``MONUMENT_*`` variables and ``.env``)
- **image_codec**: Upload, base64 payload and data URL conversions
- **prompts**: Instruction templates for every generation call
- **generation**: The Gemini client, request/result types and errors
- **credentials**: Server-held and session-supplied API key providers
- **backends**: Operation-level backends (direct or proxied) the workflow
  runs on

Architecture Overview
---------------------
Layered, leaves first::

    image_codec ─┐
    prompts ─────┼─> generation ─> backends ─> workflows / api
    credentials ─┘

See Also
--------
- monumentmixer.workflows: The three-step wizard state machine
- monumentmixer.api: FastAPI proxy that keeps the key on the server
"""

from monumentmixer.core.backends import (
    DirectGenerationBackend,
    GenerationBackend,
    ProxyGenerationBackend,
    create_backend,
)
from monumentmixer.core.config import MonumentConfig, config
from monumentmixer.core.generation import (
    EmptyResponse,
    GenerationClient,
    MissingCredentialError,
    TransportError,
)
from monumentmixer.core.image_codec import FormatError, ImageFile, ImagePayload, ReadError

__all__ = [
    "DirectGenerationBackend",
    "EmptyResponse",
    "FormatError",
    "GenerationBackend",
    "GenerationClient",
    "ImageFile",
    "ImagePayload",
    "MissingCredentialError",
    "MonumentConfig",
    "ProxyGenerationBackend",
    "ReadError",
    "TransportError",
    "config",
    "create_backend",
]
