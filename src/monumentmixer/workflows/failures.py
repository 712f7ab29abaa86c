"""Classification of workflow failures into user-facing messages.

The generation client reports transport failures as one exception type.
This module is where they are told apart: rejected or missing credentials
and exhausted quotas get their own kinds, recognized from the HTTP status
when one is known and from the error text otherwise.
"""

import logging

from monumentmixer.core.generation import (
    EmptyResponse,
    MissingCredentialError,
    TransportError,
)
from monumentmixer.core.image_codec import FormatError, ReadError

from .models import FailureKind
from .validation import InputValidationError

logger = logging.getLogger(__name__)

_CREDENTIAL_MARKERS = (
    "api key",
    "api_key",
    "permission_denied",
    "permission denied",
    "unauthenticated",
    "unauthorized",
    "credential",
)
_QUOTA_MARKERS = (
    "quota",
    "resource_exhausted",
    "resource exhausted",
    "rate limit",
    "too many requests",
)


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an exception raised by a workflow action to a :class:`FailureKind`."""
    if isinstance(exc, InputValidationError):
        return FailureKind.INPUT
    if isinstance(exc, ReadError):
        return FailureKind.READ
    if isinstance(exc, FormatError):
        return FailureKind.FORMAT
    if isinstance(exc, EmptyResponse):
        return FailureKind.EMPTY_RESPONSE
    if isinstance(exc, MissingCredentialError):
        return FailureKind.INVALID_CREDENTIAL
    if isinstance(exc, TransportError):
        if exc.status_code in (401, 403):
            return FailureKind.INVALID_CREDENTIAL
        if exc.status_code == 429:
            return FailureKind.QUOTA_EXCEEDED
        text = str(exc).lower()
        if any(marker in text for marker in _CREDENTIAL_MARKERS):
            return FailureKind.INVALID_CREDENTIAL
        if any(marker in text for marker in _QUOTA_MARKERS):
            return FailureKind.QUOTA_EXCEEDED
        return FailureKind.TRANSPORT

    logger.warning(f"Unclassified failure {type(exc).__name__}: {exc}")
    return FailureKind.TRANSPORT


def failure_message(kind: FailureKind, exc: BaseException, client_supplied: bool = False) -> str:
    """Build the message shown to the user for a classified failure."""
    if kind is FailureKind.INVALID_CREDENTIAL:
        if client_supplied:
            return "Your API key is missing or was rejected. Please enter a valid Gemini API key."
        return "The generation service is not authorized. Please contact the administrator."
    if kind is FailureKind.QUOTA_EXCEEDED:
        return "The API quota has been exceeded. Please wait a moment and try again."
    if kind is FailureKind.READ:
        return f"Failed to process the image. Please try another one. ({exc})"
    if kind is FailureKind.TRANSPORT:
        return (
            f"Failed to generate image: {exc}. The model may have refused the request "
            "due to safety policies or other issues."
        )
    return str(exc)
