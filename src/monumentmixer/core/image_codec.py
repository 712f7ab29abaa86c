"""Conversion between uploaded image files, base64 payloads and data URLs.

Every image that travels through Monument Mixer is carried as an
:class:`ImagePayload`: the base64 body plus the MIME type.  This is the form
the generation API accepts for inline image parts and the form the HTTP
boundary exchanges as JSON.

Three conversions are provided:

- :func:`encode` reads an upload (a path on disk, an :class:`ImageFile`, or a
  data URL string) and produces a payload.  File reads happen in a worker
  thread so the event loop never blocks.
- :func:`decode_to_data_url` formats a payload for direct display.
- :func:`decode_to_binary` turns a data URL back into a named
  :class:`ImageFile`, the upload-equivalent object that can be resubmitted.

Usage
-----
::

    payload = await encode(Path("lion.png"))
    url = decode_to_data_url(payload)
    upload = decode_to_binary(url, "lion.png")
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import mimetypes
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# ``data:<mime>;base64,<body>``.  The MIME declaration is mandatory.
_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[\w-]+=[^;,]*)*;base64,(?P<data>.*)$", re.S
)

# Pillow formats whose Image.MIME label is not a type uploads are sent as.
_FORMAT_MIME_OVERRIDES = {"MPO": "image/jpeg"}


class ImageCodecError(Exception):
    """Base class for image conversion failures."""


class ReadError(ImageCodecError):
    """Raised when an upload cannot be read as an image."""


class FormatError(ImageCodecError):
    """Raised when a data URL lacks a recognizable MIME declaration or body."""


@dataclass(frozen=True)
class ImagePayload:
    """An image as base64 text plus its MIME type.

    Attributes:
        data: Base64 body with no ``data:`` prefix.
        mime_type: MIME type of the encoded bytes (e.g. ``"image/png"``).
    """

    data: str
    mime_type: str

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str) -> ImagePayload:
        """Build a payload from raw image bytes."""
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type)

    def to_bytes(self) -> bytes:
        """Return the decoded image bytes."""
        return base64.b64decode(self.data)

    def to_data_url(self) -> str:
        """Return the payload formatted as a ``data:`` URL."""
        return decode_to_data_url(self)


@dataclass(frozen=True)
class ImageFile:
    """A named binary image blob, equivalent to a user upload.

    Attributes:
        name: File name shown to the user.
        mime_type: Declared MIME type (may be empty if unknown).
        data: Raw file bytes.
    """

    name: str
    mime_type: str
    data: bytes


ImageSource = ImageFile | Path | str


def sniff_mime_type(raw: bytes) -> str | None:
    """Identify the image format of *raw* with Pillow.

    Multi-picture JPEGs (``MPO``, common from phone cameras) are reported as
    ``image/jpeg``, the type the generation API accepts for them.

    Returns:
        The MIME type for the detected format, or ``None`` if the bytes are
        not a recognizable image.
    """
    try:
        with Image.open(BytesIO(raw)) as img:
            fmt = img.format or ""
            return _FORMAT_MIME_OVERRIDES.get(fmt) or Image.MIME.get(fmt)
    except (UnidentifiedImageError, OSError, ValueError):
        return None


def _read_path(path: Path) -> ImageFile:
    mime_type, _ = mimetypes.guess_type(path.name)
    return ImageFile(name=path.name, mime_type=mime_type or "", data=path.read_bytes())


async def encode(file: ImageSource) -> ImagePayload:
    """Read an upload and return it as an :class:`ImagePayload`.

    Args:
        file: An :class:`ImageFile`, a filesystem path, or a data URL string.
            Plain strings that are not data URLs are treated as paths.

    Returns:
        Payload carrying the base64 body (prefix stripped) and the declared
        ``image/*`` MIME type, or the sniffed one when the declaration is
        empty or not an image type.

    Raises:
        ReadError: If the file cannot be read, the read produced something
            other than bytes, or the bytes are not a recognizable image.
    """
    if isinstance(file, str) and file.startswith("data:"):
        try:
            return parse_data_url(file)
        except FormatError as e:
            raise ReadError(f"Failed to read image: {e}") from e

    if isinstance(file, (str, Path)):
        path = Path(file)
        try:
            file = await asyncio.to_thread(_read_path, path)
        except OSError as e:
            logger.error(f"Failed to read upload {path.name}: {e}")
            raise ReadError(f"Failed to read {path.name}: {e.strerror or e}") from e

    raw = getattr(file, "data", None)
    if not isinstance(raw, (bytes, bytearray)):
        raise ReadError("Failed to read file as base64")

    sniffed = sniff_mime_type(bytes(raw))
    if sniffed is None:
        raise ReadError(f"{file.name} is not a supported image")

    mime_type = file.mime_type or ""
    if not mime_type.startswith("image/"):
        if mime_type:
            logger.debug(f"Declared type {mime_type} for {file.name} is not an image, using {sniffed}")
        mime_type = sniffed

    return ImagePayload.from_bytes(bytes(raw), mime_type)


def decode_to_data_url(payload: ImagePayload) -> str:
    """Format *payload* as ``data:<mime>;base64,<data>``."""
    return f"data:{payload.mime_type};base64,{payload.data}"


def parse_data_url(data_url: str) -> ImagePayload:
    """Split a data URL into an :class:`ImagePayload`.

    Raises:
        FormatError: If the MIME declaration is missing or the body is not
            valid base64.
    """
    match = _DATA_URL_RE.match(data_url.strip())
    if match is None:
        raise FormatError("Data URL has no recognizable MIME type")

    data = match.group("data")
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Data URL body is not valid base64: {e}") from e

    return ImagePayload(data=data, mime_type=match.group("mime"))


def decode_to_binary(data_url: str, filename: str) -> ImageFile:
    """Turn a data URL back into a named binary blob.

    Args:
        data_url: ``data:<mime>;base64,<data>`` string.
        filename: Name to give the resulting file.

    Returns:
        An :class:`ImageFile` that can be resubmitted like an upload.

    Raises:
        FormatError: If the string lacks a recognizable MIME declaration.
    """
    payload = parse_data_url(data_url)
    return ImageFile(name=filename, mime_type=payload.mime_type, data=payload.to_bytes())


def to_pil_image(payload: ImagePayload) -> Image.Image:
    """Open *payload* as a PIL image for display in the UI."""
    img = Image.open(BytesIO(payload.to_bytes()))
    img.load()
    return img
