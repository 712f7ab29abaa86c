"""Unit tests for image upload, payload and data URL conversions."""

import asyncio
import base64

import pytest

from conftest import make_jpeg, make_mpo, make_png
from monumentmixer.core.image_codec import (
    FormatError,
    ImageFile,
    ImagePayload,
    ReadError,
    decode_to_binary,
    decode_to_data_url,
    encode,
    parse_data_url,
    sniff_mime_type,
    to_pil_image,
)


class TestEncode:
    """Tests for encode()."""

    def test_encode_image_file(self, png_bytes):
        """Test that an in-memory upload is base64 encoded with its MIME type."""
        payload = asyncio.run(encode(ImageFile("lion.png", "image/png", png_bytes)))

        assert payload.mime_type == "image/png"
        assert payload.data == base64.b64encode(png_bytes).decode("ascii")

    def test_encode_strips_data_url_prefix(self, png_bytes):
        """Test that the payload never carries the data: prefix."""
        payload = asyncio.run(encode(ImageFile("lion.png", "image/png", png_bytes)))

        assert not payload.data.startswith("data:")
        assert "," not in payload.data

    def test_encode_path(self, png_file, png_bytes):
        """Test that a file on disk is read and encoded."""
        payload = asyncio.run(encode(png_file))

        assert payload.mime_type == "image/png"
        assert payload.to_bytes() == png_bytes

    def test_encode_path_string(self, png_file):
        """Test that a plain string is treated as a path."""
        payload = asyncio.run(encode(str(png_file)))

        assert payload.mime_type == "image/png"

    def test_encode_data_url(self, png_bytes):
        """Test that a data URL string is split into a payload."""
        url = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")

        payload = asyncio.run(encode(url))

        assert payload == ImagePayload.from_bytes(png_bytes, "image/png")

    def test_missing_mime_uses_sniffed_type(self):
        """Test that an upload without a declared type gets the detected one."""
        payload = asyncio.run(encode(ImageFile("photo", "", make_jpeg())))

        assert payload.mime_type == "image/jpeg"

    def test_declared_image_mime_is_kept(self):
        """Test that a declared image type is used even if Pillow labels it differently."""
        payload = asyncio.run(encode(ImageFile("photo.png", "image/png", make_jpeg())))

        assert payload.mime_type == "image/png"

    def test_non_image_declaration_uses_sniffed_type(self):
        """Test that a declaration that is not an image type falls back to the content."""
        payload = asyncio.run(
            encode(ImageFile("photo.jpg", "application/octet-stream", make_jpeg()))
        )

        assert payload.mime_type == "image/jpeg"

    def test_phone_camera_jpeg_keeps_declared_type(self):
        """Test that a multi-picture JPEG declared image/jpeg is sent as image/jpeg."""
        raw = make_mpo()

        payload = asyncio.run(encode(ImageFile("photo.jpg", "image/jpeg", raw)))

        assert raw[:2] == b"\xff\xd8"
        assert payload.mime_type == "image/jpeg"
        assert payload.to_bytes() == raw

    def test_undeclared_phone_camera_jpeg_is_jpeg(self):
        payload = asyncio.run(encode(ImageFile("photo", "", make_mpo())))

        assert payload.mime_type == "image/jpeg"

    def test_missing_file_raises_read_error(self, temp_dir):
        """Test that an unreadable path raises ReadError."""
        with pytest.raises(ReadError):
            asyncio.run(encode(temp_dir / "missing.png"))

    def test_non_image_bytes_raise_read_error(self):
        """Test that bytes that are not an image raise ReadError."""
        with pytest.raises(ReadError, match="not a supported image"):
            asyncio.run(encode(ImageFile("notes.txt", "text/plain", b"hello")))

    def test_non_binary_result_raises_read_error(self):
        """Test that a read producing text instead of bytes raises ReadError."""
        with pytest.raises(ReadError, match="Failed to read file as base64"):
            asyncio.run(encode(ImageFile("broken.png", "image/png", "not bytes")))

    def test_bad_data_url_raises_read_error(self):
        """Test that a malformed data URL upload is reported as a read failure."""
        with pytest.raises(ReadError):
            asyncio.run(encode("data:;base64,AAAA"))


class TestDataUrls:
    """Tests for decode_to_data_url(), parse_data_url() and decode_to_binary()."""

    def test_decode_to_data_url_format(self):
        """Test the data:<mime>;base64,<data> format."""
        payload = ImagePayload(data="QUJD", mime_type="image/webp")

        assert decode_to_data_url(payload) == "data:image/webp;base64,QUJD"
        assert payload.to_data_url() == "data:image/webp;base64,QUJD"

    def test_parse_data_url(self):
        """Test that a data URL is split into MIME type and body."""
        payload = parse_data_url("data:image/jpeg;base64,QUJD")

        assert payload == ImagePayload(data="QUJD", mime_type="image/jpeg")

    def test_parse_data_url_without_mime_raises(self):
        """Test that a data URL with no MIME declaration raises FormatError."""
        with pytest.raises(FormatError):
            parse_data_url("data:;base64,QUJD")

    def test_parse_non_data_url_raises(self):
        with pytest.raises(FormatError):
            parse_data_url("https://example.com/lion.png")

    def test_parse_invalid_base64_raises(self):
        """Test that a body that is not base64 raises FormatError."""
        with pytest.raises(FormatError, match="not valid base64"):
            parse_data_url("data:image/png;base64,@@@")

    def test_decode_to_binary(self, png_bytes):
        """Test that a data URL becomes a named, resubmittable file."""
        url = ImagePayload.from_bytes(png_bytes, "image/png").to_data_url()

        image_file = decode_to_binary(url, "monument.png")

        assert image_file.name == "monument.png"
        assert image_file.mime_type == "image/png"
        assert image_file.data == png_bytes

    def test_decode_to_binary_can_be_reencoded(self, png_bytes):
        """Test that a decoded file can go back through encode()."""
        url = ImagePayload.from_bytes(png_bytes, "image/png").to_data_url()

        payload = asyncio.run(encode(decode_to_binary(url, "monument.png")))

        assert payload.to_data_url() == url

    def test_decode_to_binary_without_mime_raises(self):
        with pytest.raises(FormatError):
            decode_to_binary("data:;base64,QUJD", "x.png")


class TestHelpers:
    """Tests for sniff_mime_type() and to_pil_image()."""

    def test_sniff_png(self):
        assert sniff_mime_type(make_png()) == "image/png"

    def test_sniff_mpo_as_jpeg(self):
        assert sniff_mime_type(make_mpo()) == "image/jpeg"

    def test_sniff_unknown(self):
        assert sniff_mime_type(b"plain text") is None

    def test_to_pil_image(self):
        """Test that a payload opens as a PIL image of the right size."""
        payload = ImagePayload.from_bytes(make_png(size=(8, 6)), "image/png")

        img = to_pil_image(payload)

        assert img.size == (8, 6)
