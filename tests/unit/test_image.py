"""Unit tests for payload conversion."""

from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from printprep.exceptions import ConversionFailureError
from printprep.fetch import FetchedImage
from printprep.image import (
    PayloadConverter,
    encode_data_uri,
    sniff_mime_type,
    transcode_to_jpeg,
)


def _decode(payload: str) -> tuple[str, bytes]:
    header, data = payload.split(",", 1)
    return header, base64.b64decode(data)


class TestEncodeDataUri:
    def test_encodes_bytes(self) -> None:
        assert encode_data_uri(b"abc", "image/png") == "data:image/png;base64,YWJj"

    def test_missing_mime_uses_fallback(self) -> None:
        assert encode_data_uri(b"abc", "").startswith("data:application/octet-stream;")


class TestSniffMimeType:
    def test_png(self, image_bytes) -> None:
        assert sniff_mime_type(image_bytes("PNG")) == "image/png"

    def test_webp(self, image_bytes) -> None:
        assert sniff_mime_type(image_bytes("WEBP")) == "image/webp"

    def test_not_an_image(self) -> None:
        assert sniff_mime_type(b"<html></html>") is None


class TestTranscodeToJpeg:
    def test_webp_to_jpeg(self, image_bytes) -> None:
        jpeg = transcode_to_jpeg(image_bytes("WEBP"))
        with Image.open(io.BytesIO(jpeg)) as img:
            assert img.format == "JPEG"
            assert img.size == (8, 6)

    def test_alpha_is_flattened_on_white(self, image_bytes) -> None:
        transparent = image_bytes("PNG", mode="RGBA", color=(0, 0, 0, 0))
        jpeg = transcode_to_jpeg(transparent)
        with Image.open(io.BytesIO(jpeg)) as img:
            r, g, b = img.convert("RGB").getpixel((0, 0))
        assert min(r, g, b) > 240

    def test_garbage_raises(self) -> None:
        with pytest.raises(ConversionFailureError):
            transcode_to_jpeg(b"not an image")


class TestPayloadConverter:
    """Tests for PayloadConverter.convert()."""

    def test_supported_format_kept_as_is(self, png_image: FetchedImage) -> None:
        payload = PayloadConverter().convert(png_image)
        header, data = _decode(payload)
        assert header == "data:image/png;base64"
        assert data == png_image.content

    def test_content_type_parameters_are_dropped(self, image_bytes) -> None:
        fetched = FetchedImage(image_bytes("JPEG"), "image/JPEG; charset=binary")
        assert PayloadConverter().convert(fetched).startswith("data:image/jpeg;base64,")

    def test_served_webp_is_transcoded(self, image_bytes) -> None:
        fetched = FetchedImage(image_bytes("WEBP"), "image/webp", "https://img.test/photo")
        header, data = _decode(PayloadConverter().convert(fetched))
        assert header == "data:image/jpeg;base64"
        assert sniff_mime_type(data) == "image/jpeg"

    def test_served_gif_is_transcoded(self, image_bytes) -> None:
        fetched = FetchedImage(image_bytes("GIF", mode="P", color=3), "image/gif")
        header, _ = _decode(PayloadConverter().convert(fetched))
        assert header == "data:image/jpeg;base64"

    def test_transcode_disabled(self, image_bytes) -> None:
        fetched = FetchedImage(image_bytes("WEBP"), "image/webp")
        with pytest.raises(ConversionFailureError):
            PayloadConverter(transcode=False).convert(fetched)

    def test_svg_rejected(self) -> None:
        fetched = FetchedImage(b"<svg xmlns='http://www.w3.org/2000/svg'/>", "image/svg+xml")
        with pytest.raises(ConversionFailureError, match="svg"):
            PayloadConverter().convert(fetched)

    def test_octet_stream_is_sniffed(self, image_bytes) -> None:
        fetched = FetchedImage(image_bytes("PNG"), "application/octet-stream")
        assert PayloadConverter().convert(fetched).startswith("data:image/png;base64,")

    def test_html_body_rejected(self) -> None:
        fetched = FetchedImage(b"<html>blocked</html>", "text/html", "https://img.test/a.png")
        with pytest.raises(ConversionFailureError) as exc_info:
            PayloadConverter().convert(fetched)
        assert exc_info.value.locator == "https://img.test/a.png"

    def test_empty_body_rejected(self) -> None:
        with pytest.raises(ConversionFailureError, match="Empty"):
            PayloadConverter().convert(FetchedImage(b"", "image/png"))

    def test_undecodable_webp_reports_locator(self) -> None:
        fetched = FetchedImage(b"RIFFjunk", "image/webp", "https://img.test/x")
        with pytest.raises(ConversionFailureError) as exc_info:
            PayloadConverter().convert(fetched)
        assert exc_info.value.locator == "https://img.test/x"
