"""Conversion of fetched image bytes into inline ``data:`` payloads.

The renderer only embeds JPEG and PNG. Other raster formats served without a
telling extension (WebP from a CDN, animated GIF) are transcoded to JPEG with
Pillow; vector or undecodable content is rejected.
"""

from __future__ import annotations

import base64
import io

from loguru import logger
from PIL import Image, UnidentifiedImageError

from printprep.constants import (
    DEFAULT_FALLBACK_MIME,
    DEFAULT_TRANSCODE_QUALITY,
    LOG_PREVIEW_CHARS,
)
from printprep.exceptions import ConversionFailureError
from printprep.fetch import FetchedImage
from printprep.formats import FormatGate
from printprep.utils.mime import (
    clean_mime_type,
    get_format_label,
    mime_from_pil_format,
)


def encode_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as ``data:<mime>;base64,<payload>``."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_FALLBACK_MIME};base64,{encoded}"


def sniff_mime_type(data: bytes) -> str | None:
    """Identify image bytes with Pillow. Returns None if not an image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return mime_from_pil_format(img.format)
    except (UnidentifiedImageError, OSError, ValueError):
        return None


def transcode_to_jpeg(data: bytes, quality: int = DEFAULT_TRANSCODE_QUALITY) -> bytes:
    """Re-encode any Pillow-readable image as JPEG.

    Only the first frame of animated images is kept; transparency is
    flattened onto a white background.

    Raises:
        ConversionFailureError: Pillow cannot decode the bytes
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.seek(0)
            frame = img.convert("RGBA") if _has_alpha(img) else img.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError, EOFError) as e:
        raise ConversionFailureError(f"Cannot decode image for transcoding: {e}") from e

    if frame.mode == "RGBA":
        background = Image.new("RGB", frame.size, (255, 255, 255))
        background.paste(frame, mask=frame.split()[3])
        frame = background

    buffer = io.BytesIO()
    frame.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)


class PayloadConverter:
    """Turns a ``FetchedImage`` into an inline payload string.

    Args:
        gate: Format gate deciding which served formats need transcoding
        transcode: Transcode unsupported raster formats instead of failing
        quality: JPEG quality used when transcoding
    """

    def __init__(
        self,
        gate: FormatGate | None = None,
        transcode: bool = True,
        quality: int = DEFAULT_TRANSCODE_QUALITY,
    ) -> None:
        self.gate = gate or FormatGate()
        self.transcode = transcode
        self.quality = quality

    def convert(self, fetched: FetchedImage) -> str:
        """Convert fetched bytes.

        Raises:
            ConversionFailureError: empty body, non-image content, or an
                unsupported format that cannot be transcoded
        """
        if not fetched.content:
            raise ConversionFailureError("Empty response body", locator=fetched.url)

        mime = clean_mime_type(fetched.content_type)
        if not mime.startswith("image/"):
            sniffed = sniff_mime_type(fetched.content)
            if sniffed is None:
                raise ConversionFailureError(
                    f"Response is not an image (content-type: {mime or 'none'})",
                    locator=fetched.url,
                )
            mime = sniffed

        label = get_format_label(mime)
        if not self.gate.is_unsupported_label(label):
            return encode_data_uri(fetched.content, mime)

        if not self.transcode or label == "svg":
            raise ConversionFailureError(
                f"Served format {label} cannot be embedded", locator=fetched.url
            )

        logger.debug(
            f"Transcoding {label} to JPEG: {fetched.url[:LOG_PREVIEW_CHARS]}"
        )
        try:
            jpeg = transcode_to_jpeg(fetched.content, self.quality)
        except ConversionFailureError as e:
            e.locator = fetched.url
            raise
        return encode_data_uri(jpeg, "image/jpeg")
