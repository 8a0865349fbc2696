"""Centralized constants for printprep.

This module contains all hardcoded defaults used throughout the pipeline.
Every value here can be overridden through the configuration file, the
environment or the CLI (see ``printprep.config``).
"""

from __future__ import annotations

# =============================================================================
# Relay
# =============================================================================

# Relay service that re-serves remote images with permissive CORS headers
DEFAULT_RELAY_BASE_URL = "https://n8n.blckbx.co.uk/webhook/image-proxy"
RELAY_URL_PARAM = "url"

# Hosts containing this marker already allow cross-origin reads
DEFAULT_TRUSTED_ORIGIN_MARKER = "pocketbase.blckbx.co.uk"

# Scheme applied to protocol-relative URLs ("//cdn.example.com/a.jpg")
DEFAULT_SECURE_SCHEME = "https"

# =============================================================================
# Worker Pool
# =============================================================================

DEFAULT_POOL_WIDTH = 4  # Concurrent logical workers per collection
DEFAULT_FETCH_TIMEOUT = 10.0  # seconds, per item (read + conversion)

# =============================================================================
# Format Gate
# =============================================================================

# Formats the PDF renderer cannot embed (animated, vector, next-gen raster)
DEFAULT_UNSUPPORTED_FORMATS: tuple[str, ...] = ("avif", "webp", "svg", "gif")

# Inline payloads containing this marker anywhere are rejected
DEFAULT_INLINE_REJECTION_MARKER = "webp"

INLINE_IMAGE_PREFIX = "data:image/"

# Formats recognized for diagnostic labelling
KNOWN_IMAGE_FORMATS: tuple[str, ...] = ("avif", "webp", "svg", "gif", "jpg", "jpeg", "png")

# =============================================================================
# Conversion
# =============================================================================

DEFAULT_TRANSCODE_QUALITY = 90  # JPEG quality for transcoded WebP/GIF/AVIF
DEFAULT_FALLBACK_MIME = "application/octet-stream"
DEFAULT_ACCEPT_HEADER = "image/*"
DEFAULT_USER_AGENT = "printprep/0.3 (+image preprocessing for PDF rendering)"

# =============================================================================
# Cache
# =============================================================================

DEFAULT_CACHE_MAX_ENTRIES = 256

# =============================================================================
# Document Shape
# =============================================================================

DEFAULT_COLLECTIONS: tuple[str, ...] = ("accommodations", "activities", "dining", "bars")
DEFAULT_ID_FIELD = "id"
DEFAULT_IMAGE_FIELD = "primaryImage"
DEFAULT_GALLERY_FIELD = "images"

# =============================================================================
# Logging
# =============================================================================

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = None
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = "7 days"
LOG_PREVIEW_CHARS = 60  # Locator prefix shown in log messages

# =============================================================================
# Paths and Filenames
# =============================================================================

CONFIG_FILENAME = "printprep.json"
DEFAULT_USER_CONFIG_DIR = "~/.printprep"
DEFAULT_JSON_INDENT = 2

# =============================================================================
# Environment Overrides
# =============================================================================

CONFIG_ENV_VAR = "PRINTPREP_CONFIG"

# Environment variable -> dot-separated config key
ENV_OVERRIDES: dict[str, str] = {
    "PRINTPREP_RELAY_BASE_URL": "relay.base_url",
    "PRINTPREP_TRUSTED_ORIGIN_MARKER": "relay.trusted_origin_marker",
    "PRINTPREP_SITE_ORIGIN": "relay.site_origin",
    "PRINTPREP_POOL_WIDTH": "pool.width",
    "PRINTPREP_FETCH_TIMEOUT": "pool.timeout",
    "PRINTPREP_UNSUPPORTED_FORMATS": "formats.unsupported",
    "PRINTPREP_LOG_DIR": "log.dir",
}

# =============================================================================
# MIME Type Mappings
# =============================================================================

MIME_TO_EXTENSION: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/avif": ".avif",
    "image/svg+xml": ".svg",
    "image/bmp": ".bmp",
    "image/x-icon": ".ico",
    "image/vnd.microsoft.icon": ".ico",
}

# Pillow format name -> MIME type (for sniffed payloads)
PIL_FORMAT_TO_MIME: dict[str, str] = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
    "AVIF": "image/avif",
    "BMP": "image/bmp",
    "ICO": "image/x-icon",
    "TIFF": "image/tiff",
}
