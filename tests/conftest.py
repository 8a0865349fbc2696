"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from printprep.config import ConfigManager, PrintprepConfig
from printprep.constants import ENV_OVERRIDES
from printprep.exceptions import FetchFailureError
from printprep.fetch import FetchedImage
from printprep.proxy import build_relay_url

RELAY = "https://relay.test/proxy"
TRUSTED = "assets.trusted.test"


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and config files out of tests."""
    for env_var in [*ENV_OVERRIDES, "PRINTPREP_CONFIG"]:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setattr(ConfigManager, "DEFAULT_USER_CONFIG_DIR", tmp_path / "home")
    monkeypatch.chdir(tmp_path)


# =============================================================================
# Image Fixtures
# =============================================================================


def make_image_bytes(
    fmt: str = "PNG",
    size: tuple[int, int] = (8, 6),
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 30, 30),
) -> bytes:
    """Render a tiny solid-color image in the given Pillow format."""
    img = Image.new(mode, size, color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes() -> Callable[..., bytes]:
    """Factory for encoded test images."""
    return make_image_bytes


@pytest.fixture
def png_image() -> FetchedImage:
    return FetchedImage(make_image_bytes("PNG"), "image/png", "https://img.test/a.png")


# =============================================================================
# Transport Fixtures
# =============================================================================


class StubTransport:
    """In-memory ``ImageTransport``.

    Unknown URLs answer HTTP 404. A response may also be an exception
    instance, which is raised instead.
    """

    def __init__(
        self,
        responses: dict[str, FetchedImage | Exception] | None = None,
        delay: float = 0.0,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.responses = dict(responses or {})
        self.delay = delay
        self.delays = dict(delays or {})
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url: str) -> FetchedImage:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(url, self.delay)
            if delay:
                await asyncio.sleep(delay)
            response = self.responses.get(url)
            if response is None:
                raise FetchFailureError("HTTP 404", locator=url, status_code=404)
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            self.in_flight -= 1


@pytest.fixture
def stub_transport() -> type[StubTransport]:
    """The stub transport class (instantiate with per-test responses)."""
    return StubTransport


@pytest.fixture
def relayed() -> Callable[[str], str]:
    """Map an external URL to the effective URL under the test relay."""
    return lambda url: build_relay_url(url, RELAY)


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> PrintprepConfig:
    """Configuration with a test relay, trusted marker and short timeout."""
    return PrintprepConfig.model_validate(
        {
            "relay": {"base_url": RELAY, "trusted_origin_marker": TRUSTED},
            "pool": {"width": 4, "timeout": 1.0},
        }
    )


@pytest.fixture
def sample_config_dict() -> dict:
    """Return sample configuration dictionary."""
    return {
        "relay": {"base_url": "https://relay.example.com/img"},
        "pool": {"width": 2, "timeout": 3.5},
        "formats": {"unsupported": ["webp", "svg"]},
    }
