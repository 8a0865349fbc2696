"""Unit tests for the format gate."""

from __future__ import annotations

import pytest

from printprep.formats import FormatGate, format_of, is_embeddable, strip_query_and_fragment


class TestIsEmbeddable:
    """Tests for the default gate."""

    @pytest.mark.parametrize(
        "locator",
        [
            "https://cdn.example.com/a.webp",
            "https://cdn.example.com/a.WEBP",
            "https://cdn.example.com/a.gif?w=100",
            "https://cdn.example.com/a.svg#icon",
            "/img/hero.avif",
            "//cdn.example.com/anim.gif",
        ],
    )
    def test_unsupported_extensions_rejected(self, locator: str) -> None:
        assert is_embeddable(locator) is False

    @pytest.mark.parametrize(
        "locator",
        [
            "https://cdn.example.com/a.jpg",
            "https://cdn.example.com/a.jpeg?x=1",
            "/img/logo.png",
            "https://cdn.example.com/image",
            "https://cdn.example.com/photo?id=7",
        ],
    )
    def test_supported_or_unknown_accepted(self, locator: str) -> None:
        assert is_embeddable(locator) is True

    def test_empty_is_embeddable(self) -> None:
        assert is_embeddable("") is True

    def test_extension_only_counts_at_end_of_path(self) -> None:
        assert is_embeddable("https://cdn.example.com/webp/a.png") is True
        assert is_embeddable("https://cdn.example.com/a.webp.png") is True

    def test_inline_webp_rejected(self) -> None:
        assert is_embeddable("data:image/webp;base64,UklGRg==") is False
        assert is_embeddable("DATA:IMAGE/WEBP;base64,UklGRg==") is False

    def test_inline_marker_anywhere_rejected(self) -> None:
        """The rejection is conservative: the marker anywhere in the payload."""
        assert is_embeddable("data:image/png;base64,AAAAwebpAAAA") is False

    def test_inline_png_accepted(self) -> None:
        assert is_embeddable("data:image/png;base64,iVBORw0KGgo=") is True


class TestFormatGate:
    """Tests for configurable gates."""

    def test_custom_set(self) -> None:
        gate = FormatGate(unsupported=[".PNG", " bmp "])
        assert gate.is_embeddable("/a.png") is False
        assert gate.is_embeddable("/a.bmp") is False
        assert gate.is_embeddable("/a.webp") is True

    def test_empty_inline_marker_accepts_all_inline(self) -> None:
        gate = FormatGate(inline_marker="")
        assert gate.is_embeddable("data:image/webp;base64,AAAA") is True

    def test_is_unsupported_label(self) -> None:
        gate = FormatGate()
        assert gate.is_unsupported_label("WEBP") is True
        assert gate.is_unsupported_label("jpeg") is False
        assert gate.is_unsupported_label(None) is False


class TestFormatOf:
    """Tests for diagnostic format labels."""

    def test_url_labels(self) -> None:
        assert format_of("https://cdn.example.com/a.webp?x=1") == "WEBP"
        assert format_of("/img/a.jpeg") == "JPEG"
        assert format_of("https://cdn.example.com/a") is None

    def test_inline_labels(self) -> None:
        assert format_of("data:image/png;base64,AAAA") == "PNG"
        assert format_of("data:image/webp;base64,AAAA") == "WEBP"
        assert format_of("data:image/x-unknown;base64,AAAA") is None

    def test_empty(self) -> None:
        assert format_of("") is None


def test_strip_query_and_fragment() -> None:
    assert strip_query_and_fragment("https://a.test/x.png?v=1#top") == "https://a.test/x.png"
    assert strip_query_and_fragment("/x.png#a?b") == "/x.png"
