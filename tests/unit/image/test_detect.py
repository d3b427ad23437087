"""Tests for byte-signature format detection and the size gate."""

from __future__ import annotations

import pytest

from guestlens.errors import GuestlensImageSizeError
from guestlens.image.detect import HEIF_BRANDS, extension_matches, sniff_format
from guestlens.image.validate import check_size
from guestlens.models import ImageFormat


class TestSniffFormat:
    def test_jpeg(self, make_image):
        assert sniff_format(make_image("JPEG")) is ImageFormat.JPEG

    def test_png(self, make_image):
        assert sniff_format(make_image("PNG")) is ImageFormat.PNG

    def test_gif(self, make_image):
        assert sniff_format(make_image("GIF", mode="P", color=3)) is ImageFormat.GIF

    def test_webp_header(self):
        data = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 16
        assert sniff_format(data) is ImageFormat.WEBP

    @pytest.mark.parametrize("brand", sorted(HEIF_BRANDS))
    def test_heif_brands(self, brand):
        data = b"\x00\x00\x00\x18ftyp" + brand + b"\x00" * 16
        assert sniff_format(data) is ImageFormat.HEIC

    def test_unknown_ftyp_brand_is_not_heic(self):
        data = b"\x00\x00\x00\x18ftypisom" + b"\x00" * 16
        assert sniff_format(data) is None

    def test_riff_without_webp_is_unknown(self):
        assert sniff_format(b"RIFF\x00\x00\x00\x00WAVEfmt ") is None

    def test_text_is_unknown(self):
        assert sniff_format(b"hello, this is not an image") is None

    def test_empty_is_unknown(self):
        assert sniff_format(b"") is None

    def test_name_is_ignored(self, make_image):
        # Only the bytes matter; a PNG stays PNG whatever it is called.
        assert sniff_format(make_image("PNG")[:12]) is ImageFormat.PNG


class TestExtensionMatches:
    @pytest.mark.parametrize("suffix", [".jpg", ".jpeg", ".JPG", ".jfif", ".jpe"])
    def test_jpeg_aliases(self, suffix):
        assert extension_matches(suffix, ImageFormat.JPEG)

    @pytest.mark.parametrize("suffix", [".heic", ".heif", ".HEIC", ".hif"])
    def test_heic_aliases(self, suffix):
        assert extension_matches(suffix, ImageFormat.HEIC)

    def test_mismatch(self):
        assert not extension_matches(".heic", ImageFormat.JPEG)
        assert not extension_matches("", ImageFormat.PNG)


class TestCheckSize:
    def test_within_limit(self):
        check_size("a.jpg", 100, 100)

    def test_over_limit_raises_with_context(self):
        with pytest.raises(GuestlensImageSizeError) as exc_info:
            check_size("big.jpg", 21 * 1024 * 1024, 20 * 1024 * 1024)
        err = exc_info.value
        assert err.context["filename"] == "big.jpg"
        assert err.context["max_bytes"] == 20 * 1024 * 1024
        assert err.context["size_bytes"] == 21 * 1024 * 1024

    def test_user_message_names_file_and_limit(self):
        with pytest.raises(GuestlensImageSizeError) as exc_info:
            check_size("big.jpg", 21 * 1024 * 1024, 20 * 1024 * 1024)
        assert exc_info.value.user_message == "big.jpg: This photo is larger than the 20 MB limit."
