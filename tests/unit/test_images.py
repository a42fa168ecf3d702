# SPDX-License-Identifier: AGPL-3.0-or-later
# pylint: disable=missing-module-docstring,disable=missing-class-docstring,invalid-name

from parameterized import parameterized

from favget import images
from tests import FavgetTestCase, PNG_DATA, GIF_DATA, ICO_DATA, ICO_PNG_DATA, HTML_DATA

JPEG_DATA = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x01\x00H\x00H\x00\x00" + b"\x00" * 64
WEBP_DATA = b"RIFF\x24\x00\x00\x00WEBPVP8 \x18\x00\x00\x00" + b"\x00" * 64
SVG_DATA = b'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 16 16"><circle cx="8" cy="8" r="8"/></svg>'


class TestSniffMime(FavgetTestCase):

    @parameterized.expand(
        [
            ("png", PNG_DATA, "image/png"),
            ("gif", GIF_DATA, "image/gif"),
            ("ico", ICO_DATA, "image/x-icon"),
            ("ico_png", ICO_PNG_DATA, "image/x-icon"),
            ("jpeg", JPEG_DATA, "image/jpeg"),
            ("webp", WEBP_DATA, "image/webp"),
            ("svg", SVG_DATA, "image/svg+xml"),
        ]
    )
    def test_image(self, _name: str, data: bytes, mime: str):
        self.assertEqual(images.sniff_mime(data), mime)
        self.assertTrue(images.is_image(data))

    def test_only_header_is_inspected(self):
        # the body is not decoded, a broken image with a valid header passes
        self.assertEqual(images.sniff_mime(PNG_DATA[:16] + b"\x00" * 64), "image/png")

    @parameterized.expand(
        [
            (b"",),
            (HTML_DATA,),
            (b'{"status": "error"}',),
            (b"plain text, no image",),
        ]
    )
    def test_not_an_image(self, data: bytes):
        self.assertIsNone(images.sniff_mime(data))
        self.assertFalse(images.is_image(data))
