# SPDX-License-Identifier: AGPL-3.0-or-later
# pylint: disable=missing-module-docstring,disable=missing-class-docstring,invalid-name

import os
import pathlib
import unittest

import httpx

from favget.network import Fetcher, FetchConfig

os.environ.pop('FAVGET_SECRET', None)

# a 1x1 PNG and a 1x1 GIF
PNG_DATA = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)
GIF_DATA = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04\x01\x00\x00\x00\x00"
    b",\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)
# a 16x16 32bpp icon (BMP data) and an icon with PNG data
ICO_DATA = (
    b"\x00\x00\x01\x00\x01\x00\x10\x10\x00\x00\x01\x00\x20\x00\x68\x04\x00\x00\x16\x00\x00\x00"
    b"\x28\x00\x00\x00\x10\x00\x00\x00\x20\x00\x00\x00\x01\x00\x20\x00" + b"\x00" * 64
)
ICO_PNG_DATA = (
    b"\x00\x00\x01\x00\x01\x00\x01\x01\x00\x00\x01\x00\x20\x00"
    + len(PNG_DATA).to_bytes(4, "little")
    + b"\x16\x00\x00\x00"
    + PNG_DATA
)
HTML_DATA = b"<!DOCTYPE html><html><head><title>test</title></head><body>hello</body></html>"


def url_key(url) -> str:
    """Canonical form of a URL, an empty path is the root path ('http://a.com' and
    'http://a.com/' are the same URL)."""
    url = httpx.URL(url)
    path = url.raw_path.decode("ascii") or "/"
    return f"{url.scheme}://{url.netloc.decode('ascii')}{path}"


class MockWeb:
    """Handler of a :py:obj:`httpx.MockTransport`, the responses are looked up
    by the URL of the request, unknown URLs are answered by a HTTP 404.  All
    requests are recorded in :py:obj:`requests`."""

    def __init__(self, routes=None):
        self.routes = {}
        self.requests: list[httpx.Request] = []
        for url, response in (routes or {}).items():
            self.add(url, response)

    def add(self, url, response):
        """``response`` is a :py:obj:`httpx.Response`, bytes (status 200) or a
        callable which receives the request."""
        self.routes[url_key(url)] = response

    def redirect(self, url, location, status=302):
        self.add(url, httpx.Response(status, headers={"Location": location}))

    @property
    def urls(self) -> list[str]:
        return [url_key(r.url) for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get(url_key(request.url))
        if response is None:
            return httpx.Response(404, content=b"not found")
        if callable(response):
            return response(request)
        if isinstance(response, bytes):
            return httpx.Response(200, content=response)
        return response

    def fetcher(self, cfg=None) -> Fetcher:
        return Fetcher(cfg or FetchConfig(), transport=httpx.MockTransport(self))


class FavgetTestCase(unittest.TestCase):
    """Base test case of the favget tests."""

    SETTINGS_FOLDER = pathlib.Path(__file__).parent / "unit" / "settings"
    TEST_SETTINGS = "test_favget.toml"

    def setattr4test(self, obj, attr, value):
        """setattr(obj, attr, value) but reset to the previous value in the
        cleanup."""
        previous_value = getattr(obj, attr)

        def cleanup_patch():
            setattr(obj, attr, previous_value)

        self.addCleanup(cleanup_patch)
        setattr(obj, attr, value)

    def mock_web(self, routes=None) -> tuple[MockWeb, Fetcher]:
        web = MockWeb(routes)
        fetcher = web.fetcher()
        self.addCleanup(fetcher.close)
        return web, fetcher
