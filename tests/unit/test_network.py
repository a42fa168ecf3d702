# SPDX-License-Identifier: AGPL-3.0-or-later
# pylint: disable=missing-module-docstring,disable=missing-class-docstring,invalid-name

from mock import patch
import httpx

from favget.exceptions import TransportFailure, NotAnImage
from favget.network import Fetcher, FetchConfig, FetchResult, NOT_AN_IMAGE
from tests import FavgetTestCase, MockWeb, PNG_DATA, HTML_DATA


class TestFetchConfig(FavgetTestCase):

    def test_defaults(self):
        cfg = FetchConfig()
        self.assertEqual(cfg.total_timeout, 5)
        self.assertEqual(cfg.connect_timeout, 2)
        self.assertEqual(cfg.max_redirects, 5)
        self.assertEqual(cfg.max_download_size, 512000)
        self.assertFalse(cfg.verify_tls)

    def test_invalid(self):
        with self.assertRaises(ValueError):
            FetchConfig(max_redirects=0)


class TestFetcherClient(FavgetTestCase):

    def test_tls_verification_disabled(self):
        # security trade-off: the targets are arbitrary third-party sites
        with patch('favget.network.httpx.Client') as client_cls:
            Fetcher(FetchConfig())
        kwargs = client_cls.call_args.kwargs
        self.assertIs(kwargs["verify"], False)
        self.assertIs(kwargs["follow_redirects"], True)
        self.assertEqual(kwargs["max_redirects"], 5)
        self.assertEqual(kwargs["timeout"], httpx.Timeout(5, connect=2))

    def test_tls_verification_enabled(self):
        with patch('favget.network.httpx.Client') as client_cls:
            Fetcher(FetchConfig(verify_tls=True))
        self.assertIs(client_cls.call_args.kwargs["verify"], True)


class TestFetch(FavgetTestCase):

    def test_request_headers(self):
        web, fetcher = self.mock_web({"http://a.com/": HTML_DATA})
        fetcher.fetch("http://a.com/")
        headers = web.requests[0].headers
        self.assertEqual(headers["Range"], "bytes=0-512000")
        self.assertEqual(headers["Connection"], "close")
        self.assertIn("Mozilla/5.0", headers["User-Agent"])
        self.assertEqual(web.requests[0].method, "GET")

    def test_ok(self):
        _, fetcher = self.mock_web({"http://a.com/page": HTML_DATA})
        result = fetcher.fetch("http://a.com/page")
        self.assertTrue(result.ok)
        self.assertEqual(result.status, "OK")
        self.assertEqual(result.body, HTML_DATA)
        self.assertEqual(result.http_code, 200)
        self.assertEqual(result.effective_url, "http://a.com/page")
        self.assertFalse(result.redirected)
        self.assertIsNone(result.mime)

    def test_partial_content(self):
        _, fetcher = self.mock_web({"http://a.com/favicon.ico": httpx.Response(206, content=PNG_DATA)})
        result = fetcher.fetch("http://a.com/favicon.ico", verify_image=True)
        self.assertTrue(result.ok)
        self.assertEqual(result.http_code, 206)
        self.assertEqual(result.mime, "image/png")

    def test_http_error(self):
        _, fetcher = self.mock_web()
        result = fetcher.fetch("http://a.com/missing")
        self.assertFalse(result.ok)
        self.assertEqual(result.status, "FAIL")
        self.assertEqual(result.body, b"")
        self.assertEqual(result.http_code, 404)
        with self.assertRaises(TransportFailure):
            result.raise_for_failure()

    def test_server_error(self):
        _, fetcher = self.mock_web({"http://a.com/": httpx.Response(500, content=b"error")})
        result = fetcher.fetch("http://a.com/")
        self.assertFalse(result.ok)
        self.assertEqual(result.body, b"")
        self.assertEqual(result.http_code, 500)

    def test_transport_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        _, fetcher = self.mock_web({"http://a.com/": refuse})
        result = fetcher.fetch("http://a.com/")
        self.assertFalse(result.ok)
        self.assertEqual(result.body, b"")
        self.assertEqual(result.http_code, 0)
        self.assertEqual(result.effective_url, "http://a.com/")
        self.assertIn("ConnectError", result.reason)

    def test_timeout(self):
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        _, fetcher = self.mock_web({"http://a.com/": timeout})
        result = fetcher.fetch("http://a.com/")
        self.assertFalse(result.ok)
        with self.assertRaises(TransportFailure):
            result.raise_for_failure()

    def test_invalid_url(self):
        _, fetcher = self.mock_web()
        result = fetcher.fetch("http://")
        self.assertFalse(result.ok)

    def test_idna_error(self):
        # the transport can't encode a host with an empty label
        def idna_error(request):
            raise UnicodeError("encoding with 'idna' codec failed (UnicodeError: label empty or too long)")

        _, fetcher = self.mock_web({"http://a..b/x": idna_error})
        result = fetcher.fetch("http://a..b/x", verify_image=True)
        self.assertFalse(result.ok)
        self.assertIn("UnicodeError", result.reason)
        with self.assertRaises(TransportFailure):
            result.raise_for_failure()

    def test_redirect(self):
        web, fetcher = self.mock_web({"https://www.a.com/home": HTML_DATA})
        web.redirect("http://a.com/", "https://www.a.com/home")
        result = fetcher.fetch("http://a.com/")
        self.assertTrue(result.ok)
        self.assertEqual(result.effective_url, "https://www.a.com/home")
        self.assertTrue(result.redirected)
        self.assertEqual(result.redirects, 1)
        self.assertEqual(web.urls, ["http://a.com/", "https://www.a.com/home"])

    def test_redirect_limit(self):
        web = MockWeb()
        for i in range(10):
            web.redirect(f"http://a.com/{i}", f"http://a.com/{i + 1}")
        fetcher = web.fetcher(FetchConfig(max_redirects=3))
        self.addCleanup(fetcher.close)

        result = fetcher.fetch("http://a.com/0")
        self.assertFalse(result.ok)
        self.assertIn("TooManyRedirects", result.reason)
        self.assertEqual(len(web.requests), 4)

    def test_verify_image(self):
        _, fetcher = self.mock_web({"http://a.com/favicon.ico": PNG_DATA, "http://a.com/": HTML_DATA})

        result = fetcher.fetch("http://a.com/favicon.ico", verify_image=True)
        self.assertTrue(result.ok)
        self.assertEqual(result.body, PNG_DATA)
        self.assertEqual(result.mime, "image/png")

        result = fetcher.fetch("http://a.com/", verify_image=True)
        self.assertFalse(result.ok)
        self.assertEqual(result.body, b"")
        self.assertEqual(result.reason, NOT_AN_IMAGE)
        with self.assertRaises(NotAnImage):
            result.raise_for_failure()

    def test_oversized_body_is_tolerated(self):
        body = PNG_DATA + b"\x00" * 200
        web = MockWeb({"http://a.com/big.png": body})
        fetcher = web.fetcher(FetchConfig(max_download_size=64))
        self.addCleanup(fetcher.close)

        result = fetcher.fetch("http://a.com/big.png", verify_image=True)
        self.assertTrue(result.ok)
        self.assertEqual(result.body, body)
        self.assertEqual(web.requests[0].headers["Range"], "bytes=0-64")

    def test_context_manager(self):
        web = MockWeb({"http://a.com/": HTML_DATA})
        with web.fetcher() as fetcher:
            self.assertTrue(fetcher.fetch("http://a.com/").ok)
        self.assertTrue(fetcher.client.is_closed)


class TestFetchResult(FavgetTestCase):

    def test_raise_for_failure_ok(self):
        result = FetchResult(status="OK", url="http://a.com/", effective_url="http://a.com/", body=b"x")
        self.assertIs(result.raise_for_failure(), result)
