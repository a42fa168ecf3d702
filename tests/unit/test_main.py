# SPDX-License-Identifier: AGPL-3.0-or-later
# pylint: disable=missing-module-docstring,disable=missing-class-docstring,invalid-name

import pathlib
import tempfile

from mock import patch
from typer.testing import CliRunner

from favget import __main__ as cli
from favget import cache
from tests import FavgetTestCase, MockWeb, PNG_DATA


class TestCommandLine(FavgetTestCase):

    def setUp(self):
        self.runner = CliRunner()
        self.web = MockWeb({"http://a.com/favicon.ico": PNG_DATA})
        patcher = patch.object(cli, "Fetcher", side_effect=lambda cfg: self.web.fetcher(cfg))
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_resolve(self):
        with tempfile.TemporaryDirectory() as tmp:
            output = pathlib.Path(tmp) / "a.ico"
            result = self.runner.invoke(cli.app, ["resolve", "a.com", "--output", str(output)])
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertEqual(output.read_bytes(), PNG_DATA)
        self.assertIn("source: root_icon", result.output)
        self.assertIn("url: http://a.com/favicon.ico", result.output)
        self.assertIn(f"bytes: {len(PNG_DATA)}", result.output)
        self.assertIn("memory: ", result.output)

    def test_resolve_exhausted(self):
        result = self.runner.invoke(cli.app, ["resolve", "b.com"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("no favicon found for b.com", result.output)

    def test_resolve_invalid_url(self):
        result = self.runner.invoke(cli.app, ["resolve", "ftp://a.com"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("ERROR", result.output)
        self.assertEqual(self.web.requests, [])

    def test_cache_state(self):
        result = self.runner.invoke(cli.app, ["cache", "state"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIsInstance(cache.CACHE.storage, cache.FaviconStorageMEM)
        self.assertIn("number of favicons in cache: 0", result.output)
