#!/usr/bin/env python
# SPDX-License-Identifier: AGPL-3.0-or-later
"""WebApp: REST API of the favget service

::

    /?url=<...>[&refresh=true]

``url``:
  URL or domain name of the site

``refresh``:
  ``true`` bypasses the favicon cache, the favicon is resolved and the cache is
  updated.

The response is the favicon (or the placeholder icon if no favicon was found),
the header ``X-Cache`` is ``HIT`` if the favicon was taken from the cache
(``X-Cache-Expire`` is the number of seconds until the entry expires),
otherwise ``MISS``.
"""

from __future__ import annotations

import re
import time
import urllib.parse

import flask

from favget import logger, init_logging
from favget import cache
from favget.config import FavgetConfig, load_config
from favget.engine import ResolutionEngine
from favget.exceptions import FavgetException, InvalidURL
from favget.network import Fetcher
from favget.urls import normalize
from favget.webutils import response_headers

logger = logger.getChild('webapp')

RE_DOMAIN = re.compile(r"^[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

app = flask.Flask(__name__)

CFG: FavgetConfig = None  # type: ignore
ENGINE: ResolutionEngine = None  # type: ignore
DEFAULT_ICON: bytes = b""
DEFAULT_FINGERPRINT: str = ""


def init(cfg: FavgetConfig, fetcher: Fetcher | None = None, storage: cache.FaviconStorage | None = None):
    """Initialization of the WEB application, raises
    :py:obj:`favget.exceptions.ConfigurationError` if the config is not
    usable."""

    global CFG, ENGINE, DEFAULT_ICON, DEFAULT_FINGERPRINT  # pylint: disable=global-statement

    cfg.validate()
    CFG = cfg
    DEFAULT_ICON = cfg.server.default_icon_path.read_bytes()
    DEFAULT_FINGERPRINT = cache.fingerprint(DEFAULT_ICON)

    cache.init(cfg.cache, cfg.server.secret_key, DEFAULT_FINGERPRINT)
    if storage is not None:
        cache.CACHE.storage = storage

    ENGINE = ResolutionEngine(cfg.resolver, fetcher or Fetcher(cfg.fetch))
    logger.debug("favget initialized, cache: %s (expire: %ss)", cfg.cache.cache_dir, cfg.cache.expire)


def is_url_or_domain(url: str) -> bool:
    """``url`` is an absolute URL (``scheme://host/..``) or a domain name
    (``example.org``)."""
    if RE_DOMAIN.match(url):
        return True
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


def _error(message: str, status: int):
    resp = flask.jsonify({"error": message})
    resp.status_code = status
    return resp


def _favicon_response(data: bytes, x_cache: str) -> flask.Response:
    resp = flask.Response(data, headers=response_headers(data))
    resp.headers["X-Cache"] = x_cache
    return resp


@app.route('/', methods=['GET'])
@app.route('/get.php', methods=['GET'])
def favicon():
    """Returns the favicon of the site given by the ``url`` argument."""

    url = flask.request.args.get('url', '').strip()
    if not url:
        return _error("the url parameter is required", 400)
    if not is_url_or_domain(url):
        return _error("invalid URL", 400)

    try:
        host_root = normalize(url)
    except InvalidURL as exc:
        logger.debug("can't normalize %r: %s", url, exc)
        return _error("can't normalize URL", 404)

    refresh = flask.request.args.get('refresh', '').lower() == 'true'
    expire = CFG.cache.expire

    try:
        if not refresh and expire > 0:
            data = cache.CACHE.get(host_root, DEFAULT_FINGERPRINT, expire)
            if data is not None:
                resp = _favicon_response(data, "HIT")
                expiry = cache.CACHE.expiry_timestamp(host_root, DEFAULT_FINGERPRINT, expire)
                resp.headers["X-Cache-Expire"] = str(expiry - int(time.time()))
                return resp

        icon = ENGINE.resolve_or_default(host_root, DEFAULT_ICON)
        if expire > 0:
            cache.CACHE.set(host_root, icon.data)

    except FavgetException as exc:
        logger.error("favicon of %s: %s", host_root, exc)
        return _error(f"request failed: {exc}", 500)

    return _favicon_response(icon.data, "MISS")


def run():
    """Entry point of the ``favget-run`` command."""
    cfg = load_config()
    init_logging(cfg.server.debug)
    init(cfg)
    app.run(
        host=cfg.server.bind_address,
        port=cfg.server.port,
        debug=cfg.server.debug,
        use_reloader=False,
        threaded=True,
    )


if __name__ == "__main__":
    run()
