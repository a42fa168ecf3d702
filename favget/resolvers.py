# SPDX-License-Identifier: AGPL-3.0-or-later
"""Implementations of the favicon *resolvers* (aka strategies) of the
:py:obj:`favget.engine.ResolutionEngine`.  A *resolver* is a callable object
that receives the :py:obj:`ResolutionState` and returns a
:py:obj:`StrategyOutcome`: the :py:obj:`IconCandidate` (if the resolver found a
favicon) and the state which is passed to the next resolver.

Available resolvers (the order in the :py:obj:`ResolverConfig.strategies` is the
order of the resolution chain):

``file_map``:
  :py:obj:`FileMapResolver`

``html_link``:
  :py:obj:`HtmlLinkResolver`

``root_icon``:
  :py:obj:`RootIconResolver`

``redirect_root_icon``:
  :py:obj:`RedirectRootIconResolver`

``external_api``:
  :py:obj:`ExternalApiResolver`

"""

from __future__ import annotations

__all__ = [
    "IconSource",
    "IconCandidate",
    "ResolutionState",
    "StrategyOutcome",
    "FileMapRule",
    "ResolverConfig",
    "FaviconResolver",
    "FileMapResolver",
    "HtmlLinkResolver",
    "RootIconResolver",
    "RedirectRootIconResolver",
    "ExternalApiResolver",
    "RESOLVERS",
    "build_chain",
]

import abc
import enum
import pathlib
import re
import urllib.parse

import msgspec

from favget import logger
from favget.exceptions import ConfigurationError, InvalidURL, TransportFailure
from favget.links import extract_favicon_href, MAX_HTML_LENGTH
from favget.network import Fetcher
from favget.urls import OriginRequest, normalize, resolve_relative

logger = logger.getChild('resolvers')

DEFAULT_EXTERNAL_API_URL = (
    "https://t3.gstatic.cn/faviconV2?client=SOCIAL&type=FAVICON&fallback_opts=TYPE,SIZE,URL&size=128&url={url}"
)


class IconSource(str, enum.Enum):
    """Where the favicon has been found."""

    FILE_MAP = "file_map"
    HTML_LINK = "html_link"
    ROOT_ICON = "root_icon"
    REDIRECT_ROOT_ICON = "redirect_root_icon"
    EXTERNAL_API = "external_api"
    PLACEHOLDER = "placeholder"
    """Not a resolver, the configured default icon."""


class IconCandidate(msgspec.Struct, frozen=True, kw_only=True):
    """The favicon found by a resolver."""

    source: IconSource
    data: bytes
    url: str | None = None
    """Remote URL or local path the data has been read from."""


class ResolutionState(msgspec.Struct, frozen=True, kw_only=True):
    """Values passed from one resolver to the next one."""

    request: OriginRequest

    host_root: str
    """The current host root, initially the host root of the request."""

    redirect_url: str | None = None
    """Effective URL of the origin page if the request of the page has been
    redirected to another host root."""


class StrategyOutcome(msgspec.Struct, frozen=True, kw_only=True):
    state: ResolutionState
    candidate: IconCandidate | None = None


class FileMapRule(msgspec.Struct, kw_only=True):
    """A rule of the file map."""

    pattern: str
    """Regular expression, searched in the host root (``re.search``)."""

    target: str
    """Remote URL (``http://`` or ``https://``) or path of a local file."""

    @property
    def is_remote(self) -> bool:
        return self.target.lower().startswith(("http://", "https://"))


class ResolverConfig(msgspec.Struct, kw_only=True):  # pylint: disable=too-few-public-methods
    """Configuration of the resolution chain."""

    strategies: list[str] = msgspec.field(
        default_factory=lambda: ["file_map", "html_link", "root_icon", "redirect_root_icon", "external_api"]
    )
    """Names of the resolvers (see :py:obj:`RESOLVERS`) in the order they are
    tried, the first resolver that finds a favicon wins."""

    file_map: list[FileMapRule] = msgspec.field(default_factory=list)
    """Rules of the :py:obj:`FileMapResolver`, in the order they are tried."""

    external_api_url: str = DEFAULT_EXTERNAL_API_URL
    """URL of the favicon-by-domain service used by the
    :py:obj:`ExternalApiResolver`, ``{url}`` is replaced by the URL encoded host
    root."""

    max_html_length: int = MAX_HTML_LENGTH
    """The origin page is truncated to this number of characters before the
    ``<link>`` tag is searched."""


class FaviconResolver(abc.ABC):
    """Abstract base class of the resolvers."""

    name: str
    source: IconSource

    def __init__(self, cfg: ResolverConfig, fetcher: Fetcher):
        self.cfg = cfg
        self.fetcher = fetcher

    @abc.abstractmethod
    def __call__(self, state: ResolutionState) -> StrategyOutcome:
        """Try to find the favicon.  A failure of the resolver is either a
        :py:obj:`StrategyOutcome` without candidate or one of the exceptions
        :py:obj:`TransportFailure`, :py:obj:`InvalidURL`."""

    def fetch_icon(self, url: str) -> IconCandidate:
        """Fetch the image from ``url``, raises :py:obj:`TransportFailure` or
        :py:obj:`NotAnImage`."""
        result = self.fetcher.fetch(url, verify_image=True).raise_for_failure()
        return IconCandidate(source=self.source, data=result.body, url=result.effective_url)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"


class FileMapResolver(FaviconResolver):
    """Favicons from a static map, the first rule whose pattern matches the
    host root and whose target can be read wins.  If the target of a matching
    rule can't be read (local file) or fetched (remote URL), the next matching
    rule is tried."""

    name = "file_map"
    source = IconSource.FILE_MAP

    def __init__(self, cfg: ResolverConfig, fetcher: Fetcher):
        super().__init__(cfg, fetcher)
        self.rules: list[tuple[re.Pattern[str], FileMapRule]] = []
        for rule in cfg.file_map:
            try:
                self.rules.append((re.compile(rule.pattern), rule))
            except re.error as exc:
                raise ConfigurationError(f"invalid pattern {rule.pattern!r} in file map: {exc}") from exc

    def __call__(self, state: ResolutionState) -> StrategyOutcome:
        for regexp, rule in self.rules:
            if not regexp.search(state.host_root):
                continue
            try:
                candidate = self.load(rule)
            except (OSError, TransportFailure) as exc:
                logger.warning("file map rule %r (%s) failed: %s", rule.pattern, rule.target, exc)
                continue
            logger.debug("favicon of %s from file map: %s", state.host_root, rule.target)
            return StrategyOutcome(state=state, candidate=candidate)
        return StrategyOutcome(state=state)

    def load(self, rule: FileMapRule) -> IconCandidate:
        if rule.is_remote:
            return self.fetch_icon(rule.target)
        data = pathlib.Path(rule.target).read_bytes()
        if not data:
            raise OSError(f"empty file {rule.target}")
        return IconCandidate(source=self.source, data=data, url=rule.target)


class HtmlLinkResolver(FaviconResolver):
    """Fetch the origin page and follow the first favicon ``<link>`` in the
    HTML.  The effective URL of the origin page is passed to the
    :py:obj:`RedirectRootIconResolver` when the request has been redirected
    to another host root."""

    name = "html_link"
    source = IconSource.HTML_LINK

    def __call__(self, state: ResolutionState) -> StrategyOutcome:
        page = self.fetcher.fetch(state.request.url)
        if page.redirected:
            try:
                if normalize(page.effective_url) != state.host_root:
                    state = msgspec.structs.replace(state, redirect_url=page.effective_url)
            except InvalidURL:
                logger.debug("ignore redirect of %s to %s", page.url, page.effective_url)

        if not page.ok:
            return StrategyOutcome(state=state)

        href = extract_favicon_href(page.body, max_length=self.cfg.max_html_length)
        if href is None:
            logger.debug("no favicon link in %s", page.effective_url)
            return StrategyOutcome(state=state)

        try:
            candidate = self.fetch_icon(resolve_relative(href, page.effective_url))
        except (InvalidURL, TransportFailure) as exc:
            logger.debug("favicon link %r in %s: %s", href, page.effective_url, exc)
            return StrategyOutcome(state=state)
        return StrategyOutcome(state=state, candidate=candidate)


class RootIconResolver(FaviconResolver):
    """The favicon from ``{host_root}/favicon.ico``"""

    name = "root_icon"
    source = IconSource.ROOT_ICON

    def __call__(self, state: ResolutionState) -> StrategyOutcome:
        return StrategyOutcome(state=state, candidate=self.fetch_icon(f"{state.host_root}/favicon.ico"))


class RedirectRootIconResolver(FaviconResolver):
    """The favicon from ``/favicon.ico`` of the host root the origin page has
    been redirected to.  The new host root is the host root for all following
    resolvers."""

    name = "redirect_root_icon"
    source = IconSource.REDIRECT_ROOT_ICON

    def __call__(self, state: ResolutionState) -> StrategyOutcome:
        if state.redirect_url is None:
            return StrategyOutcome(state=state)

        host_root = normalize(state.redirect_url)
        state = msgspec.structs.replace(state, host_root=host_root, redirect_url=None)
        try:
            candidate = self.fetch_icon(f"{host_root}/favicon.ico")
        except TransportFailure as exc:
            logger.debug("redirected root %s: %s", host_root, exc)
            return StrategyOutcome(state=state)
        return StrategyOutcome(state=state, candidate=candidate)


class ExternalApiResolver(FaviconResolver):
    """The favicon from a third-party favicon-by-domain service
    (:py:obj:`ResolverConfig.external_api_url`)."""

    name = "external_api"
    source = IconSource.EXTERNAL_API

    def __call__(self, state: ResolutionState) -> StrategyOutcome:
        url = self.cfg.external_api_url.format(url=urllib.parse.quote_plus(state.host_root))
        return StrategyOutcome(state=state, candidate=self.fetch_icon(url))


RESOLVERS: dict[str, type[FaviconResolver]] = {
    cls.name: cls
    for cls in (FileMapResolver, HtmlLinkResolver, RootIconResolver, RedirectRootIconResolver, ExternalApiResolver)
}


def build_chain(cfg: ResolverConfig, fetcher: Fetcher) -> list[FaviconResolver]:
    """Returns the resolvers of :py:obj:`ResolverConfig.strategies` in the
    configured order."""
    chain = []
    for name in cfg.strategies:
        cls = RESOLVERS.get(name)
        if cls is None:
            raise ConfigurationError(f"favicon resolver {name!r} is unknown")
        chain.append(cls(cfg, fetcher))
    return chain
