# SPDX-License-Identifier: AGPL-3.0-or-later
"""The resolution engine runs the chain of resolvers (:py:obj:`favget.resolvers`)
strictly sequential, the first resolver that finds a favicon wins.

.. code:: python

   from favget.network import Fetcher, FetchConfig
   from favget.resolvers import ResolverConfig
   from favget.engine import ResolutionEngine

   with Fetcher(FetchConfig()) as fetcher:
       engine = ResolutionEngine(ResolverConfig(), fetcher)
       icon = engine.resolve("example.org")
       print(icon.source, len(icon.data))

Resolutions are not run in parallel, a caller (e.g. a WEB server) that serves
concurrent requests should run each resolution in a worker of its own.
"""

from __future__ import annotations

__all__ = ["ResolutionEngine"]

from timeit import default_timer

import psutil

from favget import logger
from favget.exceptions import Exhausted, InvalidURL, TransportFailure
from favget.network import Fetcher
from favget.resolvers import (
    FaviconResolver,
    IconCandidate,
    IconSource,
    ResolutionState,
    ResolverConfig,
    build_chain,
)
from favget.urls import parse_origin

logger = logger.getChild('engine')


class ResolutionEngine:
    """Runs the resolution chain.  The chain is built from the
    :py:obj:`ResolverConfig.strategies` or is given by the ``strategies``
    argument."""

    def __init__(self, cfg: ResolverConfig, fetcher: Fetcher, strategies: list[FaviconResolver] | None = None):
        self.cfg = cfg
        self.fetcher = fetcher
        if strategies is None:
            strategies = build_chain(cfg, fetcher)
        self.strategies = strategies
        self.last_time_spend: float = 0.0
        """Runtime (sec.) of the last resolution."""
        self.last_memory_usage: float = 0.0
        """Resident memory (MB) of the process after the last resolution."""

    def resolve(self, url: str) -> IconCandidate:
        """Returns the favicon of ``url``.  Raises :py:obj:`InvalidURL` if
        ``url`` has no usable host root and :py:obj:`Exhausted` if none of the
        resolvers found a favicon."""

        request = parse_origin(url)
        state = ResolutionState(request=request, host_root=request.host_root)

        start_time = default_timer()
        try:
            for strategy in self.strategies:
                try:
                    outcome = strategy(state)
                except (TransportFailure, InvalidURL) as exc:
                    logger.debug("%s: resolver %s failed: %s", request.host_root, strategy.name, exc)
                    continue

                state = outcome.state
                if outcome.candidate is not None:
                    logger.debug(
                        "%s: favicon by resolver %s from %s (%s bytes)",
                        request.host_root,
                        strategy.name,
                        outcome.candidate.url,
                        len(outcome.candidate.data),
                    )
                    return outcome.candidate
        finally:
            self.last_time_spend = default_timer() - start_time
            self.last_memory_usage = round(psutil.Process().memory_info().rss / (1024**2), 2)
            logger.debug(
                "%s: resolution took %.3f sec, memory usage %sMB",
                request.host_root,
                self.last_time_spend,
                self.last_memory_usage,
            )

        logger.info("no favicon found for %s", url)
        raise Exhausted(url)

    def resolve_or_default(self, url: str, default_icon: bytes) -> IconCandidate:
        """Like :py:obj:`resolve` but if no favicon is found, the
        ``default_icon`` (placeholder) is returned."""
        try:
            return self.resolve(url)
        except Exhausted:
            return IconCandidate(source=IconSource.PLACEHOLDER, data=default_icon)
