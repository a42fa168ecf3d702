# SPDX-License-Identifier: AGPL-3.0-or-later
"""Implementation of a command line for development purposes.  To start a
command, switch to the environment and run library module as a script::

   $ python -m favget --help

The favicon of a site is resolved (without the cache) by::

   $ python -m favget resolve example.org --output example.ico

The following commands can be used for maintenance and introspection of the
favicon cache::

   $ python -m favget cache state
   $ python -m favget cache maintenance

"""

import pathlib

import typer

from favget import init_logging
from favget import cache
from favget.config import FavgetConfig, load_config
from favget.engine import ResolutionEngine
from favget.exceptions import Exhausted, InvalidURL
from favget.network import Fetcher

app = typer.Typer()
app.add_typer(cache.app, name="cache", help="Commands related to the cache of the favicons.")

CFG: FavgetConfig = None  # type: ignore


@app.callback()
def main(debug: bool = False):
    """favget, resolve the favicons of sites"""
    global CFG  # pylint: disable=global-statement
    init_logging(debug)
    CFG = load_config()
    default_icon = CFG.server.default_icon_path
    default_fingerprint = cache.fingerprint(default_icon.read_bytes()) if default_icon.is_file() else ""
    cache.init(CFG.cache, CFG.server.secret_key, default_fingerprint)


@app.command()
def resolve(url: str, output: pathlib.Path = typer.Option(None, help="write the favicon to this file")):
    """resolve the favicon of URL (the cache is not used)"""
    with Fetcher(CFG.fetch) as fetcher:
        engine = ResolutionEngine(CFG.resolver, fetcher)
        try:
            icon = engine.resolve(url)
        except InvalidURL as exc:
            print(f"ERROR: {exc}")
            raise typer.Exit(code=2) from exc
        except Exhausted as exc:
            print(exc)
            raise typer.Exit(code=1) from exc

    print(f"source: {icon.source.value}")
    print(f"url: {icon.url}")
    print(f"bytes: {len(icon.data)}")
    print(f"time: {engine.last_time_spend:.3f} sec")
    print(f"memory: {engine.last_memory_usage}MB")
    if output:
        output.write_bytes(icon.data)
        print(f"written to: {output}")


if __name__ == "__main__":
    app()
