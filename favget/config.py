# SPDX-License-Identifier: AGPL-3.0-or-later
"""Configuration of favget.

The configuration is read from a TOML file, the name of the file is taken from
the environment ``FAVGET_SETTINGS_PATH``, if unset the defaults from
:origin:`favget/favget.toml` are used.  All settings are in the table
``[favget]``:

.. code:: toml

   [favget]
   cfg_schema = 1

   [favget.server]
   secret_key = "..."       # or environment FAVGET_SECRET

   [favget.cache]
   cache_dir = "/var/cache/favget"
   expire = 2592000

   [favget.fetch]
   total_timeout = 5

   [[favget.resolver.file_map]]
   pattern = '^https?://(www\\.)?example\\.org$'
   target = "/usr/share/favget/example.ico"

"""

from __future__ import annotations

import os
import pathlib

import msgspec

from favget import logger
from favget.cache import FaviconCacheConfig
from favget.exceptions import ConfigurationError
from favget.network import FetchConfig
from favget.resolvers import ResolverConfig

logger = logger.getChild('config')

CONFIG_SCHEMA: int = 1
"""Version of the configuration schema."""

TOML_CACHE_CFG: dict[str, "FavgetConfig"] = {}
"""Cache config objects by TOML's filename."""

DEFAULT_CFG_TOML_PATH = pathlib.Path(__file__).parent / "favget.toml"
DEFAULT_ICON_PATH = pathlib.Path(__file__).parent / "static" / "default_favicon.gif"

INSECURE_SECRET_KEY = "ultrasecretkey"


class ServerConfig(msgspec.Struct, kw_only=True):  # pylint: disable=too-few-public-methods
    """Configuration of the WEB application."""

    secret_key: str = INSECURE_SECRET_KEY
    """Key of the HMAC used for the names of the cache files, the environment
    ``FAVGET_SECRET`` overrides this setting."""

    default_icon: str = ""
    """Path of the placeholder icon, if empty the icon shipped with favget is
    used."""

    bind_address: str = "127.0.0.1"
    port: int = 8888
    debug: bool = False

    def __post_init__(self):
        self.secret_key = os.environ.get("FAVGET_SECRET", self.secret_key)

    @property
    def default_icon_path(self) -> pathlib.Path:
        return pathlib.Path(self.default_icon) if self.default_icon else DEFAULT_ICON_PATH


class FavgetConfig(msgspec.Struct, kw_only=True):  # pylint: disable=too-few-public-methods
    """The class aggregates the configurations of favget"""

    cfg_schema: int
    """Config's schema version.  The specification of the version of the schema
    is mandatory, currently only version :py:obj:`CONFIG_SCHEMA` is supported."""

    server: ServerConfig = msgspec.field(default_factory=ServerConfig)
    """Setup of the :py:obj:`ServerConfig`."""

    cache: FaviconCacheConfig = msgspec.field(default_factory=FaviconCacheConfig)
    """Setup of the :py:obj:`.cache.FaviconCacheConfig`."""

    fetch: FetchConfig = msgspec.field(default_factory=FetchConfig)
    """Setup of the :py:obj:`.network.FetchConfig`."""

    resolver: ResolverConfig = msgspec.field(default_factory=ResolverConfig)
    """Setup of the :py:obj:`.resolvers.ResolverConfig`."""

    @classmethod
    def from_toml_file(cls, cfg_file: pathlib.Path, use_cache: bool = False) -> "FavgetConfig":
        """Create a config object from a TOML file, the ``use_cache`` argument
        specifies whether a cache should be used.
        """

        cached = TOML_CACHE_CFG.get(str(cfg_file.resolve()))
        if use_cache and cached:
            return cached

        try:
            with cfg_file.open("rb") as f:
                data = f.read()
        except OSError as exc:
            raise ConfigurationError(f"can't read config: {exc.strerror}", str(cfg_file)) from exc

        try:
            cfg = msgspec.toml.decode(data, type=_FavgetConfig)
        except (msgspec.DecodeError, ValueError) as exc:
            raise ConfigurationError(str(exc), str(cfg_file)) from exc

        schema = cfg.favget.cfg_schema
        if schema != CONFIG_SCHEMA:
            raise ConfigurationError(
                f"config schema version {CONFIG_SCHEMA} is needed, version {schema} is given", str(cfg_file)
            )

        cfg = cfg.favget
        if use_cache:
            TOML_CACHE_CFG[str(cfg_file.resolve())] = cfg

        return cfg

    def validate(self):
        """Checks the settings which are needed to run the WEB application,
        raises :py:obj:`ConfigurationError`."""

        if not self.server.secret_key or self.server.secret_key == INSECURE_SECRET_KEY:
            raise ConfigurationError(
                "server.secret_key is not changed. Please set a secret key in the config"
                " or in the environment FAVGET_SECRET."
            )
        icon = self.server.default_icon_path
        if not icon.is_file() or not os.access(icon, os.R_OK):
            raise ConfigurationError(f"default icon {icon} does not exist or is not readable")


class _FavgetConfig(msgspec.Struct):  # pylint: disable=too-few-public-methods
    # wrapper struct for root object "favget."
    favget: FavgetConfig


def get_cfg_file() -> pathlib.Path:
    """Path of the TOML file from environment ``FAVGET_SETTINGS_PATH``, if unset
    the default config is used."""
    name = os.environ.get("FAVGET_SETTINGS_PATH")
    if name:
        return pathlib.Path(name)
    return DEFAULT_CFG_TOML_PATH


def load_config(use_cache: bool = True) -> FavgetConfig:
    cfg_file = get_cfg_file()
    logger.debug("load favget config: %s", cfg_file)
    return FavgetConfig.from_toml_file(cfg_file, use_cache=use_cache)
