# SPDX-License-Identifier: AGPL-3.0-or-later
"""Implementations for caching favicons.

:py:obj:`FaviconCacheConfig`:
  Configuration of the favicon cache

:py:obj:`FaviconCache`:
  The cache policy: key derivation, file layout and the TTL of the entries.

:py:obj:`FaviconStorage`:
  Abstract base class for the file operations of the cache.

:py:obj:`FaviconStorageFS`:
  Favicon storage that manages the favicons in files of a (sharded) folder.

:py:obj:`FaviconStorageMEM`:
  Favicon storage in process' memory, don't use it in production.

----

The favicon of a host is stored in the file::

  {cache_dir}/{key_hash[0:2]}/{host}_{key_hash}.dat

The ``key_hash`` is a HMAC of the (lower case) host name, build up from the
secret key; the file names can't be guessed by a third party that probes the
cache folder.

If the data of an entry is the placeholder icon (compared by the
:py:obj:`fingerprint` of the data), the entry expires after
:py:obj:`DEFAULT_ICON_EXPIRE` seconds, regardless of the configured ``expire``
time.  Expired entries are deleted when they are read.

"""

from __future__ import annotations

__all__ = [
    "init",
    "fingerprint",
    "FaviconCacheConfig",
    "FaviconCache",
    "FaviconCacheStats",
    "FaviconStorage",
    "FaviconStorageFS",
    "FaviconStorageMEM",
    "CacheEntry",
    "DEFAULT_ICON_EXPIRE",
]

import abc
import dataclasses
import fcntl
import hashlib
import logging
import os
import tempfile
import time
import typing as t
import urllib.parse

import msgspec
import typer

from favget import logger
from favget.exceptions import CacheIOFailure, ConfigurationError
from favget.urls import parse_origin
from favget.utils import new_hmac, humanize_bytes, humanize_number

CACHE: "FaviconCache"
DEFAULT_FINGERPRINT: str = ""

DEFAULT_ICON_EXPIRE = 60 * 60 * 12  # 12 hours
"""Time (sec.) after which a cached placeholder icon expires."""

DIR_MODE = 0o755
FILE_MODE = 0o644
FILE_SUFFIX = ".dat"

logger = logger.getChild('cache')
app = typer.Typer()


@app.command()
def state():
    """show state of the cache"""
    print(CACHE.state().report())


@app.command()
def maintenance(debug: bool = False):
    """delete the expired favicons from the cache"""
    root_log = logging.getLogger()
    if debug:
        root_log.setLevel(logging.DEBUG)
    else:
        root_log.handlers = []
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)

    state_t0 = CACHE.state()
    CACHE.maintenance(DEFAULT_FINGERPRINT, CACHE.cfg.expire)
    state_t1 = CACHE.state()
    state_delta = state_t0 - state_t1
    print("The cache has been reduced by:")
    print(state_delta.report("\n- {descr}: {val}").lstrip("\n"))


def init(cfg: "FaviconCacheConfig", secret_key: str, default_fingerprint: str = ""):
    """Initialization of a global ``CACHE``"""

    global CACHE, DEFAULT_FINGERPRINT  # pylint: disable=global-statement
    if cfg.storage == "fs":
        CACHE = FaviconCache(cfg, secret_key, FaviconStorageFS())
    elif cfg.storage == "mem":
        logger.error("Favicons are cached in memory, don't use this in production!")
        CACHE = FaviconCache(cfg, secret_key, FaviconStorageMEM())
    else:
        raise NotImplementedError(f"favicons storage '{cfg.storage}' is unknown")
    DEFAULT_FINGERPRINT = default_fingerprint
    return CACHE


def fingerprint(data: bytes) -> str:
    """Fingerprint (MD5 hex digest) of the favicon's ``data``, used to identify
    the placeholder icon in the cache."""
    return hashlib.md5(data).hexdigest()


class FaviconCacheConfig(msgspec.Struct, kw_only=True):  # pylint: disable=too-few-public-methods
    """Configuration of the favicon cache."""

    storage: t.Literal["fs", "mem"] = "fs"
    """Type of the storage:

    ``fs``:
      :py:obj:`.cache.FaviconStorageFS`

    ``mem``:
      :py:obj:`.cache.FaviconStorageMEM` (not recommended)
    """

    cache_dir: str = tempfile.gettempdir() + os.sep + "favget"
    """Folder of the cache files."""

    expire: int = 60 * 60 * 24 * 30  # 30 days
    """Time (sec.) after which a favicon expires, a value ``<= 0`` disables the
    cache in the WEB application."""


class CacheEntry(msgspec.Struct, frozen=True, kw_only=True):
    """A favicon in the cache."""

    host: str
    key_hash: str
    file_path: str
    data: bytes
    mtime: float


@dataclasses.dataclass
class FaviconCacheStats:
    """Dataclass which provides information on the status of the cache."""

    favicons: int | None = None
    bytes: int | None = None
    shards: int | None = None

    field_descr = (
        ("favicons", "number of favicons in cache", humanize_number),
        ("bytes", "total size (approx. bytes) of cache", humanize_bytes),
        ("shards", "number of shard folders", str),
    )

    def __sub__(self, other) -> FaviconCacheStats:
        if not isinstance(other, self.__class__):
            raise TypeError(f"unsupported operand type(s) for -: '{self.__class__}' and '{type(other)}'")
        kwargs = {}
        for field, _, _ in self.field_descr:
            self_val, other_val = getattr(self, field), getattr(other, field)
            if None in (self_val, other_val):
                continue
            kwargs[field] = self_val - other_val
        return self.__class__(**kwargs)

    def report(self, fmt: str = "{descr}: {val}\n"):
        s = []
        for field, descr, cast in self.field_descr:
            val = getattr(self, field)
            if val is None:
                val = "--"
            else:
                val = cast(val)
            s.append(fmt.format(descr=descr, val=val))
        return "".join(s)


class FaviconStorage(abc.ABC):
    """Abstract base class of the file operations needed by the
    :py:obj:`FaviconCache`.  Errors are raised as :py:obj:`CacheIOFailure`."""

    @abc.abstractmethod
    def read(self, path: str) -> bytes | None:
        """Returns the content of the file or ``None`` if it doesn't exist."""

    @abc.abstractmethod
    def mtime(self, path: str) -> float | None:
        """Returns the modification time of the file or ``None`` if it doesn't
        exist."""

    @abc.abstractmethod
    def write(self, path: str, data: bytes):
        """Write ``data`` to the file, concurrent writes to the same file are
        serialized.  The parent folder is created if it does not exist."""

    @abc.abstractmethod
    def delete(self, path: str):
        """Delete the file, a missing file is not an error."""

    @abc.abstractmethod
    def iter_files(self, folder: str) -> t.Iterator[tuple[str, int]]:
        """Yields ``(path, size)`` of the cache files in the shards of
        ``folder``."""


class FaviconStorageFS(FaviconStorage):
    """Favicon storage that manages the favicons in files.  Writes are
    serialized by an exclusive lock (:py:obj:`fcntl.flock`) on the file, reads
    are not locked: a reader may see a partially written file, such a torn
    entry is replaced on the next refresh."""

    def read(self, path: str) -> bytes | None:
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheIOFailure(path, f"can't read cache file ({exc.strerror})") from exc

    def mtime(self, path: str) -> float | None:
        try:
            return os.stat(path).st_mtime
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheIOFailure(path, f"can't stat cache file ({exc.strerror})") from exc

    def ensure_dir(self, folder: str):
        try:
            os.makedirs(folder, mode=DIR_MODE, exist_ok=True)
        except OSError as exc:
            raise CacheIOFailure(folder, f"can't create cache folder ({exc.strerror})") from exc

    def write(self, path: str, data: bytes):
        self.ensure_dir(os.path.dirname(path))
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT, FILE_MODE)
        except OSError as exc:
            raise CacheIOFailure(path, f"can't open cache file ({exc.strerror})") from exc

        try:
            with os.fdopen(fd, "wb") as f:
                fcntl.flock(f, fcntl.LOCK_EX)
                try:
                    # truncate not before the lock is acquired, a concurrent
                    # writer may still write to the file
                    f.truncate(0)
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                finally:
                    fcntl.flock(f, fcntl.LOCK_UN)
            os.chmod(path, FILE_MODE)
        except OSError as exc:
            raise CacheIOFailure(path, f"can't write cache file ({exc.strerror})") from exc

    def delete(self, path: str):
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise CacheIOFailure(path, f"can't delete cache file ({exc.strerror})") from exc

    def iter_files(self, folder: str) -> t.Iterator[tuple[str, int]]:
        if not os.path.isdir(folder):
            return
        try:
            for shard in os.scandir(folder):
                if not shard.is_dir():
                    continue
                for entry in os.scandir(shard.path):
                    if entry.is_file() and entry.name.endswith(FILE_SUFFIX):
                        yield entry.path, entry.stat().st_size
        except OSError as exc:
            raise CacheIOFailure(folder, f"can't scan cache folder ({exc.strerror})") from exc


class FaviconStorageMEM(FaviconStorage):
    """Favicon storage in process' memory.  Its just a POC that stores the
    favicons in the memory of the process, it is also used in the tests.

    .. attention::

       Don't use it in production, it will blow up your memory!!

    """

    def __init__(self):
        self._files: dict[str, tuple[bytes, float]] = {}

    def read(self, path: str) -> bytes | None:
        return self._files.get(path, (None, 0.0))[0]

    def mtime(self, path: str) -> float | None:
        if path not in self._files:
            return None
        return self._files[path][1]

    def write(self, path: str, data: bytes):
        self._files[path] = (data, time.time())

    def touch(self, path: str, mtime: float):
        """Set the modification time of a file."""
        self._files[path] = (self._files[path][0], mtime)

    def delete(self, path: str):
        self._files.pop(path, None)

    def iter_files(self, folder: str) -> t.Iterator[tuple[str, int]]:
        prefix = folder.rstrip(os.sep) + os.sep
        for path, (data, _) in list(self._files.items()):
            if path.startswith(prefix):
                yield path, len(data)


class FaviconCache:
    """Cache of the favicons by host."""

    def __init__(self, cfg: FaviconCacheConfig, secret_key: str, storage: FaviconStorage | None = None):
        if not secret_key:
            raise ConfigurationError("the favicon cache needs a secret key")
        self.cfg = cfg
        self.secret_key = secret_key
        self.storage: FaviconStorage = storage or FaviconStorageFS()

    def host(self, host_key: str) -> str:
        """Returns the lower case host name of ``host_key`` (an URL or a host
        root).  Raises :py:obj:`favget.exceptions.InvalidURL` if ``host_key``
        has no host."""
        host_root = parse_origin(host_key).host_root
        return urllib.parse.urlsplit(host_root).hostname  # type: ignore[return-value]

    def key_hash(self, host: str) -> str:
        return new_hmac(self.secret_key, host.lower().encode())[8:24]

    def file_path(self, host_key: str) -> str:
        host = self.host(host_key)
        key_hash = self.key_hash(host)
        return os.path.join(self.cfg.cache_dir, key_hash[:2], f"{host}_{key_hash}{FILE_SUFFIX}")

    def effective_ttl(self, data: bytes, default_fingerprint: str, ttl: int) -> int:
        """The TTL of the placeholder icon is :py:obj:`DEFAULT_ICON_EXPIRE`,
        the TTL of all other favicons is ``ttl``."""
        if fingerprint(data) == default_fingerprint:
            return DEFAULT_ICON_EXPIRE
        return ttl

    def get(self, host_key: str, default_fingerprint: str, ttl: int) -> bytes | None:
        """Returns the favicon of the host or ``None`` if there is no favicon in
        the cache or if it has been expired.  An expired favicon is deleted."""

        path = self.file_path(host_key)
        mtime = self.storage.mtime(path)
        if mtime is None:
            return None
        data = self.storage.read(path)
        if not data:
            # missing or a torn read of an entry that is being written
            return None

        if time.time() - mtime > self.effective_ttl(data, default_fingerprint, ttl):
            logger.debug("favicon of %s expired, delete %s", host_key, path)
            self.storage.delete(path)
            return None
        return data

    def set(self, host_key: str, data: bytes):
        path = self.file_path(host_key)
        self.storage.write(path, data)
        logger.debug("cached favicon of %s in %s (%s bytes)", host_key, path, len(data))

    def expiry_timestamp(self, host_key: str, default_fingerprint: str, ttl: int) -> int:
        """Returns the (unix epoch) time when the favicon of the host expires,
        if there is no favicon in the cache the current time is returned."""

        path = self.file_path(host_key)
        mtime = self.storage.mtime(path)
        data = self.storage.read(path)
        if mtime is None or data is None:
            return int(time.time())
        return int(mtime + self.effective_ttl(data, default_fingerprint, ttl))

    def entry(self, host_key: str) -> CacheEntry | None:
        host = self.host(host_key)
        path = self.file_path(host_key)
        mtime = self.storage.mtime(path)
        data = self.storage.read(path)
        if mtime is None or data is None:
            return None
        return CacheEntry(host=host, key_hash=self.key_hash(host), file_path=path, data=data, mtime=mtime)

    def state(self) -> FaviconCacheStats:
        favicons, size, shards = 0, 0, set()
        for path, bytes_c in self.storage.iter_files(self.cfg.cache_dir):
            favicons += 1
            size += bytes_c
            shards.add(os.path.dirname(path))
        return FaviconCacheStats(favicons=favicons, bytes=size, shards=len(shards))

    def maintenance(self, default_fingerprint: str, ttl: int) -> int:
        """Deletes all expired favicons, returns the number of deleted
        favicons."""
        now = time.time()
        count = 0
        for path, _ in self.storage.iter_files(self.cfg.cache_dir):
            mtime = self.storage.mtime(path)
            data = self.storage.read(path)
            if mtime is None or data is None:
                continue
            if now - mtime > self.effective_ttl(data, default_fingerprint, ttl):
                self.storage.delete(path)
                count += 1
        logger.debug("dropped %s expired favicons from %s", count, self.cfg.cache_dir)
        return count
