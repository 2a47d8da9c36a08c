"""On-disk JSON cache for resolved MusicBrainz lookups."""

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple

from genrebender.config import CacheConfig
from genrebender.exceptions import CacheIOError
from genrebender.models import CacheEntry

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def key_filename(key: str) -> str:
    """Map a logical cache key to a filesystem-safe file name."""
    digest = hashlib.sha1(key.strip().lower().encode("utf-8")).hexdigest()
    return f"{digest}.json"


class DiskCache:
    """
    One JSON file per key under a cache directory.

    A `get` returns a fresh hit, a stale hit (entry plus stale flag), or a
    miss. Entries written under another schema version count as misses.
    Settings are fixed at construction; instances can be shared between
    threads.
    """

    def __init__(self, config: CacheConfig,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize cache.

        Args:
            config: Directory, TTLs, and schema version
            clock: Returns the current UTC time (overridable for tests)
        """
        self.config = config
        self.cache_dir = Path(config.cache_dir)
        self._clock = clock or utc_now

    def path_for(self, key: str) -> Path:
        return self.cache_dir / key_filename(key)

    def get(self, key: str, is_search: bool = False) -> Tuple[Optional[CacheEntry], bool]:
        """
        Look up a key.

        Args:
            key: Logical cache key, e.g. "rec:<mbid>"
            is_search: Use the search-result TTL instead of the lookup TTL

        Returns:
            (entry, is_stale). (None, False) on a miss.

        Raises:
            CacheIOError: If the file exists but cannot be read or parsed.
        """
        path = self.path_for(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug(f"Cache miss for {key}")
            return None, False
        except (OSError, ValueError) as e:
            raise CacheIOError(str(path), str(e)) from e

        try:
            entry = CacheEntry.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise CacheIOError(str(path), f"malformed entry: {e}") from e

        if entry.schema_version != self.config.schema_version:
            logger.debug(
                f"Cache entry for {key} has schema version {entry.schema_version}, "
                f"expected {self.config.schema_version}; treating as miss"
            )
            return None, False
        if entry.fetched_at is None:
            raise CacheIOError(str(path), "entry has no fetched_at")

        fetched_at = entry.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)

        ttl = self.config.search_ttl if is_search else self.config.ttl
        stale = self._clock() - fetched_at > ttl
        logger.debug(f"Cache {'stale' if stale else 'fresh'} hit for {key}")
        return entry, stale

    def put(self, key: str, entry: CacheEntry) -> CacheEntry:
        """
        Store an entry, replacing whatever the key held before.

        fetched_at and schema_version are always set here; values on the
        passed entry are ignored. The file is written to a temporary name
        and renamed into place, so readers never see a partial file.

        Returns:
            The entry as stored.

        Raises:
            CacheIOError: If the directory or file cannot be written.
        """
        stored = replace(
            entry,
            fetched_at=self._clock().astimezone(timezone.utc),
            schema_version=self.config.schema_version,
        )
        path = self.path_for(key)

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.cache_dir, prefix=f".{path.stem}.", suffix=".tmp"
            )
        except OSError as e:
            raise CacheIOError(str(path), str(e)) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(stored.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise CacheIOError(str(path), str(e)) from e

        logger.debug(f"Cached {key} -> {path.name}")
        return stored
