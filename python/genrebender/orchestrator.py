"""Resolution of one audio item to cached or freshly fetched genres."""

import logging
import time
from typing import Optional

from genrebender.config import GenreBenderConfig
from genrebender.disk_cache import DiskCache
from genrebender.exceptions import CacheIOError, FetchError
from genrebender.http_fetcher import CancelToken
from genrebender.models import (
    CacheEntry, CacheSource, GenreTagSet, Query, ResolutionResult,
    ResolutionStatus
)
from genrebender.musicbrainz_client import MusicBrainzClient
from genrebender.query_builder import recording_query

logger = logging.getLogger(__name__)


def recording_key(mbid: str) -> str:
    return f"rec:{mbid}"


def search_key(query: Query) -> str:
    q = recording_query(query.artist, query.title, query.album)
    return f"search:rec:{q}|{query.duration_ms}"


class GenreResolver:
    """
    Turns a local Query into genres and tags.

    Steps: search and resolve the recording, serve a fresh cache hit if
    there is one, otherwise fetch recording genres (falling back to the
    release group when the recording has none) and cache the result.
    Network errors propagate to the caller; cache errors are logged and
    never fail the item. Safe to call from several threads at once.
    """

    def __init__(self, client: MusicBrainzClient, cache: DiskCache,
                 config: GenreBenderConfig):
        self.client = client
        self.cache = cache
        self.config = config

    def resolve(self, query: Query, cancel: Optional[CancelToken] = None,
                deadline: Optional[float] = None) -> ResolutionResult:
        """
        Resolve one item.

        Args:
            query: Artist/title/album/duration read from the file
            cancel: Token that aborts in-flight requests
            deadline: time.monotonic() limit; defaults to now + item_timeout

        Returns:
            ResolutionResult. NO_MATCH and SKIPPED are normal outcomes.

        Raises:
            FetchError: If a search or genre lookup fails.
        """
        if not query.is_searchable:
            logger.debug("Query has neither artist nor title; skipping")
            return ResolutionResult(status=ResolutionStatus.SKIPPED)

        if deadline is None:
            deadline = time.monotonic() + self.config.item_timeout

        mbid = self._find_recording(query, cancel, deadline)
        if not mbid:
            return ResolutionResult(status=ResolutionStatus.NO_MATCH)

        key = recording_key(mbid)
        cached, stale = self._cache_get(key, is_search=False)
        if cached is not None and not stale:
            return ResolutionResult(
                status=ResolutionStatus.MATCHED, mbid=mbid,
                genres=cached.genres, tags=cached.tags,
                source=cached.source, from_cache=True,
            )

        try:
            genre_set, source = self._fetch_genres(mbid, query, cancel, deadline)
        except FetchError as e:
            if cached is not None and self.config.stale_fallback:
                logger.warning(f"Refreshing {key} failed ({e}); using stale cache entry")
                return ResolutionResult(
                    status=ResolutionStatus.MATCHED, mbid=mbid,
                    genres=cached.genres, tags=cached.tags,
                    source=cached.source, from_cache=True, stale=True,
                )
            raise

        self._cache_put(key, CacheEntry(
            source=source, mbid=mbid,
            genres=genre_set.genres, tags=genre_set.tags,
        ))
        return ResolutionResult(
            status=ResolutionStatus.MATCHED, mbid=mbid,
            genres=genre_set.genres, tags=genre_set.tags, source=source,
        )

    def _find_recording(self, query: Query, cancel: Optional[CancelToken],
                        deadline: Optional[float]) -> str:
        key = search_key(query)
        cached, stale = self._cache_get(key, is_search=True)
        if cached is not None and not stale and cached.mbid:
            return cached.mbid

        mbid = self.client.find_recording_id(query, cancel, deadline)
        if mbid:
            self._cache_put(key, CacheEntry(source=CacheSource.RECORDING, mbid=mbid))
        else:
            logger.debug(f"No recording found for {key}")
        return mbid

    def _fetch_genres(self, mbid: str, query: Query,
                      cancel: Optional[CancelToken],
                      deadline: Optional[float]):
        genre_set = self.client.recording_genres(mbid, cancel, deadline)
        if genre_set.genres:
            return genre_set, CacheSource.RECORDING

        logger.debug(f"Recording {mbid} has no genres; trying its release group")
        rg_mbid = self.client.find_release_group_id(
            query.artist, query.album, cancel, deadline
        )
        if not rg_mbid:
            return GenreTagSet(tags=genre_set.tags), CacheSource.RECORDING
        return (
            self.client.release_group_genres(rg_mbid, cancel, deadline),
            CacheSource.RELEASE_GROUP,
        )

    def _cache_get(self, key: str, is_search: bool):
        try:
            return self.cache.get(key, is_search=is_search)
        except CacheIOError as e:
            logger.warning(f"{e}; ignoring cached value")
            return None, False

    def _cache_put(self, key: str, entry: CacheEntry) -> None:
        try:
            self.cache.put(key, entry)
        except CacheIOError as e:
            logger.warning(f"{e}; result not cached")
