"""Shared test fixtures for genrebender tests."""

import json
from datetime import timedelta
from unittest.mock import MagicMock, Mock

import pytest

from genrebender.config import CacheConfig, GenreBenderConfig
from genrebender.disk_cache import DiskCache
from genrebender.http_fetcher import HttpFetcher
from genrebender.models import Query, RecordingCandidate, ReleaseGroupCandidate


@pytest.fixture
def sample_query():
    """Complete query for a known track."""
    return Query(
        artist="Boards of Canada",
        title="Roygbiv",
        album="Music Has the Right to Children",
        duration_ms=151000,
    )


@pytest.fixture
def recording_candidates():
    """Recording search results in catalog order."""
    return [
        RecordingCandidate(
            id="rec-live",
            base_score=100,
            title="Roygbiv (live)",
            length_ms=170000,
            artist_credits=["Boards of Canada"],
            release_titles=["Live at Warp"],
        ),
        RecordingCandidate(
            id="rec-album",
            base_score=100,
            title="Roygbiv",
            length_ms=151200,
            artist_credits=["Boards of Canada"],
            release_titles=["Music Has the Right to Children"],
        ),
    ]


@pytest.fixture
def release_group_candidates():
    """Release-group search results in catalog order."""
    return [
        ReleaseGroupCandidate(
            id="rg-comp",
            base_score=90,
            title="Warp Compilation",
            artist_credits=["Various Artists"],
            first_release_date="2001",
        ),
        ReleaseGroupCandidate(
            id="rg-album",
            base_score=90,
            title="Music Has the Right to Children",
            artist_credits=["Boards of Canada"],
            first_release_date="1998-04-20",
        ),
    ]


@pytest.fixture
def cache_config(tmp_path):
    """Cache configuration rooted in a temporary directory."""
    return CacheConfig(
        cache_dir=tmp_path / "cache",
        ttl=timedelta(days=30),
        search_ttl=timedelta(days=7),
        schema_version=1,
    )


@pytest.fixture
def app_config(cache_config):
    """Application config with no delays."""
    return GenreBenderConfig(cache=cache_config, item_delay=0.0)


@pytest.fixture
def disk_cache(cache_config):
    return DiskCache(cache_config)


@pytest.fixture
def make_response():
    """Factory for fake streamed requests.Response objects."""
    def _make(status=200, json_data=None, text=None, body=None):
        if body is None:
            body = text.encode("utf-8") if text is not None else json.dumps(json_data).encode("utf-8")
        resp = MagicMock()
        resp.status_code = status
        resp.iter_content.side_effect = lambda *args, **kwargs: iter([body])
        return resp
    return _make


@pytest.fixture
def mock_session():
    """Session stand-in whose `get` is configured per test."""
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def fetcher(mock_session):
    """Fetcher over the mock session."""
    return HttpFetcher("GenreBender/test (test@example.com)", timeout=5,
                       max_attempts=3, session=mock_session)
