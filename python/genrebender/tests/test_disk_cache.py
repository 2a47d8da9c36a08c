"""Tests for disk_cache.py freshness, version gate, and atomic writes."""

import json
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from genrebender.disk_cache import DiskCache, key_filename
from genrebender.exceptions import CacheIOError
from genrebender.models import CacheEntry, CacheSource

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def entry(**kwargs):
    defaults = dict(source=CacheSource.RECORDING, mbid="abc",
                    genres=["Rock"], tags=["guitar"])
    defaults.update(kwargs)
    return CacheEntry(**defaults)


def cache_at(config, when):
    return DiskCache(config, clock=lambda: when)


class TestKeyFilename:
    """Tests for key_filename mapping."""

    def test_deterministic(self):
        assert key_filename("rec:abc") == key_filename("rec:abc")

    def test_normalizes_case_and_whitespace(self):
        """Should map keys differing only in case or outer spaces together."""
        assert key_filename("  REC:ABC ") == key_filename("rec:abc")

    def test_filesystem_safe(self):
        """Should produce a fixed-length hex name whatever the key holds."""
        name = key_filename('search:rec:artist:"AC\\/DC" / ../../etc')
        stem, ext = name.split(".")
        assert ext == "json"
        assert len(stem) == 40
        assert all(c in "0123456789abcdef" for c in stem)


class TestGet:
    """Tests for DiskCache.get states."""

    def test_missing_file_is_plain_miss(self, disk_cache):
        """Should return (None, False) without raising."""
        assert disk_cache.get("rec:nothing") == (None, False)

    def test_fresh_hit(self, cache_config):
        """Should return the entry with stale=False inside the TTL."""
        cache_at(cache_config, NOW).put("rec:abc", entry())

        found, stale = cache_at(cache_config, NOW + timedelta(days=29)).get("rec:abc")
        assert stale is False
        assert found.genres == ["Rock"]
        assert found.source == CacheSource.RECORDING

    def test_stale_hit_just_past_ttl(self, cache_config):
        """Should report an entry one second past its TTL as stale, not missing."""
        cache_at(cache_config, NOW).put("rec:abc", entry())

        later = NOW + cache_config.ttl + timedelta(seconds=1)
        found, stale = cache_at(cache_config, later).get("rec:abc")
        assert found is not None
        assert stale is True

    def test_search_category_uses_shorter_ttl(self, cache_config):
        """Should apply search_ttl when is_search is set."""
        cache_at(cache_config, NOW).put("search:rec:q", entry())
        later = cache_at(cache_config, NOW + timedelta(days=8))

        assert later.get("search:rec:q", is_search=True)[1] is True
        assert later.get("search:rec:q", is_search=False)[1] is False

    def test_schema_version_mismatch_is_miss(self, cache_config):
        """Should ignore entries written under another schema version."""
        cache_at(cache_config, NOW).put("rec:abc", entry())

        bumped = DiskCache(replace(cache_config, schema_version=2), clock=lambda: NOW)
        assert bumped.get("rec:abc") == (None, False)

    def test_version_mismatch_wins_over_age(self, cache_config):
        """Should report a miss for an old entry from another version."""
        cache_at(cache_config, NOW - timedelta(days=365)).put("rec:abc", entry())

        bumped = DiskCache(replace(cache_config, schema_version=7), clock=lambda: NOW)
        assert bumped.get("rec:abc") == (None, False)

    def test_corrupt_file_raises(self, disk_cache):
        """Should raise CacheIOError for unparseable JSON."""
        disk_cache.cache_dir.mkdir(parents=True)
        disk_cache.path_for("rec:bad").write_text("{not json", encoding="utf-8")

        with pytest.raises(CacheIOError):
            disk_cache.get("rec:bad")

    def test_malformed_entry_raises(self, disk_cache):
        """Should raise CacheIOError when required fields are missing."""
        disk_cache.cache_dir.mkdir(parents=True)
        disk_cache.path_for("rec:bad").write_text(json.dumps({"mbid": "x"}), encoding="utf-8")

        with pytest.raises(CacheIOError):
            disk_cache.get("rec:bad")


class TestPut:
    """Tests for DiskCache.put."""

    def test_creates_directory(self, disk_cache):
        """Should create the cache directory on first write."""
        assert not disk_cache.cache_dir.exists()
        disk_cache.put("rec:abc", entry())
        assert disk_cache.path_for("rec:abc").exists()

    def test_overrides_timestamp_and_version(self, cache_config):
        """Should stamp fetched_at and schema_version itself."""
        supplied = entry(fetched_at=datetime(1999, 1, 1, tzinfo=timezone.utc),
                         schema_version=99)

        stored = cache_at(cache_config, NOW).put("rec:abc", supplied)

        assert stored.fetched_at == NOW
        assert stored.schema_version == cache_config.schema_version
        data = json.loads(DiskCache(cache_config).path_for("rec:abc").read_text(encoding="utf-8"))
        assert data["fetched_at"] == "2024-06-01T12:00:00+00:00"
        assert data["schema_version"] == 1
        assert data["source"] == "recording"

    def test_overwrites_wholesale(self, disk_cache):
        """Should replace the previous entry instead of merging."""
        disk_cache.put("rec:abc", entry(genres=["Rock", "Pop"], tags=["a"]))
        disk_cache.put("rec:abc", entry(genres=["Jazz"], tags=[],
                                        source=CacheSource.RELEASE_GROUP))

        found, _ = disk_cache.get("rec:abc")
        assert found.genres == ["Jazz"]
        assert found.tags == []
        assert found.source == CacheSource.RELEASE_GROUP

    def test_leaves_no_temp_files(self, disk_cache):
        """Should rename the temp file into place."""
        disk_cache.put("rec:abc", entry())
        assert os.listdir(disk_cache.cache_dir) == [key_filename("rec:abc")]

    def test_failed_write_keeps_previous_entry(self, disk_cache):
        """Should not corrupt the existing file when the rename fails."""
        disk_cache.put("rec:abc", entry(genres=["Old"]))

        with patch("genrebender.disk_cache.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CacheIOError):
                disk_cache.put("rec:abc", entry(genres=["New"]))

        found, _ = disk_cache.get("rec:abc")
        assert found.genres == ["Old"]
        assert os.listdir(disk_cache.cache_dir) == [key_filename("rec:abc")]

    def test_unwritable_directory_raises(self, tmp_path, cache_config):
        """Should raise CacheIOError when the cache dir cannot be created."""
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        cache = DiskCache(replace(cache_config, cache_dir=blocker / "cache"))

        with pytest.raises(CacheIOError):
            cache.put("rec:abc", entry())


class TestConcurrentAccess:
    """Tests for several threads sharing one key."""

    def test_readers_never_see_partial_entries(self, disk_cache):
        """Should return a whole entry or a miss while writers race."""
        writers, rounds = 6, 25

        def write(n):
            for i in range(rounds):
                disk_cache.put("rec:shared", entry(genres=[f"w{n}-{i}"] * 40))

        def read():
            return [disk_cache.get("rec:shared")[0] for _ in range(200)]

        with ThreadPoolExecutor(max_workers=writers + 1) as executor:
            reader = executor.submit(read)
            write_jobs = [executor.submit(write, n) for n in range(writers)]
            for job in write_jobs:
                job.result()
            seen = reader.result()

        for found in seen:
            assert found is None or (len(found.genres) == 40 and len(set(found.genres)) == 1)

        final, _ = disk_cache.get("rec:shared")
        assert len(set(final.genres)) == 1
        assert os.listdir(disk_cache.cache_dir) == [key_filename("rec:shared")]
