"""
Unit tests for caching functionality
"""

import os
import json
import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from pr_stats.cache import CacheCorruptionError, CacheManager, format_cache_timestamp
from pr_stats.models import PullRequestSummary


PR_PAYLOAD = {
    'number': 42,
    'title': 'Add caching',
    'additions': 120,
    'deletions': 30,
    'changed_files': 4,
    'commits': 3,
    'user': {'login': 'alice'},
    'labels': [{'name': 'enhancement'}],
}

FILES_PAYLOAD = [
    {'filename': 'src/cache.ts', 'additions': 100, 'deletions': 20, 'changes': 120},
    {'filename': 'README.md', 'additions': 20, 'deletions': 10, 'changes': 30},
]


class TestCacheFunctionality:
    """Test cases for basic cache operations."""

    @pytest.fixture
    def cache_manager(self, tmp_path):
        """Create a cache manager rooted in a temporary directory."""
        return CacheManager(str(tmp_path / 'cache'))

    def test_cache_paths(self, cache_manager):
        """Test the on-disk layout of cache entries."""
        root = cache_manager.cache_dir
        assert cache_manager.pull_request_path('acme', 'app', 42) == os.path.join(root, 'acme', 'app', 'pr', '42.json')
        assert cache_manager.pull_request_files_path('acme', 'app', 42) == os.path.join(root, 'acme', 'app', 'pr-files', '42.json')

    def test_range_path_is_filename_safe(self, cache_manager):
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)
        until = datetime(2024, 1, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)
        path = cache_manager.range_path('acme', 'app', since, until)

        assert os.path.basename(path) == 'since-2024-01-01T00-00-00-000Z-until-2024-01-31T23-59-59-999Z.json'
        assert os.path.basename(os.path.dirname(path)) == 'range'

    def test_pull_request_round_trip(self, cache_manager):
        """Test that a cached PR payload reads back unchanged."""
        cache_manager.put_pull_request('acme', 'app', 42, PR_PAYLOAD)
        assert cache_manager.get_pull_request('acme', 'app', 42) == PR_PAYLOAD

    def test_pull_request_files_round_trip(self, cache_manager):
        cache_manager.put_pull_request_files('acme', 'app', 42, FILES_PAYLOAD)
        assert cache_manager.get_pull_request_files('acme', 'app', 42) == FILES_PAYLOAD

    def test_get_from_cache_miss(self, cache_manager):
        """Test cache miss returns None."""
        assert cache_manager.get_pull_request('acme', 'app', 1) is None
        assert cache_manager.get_pull_request_files('acme', 'app', 1) is None

    def test_write_tolerates_existing_directory(self, cache_manager):
        cache_manager.put_pull_request('acme', 'app', 1, dict(PR_PAYLOAD, number=1))
        cache_manager.put_pull_request('acme', 'app', 2, dict(PR_PAYLOAD, number=2))

        assert cache_manager.get_pull_request('acme', 'app', 2)['number'] == 2
        assert not [name for name in os.listdir(os.path.dirname(cache_manager.pull_request_path('acme', 'app', 1)))
                    if name.endswith('.tmp')]

    def test_concurrent_writes_of_same_entry(self, cache_manager):
        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(cache_manager.put_pull_request, 'acme', 'app', 42, PR_PAYLOAD)
                       for _ in range(32)]
            for future in futures:
                future.result()

        assert cache_manager.get_pull_request('acme', 'app', 42) == PR_PAYLOAD
        assert os.listdir(os.path.dirname(cache_manager.pull_request_path('acme', 'app', 42))) == ['42.json']

    def test_failed_write_removes_temp_file(self, cache_manager):
        path = cache_manager.pull_request_path('acme', 'app', 42)

        with pytest.raises(TypeError):
            cache_manager.write(path, {'number': 42, 'unserializable': object()})

        assert os.listdir(os.path.dirname(path)) == []

    def test_cache_disabled(self, tmp_path):
        """Test that nothing is read or written when caching is disabled."""
        cache_manager = CacheManager(str(tmp_path / 'cache'), use_cache=False)
        cache_manager.put_pull_request('acme', 'app', 42, PR_PAYLOAD)

        assert not os.path.exists(cache_manager.pull_request_path('acme', 'app', 42))
        assert cache_manager.get_pull_request('acme', 'app', 42) is None


class TestCacheCorruption:
    """Test cases for unreadable cache entries."""

    @pytest.fixture
    def cache_manager(self, tmp_path):
        return CacheManager(str(tmp_path / 'cache'))

    def _write_raw(self, path, content):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)

    def test_invalid_json_is_fatal(self, cache_manager):
        self._write_raw(cache_manager.pull_request_path('acme', 'app', 42), '{not json')

        with pytest.raises(CacheCorruptionError):
            cache_manager.get_pull_request('acme', 'app', 42)

    def test_schema_mismatch_is_fatal(self, cache_manager):
        self._write_raw(cache_manager.pull_request_files_path('acme', 'app', 42), json.dumps({'filename': 'a.ts'}))

        with pytest.raises(CacheCorruptionError):
            cache_manager.get_pull_request_files('acme', 'app', 42)

    def test_missing_counts_are_fatal(self, cache_manager):
        self._write_raw(cache_manager.pull_request_path('acme', 'app', 42), json.dumps({'number': 42}))

        with pytest.raises(CacheCorruptionError):
            cache_manager.get_pull_request('acme', 'app', 42)

    def test_corrupt_range_entry_is_a_miss(self, cache_manager):
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)
        until = datetime(2024, 1, 31, tzinfo=timezone.utc)
        self._write_raw(cache_manager.range_path('acme', 'app', since, until), '[{"number": ')

        assert cache_manager.get_range('acme', 'app', since, until) is None


class TestRangeCache:
    """Test cases for the closed date range listing cache."""

    @pytest.fixture
    def cache_manager(self, tmp_path):
        return CacheManager(str(tmp_path / 'cache'))

    def test_range_round_trip(self, cache_manager):
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)
        until = datetime(2024, 1, 31, tzinfo=timezone.utc)
        summaries = [
            PullRequestSummary(5, 'Five', 'https://github.com/acme/app/pull/5', 'alice',
                               datetime(2024, 1, 20, 10, 0, tzinfo=timezone.utc)),
            PullRequestSummary(4, 'Four', 'https://github.com/acme/app/pull/4', 'bob',
                               datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)),
        ]

        cache_manager.put_range('acme', 'app', since, until, summaries)
        assert cache_manager.get_range('acme', 'app', since, until) == summaries

    def test_range_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('a file where a directory is expected')
        cache_manager = CacheManager(str(blocker))

        cache_manager.put_range(
            'acme', 'app',
            datetime(2024, 1, 1, tzinfo=timezone.utc),
            datetime(2024, 1, 31, tzinfo=timezone.utc),
            []
        )

    def test_until_today_is_not_cacheable(self):
        now = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
        assert CacheManager.is_range_cacheable(datetime(2024, 5, 10, 0, 0, tzinfo=timezone.utc), now) is False
        assert CacheManager.is_range_cacheable(now, now) is False

    def test_until_two_days_ago_is_cacheable(self):
        now = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
        assert CacheManager.is_range_cacheable(now - timedelta(days=2), now) is True

    def test_until_end_of_yesterday_is_cacheable(self):
        now = datetime(2024, 5, 10, 0, 0, 1, tzinfo=timezone.utc)
        assert CacheManager.is_range_cacheable(datetime(2024, 5, 9, 23, 59, 59, tzinfo=timezone.utc), now) is True

    def test_default_now_is_current_time(self):
        assert CacheManager.is_range_cacheable(datetime.now(timezone.utc)) is False
        assert CacheManager.is_range_cacheable(datetime.now(timezone.utc) - timedelta(days=3)) is True


class TestCacheTimestamp:
    """Test cases for filename-safe timestamps."""

    def test_naive_datetime_is_treated_as_utc(self):
        assert format_cache_timestamp(datetime(2024, 1, 1, 8, 30)) == '2024-01-01T08-30-00-000Z'

    def test_offset_is_converted_to_utc(self):
        offset = timezone(timedelta(hours=2))
        assert format_cache_timestamp(datetime(2024, 1, 1, 8, 30, tzinfo=offset)) == '2024-01-01T06-30-00-000Z'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
