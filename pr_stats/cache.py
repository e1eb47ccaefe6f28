"""File-backed cache for GitHub pull request responses."""

import os
import json
import logging
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .config import DEFAULT_CACHE_DIR
from .models import (
    PayloadSchemaError,
    PullRequestSummary,
    as_aware,
    validate_files_payload,
    validate_pull_request_payload,
)


class CacheCorruptionError(RuntimeError):
    """Raised when a cache entry exists but cannot be trusted."""


def format_cache_timestamp(value: datetime) -> str:
    """Format a datetime as a filename-safe UTC timestamp.

    '2024-01-31T23:59:59.999Z' becomes '2024-01-31T23-59-59-999Z'.
    """
    utc = as_aware(value).astimezone(timezone.utc)
    iso = utc.strftime('%Y-%m-%dT%H:%M:%S') + f".{utc.microsecond // 1000:03d}Z"
    return iso.replace(':', '-').replace('.', '-')


class CacheManager:
    """Stores one JSON file per pull request, file list and closed date range.

    Layout below cache_dir:
        <owner>/<repo>/pr/<number>.json         pull request detail
        <owner>/<repo>/pr-files/<number>.json   changed files of a pull request
        <owner>/<repo>/range/since-...-until-...json  merged PRs of a past range

    Merged pull requests do not change, so entries never expire. Delete the
    directory to start over.
    """

    def __init__(self, cache_dir: str = DEFAULT_CACHE_DIR, use_cache: bool = True):
        """Initialize the cache manager.

        Args:
            cache_dir: Root directory for cache files
            use_cache: Whether caching is enabled
        """
        self.cache_dir = cache_dir
        self.use_cache = use_cache

    def _repo_dir(self, owner: str, repo: str) -> str:
        return os.path.join(self.cache_dir, owner, repo)

    def pull_request_path(self, owner: str, repo: str, number: int) -> str:
        return os.path.join(self._repo_dir(owner, repo), 'pr', f"{number}.json")

    def pull_request_files_path(self, owner: str, repo: str, number: int) -> str:
        return os.path.join(self._repo_dir(owner, repo), 'pr-files', f"{number}.json")

    def range_path(self, owner: str, repo: str, since: datetime, until: datetime) -> str:
        key = f"since-{format_cache_timestamp(since)}-until-{format_cache_timestamp(until)}.json"
        return os.path.join(self._repo_dir(owner, repo), 'range', key)

    def read(self, path: str) -> Optional[Any]:
        """Load a cache entry.

        Args:
            path: Cache file path

        Returns:
            The stored payload, or None if there is no entry

        Raises:
            CacheCorruptionError: If the entry is not valid JSON
            OSError: If the entry exists but cannot be read
        """
        if not self.use_cache:
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            raise CacheCorruptionError(f"Cache entry {path} is not valid JSON: {e}") from e

    def write(self, path: str, payload: Any):
        """Store a payload, creating missing directories.

        The payload is written to a temporary file first and moved into
        place, so readers never see a partial entry.
        """
        if not self.use_cache:
            return

        # Several workers may create the same directory at once
        os.makedirs(os.path.dirname(path), exist_ok=True)
        # One temp file per writer; the same key may be written by two threads
        fd, temp_path = tempfile.mkstemp(
            dir=os.path.dirname(path), prefix=f"{os.path.basename(path)}.", suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
        logging.debug(f"Cached {path}")

    def get_pull_request(self, owner: str, repo: str, number: int) -> Optional[Dict]:
        """Return the cached detail payload of a pull request, if any.

        Raises:
            CacheCorruptionError: If the entry is unreadable or has the wrong shape
        """
        path = self.pull_request_path(owner, repo, number)
        payload = self.read(path)
        if payload is None:
            return None
        try:
            return validate_pull_request_payload(payload)
        except PayloadSchemaError as e:
            raise CacheCorruptionError(f"Cache entry {path} is corrupt: {e}") from e

    def put_pull_request(self, owner: str, repo: str, number: int, payload: Dict):
        self.write(self.pull_request_path(owner, repo, number), payload)

    def get_pull_request_files(self, owner: str, repo: str, number: int) -> Optional[List[Dict]]:
        """Return the cached changed-files payload of a pull request, if any.

        Raises:
            CacheCorruptionError: If the entry is unreadable or has the wrong shape
        """
        path = self.pull_request_files_path(owner, repo, number)
        payload = self.read(path)
        if payload is None:
            return None
        try:
            return validate_files_payload(payload)
        except PayloadSchemaError as e:
            raise CacheCorruptionError(f"Cache entry {path} is corrupt: {e}") from e

    def put_pull_request_files(self, owner: str, repo: str, number: int, payload: List[Dict]):
        self.write(self.pull_request_files_path(owner, repo, number), payload)

    def get_range(self, owner: str, repo: str, since: datetime, until: datetime) -> Optional[List[PullRequestSummary]]:
        """Return the cached merged PR listing of a date range.

        An unparsable entry is treated as a miss so the listing is fetched
        again and the entry rewritten.
        """
        path = self.range_path(owner, repo, since, until)
        try:
            payload = self.read(path)
            if payload is None:
                return None
            if not isinstance(payload, list):
                raise PayloadSchemaError(f"Expected a list of summaries, got {type(payload).__name__}")
            return [PullRequestSummary.from_dict(item) for item in payload]
        except (CacheCorruptionError, PayloadSchemaError) as e:
            logging.warning(f"Ignoring unreadable range cache {path}: {e}")
            return None

    def put_range(self, owner: str, repo: str, since: datetime, until: datetime,
                  summaries: List[PullRequestSummary]):
        """Store the merged PR listing of a date range; failures are only logged."""
        path = self.range_path(owner, repo, since, until)
        try:
            self.write(path, [summary.to_dict() for summary in summaries])
        except (OSError, TypeError, ValueError) as e:
            logging.warning(f"Failed to write range cache {path}: {e}")

    @staticmethod
    def is_range_cacheable(until: datetime, now: datetime = None) -> bool:
        """Check whether a range ending at `until` can no longer change.

        A range is closed when it ends on or before the end of yesterday, in
        the timezone of `now` (local time by default).

        Args:
            until: End of the range
            now: Reference time, defaults to the current local time

        Returns:
            True if the range listing may be cached
        """
        now = as_aware(now) if now is not None else datetime.now().astimezone()
        end_of_yesterday = (now - timedelta(days=1)).replace(hour=23, minute=59, second=59, microsecond=999999)
        return as_aware(until) <= end_of_yesterday
