"""Report configuration values and their defaults."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional


DEFAULT_CONCURRENCY = 6
MAX_CONCURRENCY = 25

DEFAULT_CACHE_DIR = '.cache'

# Only TypeScript sources count unless told otherwise
DEFAULT_ALLOWED_EXTENSIONS = ['.ts', '.tsx']

SORT_BY_CHANGES = 'changes'
SORT_BY_PRS = 'prs'
SORT_OPTIONS = [SORT_BY_CHANGES, SORT_BY_PRS]

DEFAULT_PER_PAGE = 100


@dataclass
class ReportConfig:
    """Everything the fetch and aggregation pipeline needs for one report.

    Values are resolved once at the CLI boundary; nothing below it reads
    the environment.

    Attributes:
        owner: Repository owner (user or organization)
        repo: Repository name
        since: Only PRs merged at or after this instant
        until: Only PRs merged at or before this instant
        limit: Maximum number of merged PRs to analyze (None = all)
        token: GitHub token sent as a bearer credential
        concurrency: Maximum number of PRs fetched at once
        cache_dir: Root directory of the response cache
        use_cache: Whether the response cache is read and written
        ignore_patterns: Glob patterns of files excluded from statistics
        extensions: Allowed file extensions (empty = all files)
        sort_by: Owner ordering, 'changes' or 'prs'
        per_page: Page size used when listing pull requests
    """
    owner: str
    repo: str
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    limit: Optional[int] = None
    token: Optional[str] = None
    concurrency: int = DEFAULT_CONCURRENCY
    cache_dir: str = DEFAULT_CACHE_DIR
    use_cache: bool = True
    ignore_patterns: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS))
    sort_by: str = SORT_BY_CHANGES
    per_page: int = DEFAULT_PER_PAGE


def sanitize_concurrency(value: Any) -> int:
    """Clamp a concurrency setting to [1, MAX_CONCURRENCY].

    Missing, zero, non-numeric or NaN values fall back to
    DEFAULT_CONCURRENCY; anything else is clamped, then truncated, so 0.5
    becomes 1 and infinity becomes MAX_CONCURRENCY.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_CONCURRENCY
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONCURRENCY
    if math.isnan(number) or number == 0:
        return DEFAULT_CONCURRENCY
    return int(max(1, min(MAX_CONCURRENCY, number)))


def sanitize_limit(value: Any) -> Optional[int]:
    """Return the limit as a positive int, or None when there is no limit."""
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None
