"""GitHub PR Stats - statistics of merged pull requests per owner and per file."""

from .models import Report, OwnerStats, FileStats, PullRequestSummary, PullRequestDetail
from .config import ReportConfig
from .api_client import GitHubAPIClient, RateLimitExceededError
from .cache import CacheManager, CacheCorruptionError
from .file_filters import FileFilter, DEFAULT_GENERATED_FILE_PATTERNS
from .fetcher import PullRequestFetcher
from .report import ReportAggregator, generate_report
from .output import OutputFormatter

__all__ = [
    'Report',
    'OwnerStats',
    'FileStats',
    'PullRequestSummary',
    'PullRequestDetail',
    'ReportConfig',
    'GitHubAPIClient',
    'RateLimitExceededError',
    'CacheManager',
    'CacheCorruptionError',
    'FileFilter',
    'DEFAULT_GENERATED_FILE_PATTERNS',
    'PullRequestFetcher',
    'ReportAggregator',
    'generate_report',
    'OutputFormatter',
]
