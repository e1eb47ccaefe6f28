"""Aggregation of merged PRs into per-owner and per-file statistics."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .api_client import GitHubAPIClient
from .cache import CacheManager
from .config import ReportConfig, SORT_BY_CHANGES, SORT_BY_PRS
from .fetcher import PullRequestFetcher
from .file_filters import FileFilter
from .models import (
    Averages,
    ChangeTotals,
    FileStats,
    OwnerStats,
    PullRequestDetail,
    PullRequestStats,
    Report,
    ReportAverages,
    ReportTableRow,
    Totals,
    as_aware,
)


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# 'prs' is the plain ordering used before per-file filtering existed
OWNER_SORT_KEYS = {
    SORT_BY_CHANGES: lambda o: (-o.totals.total_changes, -o.totals.pr_count, o.owner),
    SORT_BY_PRS: lambda o: (-o.totals.pr_count, o.owner),
}


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning 0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


def compute_owner_averages(totals: Totals) -> Averages:
    return Averages(
        lines_added=safe_divide(totals.lines_added, totals.pr_count),
        lines_deleted=safe_divide(totals.lines_deleted, totals.pr_count),
        files_changed=safe_divide(totals.files_changed, totals.pr_count),
        commits_count=safe_divide(totals.commits_count, totals.pr_count),
    )


def compute_totals(owners: List[OwnerStats]) -> Totals:
    """Sum the totals of all owners."""
    totals = Totals()
    for owner in owners:
        totals.lines_added += owner.totals.lines_added
        totals.lines_deleted += owner.totals.lines_deleted
        totals.files_changed += owner.totals.files_changed
        totals.commits_count += owner.totals.commits_count
        totals.pr_count += owner.totals.pr_count
    return totals


def compute_averages(totals: Totals, owner_count: int) -> ReportAverages:
    """Per-PR averages of the report totals plus the average PRs per owner."""
    return ReportAverages(
        lines_added=safe_divide(totals.lines_added, totals.pr_count),
        lines_deleted=safe_divide(totals.lines_deleted, totals.pr_count),
        files_changed=safe_divide(totals.files_changed, totals.pr_count),
        commits_count=safe_divide(totals.commits_count, totals.pr_count),
        pr_count=safe_divide(totals.pr_count, owner_count),
    )


def build_table(owners: List[OwnerStats]) -> List[ReportTableRow]:
    return [
        ReportTableRow(
            owner=owner.owner,
            pr_count=owner.totals.pr_count,
            lines_added=owner.totals.lines_added,
            lines_deleted=owner.totals.lines_deleted,
            files_changed=owner.totals.files_changed,
            commits_count=owner.totals.commits_count,
            avg_lines_added=owner.averages.lines_added,
            avg_lines_deleted=owner.averages.lines_deleted,
            avg_files_changed=owner.averages.files_changed,
            avg_commits_count=owner.averages.commits_count,
        )
        for owner in owners
    ]


def determine_period(
    since: Optional[datetime],
    until: Optional[datetime],
    merged_dates: List[datetime],
    now: datetime = None
) -> Tuple[datetime, datetime]:
    """Work out the reported period.

    Explicit bounds win. Otherwise the earliest and latest merge dates are
    used, falling back to the epoch and the current time when there are no
    PRs.

    Args:
        since: Explicit start of the period
        until: Explicit end of the period
        merged_dates: Merge timestamps of the reported PRs
        now: Current time, for the empty case

    Returns:
        Tuple of (period_start, period_end)
    """
    if since is not None:
        start = as_aware(since)
    elif merged_dates:
        start = min(merged_dates)
    else:
        start = EPOCH

    if until is not None:
        end = as_aware(until)
    elif merged_dates:
        end = max(merged_dates)
    else:
        end = now or datetime.now(timezone.utc)

    return start, end


class ReportAggregator:
    """Folds fetched PRs into a Report.

    Both the owner and the file statistics are built from the same
    filtered file set of every PR, so the two tables always agree.
    """

    def __init__(self, file_filter: FileFilter = None, sort_by: str = SORT_BY_CHANGES):
        """Initialize the aggregator.

        Args:
            file_filter: Decides which files count (default: all files)
            sort_by: Owner ordering, 'changes' or 'prs'
        """
        self.file_filter = file_filter or FileFilter()
        if sort_by not in OWNER_SORT_KEYS:
            logging.warning(f"Invalid sort option '{sort_by}', using default: {SORT_BY_CHANGES}")
            sort_by = SORT_BY_CHANGES
        self.sort_by = sort_by

    def build_pull_request_stats(self, detail: PullRequestDetail) -> PullRequestStats:
        """Compute the statistics of one PR over its filtered files.

        Line and file counts come from the filtered files; the commit count
        is taken from the PR detail as is.
        """
        files = self.file_filter.filter_files(detail.files)
        summary = detail.summary

        return PullRequestStats(
            number=summary.number,
            title=summary.title,
            url=summary.url,
            owner=summary.owner,
            merged_at=summary.merged_at,
            totals=ChangeTotals(
                lines_added=sum(f.lines_added for f in files),
                lines_deleted=sum(f.lines_deleted for f in files),
                files_changed=len(files),
                commits_count=detail.commits,
            ),
            files=files,
        )

    def sort_owners(self, owners: List[OwnerStats]) -> List[OwnerStats]:
        return sorted(owners, key=OWNER_SORT_KEYS[self.sort_by])

    def build_owner_stats(self, prs: List[PullRequestStats]) -> List[OwnerStats]:
        """Group PRs by author and accumulate their totals."""
        owners: Dict[str, OwnerStats] = {}

        for pr in prs:
            stats = owners.get(pr.owner)
            if stats is None:
                stats = owners[pr.owner] = OwnerStats(owner=pr.owner)

            stats.prs.append(pr)
            stats.totals.lines_added += pr.totals.lines_added
            stats.totals.lines_deleted += pr.totals.lines_deleted
            stats.totals.files_changed += pr.totals.files_changed
            stats.totals.commits_count += pr.totals.commits_count
            stats.totals.pr_count += 1
            stats.averages = compute_owner_averages(stats.totals)

        return self.sort_owners(list(owners.values()))

    def build_file_stats(self, prs: List[PullRequestStats]) -> List[FileStats]:
        """Group filtered file changes by path across all PRs."""
        files: Dict[str, FileStats] = {}

        for pr in prs:
            counted = set()
            for change in pr.files:
                stats = files.get(change.path)
                if stats is None:
                    stats = files[change.path] = FileStats(path=change.path)

                stats.lines_added += change.lines_added
                stats.lines_deleted += change.lines_deleted
                stats.total_changes += change.total_changes

                if change.path not in counted:
                    counted.add(change.path)
                    stats.pr_count += 1

        return sorted(files.values(), key=lambda f: (-f.total_changes, f.path))

    def aggregate(
        self,
        details: List[PullRequestDetail],
        since: datetime = None,
        until: datetime = None,
        now: datetime = None
    ) -> Report:
        """Build the report for a set of fetched PRs.

        Args:
            details: Fetched merged PRs, in any order
            since: Explicit period start
            until: Explicit period end
            now: Current time, used as period end when there are no PRs

        Returns:
            The report with owners and files already sorted
        """
        prs = [self.build_pull_request_stats(detail) for detail in details]

        owners = self.build_owner_stats(prs)
        files = self.build_file_stats(prs)
        totals = compute_totals(owners)
        averages = compute_averages(totals, len(owners))
        period_start, period_end = determine_period(since, until, [pr.merged_at for pr in prs], now)

        logging.info(f"Aggregated {totals.pr_count} PRs from {len(owners)} owner(s) touching {len(files)} file(s)")

        return Report(
            period_start=period_start,
            period_end=period_end,
            totals=totals,
            averages=averages,
            owners=owners,
            table=build_table(owners),
            files=files,
        )


def generate_report(
    config: ReportConfig,
    api_client: GitHubAPIClient = None,
    cache_manager: CacheManager = None
) -> Report:
    """Fetch the merged PRs described by config and aggregate them.

    Args:
        config: Report configuration
        api_client: Client to use instead of a new GitHubAPIClient
        cache_manager: Cache to use instead of one built from config

    Returns:
        The aggregated report
    """
    api_client = api_client or GitHubAPIClient(config.token)
    cache_manager = cache_manager or CacheManager(config.cache_dir, config.use_cache)

    fetcher = PullRequestFetcher(api_client, cache_manager)
    details = fetcher.fetch_merged_pull_requests(config)

    aggregator = ReportAggregator(FileFilter(config.ignore_patterns, config.extensions), config.sort_by)
    return aggregator.aggregate(details, config.since, config.until)
