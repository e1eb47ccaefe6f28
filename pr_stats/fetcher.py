"""Fetching of merged pull requests with caching and bounded concurrency."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from .api_client import GitHubAPIClient
from .cache import CacheManager
from .config import ReportConfig, sanitize_concurrency, sanitize_limit
from .models import (
    PullRequestDetail,
    PullRequestSummary,
    as_aware,
    parse_timestamp,
    validate_files_payload,
    validate_pull_request_payload,
)


class PullRequestFetcher:
    """Lists merged PRs of a repository and fetches their details and files."""

    def __init__(self, api_client: GitHubAPIClient, cache_manager: CacheManager):
        """Initialize the fetcher.

        Args:
            api_client: Client used for GitHub requests
            cache_manager: Cache consulted before every request
        """
        self.api_client = api_client
        self.cache_manager = cache_manager

    def list_merged_summaries(self, config: ReportConfig) -> List[PullRequestSummary]:
        """List the merged PRs that fall inside the configured window.

        When both bounds are set and the window ended before today, the
        listing is read from and written to the range cache.

        Args:
            config: Report configuration

        Returns:
            Summaries ordered as listed, most recently updated first
        """
        limit = sanitize_limit(config.limit)
        use_range_cache = (
            config.since is not None
            and config.until is not None
            and self.cache_manager.is_range_cacheable(config.until)
        )

        if use_range_cache:
            cached = self.cache_manager.get_range(config.owner, config.repo, config.since, config.until)
            if cached is not None:
                logging.info(f"Using cached listing of {len(cached)} merged PRs for {config.owner}/{config.repo}")
                return cached[:limit] if limit else cached

        summaries = self._collect_merged_summaries(config, limit)
        logging.info(f"Found {len(summaries)} merged PRs in {config.owner}/{config.repo}")

        # A listing cut short by the limit is not the full range
        if use_range_cache and (limit is None or len(summaries) < limit):
            self.cache_manager.put_range(config.owner, config.repo, config.since, config.until, summaries)

        return summaries

    def _collect_merged_summaries(self, config: ReportConfig, limit: Optional[int]) -> List[PullRequestSummary]:
        since = as_aware(config.since) if config.since else None
        until = as_aware(config.until) if config.until else None
        summaries = []
        seen = set()

        pages = self.api_client.list_closed_pulls_pages(config.owner, config.repo, per_page=config.per_page)
        for page in pages:
            for pull in page:
                if not pull.get('merged_at'):
                    continue

                merged_at = parse_timestamp(pull['merged_at'])
                if since and merged_at < since:
                    continue
                if until and merged_at > until:
                    continue

                # Updated while paging, the same PR can show up on two pages
                if pull['number'] in seen:
                    continue
                seen.add(pull['number'])

                summaries.append(PullRequestSummary.from_api(pull, config.owner, config.repo))

                # Stop before requesting further pages
                if limit and len(summaries) >= limit:
                    logging.debug(f"Reached limit of {limit} merged PRs")
                    return summaries

        return summaries

    def _get_pull_request(self, config: ReportConfig, number: int) -> Dict:
        cached = self.cache_manager.get_pull_request(config.owner, config.repo, number)
        if cached is not None:
            logging.debug(f"Cache hit for PR #{number}")
            return cached

        payload = validate_pull_request_payload(
            self.api_client.get_pull_request(config.owner, config.repo, number)
        )
        self.cache_manager.put_pull_request(config.owner, config.repo, number, payload)
        return payload

    def _get_pull_request_files(self, config: ReportConfig, number: int) -> List[Dict]:
        cached = self.cache_manager.get_pull_request_files(config.owner, config.repo, number)
        if cached is not None:
            logging.debug(f"Cache hit for files of PR #{number}")
            return cached

        files = validate_files_payload(
            self.api_client.list_pull_request_files(config.owner, config.repo, number)
        )
        self.cache_manager.put_pull_request_files(config.owner, config.repo, number, files)
        return files

    def fetch_pull_request(self, config: ReportConfig, summary: PullRequestSummary) -> PullRequestDetail:
        """Fetch detail counts and changed files of one merged PR."""
        payload = self._get_pull_request(config, summary.number)
        files = self._get_pull_request_files(config, summary.number)
        return PullRequestDetail.from_api(summary, payload, files)

    def fetch_merged_pull_requests(self, config: ReportConfig) -> List[PullRequestDetail]:
        """Fetch all merged PRs needed for a report.

        At most sanitize_concurrency(config.concurrency) PRs are fetched at
        once. The first failure cancels the fetches that have not started
        yet and is raised; no partial result is returned.

        Args:
            config: Report configuration

        Returns:
            PR details in listing order
        """
        summaries = self.list_merged_summaries(config)
        if not summaries:
            return []

        max_workers = sanitize_concurrency(config.concurrency)
        logging.info(f"Fetching {len(summaries)} PRs with up to {max_workers} concurrent requests")

        results: Dict[int, PullRequestDetail] = {}
        completed = 0

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(self.fetch_pull_request, config, summary): index
                for index, summary in enumerate(summaries)
            }

            try:
                for future in as_completed(future_to_index):
                    results[future_to_index[future]] = future.result()
                    completed += 1

                    if completed % 20 == 0 or completed == len(summaries):
                        logging.info(f"Progress: {completed}/{len(summaries)} PRs fetched")
            except Exception:
                for future in future_to_index:
                    future.cancel()
                raise

        return [results[index] for index in range(len(summaries))]
