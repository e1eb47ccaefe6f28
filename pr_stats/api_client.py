"""GitHub API client for making requests and handling pagination."""

import logging
from typing import Dict, Iterator, List

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import DEFAULT_PER_PAGE


API_BASE_URL = 'https://api.github.com'
DIFF_MEDIA_TYPE = 'application/vnd.github.v3.diff'


class RateLimitExceededError(RuntimeError):
    """Raised when GitHub reports that the API rate limit is exhausted."""


class GitHubAPIClient:
    """Handles GitHub API requests with retry logic and pagination."""

    def __init__(self, token: str = None, base_url: str = API_BASE_URL):
        """Initialize the GitHub API client.

        Args:
            token: GitHub token sent as a bearer credential
            base_url: API root, overridable for GitHub Enterprise
        """
        self.token = token
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()

        # Pool must cover the maximum fetch concurrency
        adapter = HTTPAdapter(
            pool_connections=50,
            pool_maxsize=50,
            max_retries=Retry(
                total=3,
                backoff_factor=0.3,
                status_forcelist=[500, 502, 503, 504]
            )
        )
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

        self.session.headers.update({'Accept': 'application/vnd.github.v3+json'})
        if self.token:
            self.session.headers['Authorization'] = f'Bearer {self.token}'
            logging.info("Initialized GitHub API client with token")
        else:
            logging.warning("No GitHub token provided. Rate limits will be much lower.")
            logging.warning("Pass --token or set GITHUB_TOKEN / GH_TOKEN.")

    def _check_response(self, response: requests.Response):
        """Raise for failed responses.

        Raises:
            RateLimitExceededError: If the rate limit is exhausted
            requests.HTTPError: For any other non-2xx status
        """
        if response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0':
            reset = response.headers.get('X-RateLimit-Reset', 'unknown')
            logging.error(f"Rate limit exceeded, resets at {reset}")
            raise RateLimitExceededError(f"GitHub API rate limit exceeded (reset at epoch {reset})")

        response.raise_for_status()

    def iter_pages(self, url: str, params: Dict = None, per_page: int = DEFAULT_PER_PAGE) -> Iterator[List[Dict]]:
        """Yield the pages of a paginated GitHub API endpoint one at a time.

        Callers can stop iterating at any point; no further pages are
        requested after that.

        Args:
            url: The API endpoint URL
            params: Query parameters
            per_page: Page size

        Yields:
            The items of each non-empty page
        """
        params = dict(params or {})
        params['per_page'] = per_page
        page = 1

        while True:
            params['page'] = page
            logging.debug(f"Fetching page {page} from {url}")
            response = self.session.get(url, params=dict(params))
            self._check_response(response)
            data = response.json()

            if not data:
                break

            yield data

            # Check if there are more pages
            if len(data) < per_page:
                break

            page += 1

    def get_paginated(self, url: str, params: Dict = None, per_page: int = DEFAULT_PER_PAGE) -> List[Dict]:
        """Fetch all pages of a paginated GitHub API endpoint.

        Args:
            url: The API endpoint URL
            params: Query parameters
            per_page: Page size

        Returns:
            List of all items from all pages
        """
        results = []
        for page in self.iter_pages(url, params, per_page):
            results.extend(page)

        logging.debug(f"Fetched {len(results)} total items from {url}")
        return results

    def get_json(self, url: str, params: Dict = None):
        """Make a single GET request and return the decoded JSON body."""
        response = self.session.get(url, params=params)
        self._check_response(response)
        return response.json()

    def get_text(self, url: str, accept: str) -> str:
        """Make a single GET request with a custom media type and return the body."""
        response = self.session.get(url, headers={'Accept': accept})
        self._check_response(response)
        return response.text

    def repo_url(self, owner: str, repo: str) -> str:
        return f"{self.base_url}/repos/{owner}/{repo}"

    def list_closed_pulls_pages(self, owner: str, repo: str, per_page: int = DEFAULT_PER_PAGE) -> Iterator[List[Dict]]:
        """Iterate over closed pull requests, most recently updated first."""
        return self.iter_pages(
            f"{self.repo_url(owner, repo)}/pulls",
            {'state': 'closed', 'sort': 'updated', 'direction': 'desc'},
            per_page
        )

    def get_pull_request(self, owner: str, repo: str, number: int) -> Dict:
        return self.get_json(f"{self.repo_url(owner, repo)}/pulls/{number}")

    def list_pull_request_files(self, owner: str, repo: str, number: int) -> List[Dict]:
        return self.get_paginated(f"{self.repo_url(owner, repo)}/pulls/{number}/files")

    def list_review_comments(self, owner: str, repo: str, number: int) -> List[Dict]:
        return self.get_paginated(f"{self.repo_url(owner, repo)}/pulls/{number}/comments")

    def get_pull_request_diff(self, owner: str, repo: str, number: int) -> str:
        """Fetch the unified diff of a pull request."""
        return self.get_text(f"{self.repo_url(owner, repo)}/pulls/{number}", DIFF_MEDIA_TYPE)
