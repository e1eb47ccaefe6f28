"""Command line entry points for the PR statistics report and PR inspection."""

import os
import sys
import logging
import argparse
from datetime import datetime
from typing import List

from dotenv import load_dotenv

from .api_client import GitHubAPIClient
from .config import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_CACHE_DIR,
    DEFAULT_CONCURRENCY,
    SORT_BY_CHANGES,
    SORT_OPTIONS,
    ReportConfig,
)
from .file_filters import DEFAULT_GENERATED_FILE_PATTERNS
from .models import parse_timestamp
from .output import OutputFormatter
from .pr_info import show_pr_info
from .report import generate_report


def configure_logging():
    """Configure the root logger; LOG_LEVEL overrides the WARNING default."""
    log_level = os.environ.get('LOG_LEVEL', 'WARNING').upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m/%d/%Y %I:%M:%S %p'
    )


def parse_date(value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date: {value}")


def parse_non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, received: {value}")
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, received: {value}")
    return parsed


def parse_list(value: str) -> List[str]:
    """Split a comma-separated option value, dropping empty items."""
    return [item.strip() for item in value.split(',') if item.strip()]


def resolve_token(token: str = None) -> str:
    return token or os.environ.get('GITHUB_TOKEN') or os.environ.get('GH_TOKEN')


def build_parser() -> argparse.ArgumentParser:
    """Build the report argument parser; owner and repo fall back to the environment."""
    default_owner = os.environ.get('GITHUB_OWNER')
    default_repo = os.environ.get('GITHUB_REPO')

    parser = argparse.ArgumentParser(
        prog='github-pr-stats',
        description='Statistics of merged GitHub pull requests per owner and per file'
    )
    parser.add_argument('-o', '--owner', default=default_owner, required=not default_owner,
                        help='Repository owner (user or organization), or GITHUB_OWNER')
    parser.add_argument('-r', '--repo', default=default_repo, required=not default_repo,
                        help='Repository name, or GITHUB_REPO')
    parser.add_argument('--since', type=parse_date,
                        help='Only PRs merged at or after this ISO date')
    parser.add_argument('--until', type=parse_date,
                        help='Only PRs merged at or before this ISO date')
    parser.add_argument('-l', '--limit', type=parse_non_negative_int,
                        help='Maximum number of merged PRs to analyze')
    parser.add_argument('-t', '--token',
                        help='GitHub token, or GITHUB_TOKEN / GH_TOKEN')
    parser.add_argument('-c', '--concurrency', type=parse_non_negative_int, default=DEFAULT_CONCURRENCY,
                        help=f'Maximum concurrent GitHub requests (default: {DEFAULT_CONCURRENCY})')
    parser.add_argument('--cache-dir', default=os.environ.get('CACHE_DIR', DEFAULT_CACHE_DIR),
                        help='Directory for cached PR responses')
    parser.add_argument('--no-cache', action='store_true',
                        help='Neither read nor write the response cache')
    parser.add_argument('--ignore', action='append', default=[], metavar='GLOB',
                        help='Exclude files matching this glob (repeatable)')
    parser.add_argument('--exclude-generated', action='store_true',
                        help='Exclude lock files, minified bundles and build output')
    parser.add_argument('--extensions', type=parse_list, default=list(DEFAULT_ALLOWED_EXTENSIONS),
                        help='Comma-separated allowed extensions, empty for all (default: .ts,.tsx)')
    parser.add_argument('--sort-by', choices=SORT_OPTIONS, default=SORT_BY_CHANGES,
                        help='Owner ordering: total changes or PR count')
    parser.add_argument('--json', action='store_true',
                        help='Print the raw report as JSON')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable ANSI colors')
    return parser


def build_config(args: argparse.Namespace) -> ReportConfig:
    ignore_patterns = list(args.ignore)
    if args.exclude_generated:
        ignore_patterns.extend(DEFAULT_GENERATED_FILE_PATTERNS)

    return ReportConfig(
        owner=args.owner,
        repo=args.repo,
        since=args.since,
        until=args.until,
        limit=args.limit,
        token=resolve_token(args.token),
        concurrency=args.concurrency,
        cache_dir=args.cache_dir,
        use_cache=not args.no_cache,
        ignore_patterns=ignore_patterns,
        extensions=args.extensions,
        sort_by=args.sort_by,
    )


def main(argv: List[str] = None) -> int:
    """Generate and print the report.

    Returns:
        Process exit code, 1 if the report could not be generated
    """
    load_dotenv()
    configure_logging()

    args = build_parser().parse_args(argv)
    config = build_config(args)
    formatter = OutputFormatter(use_color=not args.no_color and sys.stdout.isatty())

    logging.info(f"Generating statistics for {config.owner}/{config.repo}")
    try:
        report = generate_report(config)
    except Exception as e:
        logging.error(f"Failed to generate statistics: {e}", exc_info=bool(os.environ.get('DEBUG')))
        return 1

    if args.json:
        print(formatter.to_json(report))
    else:
        formatter.print_report(report)
    return 0


def pr_info_main(argv: List[str] = None) -> int:
    """Print a single pull request."""
    load_dotenv()
    configure_logging()

    parser = argparse.ArgumentParser(prog='github-pr-info', description='Show one GitHub pull request')
    parser.add_argument('-o', '--owner', required=True, help='Repository owner')
    parser.add_argument('-r', '--repo', required=True, help='Repository name')
    parser.add_argument('-n', '--number', type=parse_non_negative_int, required=True, help='Pull request number')
    parser.add_argument('-t', '--token', help='GitHub token, or GITHUB_TOKEN / GH_TOKEN')
    parser.add_argument('--comments', action='store_true', help='Show review comments')
    parser.add_argument('--diff', action='store_true', help='Show the unified diff')
    parser.add_argument('--no-color', action='store_true', help='Disable ANSI colors')
    args = parser.parse_args(argv)

    try:
        show_pr_info(
            GitHubAPIClient(resolve_token(args.token)),
            args.owner,
            args.repo,
            args.number,
            show_comments=args.comments,
            show_diffs=args.diff,
            use_color=not args.no_color and sys.stdout.isatty()
        )
    except Exception as e:
        logging.error(f"Failed to fetch PR: {e}", exc_info=bool(os.environ.get('DEBUG')))
        return 1
    return 0
