"""
Unit tests for the command line entry points
"""

import json
import argparse
import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from pr_stats.cli import (
    build_config,
    build_parser,
    main,
    parse_date,
    parse_list,
    parse_non_negative_int,
    pr_info_main,
    resolve_token,
)
from pr_stats.file_filters import DEFAULT_GENERATED_FILE_PATTERNS
from pr_stats.models import Report, ReportAverages, Totals


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('GITHUB_OWNER', 'GITHUB_REPO', 'GITHUB_TOKEN', 'GH_TOKEN', 'CACHE_DIR', 'LOG_LEVEL', 'DEBUG'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def empty_report():
    return Report(
        period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        period_end=datetime(2024, 2, 1, tzinfo=timezone.utc),
        totals=Totals(),
        averages=ReportAverages(),
    )


class TestArgumentParsing:
    """Test cases for option parsing."""

    def test_parse_date(self):
        assert parse_date('2024-01-15') == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert parse_date('2024-01-15T10:00:00Z') == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_parse_date_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_date('not-a-date')

    @pytest.mark.parametrize('value', ['-1', 'abc', '1.5'])
    def test_parse_non_negative_int_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_non_negative_int(value)

    def test_parse_list(self):
        assert parse_list('.ts, .tsx,,') == ['.ts', '.tsx']
        assert parse_list('') == []

    def test_owner_and_repo_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_owner_and_repo_from_environment(self, monkeypatch):
        monkeypatch.setenv('GITHUB_OWNER', 'acme')
        monkeypatch.setenv('GITHUB_REPO', 'app')

        args = build_parser().parse_args([])

        assert (args.owner, args.repo) == ('acme', 'app')

    def test_invalid_sort_option(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['-o', 'acme', '-r', 'app', '--sort-by', 'balance'])

    def test_invalid_date_exits(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['-o', 'acme', '-r', 'app', '--since', 'yesterday'])


class TestBuildConfig:
    """Test cases for turning parsed options into a ReportConfig."""

    def test_defaults(self):
        config = build_config(build_parser().parse_args(['-o', 'acme', '-r', 'app']))

        assert config.owner == 'acme'
        assert config.repo == 'app'
        assert config.since is None
        assert config.limit is None
        assert config.concurrency == 6
        assert config.cache_dir == '.cache'
        assert config.use_cache is True
        assert config.ignore_patterns == []
        assert config.extensions == ['.ts', '.tsx']
        assert config.sort_by == 'changes'

    def test_all_options(self):
        args = build_parser().parse_args([
            '-o', 'acme', '-r', 'app',
            '--since', '2024-01-01', '--until', '2024-01-31',
            '-l', '10', '-c', '3', '--cache-dir', '/tmp/prs', '--no-cache',
            '--ignore', 'docs/*', '--ignore', '*.snap',
            '--extensions', '', '--sort-by', 'prs',
        ])
        config = build_config(args)

        assert config.since == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert config.until == datetime(2024, 1, 31, tzinfo=timezone.utc)
        assert config.limit == 10
        assert config.concurrency == 3
        assert config.cache_dir == '/tmp/prs'
        assert config.use_cache is False
        assert config.ignore_patterns == ['docs/*', '*.snap']
        assert config.extensions == []
        assert config.sort_by == 'prs'

    def test_exclude_generated(self):
        config = build_config(build_parser().parse_args(['-o', 'a', '-r', 'b', '--ignore', 'x/*', '--exclude-generated']))
        assert config.ignore_patterns == ['x/*'] + DEFAULT_GENERATED_FILE_PATTERNS

    def test_token_resolution(self, monkeypatch):
        monkeypatch.setenv('GH_TOKEN', 'gh')
        assert resolve_token() == 'gh'

        monkeypatch.setenv('GITHUB_TOKEN', 'github')
        assert resolve_token() == 'github'
        assert resolve_token('explicit') == 'explicit'


@patch('pr_stats.cli.load_dotenv')
class TestMain:
    """Test cases for the report entry point."""

    def test_prints_report(self, mock_dotenv, empty_report, capsys):
        with patch('pr_stats.cli.generate_report', return_value=empty_report) as mock_generate:
            assert main(['-o', 'acme', '-r', 'app']) == 0

        assert mock_generate.call_args[0][0].owner == 'acme'
        assert 'No merged PRs found' in capsys.readouterr().out

    def test_json_output(self, mock_dotenv, empty_report, capsys):
        with patch('pr_stats.cli.generate_report', return_value=empty_report):
            assert main(['-o', 'acme', '-r', 'app', '--json']) == 0

        data = json.loads(capsys.readouterr().out)
        assert data['totals']['pr_count'] == 0
        assert data['period_end'] == '2024-02-01T00:00:00+00:00'

    def test_failure_returns_one(self, mock_dotenv):
        with patch('pr_stats.cli.generate_report', side_effect=RuntimeError('boom')):
            assert main(['-o', 'acme', '-r', 'app']) == 1


@patch('pr_stats.cli.load_dotenv')
class TestPrInfoMain:
    """Test cases for the single PR entry point."""

    def test_passes_options(self, mock_dotenv):
        with patch('pr_stats.cli.show_pr_info') as mock_show, patch('pr_stats.cli.GitHubAPIClient') as mock_client:
            assert pr_info_main(['-o', 'acme', '-r', 'app', '-n', '7', '--comments', '--no-color']) == 0

        mock_client.assert_called_once_with(None)
        args, kwargs = mock_show.call_args
        assert args[1:] == ('acme', 'app', 7)
        assert kwargs == {'show_comments': True, 'show_diffs': False, 'use_color': False}

    def test_failure_returns_one(self, mock_dotenv):
        with patch('pr_stats.cli.show_pr_info', side_effect=RuntimeError('boom')), \
                patch('pr_stats.cli.GitHubAPIClient'):
            assert pr_info_main(['-o', 'acme', '-r', 'app', '-n', '7']) == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
