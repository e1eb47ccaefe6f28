"""
Unit tests for configuration defaults and sanitizing
"""

import pytest

from pr_stats.config import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_CONCURRENCY,
    MAX_CONCURRENCY,
    ReportConfig,
    sanitize_concurrency,
    sanitize_limit,
)


class TestSanitizeConcurrency:
    """Test cases for clamping the concurrency cap."""

    @pytest.mark.parametrize('value', [None, 0, 'abc', float('nan'), True])
    def test_invalid_values_use_default(self, value):
        assert sanitize_concurrency(value) == DEFAULT_CONCURRENCY

    def test_values_are_clamped(self):
        assert sanitize_concurrency(100) == MAX_CONCURRENCY
        assert sanitize_concurrency(float('inf')) == MAX_CONCURRENCY
        assert sanitize_concurrency(-4) == 1
        assert sanitize_concurrency(1) == 1

    @pytest.mark.parametrize('value', [0.5, 0.01, '0.9'])
    def test_fraction_below_one_is_clamped_to_one(self, value):
        assert sanitize_concurrency(value) == 1

    def test_fractions_are_truncated(self):
        assert sanitize_concurrency(3.9) == 3
        assert sanitize_concurrency('8') == 8


class TestSanitizeLimit:
    """Test cases for the result count limit."""

    def test_positive_limit_is_kept(self):
        assert sanitize_limit(5) == 5

    @pytest.mark.parametrize('value', [None, 0, -1, '3', 2.5])
    def test_other_values_mean_no_limit(self, value):
        assert sanitize_limit(value) is None


class TestReportConfig:
    """Test cases for ReportConfig defaults."""

    def test_defaults(self):
        config = ReportConfig(owner='acme', repo='app')

        assert config.concurrency == DEFAULT_CONCURRENCY
        assert config.extensions == DEFAULT_ALLOWED_EXTENSIONS
        assert config.ignore_patterns == []
        assert config.use_cache is True
        assert config.sort_by == 'changes'

    def test_extensions_are_not_shared(self):
        first = ReportConfig(owner='acme', repo='app')
        first.extensions.append('.js')
        assert ReportConfig(owner='acme', repo='app').extensions == ['.ts', '.tsx']
