"""Console and JSON output for PR statistics reports."""

import json
from datetime import datetime
from typing import List

from .models import Report


# ANSI color codes
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
BLUE = '\033[94m'
CYAN = '\033[96m'
MAGENTA = '\033[95m'
BOLD = '\033[1m'
RESET = '\033[0m'

NO_RESULTS_MESSAGE = "No merged PRs found for the given filters."


def format_integer(value: float) -> str:
    return f"{int(value):,}"


def format_decimal(value: float) -> str:
    return f"{value:,.2f}"


def format_date(value: datetime) -> str:
    return value.date().isoformat()


class OutputFormatter:
    """Formats and prints PR statistics reports."""

    def __init__(self, use_color: bool = True):
        """Initialize the output formatter.

        Args:
            use_color: Whether to emit ANSI color codes
        """
        self.use_color = use_color

    def _paint(self, text: str, *codes: str) -> str:
        if not self.use_color or not codes:
            return text
        return f"{''.join(codes)}{text}{RESET}"

    def _row(self, cells: List[tuple]) -> str:
        """Join (text, width, align, colors) cells; padding happens before coloring."""
        parts = []
        for text, width, align, colors in cells:
            padded = f"{text:<{width}}" if align == '<' else f"{text:>{width}}"
            parts.append(self._paint(padded, *colors))
        return ' '.join(parts).rstrip()

    def format_owner_table(self, report: Report) -> str:
        """Render the per-owner table followed by the Total and Avg/Owner rows."""
        owner_width = max([len(row.owner) for row in report.table] + [len('Avg/Owner'), 20])
        widths = [owner_width, 6, 10, 10, 8, 9, 10, 10, 10, 12]
        headers = ['Owner', 'PRs', 'Lines +', 'Lines -', 'Files', 'Commits',
                   'Avg +', 'Avg -', 'Avg Files', 'Avg Commits']

        lines = [
            self._row([(h, w, '<' if i == 0 else '>', (CYAN,)) for i, (h, w) in enumerate(zip(headers, widths))]),
            '-' * (sum(widths) + len(widths) - 1),
        ]

        for row in report.table:
            lines.append(self._row([
                (row.owner, widths[0], '<', (GREEN,)),
                (format_integer(row.pr_count), widths[1], '>', ()),
                (format_integer(row.lines_added), widths[2], '>', (BLUE,)),
                (format_integer(row.lines_deleted), widths[3], '>', (RED,)),
                (format_integer(row.files_changed), widths[4], '>', ()),
                (format_integer(row.commits_count), widths[5], '>', ()),
                (format_decimal(row.avg_lines_added), widths[6], '>', (BLUE,)),
                (format_decimal(row.avg_lines_deleted), widths[7], '>', (RED,)),
                (format_decimal(row.avg_files_changed), widths[8], '>', ()),
                (format_decimal(row.avg_commits_count), widths[9], '>', ()),
            ]))

        totals = report.totals
        averages = report.averages
        lines.append('-' * (sum(widths) + len(widths) - 1))
        lines.append(self._row([
            ('Total', widths[0], '<', (BOLD,)),
            (format_integer(totals.pr_count), widths[1], '>', (BOLD,)),
            (format_integer(totals.lines_added), widths[2], '>', (BOLD, BLUE)),
            (format_integer(totals.lines_deleted), widths[3], '>', (BOLD, RED)),
            (format_integer(totals.files_changed), widths[4], '>', (BOLD,)),
            (format_integer(totals.commits_count), widths[5], '>', (BOLD,)),
            (format_decimal(averages.lines_added), widths[6], '>', (BOLD, BLUE)),
            (format_decimal(averages.lines_deleted), widths[7], '>', (BOLD, RED)),
            (format_decimal(averages.files_changed), widths[8], '>', (BOLD,)),
            (format_decimal(averages.commits_count), widths[9], '>', (BOLD,)),
        ]))
        lines.append(self._row([
            ('Avg/Owner', widths[0], '<', (BOLD,)),
            (format_decimal(averages.pr_count), widths[1], '>', (BOLD,)),
        ]))

        return '\n'.join(lines)

    def format_file_table(self, report: Report) -> str:
        """Render the per-file table."""
        path_width = max([len(f.path) for f in report.files] + [40])
        widths = [path_width, 6, 10, 10, 10]
        headers = ['File', 'PRs', 'Lines +', 'Lines -', 'Changes']

        lines = [
            self._row([(h, w, '<' if i == 0 else '>', (CYAN,)) for i, (h, w) in enumerate(zip(headers, widths))]),
            '-' * (sum(widths) + len(widths) - 1),
        ]

        for stats in report.files:
            lines.append(self._row([
                (stats.path, widths[0], '<', ()),
                (format_integer(stats.pr_count), widths[1], '>', ()),
                (format_integer(stats.lines_added), widths[2], '>', (BLUE,)),
                (format_integer(stats.lines_deleted), widths[3], '>', (RED,)),
                (format_integer(stats.total_changes), widths[4], '>', ()),
            ]))

        return '\n'.join(lines)

    def print_report(self, report: Report):
        """Print the report tables, or a notice when no PR matched."""
        if report.totals.pr_count == 0:
            print(self._paint(NO_RESULTS_MESSAGE, YELLOW))
            return

        print(self._paint(
            f"Period: {format_date(report.period_start)} → {format_date(report.period_end)} "
            f"| PRs: {report.totals.pr_count}",
            CYAN
        ))
        print()
        print(self.format_owner_table(report))

        if report.files:
            print(f"\n{self._paint('Files', BOLD)}")
            print(self.format_file_table(report))

    def to_json(self, report: Report) -> str:
        return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
