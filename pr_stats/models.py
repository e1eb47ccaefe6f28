"""Data models for merged pull request statistics."""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List


PULL_REQUEST_COUNT_FIELDS = ('number', 'additions', 'deletions', 'changed_files', 'commits')


class PayloadSchemaError(ValueError):
    """Raised when a GitHub payload does not have the expected shape."""


def as_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes so they compare with API timestamps."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as returned by the GitHub API.

    Args:
        value: Timestamp such as '2024-03-01T12:00:00Z' or a plain date

    Returns:
        Timezone-aware datetime (naive input is treated as UTC)
    """
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return as_aware(datetime.fromisoformat(text))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_pull_request_payload(payload: Any) -> Dict:
    """Check that a pull request detail payload carries the counts we aggregate.

    Raises:
        PayloadSchemaError: If the payload is not an object or a count is missing
    """
    if not isinstance(payload, dict):
        raise PayloadSchemaError(f"Expected a pull request object, got {type(payload).__name__}")

    for key in PULL_REQUEST_COUNT_FIELDS:
        if not _is_int(payload.get(key)):
            raise PayloadSchemaError(f"Pull request field '{key}' must be an integer, got {payload.get(key)!r}")

    return payload


def validate_files_payload(payload: Any) -> List[Dict]:
    """Check that a changed-files payload is a list of file entries.

    Raises:
        PayloadSchemaError: If the payload is not a list or an entry is malformed
    """
    if not isinstance(payload, list):
        raise PayloadSchemaError(f"Expected a list of changed files, got {type(payload).__name__}")

    for index, entry in enumerate(payload):
        if not isinstance(entry, dict):
            raise PayloadSchemaError(f"File entry {index} must be an object")
        if not isinstance(entry.get('filename'), str):
            raise PayloadSchemaError(f"File entry {index} has no 'filename'")
        for key in ('additions', 'deletions'):
            if not _is_int(entry.get(key)):
                raise PayloadSchemaError(f"File entry {index} field '{key}' must be an integer")
        if entry.get('changes') is not None and not _is_int(entry['changes']):
            raise PayloadSchemaError(f"File entry {index} field 'changes' must be an integer")

    return payload


@dataclass(frozen=True)
class PullRequestSummary:
    """A merged PR as seen in the closed pull request listing."""
    number: int
    title: str
    url: str
    owner: str
    merged_at: datetime

    @classmethod
    def from_api(cls, pull: Dict, owner: str, repo: str) -> 'PullRequestSummary':
        """Build a summary from a listing entry that has a merge timestamp.

        Args:
            pull: One item of the GitHub pulls listing
            owner: Repository owner, used for the fallback URL
            repo: Repository name, used for the fallback URL
        """
        number = pull['number']
        user = pull.get('user') or {}
        return cls(
            number=number,
            title=pull.get('title') or f"PR #{number}",
            url=pull.get('html_url') or f"https://github.com/{owner}/{repo}/pull/{number}",
            owner=user.get('login') or 'unknown',
            merged_at=parse_timestamp(pull['merged_at']),
        )

    def to_dict(self) -> Dict:
        return {
            'number': self.number,
            'title': self.title,
            'url': self.url,
            'owner': self.owner,
            'merged_at': self.merged_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'PullRequestSummary':
        """Rebuild a summary stored by to_dict().

        Raises:
            PayloadSchemaError: If a field is missing or malformed
        """
        if not isinstance(data, dict):
            raise PayloadSchemaError(f"Expected a summary object, got {type(data).__name__}")
        if not _is_int(data.get('number')):
            raise PayloadSchemaError(f"Summary number must be an integer, got {data.get('number')!r}")
        try:
            return cls(
                number=data['number'],
                title=str(data['title']),
                url=str(data['url']),
                owner=str(data['owner']),
                merged_at=parse_timestamp(data['merged_at']),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise PayloadSchemaError(f"Malformed pull request summary: {e}") from e


@dataclass
class FileChange:
    """Line changes of one file within one PR."""
    path: str
    lines_added: int = 0
    lines_deleted: int = 0
    total_changes: int = 0

    @classmethod
    def from_api(cls, entry: Dict) -> 'FileChange':
        additions = entry.get('additions', 0)
        deletions = entry.get('deletions', 0)
        changes = entry.get('changes')
        return cls(
            path=entry['filename'],
            lines_added=additions,
            lines_deleted=deletions,
            total_changes=changes if changes is not None else additions + deletions,
        )


@dataclass
class PullRequestDetail:
    """A merged PR with its detail counts and changed files."""
    summary: PullRequestSummary
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    commits: int = 0
    files: List[FileChange] = field(default_factory=list)

    @classmethod
    def from_api(cls, summary: PullRequestSummary, payload: Dict, files_payload: List[Dict]) -> 'PullRequestDetail':
        return cls(
            summary=summary,
            additions=payload.get('additions') or 0,
            deletions=payload.get('deletions') or 0,
            changed_files=payload.get('changed_files') or 0,
            commits=payload.get('commits') or 0,
            files=[FileChange.from_api(entry) for entry in files_payload],
        )


@dataclass
class ChangeTotals:
    """Summed line, file and commit counts."""
    lines_added: int = 0
    lines_deleted: int = 0
    files_changed: int = 0
    commits_count: int = 0

    @property
    def total_changes(self) -> int:
        return self.lines_added + self.lines_deleted


@dataclass
class Totals(ChangeTotals):
    """Change totals over a number of PRs."""
    pr_count: int = 0


@dataclass
class Averages:
    """Per-PR averages of the change totals."""
    lines_added: float = 0.0
    lines_deleted: float = 0.0
    files_changed: float = 0.0
    commits_count: float = 0.0


@dataclass
class ReportAverages(Averages):
    """Report-wide averages; pr_count is the average number of PRs per owner."""
    pr_count: float = 0.0


@dataclass
class PullRequestStats:
    """Statistics of one PR computed over its filtered file set."""
    number: int
    title: str
    url: str
    owner: str
    merged_at: datetime
    totals: ChangeTotals = field(default_factory=ChangeTotals)
    files: List[FileChange] = field(default_factory=list)


@dataclass
class OwnerStats:
    """Running statistics for one PR author."""
    owner: str
    totals: Totals = field(default_factory=Totals)
    averages: Averages = field(default_factory=Averages)
    prs: List[PullRequestStats] = field(default_factory=list)


@dataclass
class FileStats:
    """Running statistics for one file path across PRs."""
    path: str
    lines_added: int = 0
    lines_deleted: int = 0
    total_changes: int = 0
    pr_count: int = 0


@dataclass
class ReportTableRow:
    """Flat per-owner row consumed by the console table."""
    owner: str
    pr_count: int
    lines_added: int
    lines_deleted: int
    files_changed: int
    commits_count: int
    avg_lines_added: float
    avg_lines_deleted: float
    avg_files_changed: float
    avg_commits_count: float


@dataclass
class Report:
    """Aggregated statistics for one repository and period."""
    period_start: datetime
    period_end: datetime
    totals: Totals
    averages: ReportAverages
    owners: List[OwnerStats] = field(default_factory=list)
    table: List[ReportTableRow] = field(default_factory=list)
    files: List[FileStats] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """Return a JSON-ready representation with ISO 8601 timestamps."""
        return _serialize(asdict(self))


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    return value
