"""File filtering for deciding which changed files count toward statistics."""

import os
import fnmatch
import logging
from typing import Iterable, List

from .models import FileChange


# Commonly generated files, excluded with --exclude-generated
DEFAULT_GENERATED_FILE_PATTERNS = [
    'package-lock.json',
    'yarn.lock',
    'pnpm-lock.yaml',
    'Gemfile.lock',
    'Cargo.lock',
    'composer.lock',
    'poetry.lock',
    'Pipfile.lock',
    '*.min.js',
    '*.min.css',
    '*.bundle.js',
    '*.bundle.css',
    'dist/**',
    'build/**',
    'out/**',
    'target/**',
    '.next/**',
    'coverage/**',
    '*.generated.*',
    '*.gen.*',
    '*-lock.json',
    '*.lock',
]


def match_segments(path_parts: List[str], pattern_parts: List[str]) -> bool:
    """Match path segments against glob segments.

    '*' and '?' never cross a '/', while a '**' segment matches zero or
    more directories.
    """
    if not pattern_parts:
        return not path_parts

    head, rest = pattern_parts[0], pattern_parts[1:]
    if head == '**':
        return any(match_segments(path_parts[i:], rest) for i in range(len(path_parts) + 1))

    if not path_parts:
        return False
    return fnmatch.fnmatchcase(path_parts[0], head) and match_segments(path_parts[1:], rest)


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and make sure it starts with a dot."""
    extension = extension.strip().lower()
    if extension and not extension.startswith('.'):
        extension = f".{extension}"
    return extension


class FileFilter:
    """Decides per file path whether it counts toward PR statistics.

    A file counts when it matches none of the ignore patterns and its
    extension is in the allowed set. No patterns means nothing is ignored;
    an empty allowed set means every extension is allowed.
    """

    def __init__(self, ignore_patterns: Iterable[str] = None, extensions: Iterable[str] = None):
        """Initialize the file filter.

        Args:
            ignore_patterns: Glob patterns of files to exclude
            extensions: Allowed extensions such as '.ts' (case-insensitive)
        """
        self.ignore_patterns = [p for p in (ignore_patterns or []) if p]
        self.extensions = {normalize_extension(e) for e in (extensions or []) if e and e.strip()}

    def match_pattern(self, path: str, pattern: str) -> bool:
        """Check if a path matches a glob pattern.

        '*' stays within one directory level and '**/' spans any number of
        directories, including none. Patterns without a '/' also match
        against the file name alone, so 'package-lock.json' excludes lock
        files in any directory. Wildcards match dot files.
        """
        if match_segments(path.split('/'), pattern.split('/')):
            return True
        if '/' not in pattern:
            return fnmatch.fnmatchcase(os.path.basename(path), pattern)
        return False

    def is_ignored(self, path: str) -> bool:
        return any(self.match_pattern(path, pattern) for pattern in self.ignore_patterns)

    def has_allowed_extension(self, path: str) -> bool:
        if not self.extensions:
            return True
        return os.path.splitext(path)[1].lower() in self.extensions

    def accepts(self, path: str) -> bool:
        """Return True if the file passes both the ignore and extension gates."""
        return not self.is_ignored(path) and self.has_allowed_extension(path)

    def filter_files(self, files: List[FileChange]) -> List[FileChange]:
        """Return the files that count toward statistics, in their original order."""
        accepted = [change for change in files if self.accepts(change.path)]

        excluded_count = len(files) - len(accepted)
        if excluded_count > 0:
            logging.debug(f"Excluded {excluded_count} of {len(files)} file(s) by ignore/extension filters")

        return accepted
