#!/usr/bin/env python3
"""
GitHub PR Stats
Aggregates merged pull requests of a repository into per-owner and per-file statistics.
"""

import sys

from pr_stats.cli import main


if __name__ == "__main__":
    sys.exit(main())
