"""Command-line interface for Taxon-Refinery.

Example Usage
-------------
    # From command line:
    taxon-refinery --help
    taxon-refinery filter --assignments table.csv --clusters clusters.txt \\
        --nodes taxdump/nodes.dmp --out out/
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
