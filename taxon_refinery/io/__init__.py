"""I/O utilities for Taxon-Refinery.

Provides logging, assignment/cluster loading, and result writing.
"""

from .logging import get_logger, get_timestamped_log_path, log_json, log_yaml
from .csv import (
    ensure_output_dir,
    iter_clusters,
    load_assignment_table,
    records_to_dataframe,
    split_taxa,
    write_partition_table,
)

__all__ = [
    # Logging
    "get_logger",
    "get_timestamped_log_path",
    "log_json",
    "log_yaml",
    # CSV I/O
    "ensure_output_dir",
    "iter_clusters",
    "load_assignment_table",
    "records_to_dataframe",
    "split_taxa",
    "write_partition_table",
]
