"""CSV I/O for Taxon-Refinery.

Reads the classifier's assignment table and the clustering output, and
writes partitioned assignments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Union

import pandas as pd

from ..core.consistency import AssignmentMap, PartitionRecord

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

PARTITION_COLUMNS = ["id", "accepted", "rejected", "rescued"]


def ensure_output_dir(path: PathLike) -> Path:
    """Create the directory at path if it does not exist and return it."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def split_taxa(value: str, delimiter: str = ";") -> List[str]:
    """Split a delimited taxa field, trimming blanks and dropping empty tokens."""
    return [token.strip() for token in str(value).split(delimiter) if token.strip()]


def load_assignment_table(path: PathLike, delimiter: str = ";") -> AssignmentMap:
    """Read the assignment table into an AssignmentMap.

    The table has no header; each row is ``id,taxa`` where ``taxa`` is a
    ``delimiter``-separated list. A repeated ID keeps its last row.

    Parameters
    ----------
    path : PathLike
        Path to the assignment CSV.
    delimiter : str
        Separator between taxa within the second column (default: ";").

    Returns
    -------
    AssignmentMap
        Candidate taxa per sequence ID.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If a row has fewer than two columns.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Assignment table not found: {csv_path}")
    if csv_path.stat().st_size == 0:
        logger.warning("Assignment table %s is empty", csv_path)
        return AssignmentMap({})

    df = pd.read_csv(
        csv_path,
        header=None,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    if df.shape[1] < 2:
        raise ValueError(f"Expected two columns (id, taxa) in {csv_path}, found {df.shape[1]}")

    ids = df[0].str.strip()
    taxa = df[1].fillna("").map(lambda value: split_taxa(value, delimiter))
    assignments = AssignmentMap.from_pairs(zip(ids, taxa))

    n_duplicates = len(df) - len(assignments)
    if n_duplicates:
        logger.warning("%d repeated IDs in %s; last row kept", n_duplicates, csv_path)
    logger.info(
        "Loaded %d IDs with %d assignments from %s",
        len(assignments), assignments.n_assignments(), csv_path,
    )
    return assignments


def iter_clusters(path: PathLike, separator: str = ",") -> Iterator[List[str]]:
    """Yield clusters from a clustering result file, one per non-blank line.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    clusters_path = Path(path)
    if not clusters_path.exists():
        raise FileNotFoundError(f"Clusters file not found: {clusters_path}")

    with open(clusters_path, "r", encoding="utf-8") as f:
        for line in f:
            ids = [seq_id.strip() for seq_id in line.split(separator) if seq_id.strip()]
            if ids:
                yield ids


def records_to_dataframe(
    records: Iterable[PartitionRecord],
    delimiter: str = ";",
) -> pd.DataFrame:
    """Flatten partition records into one row per ID, taxa sorted and joined."""
    rows = [
        {
            "id": record.seq_id,
            "accepted": delimiter.join(sorted(record.accepted)),
            "rejected": delimiter.join(sorted(record.rejected)),
            "rescued": delimiter.join(sorted(record.rescued)),
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=PARTITION_COLUMNS)


def write_partition_table(
    records: Iterable[PartitionRecord],
    path: PathLike,
    delimiter: str = ";",
) -> Path:
    """Write partition records to CSV, creating the parent directory."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = records_to_dataframe(records, delimiter)
    df.to_csv(output_path, index=False)
    logger.info("Wrote %d partitioned IDs to %s", len(df), output_path)
    return output_path
