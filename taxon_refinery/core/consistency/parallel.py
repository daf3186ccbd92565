"""
Parallel cluster processing for consistency filtering.

Clusters are independent of each other, so each one is a work item. Workers
are threads rather than processes: they share the resolver's lineage cache,
and the cost of a run is dominated by taxonomy lookups, not by Python code.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from joblib import Parallel, delayed

from ...taxonomy import LineageLookupError
from .assignments import SequenceId
from .config import ON_LOOKUP_ERROR_CHOICES, resolver_on_error
from .engine import ConsistencyFilter, PartitionRecord


@dataclass
class ClusterResult:
    """Result from processing one cluster."""
    cluster_index: int
    ids: List[SequenceId]
    records: List[PartitionRecord] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None
    timing_seconds: float = 0.0


def worker_partition(
    consistency_filter: ConsistencyFilter,
    cluster_index: int,
    cluster: Sequence[SequenceId],
    skip_failures: bool = False,
) -> ClusterResult:
    """Partition a single cluster.

    Parameters
    ----------
    consistency_filter : ConsistencyFilter
        Shared filter engine
    cluster_index : int
        Position of the cluster in the input
    cluster : Sequence[str]
        Member sequence IDs
    skip_failures : bool
        If True, a failed lineage lookup is reported in the result instead
        of being raised

    Returns
    -------
    ClusterResult
        Records for every member, or the failure
    """
    start_time = time.time()
    ids = list(cluster)
    try:
        records = consistency_filter.partition(ids)
    except LineageLookupError as e:
        if not skip_failures:
            raise
        return ClusterResult(
            cluster_index=cluster_index,
            ids=ids,
            success=False,
            error=str(e),
            timing_seconds=time.time() - start_time,
        )

    return ClusterResult(
        cluster_index=cluster_index,
        ids=ids,
        records=records,
        timing_seconds=time.time() - start_time,
    )


def run_clusters(
    clusters: Iterable[Sequence[SequenceId]],
    consistency_filter: ConsistencyFilter,
    n_workers: int = 1,
    on_lookup_error: str = "raise",
    logger: Optional[logging.Logger] = None,
) -> List[ClusterResult]:
    """Run the consistency filter over every cluster.

    Parameters
    ----------
    clusters : Iterable[Sequence[str]]
        Clusters of sequence IDs
    consistency_filter : ConsistencyFilter
        Filter engine; its resolver is shared by all workers
    n_workers : int
        Number of worker threads (1 = sequential, -1 = all cores)
    on_lookup_error : str
        "raise" aborts on the first failed lookup, "skip" reports failing
        clusters and carries on, "empty" relies on the resolver treating
        failed taxa as having no ancestors. The resolver's ``on_error``
        must match (see ``resolver_on_error``)
    logger : logging.Logger, optional
        Logger for progress tracking

    Returns
    -------
    List[ClusterResult]
        Results in input order

    Raises
    ------
    LineageLookupError
        If a lookup fails and ``on_lookup_error`` is "raise"
    ValueError
        If ``on_lookup_error`` is unknown or does not match the resolver
    """
    _logger = logger or logging.getLogger(__name__)
    if on_lookup_error not in ON_LOOKUP_ERROR_CHOICES:
        raise ValueError(
            f"on_lookup_error must be one of {ON_LOOKUP_ERROR_CHOICES}, got {on_lookup_error!r}"
        )
    expected_mode = resolver_on_error(on_lookup_error)
    resolver_mode = consistency_filter.resolver.on_error
    if resolver_mode != expected_mode:
        raise ValueError(
            f"on_lookup_error={on_lookup_error!r} needs a LineageResolver built with "
            f"on_error={expected_mode!r}, got {resolver_mode!r}"
        )
    skip_failures = on_lookup_error == "skip"

    start_time = time.time()
    if n_workers == 1:
        results = [
            worker_partition(consistency_filter, index, cluster, skip_failures)
            for index, cluster in enumerate(clusters)
        ]
    else:
        results = Parallel(n_jobs=n_workers, backend="threading")(
            delayed(worker_partition)(consistency_filter, index, cluster, skip_failures)
            for index, cluster in enumerate(clusters)
        )

    _logger.info(
        "Processed %d clusters with %d worker(s) in %.2f seconds",
        len(results), n_workers, time.time() - start_time,
    )
    for result in results:
        if not result.success:
            _logger.error(
                "  Cluster %d (%d IDs): FAILED - %s",
                result.cluster_index, len(result.ids), result.error,
            )
    return results


def summarize_results(results: List[ClusterResult]) -> Dict[str, Any]:
    """Aggregate counts over cluster results."""
    records = [record for result in results for record in result.records]
    failed = [result for result in results if not result.success]
    return {
        "n_clusters": len(results),
        "n_clusters_failed": len(failed),
        "n_ids": len(records),
        "n_ids_skipped": sum(len(result.ids) for result in failed),
        "n_accepted": sum(len(record.accepted) for record in records),
        "n_rejected": sum(len(record.rejected) for record in records),
        "n_rescued": sum(len(record.rescued) for record in records),
        "n_ids_without_accepted": sum(1 for record in records if not record.accepted),
        "errors": [
            f"Cluster {result.cluster_index}: {result.error}" for result in failed
        ],
    }
