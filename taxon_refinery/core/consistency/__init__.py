"""Consistency filtering of taxonomic assignments over sequence clusters.

Each cluster's candidate taxa are pooled and their counts rolled up the
taxonomy. A candidate is kept when a fixed-depth ancestor of it accounts
for enough of the cluster's assignments; rejected candidates that descend
from an accepted one are reinstated.

Example Usage
-------------
>>> from taxon_refinery.core.consistency import (
...     AssignmentMap, ConsistencyConfig, ConsistencyFilter, run_clusters,
... )
>>> consistency_filter = ConsistencyFilter(
...     assignments, resolver, ConsistencyConfig(minimum_ratio=0.75)
... )
>>> records = consistency_filter.partition(["seq1", "seq2"])
>>> results = run_clusters(clusters, consistency_filter, n_workers=4)
"""

__version__ = "0.1.0"

# Configuration classes
from .config import (
    ConsistencyConfig,
    FilterConfig,
    resolver_on_error,
)

# Inputs
from .assignments import AssignmentMap

# Counting and decision
from .counts import (
    AccumulatedCounts,
    TaxonCount,
    accumulate_counts,
    direct_counts,
)
from .predicate import (
    comparison_ancestor,
    consistency_predicate,
    is_consistent,
)

# Engine
from .engine import (
    ClusterCounts,
    ConsistencyFilter,
    PartitionRecord,
)

# Batch driver
from .parallel import (
    ClusterResult,
    run_clusters,
    summarize_results,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "ConsistencyConfig",
    "FilterConfig",
    "resolver_on_error",
    # Inputs
    "AssignmentMap",
    # Counts
    "AccumulatedCounts",
    "TaxonCount",
    "accumulate_counts",
    "direct_counts",
    # Predicate
    "comparison_ancestor",
    "consistency_predicate",
    "is_consistent",
    # Engine
    "ClusterCounts",
    "ConsistencyFilter",
    "PartitionRecord",
    # Batch driver
    "ClusterResult",
    "run_clusters",
    "summarize_results",
]
