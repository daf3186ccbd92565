"""ConsistencyFilter - per-cluster partitioning of taxonomic assignments.

For one cluster of sequence IDs the filter:
1. Pools the candidate taxa of every member (repeats kept)
2. Rolls their counts up the taxonomy
3. Accepts or rejects each member's candidates against the pooled counts
4. Rescues rejected candidates that descend from an accepted one
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from ...taxonomy import LineageResolver, Taxon
from .assignments import AssignmentMap, SequenceId
from .config import ConsistencyConfig
from .counts import AccumulatedCounts, accumulate_counts
from .predicate import consistency_predicate


@dataclass(frozen=True)
class PartitionRecord:
    """Accepted and rejected taxa for one sequence ID.

    Attributes
    ----------
    seq_id : str
        Sequence identifier
    accepted : FrozenSet[str]
        Taxa kept, rescued taxa included
    rejected : FrozenSet[str]
        Taxa dropped
    rescued : FrozenSet[str]
        Subset of ``accepted`` that was reinstated by the rescue pass
    """

    seq_id: SequenceId
    accepted: FrozenSet[Taxon] = frozenset()
    rejected: FrozenSet[Taxon] = frozenset()
    rescued: FrozenSet[Taxon] = frozenset()

    def as_tuple(self) -> Tuple[SequenceId, List[Taxon], List[Taxon]]:
        """Return (id, accepted, rejected) with taxa sorted."""
        return self.seq_id, sorted(self.accepted), sorted(self.rejected)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "seq_id": self.seq_id,
            "accepted": sorted(self.accepted),
            "rejected": sorted(self.rejected),
            "rescued": sorted(self.rescued),
        }


@dataclass
class ClusterCounts:
    """Pooled taxa of a cluster with their rolled-up counts."""

    taxa: List[Taxon] = field(default_factory=list)
    counts: AccumulatedCounts = field(default_factory=dict)

    @property
    def total_count(self) -> int:
        return len(self.taxa)


class ConsistencyFilter:
    """Engine deciding which taxonomic assignments agree with their cluster.

    Parameters
    ----------
    assignments : AssignmentMap
        Candidate taxa per sequence ID
    resolver : LineageResolver
        Memoized lineage lookup, shared across clusters
    config : ConsistencyConfig, optional
        Decision thresholds (default: ratio 0.75, ancestry level 2)
    logger : logging.Logger, optional
        Logger instance

    Example
    -------
    >>> consistency_filter = ConsistencyFilter(assignments, resolver)
    >>> for record in consistency_filter.partition(["seq1", "seq2"]):
    ...     print(record.seq_id, sorted(record.accepted))
    """

    def __init__(
        self,
        assignments: AssignmentMap,
        resolver: LineageResolver,
        config: Optional[ConsistencyConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.assignments = assignments
        self.resolver = resolver
        self.config = config or ConsistencyConfig()
        self.logger = logger or logging.getLogger(__name__)

    def cluster_counts(self, cluster: Sequence[SequenceId]) -> ClusterCounts:
        """Pool the candidate taxa of ``cluster`` and accumulate their counts."""
        taxa = [
            taxon
            for seq_id in cluster
            for taxon in sorted(self.assignments.taxa_for(seq_id))
        ]
        return ClusterCounts(taxa=taxa, counts=accumulate_counts(taxa, self.resolver))

    def partition(self, cluster: Sequence[SequenceId]) -> List[PartitionRecord]:
        """Split each member's candidate taxa into accepted and rejected.

        Parameters
        ----------
        cluster : Sequence[str]
            Sequence IDs of one cluster, in output order.

        Returns
        -------
        List[PartitionRecord]
            One record per member ID. An empty cluster gives no records.

        Raises
        ------
        LineageLookupError
            If a lineage lookup fails and the resolver propagates failures.
        """
        if not cluster:
            return []

        pooled = self.cluster_counts(cluster)
        predicate = consistency_predicate(
            pooled.counts,
            pooled.total_count,
            minimum_ratio=self.config.minimum_ratio,
            ancestry_level=self.config.ancestry_level,
        )

        records = []
        for seq_id in cluster:
            candidates = self.assignments.taxa_for(seq_id)
            accepted = {taxon for taxon in candidates if predicate(taxon)}
            rejected = candidates - accepted

            rescued = frozenset(
                taxon for taxon in rejected
                if taxon in pooled.counts
                and not accepted.isdisjoint(pooled.counts[taxon].lineage)
            )
            records.append(PartitionRecord(
                seq_id=seq_id,
                accepted=frozenset(accepted) | rescued,
                rejected=frozenset(rejected - rescued),
                rescued=rescued,
            ))

        self.logger.debug(
            "Cluster of %d IDs: %d pooled taxa, %d counted nodes",
            len(cluster), pooled.total_count, len(pooled.counts),
        )
        return records
