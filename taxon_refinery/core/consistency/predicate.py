"""Accept/reject decision for a single candidate taxon."""

from __future__ import annotations

from typing import Callable, Optional

from ...taxonomy import Taxon
from .counts import AccumulatedCounts


def comparison_ancestor(lineage, ancestry_level: int) -> Optional[Taxon]:
    """Pick the ancestor whose count is compared against the cluster total.

    The lineage is read root-first, the first ``ancestry_level + 1`` entries
    are skipped and the next one is taken. The position is therefore fixed
    relative to the root, not to the taxon.

    Returns
    -------
    Optional[Taxon]
        The comparison ancestor, or None if the lineage has fewer than
        ``ancestry_level + 2`` entries.
    """
    root_first = tuple(reversed(lineage))
    index = ancestry_level + 1
    if index >= len(root_first):
        return None
    return root_first[index]


def is_consistent(
    taxon: Taxon,
    counts: AccumulatedCounts,
    total_count: int,
    minimum_ratio: float = 0.75,
    ancestry_level: int = 2,
) -> bool:
    """Return True if ``taxon`` is consistent with its cluster.

    The taxon passes when the cumulative count of its comparison ancestor
    is at least ``minimum_ratio`` of ``total_count``. A taxon missing from
    ``counts``, without a comparison ancestor, or in an empty cluster fails.
    """
    if total_count <= 0:
        return False

    entry = counts.get(taxon)
    if entry is None:
        return False

    ancestor = comparison_ancestor(entry.lineage, ancestry_level)
    if ancestor is None:
        return False

    ancestor_entry = counts.get(ancestor)
    if ancestor_entry is None:
        return False

    return ancestor_entry.count / total_count >= minimum_ratio


def consistency_predicate(
    counts: AccumulatedCounts,
    total_count: int,
    minimum_ratio: float = 0.75,
    ancestry_level: int = 2,
) -> Callable[[Taxon], bool]:
    """Bind ``is_consistent`` to one cluster's counts."""

    def predicate(taxon: Taxon) -> bool:
        return is_consistent(taxon, counts, total_count, minimum_ratio, ancestry_level)

    return predicate
