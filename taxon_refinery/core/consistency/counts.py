"""Cumulative taxon counts rolled up along the taxonomy."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, Iterable

from ...taxonomy import Lineage, Taxon

LineageLookup = Callable[[Taxon], Lineage]


@dataclass(frozen=True)
class TaxonCount:
    """Cumulative count of a taxon and its lineage (nearest ancestor first)."""

    count: int
    lineage: Lineage


AccumulatedCounts = Dict[Taxon, TaxonCount]


def direct_counts(taxa: Iterable[Taxon]) -> Counter:
    """Count literal occurrences of each taxon, in first-seen order."""
    return Counter(taxa)


def accumulate_counts(
    taxa: Iterable[Taxon],
    lineage_of: LineageLookup,
) -> AccumulatedCounts:
    """Compute cumulative counts for a multiset of taxa.

    Each taxon's direct count is pushed up its lineage, so the cumulative
    count of a taxon is its own occurrences plus those of every descendant
    present in ``taxa``. The result covers every taxon that occurs in the
    multiset or in any of their lineages, each with its own lineage.

    Parameters
    ----------
    taxa : Iterable[Taxon]
        Taxa with repeats.
    lineage_of : Callable[[Taxon], Lineage]
        Lineage lookup, usually a ``LineageResolver``.

    Returns
    -------
    AccumulatedCounts
        Mapping taxon -> TaxonCount.

    Examples
    --------
    >>> lineages = {"A": ("root",), "B": ("root",), "root": ()}
    >>> counts = accumulate_counts(["A", "A", "B"], lineages.__getitem__)
    >>> {taxon: c.count for taxon, c in counts.items()}
    {'A': 2, 'root': 3, 'B': 1}
    """
    totals: Dict[Taxon, int] = {}
    lineages: Dict[Taxon, Lineage] = {}

    for taxon, count in direct_counts(taxa).items():
        lineage = lineage_of(taxon)
        lineages.setdefault(taxon, lineage)
        # A node is credited once per occurrence even if a lineage repeats it.
        for node in dict.fromkeys((taxon,) + tuple(lineage)):
            totals[node] = totals.get(node, 0) + count

    return {
        node: TaxonCount(
            count=total,
            lineage=lineages[node] if node in lineages else lineage_of(node),
        )
        for node, total in totals.items()
    }
