"""Taxon-Refinery: consistency filtering of taxonomic assignments over sequence clusters.

This package provides tools for:
- Resolving taxon lineages through a memoized taxonomy service adapter
- Rolling taxon occurrence counts up the taxonomy per sequence cluster
- Accepting or rejecting each candidate assignment against its cluster
- Rescuing rejected assignments that descend from accepted ones

Example usage:
    >>> from taxon_refinery.taxonomy import LineageResolver, load_ncbi_nodes
    >>> from taxon_refinery.core.consistency import ConsistencyFilter
    >>> from taxon_refinery.io import load_assignment_table
    >>>
    >>> resolver = LineageResolver(load_ncbi_nodes("taxdump/nodes.dmp"))
    >>> assignments = load_assignment_table("assignments.csv")
    >>> consistency_filter = ConsistencyFilter(assignments, resolver)
    >>> records = consistency_filter.partition(["seq1", "seq2", "seq3"])
"""

__version__ = "0.1.0"
