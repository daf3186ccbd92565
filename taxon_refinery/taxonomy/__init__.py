"""Taxonomy access for Taxon-Refinery.

Provides the taxonomy service interface, its backends, and the memoized
lineage resolver that the consistency filter queries.

Example Usage
-------------
>>> from taxon_refinery.taxonomy import LineageResolver, ParentMapTaxonomy
>>> taxonomy = ParentMapTaxonomy({"562": "561", "561": "1", "1": "1"})
>>> resolver = LineageResolver(taxonomy)
>>> resolver.lineage_of("562")
('561', '1')
"""

from .service import (
    EntrezTaxonomy,
    LineageLookupError,
    ParentMapTaxonomy,
    TaxonomyService,
    load_ncbi_nodes,
    load_parent_table,
)
from .resolver import Lineage, LineageCache, LineageResolver, Taxon

__all__ = [
    # Types
    "Taxon",
    "Lineage",
    # Service
    "TaxonomyService",
    "ParentMapTaxonomy",
    "EntrezTaxonomy",
    "LineageLookupError",
    "load_parent_table",
    "load_ncbi_nodes",
    # Resolver
    "LineageCache",
    "LineageResolver",
]
