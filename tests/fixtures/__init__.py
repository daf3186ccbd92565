"""Test fixtures for Taxon-Refinery.

Provides mock taxonomy services and test utilities.
"""

from .mock_taxonomy import (
    NCBI_SUBSET_PARENTS,
    CountingTaxonomy,
    FailingTaxonomy,
    StaticLineageTaxonomy,
    write_nodes_dmp,
)

__all__ = [
    "NCBI_SUBSET_PARENTS",
    "CountingTaxonomy",
    "FailingTaxonomy",
    "StaticLineageTaxonomy",
    "write_nodes_dmp",
]
