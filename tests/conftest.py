"""Pytest configuration and shared fixtures for Taxon-Refinery tests."""

import sys
from pathlib import Path

import pytest

# Add package to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from taxon_refinery.core.consistency import AssignmentMap
from taxon_refinery.taxonomy import LineageResolver

# Import mock taxonomies
from tests.fixtures import NCBI_SUBSET_PARENTS, CountingTaxonomy


# ============================================================================
# Taxonomy Fixtures
# ============================================================================


@pytest.fixture
def taxonomy() -> CountingTaxonomy:
    """NCBI taxonomy subset that counts lookups."""
    return CountingTaxonomy(NCBI_SUBSET_PARENTS)


@pytest.fixture
def resolver(taxonomy) -> LineageResolver:
    """Lineage resolver over the NCBI subset."""
    return LineageResolver(taxonomy)


# ============================================================================
# Assignment Fixtures
# ============================================================================


@pytest.fixture
def assignments() -> AssignmentMap:
    """Assignments for a mostly-Enterobacteriaceae cluster plus a stray Bacillus."""
    return AssignmentMap({
        "seq1": {"562"},
        "seq2": {"562", "561"},
        "seq3": {"28901"},
        "seq4": {"1423"},
        "seq5": {"1386"},
        "seq6": {"999999"},
    })


@pytest.fixture
def assignments_csv(tmp_path) -> Path:
    """Assignment table on disk (id,taxa without header)."""
    path = tmp_path / "assignments.csv"
    path.write_text(
        "seq1,562\n"
        "seq2,562;561\n"
        "seq3,28901\n"
        "seq4,1423\n"
        "seq5,1386\n"
    )
    return path


@pytest.fixture
def clusters_txt(tmp_path) -> Path:
    """Clusters file: one comma-separated cluster per line."""
    path = tmp_path / "clusters.txt"
    path.write_text("seq1,seq2,seq3,seq4\n\nseq5\n")
    return path


@pytest.fixture
def parents_csv(tmp_path) -> Path:
    """Parent table for the NCBI subset."""
    path = tmp_path / "parents.csv"
    rows = ["taxon,parent"] + [f"{child},{parent}" for child, parent in NCBI_SUBSET_PARENTS.items()]
    path.write_text("\n".join(rows) + "\n")
    return path


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir
