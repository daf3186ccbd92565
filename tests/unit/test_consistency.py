"""Unit tests for counts, the consistency predicate and the filter engine."""

import pytest

from taxon_refinery.core.consistency import (
    AssignmentMap,
    ConsistencyConfig,
    ConsistencyFilter,
    PartitionRecord,
    TaxonCount,
    accumulate_counts,
    comparison_ancestor,
    consistency_predicate,
    direct_counts,
    is_consistent,
)
from taxon_refinery.taxonomy import LineageResolver
from tests.fixtures import StaticLineageTaxonomy


@pytest.fixture
def flat_resolver() -> LineageResolver:
    """Two leaves directly under the root."""
    return LineageResolver(StaticLineageTaxonomy({
        "A": ["root"],
        "B": ["root"],
        "root": [],
    }))


class TestAssignmentMap:
    """Tests for AssignmentMap."""

    def test_taxa_for_missing_id(self, assignments):
        """Test absent IDs have no candidates."""
        assert assignments.taxa_for("nope") == frozenset()
        assert "nope" not in assignments

    def test_duplicates_collapse(self):
        """Test candidates are sets."""
        assignments = AssignmentMap({"s": ["a", "a", "b"]})
        assert assignments["s"] == frozenset({"a", "b"})
        assert assignments.n_assignments() == 2

    def test_from_pairs_last_wins(self):
        """Test later pairs replace earlier ones."""
        assignments = AssignmentMap.from_pairs([("s", ["a"]), ("s", ["b"])])
        assert assignments.taxa_for("s") == frozenset({"b"})
        assert len(assignments) == 1


class TestAccumulateCounts:
    """Tests for accumulate_counts."""

    def test_direct_counts(self):
        """Test literal occurrences are counted."""
        assert direct_counts(["A", "A", "B"]) == {"A": 2, "B": 1}

    def test_minimal_scenario(self, flat_resolver):
        """Test [A, A, B] under a shared root."""
        counts = accumulate_counts(["A", "A", "B"], flat_resolver)

        assert counts["A"] == TaxonCount(2, ("root",))
        assert counts["B"] == TaxonCount(1, ("root",))
        assert counts["root"] == TaxonCount(3, ())

    def test_ancestor_of_everything_counts_total(self, resolver):
        """Test a common ancestor collects the whole multiset."""
        taxa = ["562", "562", "561", "28901", "1423"]
        counts = accumulate_counts(taxa, resolver)

        assert counts["2"].count == len(taxa)
        assert counts["1"].count == len(taxa)
        assert counts["543"].count == 4
        assert counts["561"].count == 3
        assert counts["1239"].count == 1

    def test_leaf_count_equals_direct_count(self, resolver):
        """Test taxa without descendants keep their direct count."""
        counts = accumulate_counts(["562", "562", "28901"], resolver)
        assert counts["562"].count == 2
        assert counts["28901"].count == 1

    def test_ancestors_carry_own_lineage(self, resolver):
        """Test rolled-up ancestors get their own lineage attached."""
        counts = accumulate_counts(["562"], resolver)
        assert counts["543"].lineage == ("91347", "1236", "1224", "2", "131567", "1")
        assert counts["1"].lineage == ()

    def test_unknown_taxon_counts_only_itself(self, resolver):
        """Test taxa without lineage contribute nowhere else."""
        counts = accumulate_counts(["999999", "562"], resolver)
        assert counts["999999"] == TaxonCount(1, ())
        assert counts["1"].count == 1

    def test_empty_multiset(self, resolver):
        """Test no taxa gives no counts."""
        assert accumulate_counts([], resolver) == {}

    def test_repeated_lineage_entries_counted_once(self):
        """Test a malformed lineage does not double-credit a node."""
        resolver = LineageResolver(StaticLineageTaxonomy({
            "A": ["P", "P", "root"],
            "P": ["root"],
            "root": [],
        }))
        counts = accumulate_counts(["A"], resolver)
        assert counts["P"].count == 1


class TestConsistencyPredicate:
    """Tests for the accept/reject decision."""

    def test_comparison_ancestor_counts_from_root(self):
        """Test the ancestor is taken at a fixed depth below the root."""
        lineage = ("561", "543", "91347", "1236", "1224", "2", "131567", "1")
        assert comparison_ancestor(lineage, 0) == "131567"
        assert comparison_ancestor(lineage, 2) == "1224"
        assert comparison_ancestor(lineage[1:], 2) == "1224"

    def test_comparison_ancestor_short_lineage(self):
        """Test lineages shorter than ancestry_level + 2 have no ancestor."""
        assert comparison_ancestor(("root",), 0) is None
        assert comparison_ancestor(("2", "131567", "1"), 2) is None
        assert comparison_ancestor(("1239", "2", "131567", "1"), 2) == "1239"
        assert comparison_ancestor((), 0) is None

    def test_minimal_scenario_drops(self, flat_resolver):
        """Test [A, A, B] with ratio 0.5 and level 0 drops A."""
        counts = accumulate_counts(["A", "A", "B"], flat_resolver)
        predicate = consistency_predicate(counts, 3, minimum_ratio=0.5, ancestry_level=0)
        assert predicate("A") is False
        assert predicate("B") is False

    def test_ratio_threshold_inclusive(self, resolver):
        """Test ratio equal to the threshold is accepted."""
        counts = accumulate_counts(["562", "562", "562", "1423"], resolver)
        assert is_consistent("562", counts, 4, minimum_ratio=0.75, ancestry_level=2)
        assert not is_consistent("562", counts, 4, minimum_ratio=0.76, ancestry_level=2)
        assert not is_consistent("1423", counts, 4, minimum_ratio=0.75, ancestry_level=2)

    def test_zero_total_rejects(self, resolver):
        """Test an empty total never divides and always rejects."""
        counts = accumulate_counts(["562"], resolver)
        assert is_consistent("562", counts, 0, minimum_ratio=0.0) is False

    def test_absent_taxon_rejects(self, resolver):
        """Test taxa outside the counts are dropped."""
        counts = accumulate_counts(["562"], resolver)
        assert is_consistent("28901", counts, 1) is False

    def test_absent_comparison_ancestor_rejects(self):
        """Test a comparison ancestor missing from counts is dropped."""
        counts = {"A": TaxonCount(1, ("P", "Q", "root"))}
        assert is_consistent("A", counts, 1, minimum_ratio=0.0, ancestry_level=0) is False


class TestConsistencyFilter:
    """Tests for ConsistencyFilter.partition."""

    def test_partition(self, assignments, resolver):
        """Test Enterobacteriaceae majority wins over a stray Bacillus."""
        consistency_filter = ConsistencyFilter(assignments, resolver)
        records = consistency_filter.partition(["seq1", "seq2", "seq3", "seq4"])

        assert [record.seq_id for record in records] == ["seq1", "seq2", "seq3", "seq4"]
        by_id = {record.seq_id: record for record in records}
        assert by_id["seq1"].accepted == {"562"}
        assert by_id["seq2"].accepted == {"562", "561"}
        assert by_id["seq3"].accepted == {"28901"}
        assert by_id["seq4"].accepted == frozenset()
        assert by_id["seq4"].rejected == {"1423"}

    def test_lower_ratio_accepts_minority(self, assignments, resolver):
        """Test the ratio threshold is honoured."""
        consistency_filter = ConsistencyFilter(
            assignments, resolver, ConsistencyConfig(minimum_ratio=0.2)
        )
        records = consistency_filter.partition(["seq1", "seq2", "seq3", "seq4"])
        assert records[3].accepted == {"1423"}

    def test_unknown_taxon_rejected(self, assignments, resolver):
        """Test a taxon without lineage fails by construction."""
        consistency_filter = ConsistencyFilter(assignments, resolver)
        records = consistency_filter.partition(["seq1", "seq6"])
        assert records[1].rejected == {"999999"}
        assert records[1].accepted == frozenset()

    def test_empty_cluster(self, assignments, resolver):
        """Test an empty cluster emits nothing."""
        assert ConsistencyFilter(assignments, resolver).partition([]) == []

    def test_members_without_candidates(self, assignments, resolver):
        """Test a cluster with no candidate taxa gives empty records."""
        records = ConsistencyFilter(assignments, resolver).partition(["x", "y"])
        assert records == [PartitionRecord("x"), PartitionRecord("y")]

    def test_rescue_descendant_of_accepted(self):
        """Test a rejected taxon under an accepted one is reinstated."""
        resolver = LineageResolver(StaticLineageTaxonomy({
            "P": ["X", "root"],
            "C": ["P", "Y", "root"],
            "X": ["root"],
            "Y": ["root"],
            "root": [],
        }))
        assignments = AssignmentMap({"s1": {"P", "C"}, "s2": {"P"}})
        consistency_filter = ConsistencyFilter(
            assignments, resolver, ConsistencyConfig(minimum_ratio=0.5, ancestry_level=0)
        )

        s1, s2 = consistency_filter.partition(["s1", "s2"])

        assert s1.accepted == {"P", "C"}
        assert s1.rescued == {"C"}
        assert s1.rejected == frozenset()
        assert s2.accepted == {"P"}

    def test_rescue_needs_accepted_ancestor_in_same_id(self):
        """Test rescue only looks at the same ID's accepted taxa."""
        resolver = LineageResolver(StaticLineageTaxonomy({
            "P": ["X", "root"],
            "C": ["P", "Y", "root"],
            "X": ["root"],
            "Y": ["root"],
            "root": [],
        }))
        assignments = AssignmentMap({"s1": {"C"}, "s2": {"P"}, "s3": {"P"}})
        consistency_filter = ConsistencyFilter(
            assignments, resolver, ConsistencyConfig(minimum_ratio=0.5, ancestry_level=0)
        )

        s1, s2, _ = consistency_filter.partition(["s1", "s2", "s3"])

        assert s1.rejected == {"C"}
        assert s1.rescued == frozenset()
        assert s2.accepted == {"P"}

    def test_partition_invariants(self, assignments, resolver):
        """Test accepted and rejected are disjoint and cover the candidates."""
        cluster = list(assignments)
        records = ConsistencyFilter(
            assignments, resolver, ConsistencyConfig(minimum_ratio=0.3, ancestry_level=1)
        ).partition(cluster)

        for record in records:
            candidates = assignments.taxa_for(record.seq_id)
            assert record.accepted.isdisjoint(record.rejected)
            assert record.accepted | record.rejected == candidates
            assert record.rescued <= record.accepted

    def test_deterministic(self, assignments, resolver):
        """Test identical inputs give identical records."""
        consistency_filter = ConsistencyFilter(assignments, resolver)
        cluster = ["seq4", "seq2", "seq1", "seq3", "seq6"]
        assert consistency_filter.partition(cluster) == consistency_filter.partition(cluster)

    def test_lookups_shared_across_clusters(self, taxonomy, assignments, resolver):
        """Test a taxon seen in two clusters is fetched once."""
        consistency_filter = ConsistencyFilter(assignments, resolver)
        consistency_filter.partition(["seq1", "seq3"])
        consistency_filter.partition(["seq2", "seq4"])

        assert taxonomy.calls["562"] == 1
        assert max(taxonomy.calls.values()) == 1

    def test_record_as_tuple(self):
        """Test the output-sink shape."""
        record = PartitionRecord("s", frozenset({"b", "a"}), frozenset({"c"}))
        assert record.as_tuple() == ("s", ["a", "b"], ["c"])
        assert record.to_dict()["rescued"] == []
