"""Assignment map: sequence ID -> candidate taxa."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Tuple

from ...taxonomy import Taxon

SequenceId = str


class AssignmentMap(Mapping[SequenceId, FrozenSet[Taxon]]):
    """Read-only mapping of sequence IDs to their candidate taxa.

    ``taxa_for`` is total: IDs without a row have no candidates.

    Parameters
    ----------
    assignments : Mapping[str, Iterable[str]]
        Candidate taxa per sequence ID. Duplicates are collapsed.
    """

    def __init__(self, assignments: Mapping[SequenceId, Iterable[Taxon]]):
        self._data: Dict[SequenceId, FrozenSet[Taxon]] = {
            str(seq_id): frozenset(taxa) for seq_id, taxa in assignments.items()
        }

    def __getitem__(self, seq_id: SequenceId) -> FrozenSet[Taxon]:
        return self._data[seq_id]

    def __iter__(self) -> Iterator[SequenceId]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def taxa_for(self, seq_id: SequenceId) -> FrozenSet[Taxon]:
        """Return the candidate taxa of ``seq_id`` (empty if absent)."""
        return self._data.get(seq_id, frozenset())

    def n_assignments(self) -> int:
        return sum(len(taxa) for taxa in self._data.values())

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[SequenceId, Iterable[Taxon]]]) -> "AssignmentMap":
        """Build from (id, taxa) pairs; later pairs replace earlier ones."""
        return cls(dict(pairs))
