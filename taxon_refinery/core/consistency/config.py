"""Configuration classes for the consistency filter.

All thresholds are configurable and can be loaded from YAML.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

ON_LOOKUP_ERROR_CHOICES = ("raise", "skip", "empty")


def resolver_on_error(on_lookup_error: str) -> str:
    """Map a batch lookup policy onto the ``LineageResolver`` error mode.

    "skip" needs failures to reach the batch driver, so only "empty" is
    handled inside the resolver.
    """
    return "empty" if on_lookup_error == "empty" else "raise"


@dataclass
class ConsistencyConfig:
    """Thresholds for the accept/reject decision.

    Attributes
    ----------
    minimum_ratio : float
        Minimum ratio of the comparison ancestor's cumulative count to the
        cluster's total count for a taxon to be accepted
    ancestry_level : int
        Number of root-side lineage entries skipped, beyond the root itself,
        when picking the comparison ancestor
    """

    minimum_ratio: float = 0.75
    ancestry_level: int = 2


@dataclass
class FilterConfig:
    """Master configuration for a consistency filtering run.

    Attributes
    ----------
    consistency : ConsistencyConfig
        Decision thresholds
    n_workers : int
        Number of worker threads for cluster processing (-1 = all cores)
    on_lookup_error : str
        Policy for failed taxonomy lookups: "raise" aborts the run, "skip"
        drops the affected cluster, "empty" treats the taxon as having no
        ancestors
    taxa_delimiter : str
        Separator between taxa in the assignment table
    """

    consistency: ConsistencyConfig = field(default_factory=ConsistencyConfig)
    n_workers: int = 1
    on_lookup_error: str = "raise"
    taxa_delimiter: str = ";"

    @property
    def resolver_on_error(self) -> str:
        """Error mode a ``LineageResolver`` needs for ``on_lookup_error``."""
        return resolver_on_error(self.on_lookup_error)

    def validate(self) -> None:
        """Check parameter ranges.

        Raises
        ------
        ValueError
            If any parameter is out of range.
        """
        ratio = self.consistency.minimum_ratio
        if not 0.0 <= ratio <= 1.0:
            raise ValueError(f"minimum_ratio must be within [0, 1], got {ratio}")
        if self.consistency.ancestry_level < 0:
            raise ValueError(
                f"ancestry_level must be non-negative, got {self.consistency.ancestry_level}"
            )
        if self.n_workers < 1 and self.n_workers != -1:
            raise ValueError(f"n_workers must be >= 1 or -1, got {self.n_workers}")
        if self.on_lookup_error not in ON_LOOKUP_ERROR_CHOICES:
            raise ValueError(
                f"on_lookup_error must be one of {ON_LOOKUP_ERROR_CHOICES}, "
                f"got {self.on_lookup_error!r}"
            )
        if not self.taxa_delimiter:
            raise ValueError("taxa_delimiter must not be empty")

    @classmethod
    def from_yaml(cls, path: Path) -> "FilterConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config {path} must be a mapping, got {type(data).__name__}")

        # Handle nested consistency_filter section
        if "consistency_filter" in data:
            data = data["consistency_filter"] or {}
            if not isinstance(data, dict):
                raise ValueError(f"consistency_filter section in {path} must be a mapping")
        consistency = data.get("consistency") or {}
        if not isinstance(consistency, dict):
            raise ValueError(f"consistency section in {path} must be a mapping")

        config = cls(
            consistency=ConsistencyConfig(**consistency),
            n_workers=data.get("n_workers", 1),
            on_lookup_error=data.get("on_lookup_error", "raise"),
            taxa_delimiter=data.get("taxa_delimiter", ";"),
        )
        config.validate()
        return config

    @classmethod
    def default(cls) -> "FilterConfig":
        """Create default configuration."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "consistency": {
                "minimum_ratio": self.consistency.minimum_ratio,
                "ancestry_level": self.consistency.ancestry_level,
            },
            "n_workers": self.n_workers,
            "on_lookup_error": self.on_lookup_error,
            "taxa_delimiter": self.taxa_delimiter,
        }
