"""Containers for k-mers selected from a target region."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class FilteredKmers:
    """K-mers chosen for one gene or segment, keyed by sequence with their start positions."""

    gene: str
    start: int
    end: int
    kmers: dict[str, list[int]] = field(default_factory=dict)
    strand: str = "+"
    kmer_hits: dict[str, list[str]] = field(default_factory=dict)

    def copy(self) -> FilteredKmers:
        """Return an independent copy whose mappings and lists can be changed freely."""
        return FilteredKmers(
            gene=self.gene,
            start=self.start,
            end=self.end,
            kmers={kmer: list(positions) for kmer, positions in self.kmers.items()},
            strand=self.strand,
            kmer_hits={kmer: list(files) for kmer, files in self.kmer_hits.items()},
        )