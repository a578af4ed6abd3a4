"""Tiling sequences into k-mers and selecting the k-mers of named genes."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping

from visiogen import seq
from visiogen.models import FilteredKmers

logger = logging.getLogger(__name__)


def _tile(sequence: str, kmer_size: int, offset: int) -> dict[str, list[int]]:
    kmers: defaultdict[str, list[int]] = defaultdict(list)
    for position in range(len(sequence) - kmer_size + 1):
        kmers[sequence[position : position + kmer_size]].append(position + offset)
    return dict(kmers)


def _check_size(kmer_size: int) -> None:
    if kmer_size < 1:
        raise ValueError("k-mer size must be at least 1")


def tile_string(seq: str, kmer_size: int) -> dict[str, list[int]]:
    """Map every k-mer of a sequence to the ascending list of its start positions."""
    _check_size(kmer_size)
    if kmer_size > len(seq):
        raise ValueError(
            f"k-mer size {kmer_size} exceeds sequence length {len(seq)}"
        )
    return _tile(seq, kmer_size, 0)


def tile_segment(seq: str, start_offset: int, kmer_size: int) -> dict[str, list[int]]:
    """Tile a segment, shifting positions by start_offset; too-short segments give nothing."""
    _check_size(kmer_size)
    if len(seq) < kmer_size:
        return {}
    return _tile(seq, kmer_size, start_offset)


def generate_gene_kmers(
    genes: Iterable[str],
    unfiltered_kmers: Mapping[str, list[int]],
    in_gff: str,
    allow_outside: bool,
) -> list[FilteredKmers]:
    """Collect, for each gene found in the GFF, the k-mers placed within its coordinates.

    K-mers of genes on the reverse strand are reverse complemented.
    Genes that are missing or have no k-mers are left out.
    """
    results: list[FilteredKmers] = []
    for gene in genes:
        coords = seq.coords_from_gene_name(in_gff, gene)
        if coords is None:
            logger.info("Gene %s not found", gene)
            continue
        start, end, strand = coords
        kmers = seq.filter_hashmap(unfiltered_kmers, start, end, allow_outside)
        if not kmers:
            logger.info(
                "Error: No k-mers uniquely found in gene '%s' %s:%s", gene, start, end
            )
            continue
        if strand is seq.Strand.REVERSE:
            kmers = {
                seq.reverse_complement(kmer): positions
                for kmer, positions in kmers.items()
            }
        results.append(
            FilteredKmers(
                gene=gene,
                start=start,
                end=end,
                kmers=kmers,
                strand=str(strand),
            )
        )
    return results