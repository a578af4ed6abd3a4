"""Selecting probe k-mers from a genome region, filtering them and writing them out."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from visiogen import kmer, seq
from visiogen.models import FilteredKmers
from visiogen.utils import parse_fasta

logger = logging.getLogger(__name__)


@dataclass
class KmerOptions:
    """Settings that decide which k-mers become probes."""

    kmer_size: int = 50
    center_base: str | None = None
    min_gc: int = 44
    max_gc: int = 72
    allow_outside: bool = True
    skip_gc: bool = False


def _passes(
    candidate: str,
    kmer_size: int,
    center_base: str | None,
    min_gc: int,
    max_gc: int,
    skip_gc: bool,
) -> bool:
    if center_base is not None:
        center_index = kmer_size // 2 - 1
        actual = candidate[center_index] if center_index < len(candidate) else None
        if actual != center_base:
            logger.debug("kmer: %s failed as middle base was not %s", candidate, center_base)
            return False
    if not skip_gc:
        gc_first, gc_second = seq.gc_content_on_each_half(candidate, kmer_size)
        if not (min_gc <= gc_first <= max_gc and min_gc <= gc_second <= max_gc):
            logger.debug(
                "kmer: %s failed as gc %d - %s - %d was out of range %d - %d",
                candidate,
                gc_first,
                center_base or "-",
                gc_second,
                min_gc,
                max_gc,
            )
            return False
    return True


def filter_kmers(
    filtered_kmers_list: Iterable[FilteredKmers],
    kmer_size: int,
    center_base: str | None,
    min_gc: int,
    max_gc: int,
    skip_gc: bool,
) -> list[FilteredKmers]:
    """Keep k-mers with the wanted centre base and GC content on both halves.

    Every result starts with no off-target hits recorded.
    """
    if center_base is not None and kmer_size < 2:
        raise ValueError("a centre base needs a k-mer size of at least 2")
    return [
        FilteredKmers(
            gene=item.gene,
            start=item.start,
            end=item.end,
            kmers={
                candidate: list(positions)
                for candidate, positions in item.kmers.items()
                if _passes(candidate, kmer_size, center_base, min_gc, max_gc, skip_gc)
            },
            strand=item.strand,
        )
        for item in filtered_kmers_list
    ]


def kmer_coordinates(
    filtered_kmers: FilteredKmers, kmer_size: int
) -> list[tuple[str, int, int]]:
    """Return (k-mer, start, end) for every placement; on the '-' strand the end lies before the start."""
    coordinates = []
    for candidate, starts in filtered_kmers.kmers.items():
        for start in starts:
            if filtered_kmers.strand == "-":
                end = max(start - kmer_size, 0)
            else:
                end = start + kmer_size
            coordinates.append((candidate, start, end))
    return coordinates


def log_kmers_with_coords(filtered_kmers: FilteredKmers, kmer_size: int) -> None:
    """Log every k-mer placement as 'kmer,start,end'."""
    for candidate, start, end in kmer_coordinates(filtered_kmers, kmer_size):
        logger.info("%s,%d,%d", candidate, start, end)


def write_all_keys_to_file(
    all_filtered_kmers: Sequence[FilteredKmers],
    directory: str | os.PathLike[str] | None = None,
) -> Path:
    """Write every k-mer as a FASTA record to a timestamped file and return its path."""
    stamp = datetime.now().strftime("%m-%d_%H-%M-%S")
    path = Path(directory if directory is not None else ".") / f"{stamp}.fasta"
    with open(path, "w", encoding="utf-8") as handle:
        for item in all_filtered_kmers:
            for number, (candidate, coords) in enumerate(item.kmers.items(), start=1):
                coords_text = ",".join(str(position) for position in coords)
                handle.write(
                    f">{item.gene}_{number}    {coords_text} : {len(coords)} copies\n"
                )
                handle.write(f"{candidate}\n")
    logger.info("Wrote all kmers to file: %s", path)
    return path


def log_and_write_kmers(
    all_filtered_kmers: Sequence[FilteredKmers],
    kmer_size: int,
    directory: str | os.PathLike[str] | None = None,
) -> Path:
    """Write the k-mers to a FASTA file and log a summary of each gene; return the file path."""
    path = write_all_keys_to_file(all_filtered_kmers, directory)
    for item in all_filtered_kmers:
        logger.info("Gene: %s", item.gene)
        logger.info("Strand: %s", item.strand)
        logger.info("Start: %s", item.start)
        logger.info("End: %s", item.end)
        logger.info("Total: %d", len(item.kmers))
        if logger.isEnabledFor(logging.DEBUG):
            log_kmers_with_coords(item, kmer_size)
    return path


def search_kmers(
    kmer_options: KmerOptions,
    in_fasta: str | os.PathLike[str],
    in_gff: str,
    genes: Iterable[str],
) -> list[FilteredKmers]:
    """Tile the FASTA region, pick the k-mers of each gene and filter them."""
    region = parse_fasta(in_fasta)
    unfiltered = kmer.tile_string(region, kmer_options.kmer_size)
    logger.info("total raw kmers: %d", len(unfiltered) // kmer_options.kmer_size)
    gene_kmers = kmer.generate_gene_kmers(
        list(genes), unfiltered, in_gff, kmer_options.allow_outside
    )
    return filter_kmers(
        gene_kmers,
        kmer_options.kmer_size,
        kmer_options.center_base,
        kmer_options.min_gc,
        kmer_options.max_gc,
        kmer_options.skip_gc,
    )