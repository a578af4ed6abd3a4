"""Off-target k-mer indexes: building them from FASTA files and querying probes against them."""

from __future__ import annotations

import logging
import os
import struct
import zlib
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from visiogen.models import FilteredKmers
from visiogen.utils import (
    find_files_with_extensions,
    open_file,
    read_fasta_records,
    resolve_threads,
)

logger = logging.getLogger(__name__)

K = 49
INDEX_EXTENSION = "cbl"

_MAGIC = b"VGKI"
_VERSION = 1
_HEADER = struct.Struct(">4sBBBQ")
_CODES = {"A": 0, "C": 1, "G": 2, "T": 3}


class KmerIndex:
    """A set of fixed-length DNA k-mers, optionally stored in canonical form."""

    def __init__(self, canonical: bool = False, k: int = K) -> None:
        if not 1 <= k <= 255:
            raise ValueError("k must lie between 1 and 255")
        self.k = k
        self.canonical = canonical
        self._kmers: set[int] = set()

    def __len__(self) -> int:
        return len(self._kmers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KmerIndex):
            return NotImplemented
        return (
            self.k == other.k
            and self.canonical == other.canonical
            and self._kmers == other._kmers
        )

    def _windows(self, seq: str | bytes) -> Iterator[int | None]:
        """Yield the code of every k-mer window, or None where it holds a non-ACGT base."""
        text = seq.decode("ascii", errors="replace") if isinstance(seq, bytes) else seq
        k = self.k
        mask = (1 << (2 * k)) - 1
        high_shift = 2 * (k - 1)
        forward = reverse = 0
        run = 0
        for position, base in enumerate(text.upper()):
            code = _CODES.get(base)
            if code is None:
                run = 0
                forward = reverse = 0
            else:
                run += 1
                forward = ((forward << 2) | code) & mask
                reverse = (reverse >> 2) | ((3 - code) << high_shift)
            if position >= k - 1:
                if run >= k:
                    yield min(forward, reverse) if self.canonical else forward
                else:
                    yield None

    def insert_seq(self, seq: str | bytes) -> None:
        """Add every valid k-mer of seq."""
        self._kmers.update(code for code in self._windows(seq) if code is not None)

    def contains_seq(self, seq: str | bytes) -> list[bool]:
        """Report, for each k-mer window of seq, whether the index holds it."""
        return [code is not None and code in self._kmers for code in self._windows(seq)]

    def count(self) -> int:
        """Return the number of distinct k-mers stored."""
        return len(self._kmers)

    def _codes(self) -> list[int]:
        return sorted(self._kmers)

    @classmethod
    def _from_codes(cls, k: int, canonical: bool, codes: Iterable[int]) -> KmerIndex:
        index = cls(canonical=canonical, k=k)
        index._kmers = set(codes)
        return index


def _code_width(k: int) -> int:
    return (2 * k + 7) // 8


def write_index(index: KmerIndex, path: str | os.PathLike[str]) -> None:
    """Serialise an index to path."""
    logger.info("Writing the index to %s", os.fspath(path))
    width = _code_width(index.k)
    payload = b"".join(code.to_bytes(width, "big") for code in index._codes())
    header = _HEADER.pack(_MAGIC, _VERSION, index.k, int(index.canonical), index.count())
    with open(path, "wb") as handle:
        handle.write(header)
        handle.write(zlib.compress(payload))


def read_index(path: str | os.PathLike[str]) -> KmerIndex:
    """Load an index written by write_index, raising ValueError on a malformed file."""
    logger.info("Reading the index stored in %s", os.fspath(path))
    with open(path, "rb") as handle:
        data = handle.read()
    if len(data) < _HEADER.size:
        raise ValueError(f"{os.fspath(path)} is too short to be an index")
    magic, version, k, canonical, count = _HEADER.unpack_from(data)
    if magic != _MAGIC:
        raise ValueError(f"{os.fspath(path)} is not an index file")
    if version != _VERSION:
        raise ValueError(f"unsupported index version {version}")
    if k < 1 or canonical not in (0, 1):
        raise ValueError(f"{os.fspath(path)} has a corrupt header")
    decompressor = zlib.decompressobj()
    try:
        payload = decompressor.decompress(data[_HEADER.size :])
    except zlib.error as exc:
        raise ValueError(f"{os.fspath(path)} holds corrupt data") from exc
    if not decompressor.eof:
        raise ValueError(f"{os.fspath(path)} is truncated")
    if decompressor.unused_data:
        raise ValueError(f"{os.fspath(path)} has trailing bytes")
    width = _code_width(k)
    if len(payload) != count * width:
        raise ValueError(f"{os.fspath(path)} does not hold {count} k-mers")
    codes = (
        int.from_bytes(payload[offset : offset + width], "big")
        for offset in range(0, len(payload), width)
    )
    return KmerIndex._from_codes(k, bool(canonical), codes)


def index_fasta(fasta_path: str | os.PathLike[str], canonical: bool) -> Path:
    """Index every record of a FASTA file and write the index beside it; return its path."""
    index = KmerIndex(canonical=canonical)
    with open_file(fasta_path) as handle:
        for _, sequence in read_fasta_records(handle):
            index.insert_seq(sequence)
    logger.info(
        "File %s contains %d %s%d-mers",
        os.fspath(fasta_path),
        index.count(),
        "canonical " if canonical else "",
        index.k,
    )
    index_path = Path(fasta_path).with_suffix(f".{INDEX_EXTENSION}")
    write_index(index, index_path)
    return index_path


def build_indexes_for_all_fastas(
    fasta_directory: str | os.PathLike[str],
    threads: int,
    canonical: bool,
    recursive: bool,
) -> list[Path]:
    """Index every .fasta and .fa file in a directory; return the index paths written."""
    workers = resolve_threads(threads)
    fasta_files = find_files_with_extensions(fasta_directory, ("fasta", "fa"), recursive)
    if not fasta_files:
        logger.warning("No FASTA files found in %s", os.fspath(fasta_directory))
        return []
    logger.info("Found %d FASTA files to index", len(fasta_files))

    def task(path: Path) -> Path | None:
        logger.info("Indexing %s", path)
        try:
            return index_fasta(path, canonical)
        except (OSError, ValueError) as exc:
            logger.warning("Error indexing %s: %s", path, exc)
            return None

    with ThreadPoolExecutor(max_workers=workers) as pool:
        written = [path for path in pool.map(task, fasta_files) if path is not None]
    logger.info("Indexing complete for all %d files", len(fasta_files))
    return written


def query_kmers_across_indexes(
    index_directory: str | os.PathLike[str],
    filtered_kmers: Iterable[FilteredKmers],
    threads: int,
    max_hits: int,
    recursive: bool,
) -> list[FilteredKmers]:
    """Record the indexes each k-mer occurs in and drop genes whose every k-mer has too many.

    The given objects are left unchanged; copies carrying the hits are returned.
    """
    workers = resolve_threads(threads)
    results_in = [item.copy() for item in filtered_kmers]
    index_files = find_files_with_extensions(index_directory, (INDEX_EXTENSION,), recursive)
    if not index_files:
        logger.warning("No CBL index files found in %s", os.fspath(index_directory))
        return results_in
    logger.info("Found %d index files to search", len(index_files))

    owner: dict[str, int] = {}
    kmers: list[str] = []
    for position, item in enumerate(results_in):
        for kmer in item.kmers:
            owner[kmer] = position
            kmers.append(kmer)
    logger.info("Loaded %d kmers from filtered_kmers", len(kmers))

    def search(path: Path) -> list[str]:
        try:
            index = read_index(path)
        except (OSError, ValueError) as exc:
            logger.warning("Error querying %s: %s", path, exc)
            return []
        return [kmer for kmer in kmers if any(index.contains_seq(kmer))]

    hits: dict[str, list[str]] = {}
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for path, found in zip(index_files, pool.map(search, index_files)):
            for kmer in found:
                hits.setdefault(kmer, []).append(str(path))
    logger.info("Kmer query complete.")

    for kmer, files in hits.items():
        position = owner.get(kmer)
        if position is not None:
            results_in[position].kmer_hits.setdefault(kmer, []).extend(files)

    kept = [
        item
        for item in results_in
        if any(
            kmer not in item.kmer_hits or len(item.kmer_hits[kmer]) <= max_hits
            for kmer in item.kmers
        )
    ]

    for item in kept:
        for kmer, files in item.kmer_hits.items():
            if len(files) > max_hits:
                continue
            logger.info(
                "Kmer %s (gene: %s) found in %d index(es):", kmer, item.gene, len(files)
            )
            for name in files:
                logger.info("  - %s", name)

    unmatched = sum(1 for kmer in kmers if kmer not in hits)
    logger.info("%d of %d kmers had no hits in any index.", unmatched, len(kmers))
    if not kept:
        logger.warning("All kmers were filtered out - no kmers matched the criteria")
    return kept