"""Sequence helpers: reverse complement, GC content and GFF3 gene lookup."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from visiogen.utils import open_file

_COMPLEMENT = str.maketrans(
    "ACGTURYSWKMBDHVNacgturyswkmbdhvn",
    "TGCAAYRSWMKVHDBNtgcaayrswmkvhdbn",
)


class Strand(enum.Enum):
    """Strand of a feature; its string form is the GFF symbol."""

    FORWARD = "+"
    REVERSE = "-"

    @classmethod
    def from_symbol(cls, symbol: str) -> Strand | None:
        """Map a GFF strand column to a strand, or None when it is not '+' or '-'."""
        try:
            return cls(symbol)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


@dataclass
class GffRecord:
    """One feature line of a GFF3 file."""

    seqname: str
    source: str
    feature_type: str
    start: int
    end: int
    score: str
    strand: Strand | None
    frame: str
    attributes: dict[str, str] = field(default_factory=dict)


def reverse_complement(sequence: str) -> str:
    """Return the reverse complement of a DNA sequence, keeping letter case and IUPAC codes."""
    return sequence.translate(_COMPLEMENT)[::-1]


def calculate_gc(sequence: str) -> int:
    """Return the GC content of a sequence as a whole percentage, rounded down."""
    if not sequence:
        raise ValueError("cannot compute GC content of an empty sequence")
    gc_count = sum(1 for base in sequence if base in "GCgc")
    return gc_count * 100 // len(sequence)


def gc_content_on_each_half(kmer: str, kmer_size: int) -> tuple[int, int]:
    """Return the GC percentage on each side of the middle base of a k-mer."""
    mid_index = kmer_size // 2
    if mid_index > len(kmer):
        raise ValueError(f"k-mer of length {len(kmer)} is shorter than k-mer size {kmer_size}")
    return calculate_gc(kmer[:mid_index]), calculate_gc(kmer[mid_index + 1 :])


def filter_hashmap(
    kmer_hash: Mapping[str, list[int]],
    start: int,
    end: int,
    allow_outside: bool,
) -> dict[str, list[int]]:
    """Keep k-mers placed inside [start, end].

    With allow_outside every position must lie in the range; otherwise one is enough.
    """
    test = all if allow_outside else any
    return {
        kmer: list(positions)
        for kmer, positions in kmer_hash.items()
        if test(start <= position <= end for position in positions)
    }


def _parse_attributes(text: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for item in text.split(";"):
        key, separator, value = item.strip().partition("=")
        key = key.strip()
        if not separator or not key:
            continue
        attributes.setdefault(key, value.split(",")[0])
    return attributes


def parse_gff_records(lines: Iterable[str]) -> Iterator[GffRecord]:
    """Yield the feature records of GFF3 text, skipping comments and blank lines."""
    for number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if line.startswith("##FASTA"):
            return
        if not line.strip() or line.startswith("#"):
            continue
        fields = line.split("\t")
        if len(fields) != 9:
            raise ValueError(
                f"line {number}: expected 9 tab-separated columns, found {len(fields)}"
            )
        try:
            start, end = int(fields[3]), int(fields[4])
        except ValueError as exc:
            raise ValueError(f"line {number}: invalid coordinates") from exc
        yield GffRecord(
            seqname=fields[0],
            source=fields[1],
            feature_type=fields[2],
            start=start,
            end=end,
            score=fields[5],
            strand=Strand.from_symbol(fields[6]),
            frame=fields[7],
            attributes=_parse_attributes(fields[8]),
        )


def coords_from_gene_name(gff_path: str, gene: str) -> tuple[int, int, Strand] | None:
    """Return start, end and strand of the first feature whose Name is gene.

    Returns None when the file cannot be opened or no feature carries that name.
    """
    try:
        handle = open_file(gff_path)
    except OSError:
        return None
    with handle:
        for record in parse_gff_records(handle):
            if record.attributes.get("Name") == gene:
                return record.start, record.end, record.strand or Strand.FORWARD
    return None