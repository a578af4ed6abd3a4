"""File helpers: opening inputs, reading FASTA and locating files by extension."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TextIO


def open_file(file_path: str | os.PathLike[str]) -> TextIO:
    """Open a text file, raising an OSError whose message names the path."""
    try:
        return open(file_path, encoding="utf-8", errors="replace")
    except OSError as exc:
        raise type(exc)(
            exc.errno, f"Failed to open file '{os.fspath(file_path)}': {exc.strerror}"
        ) from exc


def read_fasta_records(lines: Iterable[str]) -> Iterator[tuple[str, str]]:
    """Yield (identifier, sequence) pairs from FASTA text."""
    identifier: str | None = None
    chunks: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if line.startswith(">"):
            if identifier is not None:
                yield identifier, "".join(chunks)
            words = line[1:].split(maxsplit=1)
            identifier = words[0] if words else ""
            chunks = []
        elif identifier is None:
            if line.strip():
                raise ValueError("Expected > at record start.")
        else:
            chunks.append(line.strip())
    if identifier is not None:
        yield identifier, "".join(chunks)


def parse_fasta(fasta_path: str | os.PathLike[str]) -> str:
    """Return the only sequence of a FASTA file.

    Raises ValueError when the file holds no sequence or more than one.
    """
    sequences: list[str] = []
    with open_file(fasta_path) as handle:
        for _, sequence in read_fasta_records(handle):
            sequences.append(sequence)
            if len(sequences) > 1:
                raise ValueError("Multiple sequences found - currently unsupported")
    if not sequences:
        raise ValueError("Sequence not found")
    return sequences[0]


def find_files_with_extensions(
    directory: str | os.PathLike[str],
    extensions: Iterable[str],
    recursive: bool,
) -> list[Path]:
    """Return the files in a directory whose extension matches one given, ignoring case."""
    wanted = {extension.lower() for extension in extensions}
    root = Path(directory)
    candidates: Iterable[Path]
    if recursive:
        if root.is_file():
            candidates = [root]
        else:
            candidates = (
                Path(folder) / name
                for folder, _, names in os.walk(root)
                for name in names
            )
    else:
        candidates = list(root.iterdir())
    return sorted(
        path
        for path in candidates
        if path.is_file() and path.suffix and path.suffix[1:].lower() in wanted
    )


def resolve_threads(threads: int) -> int:
    """Return the worker count to use: threads itself, or every CPU when it is 0."""
    if threads < 0:
        raise ValueError("thread count cannot be negative")
    if threads == 0:
        return os.cpu_count() or 1
    return threads