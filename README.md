# visiogen

A k-mer based probe design tool. Given a genome sequence and its GFF3
annotation, or a GFA pangenome graph, visiogen tiles the sequence into k-mers,
keeps those that belong to the chosen genes or core graph segments, filters
them by GC content and an optional centre base, and can reject k-mers that
occur in too many off-target genomes.

It needs nothing beyond the Python standard library (Python 3.10 or later).

## Installation

```
pip install .
```

Tests need the `test` extra:

```
pip install ".[test]"
pytest
```

## Command line

The `visiogen` command has three sub-commands: `gff`, `graph` and `build`.
The k-mer options (`-k`, `-b`, `-l`, `-m`, `--allow_outside`, `--skip_gc`)
belong to the main command and must come **before** the sub-command name.
The options `--threads`, `-i`, `--max_hits` and `-r` may be given before or
after it.

### Probes for annotated genes

```
visiogen -k 50 gff -f input.fa -a annotation.gff -g gene1,gene2,gene3
```

The FASTA file must hold exactly one sequence. Genes are looked up by the
`Name` attribute of the GFF3 records (the first matching record wins); `-g`
takes a comma-separated list and may be repeated. Genes that are not found,
or that have no k-mers left, are skipped. Genes on the reverse strand yield
reverse-complemented k-mers.

By default a k-mer is kept for a gene only if every place it occurs lies
within the gene's coordinates. With `--allow_outside` one occurrence within
the gene is enough, so k-mers that also appear elsewhere are kept.

### Probes for core segments of a graph

```
visiogen graph -g graph.gfa
```

The graph is walked from segment `s1` along links tagged `SR:i:0`, leaving out
segments that lie inside bubbles. Each chosen segment is tiled into k-mers,
with positions offset by its `SO:i:` tag, and then filtered like gene k-mers.

### Building off-target indexes

```
visiogen build -i fasta_dir
```

Every `.fa`/`.fasta` file in the directory (case-insensitive) gets a `.cbl`
index written next to it, holding the canonical 49-mers of all its records.
Pass `-r` to search sub-directories too. Files that cannot be read are logged
and skipped.

### Checking against off-target indexes

Add `-i fasta_dir` to a `gff` or `graph` run to look every k-mer up in the
`.cbl` indexes found there. A gene or segment is dropped when every one of its
k-mers is found in more than `--max_hits` indexes (default 5).

### Options

| Option | Default | Meaning |
| --- | --- | --- |
| `-k`, `--kmer_size` | 50 | k-mer length |
| `-b`, `--center_base` | none | base required at position `k/2 - 1` of each k-mer |
| `-l`, `--min_gc` | 44 | minimum GC percentage of each half |
| `-m`, `--max_gc` | 72 | maximum GC percentage of each half |
| `--skip_gc` | off | skip GC filtering |
| `--allow_outside` | off | keep k-mers with at least one occurrence in the gene |
| `--threads` (`-t` except in `graph`) | 0 | worker threads (0 = all cores) |
| `-i`, `--off_target_directory` | none | directory of FASTA files / `.cbl` indexes |
| `--max_hits` | 5 | how many indexes a k-mer may be found in |
| `-r`, `--recursive` | off | search sub-directories |

GC content is measured separately on the bases before and after the middle
base of each k-mer, as a whole percentage rounded down.

### Output

The selected k-mers are written to a file named `MM-DD_HH-MM-SS.fasta` in the
current directory, one record per k-mer with a header of the form
`>gene_N    pos1,pos2 : 2 copies`. A `visiogen_MM-DD_HH-MM-SS.log` file records
the run; warnings and errors are also shown on the terminal. The command
exits with status 1 when an input cannot be read.

## Library use

```python
from visiogen.kmer import tile_string, tile_segment
from visiogen.seq import reverse_complement, gc_content_on_each_half

tile_string("ACGTACGT", 3)             # {"ACG": [0, 4], "CGT": [1, 5], "GTA": [2], "TAC": [3]}
reverse_complement("ATCG")             # "CGAT"
gc_content_on_each_half("ATGTCAT", 7)  # (33, 33)
```

The modules are:

- `visiogen.models` – `FilteredKmers`, the k-mers chosen for one gene or segment.
- `visiogen.seq` – reverse complement, GC content, GFF3 parsing
  (`parse_gff_records`, `coords_from_gene_name`).
- `visiogen.utils` – FASTA reading (`read_fasta_records`, `parse_fasta`) and
  file discovery.
- `visiogen.kmer` – `tile_string`, `tile_segment`, `generate_gene_kmers`.
- `visiogen.graph` – GFA parsing, `SegmentGraph`, `traverse_bubble_depth`,
  `run_graph_mode` (which also accepts another starting segment).
- `visiogen.index` – `KmerIndex`, `write_index`, `read_index`,
  `build_indexes_for_all_fastas`, `query_kmers_across_indexes`.
- `visiogen.pipeline` – `KmerOptions`, `filter_kmers`, `search_kmers` and the
  writers of the output FASTA.
- `visiogen.cli` – the `visiogen` command (`main`).

## What it does not do

- The `graph` command accepts `-t`/`--threshold` but does not use it; core
  segments are chosen by the bubble walk alone, always starting at `s1`.
- `build` always stores canonical k-mers; `-c`/`--canonical` cannot turn this off.
- Index k-mers have a fixed length of 49, whatever `-k` is set to. A probe is
  counted as found in an index when any of its 49-mers is there.
- The `.cbl` files use visiogen's own format and are only readable by visiogen.