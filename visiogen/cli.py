"""Command line for probe design from a GFF region, a GFA graph or off-target indexes."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from visiogen.graph import run_graph_mode
from visiogen.index import build_indexes_for_all_fastas, query_kmers_across_indexes
from visiogen.pipeline import KmerOptions, filter_kmers, log_and_write_kmers, search_kmers

logger = logging.getLogger(__name__)

_EXAMPLES = """\
EXAMPLES:
  GFF mode:
    visiogen gff -f input.fa -a annotation.gff -g gene1,gene2,gene3 -k 50

  Other commands:
    visiogen build -i fasta_dir
    visiogen graph -g graph.gfa -t 0.95"""


def _non_negative(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text!r}")
    return value


def _single_char(text: str) -> str:
    if len(text) != 1:
        raise argparse.ArgumentTypeError(f"expected a single character, got {text!r}")
    return text


def _comma_list(text: str) -> list[str]:
    return text.split(",")


def _add_global_options(
    parser: argparse.ArgumentParser, *, short_threads: bool, suppress: bool
) -> None:
    def default(value):
        return argparse.SUPPRESS if suppress else value

    thread_flags = ("-t", "--threads") if short_threads else ("--threads",)
    parser.add_argument(
        *thread_flags,
        dest="threads",
        type=_non_negative,
        default=default(0),
        help="Number of threads to use for operations (0 = all available cores)",
    )
    parser.add_argument(
        "-i",
        "--off_target_directory",
        dest="off_target_directory",
        default=default(None),
        help="Directory containing off-target FASTA/index files",
    )
    parser.add_argument(
        "--max_hits",
        dest="max_hits",
        type=_non_negative,
        default=default(5),
        help="Maximum number of index hits to report per kmer",
    )
    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        action="store_true",
        default=default(False),
        help="Recursively search directories for files",
    )


def _add_kmer_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-k", "--kmer_size", type=_non_negative, default=50, help="size of kmer"
    )
    parser.add_argument(
        "-b",
        "--center_base",
        type=_single_char,
        default=None,
        help="Center base leave blank to not consider a center_base",
    )
    parser.add_argument(
        "-l", "--min_gc", type=_non_negative, default=44, help="Minimum GC content"
    )
    parser.add_argument(
        "-m", "--max_gc", type=_non_negative, default=72, help="Maximum GC content"
    )
    parser.add_argument(
        "--allow_outside",
        action="store_false",
        default=True,
        help="allow kmers that appear outside target gene",
    )
    parser.add_argument(
        "--skip_gc", action="store_true", default=False, help="skip GC filtering"
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser with the gff, graph and build commands."""
    parser = argparse.ArgumentParser(
        prog="visiogen",
        description=(
            "A kmer-based probe design tool (primary usage: provide fasta, gff, "
            "and genes directly)"
        ),
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.0.1")
    _add_global_options(parser, short_threads=True, suppress=False)
    _add_kmer_options(parser)

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    gff = commands.add_parser("gff", help="design probes for genes of an annotated region")
    gff.add_argument("-a", "--annotation", dest="in_gff", required=True)
    gff.add_argument("-f", "--fasta", dest="in_fasta", required=True)
    gff.add_argument(
        "-g",
        "--genes",
        dest="genes",
        type=_comma_list,
        action="append",
        required=True,
        help="List of gene identifiers comma seperated",
    )
    _add_global_options(gff, short_threads=True, suppress=True)

    graph = commands.add_parser("graph", help="design probes from the core of a GFA graph")
    graph.add_argument(
        "-g", "--gfa", dest="gfa_path", required=True, help="graph to generate probes from"
    )
    graph.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=0.95,
        help="Core segment inclusion threshold (fraction)",
    )
    _add_global_options(graph, short_threads=False, suppress=True)

    build = commands.add_parser("build", help="index off-target FASTA files")
    build.add_argument(
        "-c",
        "--canonical",
        action="store_true",
        default=True,
        help="Use canonical kmers (default: true)",
    )
    _add_global_options(build, short_threads=True, suppress=True)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse the command line; print help and exit with status 2 when it is empty."""
    arguments = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    if not arguments:
        parser.print_help(sys.stderr)
        raise SystemExit(2)
    args = parser.parse_args(arguments)
    if args.command == "gff":
        args.genes = [gene for group in args.genes for gene in group]
    return args


def set_up_logging(directory: str | os.PathLike[str] | None = None) -> Path:
    """Log warnings to the terminal and information to a timestamped file; return its path."""
    stamp = datetime.now().strftime("%m-%d_%H-%M-%S")
    path = Path(directory if directory is not None else ".") / f"visiogen_{stamp}.log"
    package_logger = logging.getLogger("visiogen")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S")
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    console = logging.StreamHandler()
    console.setLevel(logging.WARNING)
    console.setFormatter(formatter)

    package_logger.addHandler(file_handler)
    package_logger.addHandler(console)
    package_logger.setLevel(logging.INFO)
    package_logger.propagate = False
    return path


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the exit status."""
    args = parse_args(argv)
    set_up_logging()
    options = KmerOptions(
        kmer_size=args.kmer_size,
        center_base=args.center_base,
        min_gc=args.min_gc,
        max_gc=args.max_gc,
        allow_outside=args.allow_outside,
        skip_gc=args.skip_gc,
    )

    if args.command == "build":
        logger.info("indexing: %s", args.off_target_directory)
        if args.off_target_directory is None:
            logger.error("The build command needs a directory given with -i")
            return 1
        try:
            build_indexes_for_all_fastas(
                args.off_target_directory, args.threads, args.canonical, args.recursive
            )
        except OSError as exc:
            logger.error("Failed to build index: %s", exc)
            return 1
        return 0

    try:
        if args.command == "gff":
            kmers = search_kmers(options, args.in_fasta, args.in_gff, args.genes)
        else:
            segment_kmers = run_graph_mode(args.gfa_path, options.kmer_size)
            kmers = filter_kmers(
                segment_kmers,
                options.kmer_size,
                options.center_base,
                options.min_gc,
                options.max_gc,
                options.skip_gc,
            )
    except (OSError, ValueError) as exc:
        logger.error("Failed to read input: %s", exc)
        return 1

    if args.off_target_directory is not None:
        try:
            kmers = query_kmers_across_indexes(
                args.off_target_directory,
                kmers,
                args.threads,
                args.max_hits,
                args.recursive,
            )
        except OSError as exc:
            logger.error("Failed to query off-target indexes: %s", exc)
            return 1
    else:
        logger.info("Skipping off-target check as no off-target directory was provided.")

    log_and_write_kmers(kmers, options.kmer_size)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())