"""Choosing core segments of a GFA pangenome graph and tiling them into k-mers."""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import NamedTuple

from visiogen import kmer
from visiogen.models import FilteredKmers
from visiogen.utils import open_file

logger = logging.getLogger(__name__)

_UNSIGNED = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True)
class Segment:
    """A GFA segment: its name, sequence and start offset (the SO tag)."""

    id: str
    sequence: str
    start: int = 0


@dataclass(frozen=True)
class Link:
    """A GFA link between two segments with its SR rank tag."""

    source: str
    target: str
    sr: int = 0


class _Edge(NamedTuple):
    id: int
    source: int
    target: int
    sr: int


class SegmentGraph:
    """Directed graph of segment names whose edges carry an SR rank."""

    def __init__(self) -> None:
        self.names: list[str] = []
        self.node_index: dict[str, int] = {}
        self._edges: list[_Edge] = []
        self._outgoing: list[list[int]] = []
        self._incoming: list[list[int]] = []

    def __len__(self) -> int:
        return len(self.names)

    def add_node(self, name: str) -> int:
        """Add a node named name and return its index."""
        node = len(self.names)
        self.names.append(name)
        self.node_index[name] = node
        self._outgoing.append([])
        self._incoming.append([])
        return node

    def add_edge(self, source: int, target: int, sr: int) -> int:
        """Add an edge between two node indices and return the edge id."""
        for node in (source, target):
            if not 0 <= node < len(self.names):
                raise IndexError(f"no node with index {node}")
        edge = _Edge(len(self._edges), source, target, sr)
        self._edges.append(edge)
        self._outgoing[source].append(edge.id)
        self._incoming[target].append(edge.id)
        return edge.id

    def outgoing(self, node: int) -> list[_Edge]:
        """Return the edges leaving node, most recently added first."""
        return [self._edges[edge_id] for edge_id in reversed(self._outgoing[node])]

    def incoming(self, node: int) -> list[_Edge]:
        """Return the edges entering node, most recently added first."""
        return [self._edges[edge_id] for edge_id in reversed(self._incoming[node])]


def _parse_unsigned(text: str, bits: int) -> int:
    if not _UNSIGNED.fullmatch(text):
        return 0
    value = int(text)
    return value if value < 1 << bits else 0


def _read_lines(path: str) -> Iterator[str]:
    with open_file(path) as handle:
        for raw in handle:
            yield raw.removesuffix("\n").removesuffix("\r")


def parse_segments(path: str) -> tuple[dict[str, Segment], list[str]]:
    """Read the S lines of a GFA file: segments by name and names in file order."""
    segments: dict[str, Segment] = {}
    order: list[str] = []
    for line in _read_lines(path):
        if not line.startswith("S"):
            continue
        parts = line.split("\t")
        if len(parts) < 3:
            raise ValueError(f"malformed segment line: {line!r}")
        start = 0
        for tag in parts[3:]:
            if tag.startswith("SO:i:"):
                start = _parse_unsigned(tag[5:], 64)
        segments[parts[1]] = Segment(parts[1], parts[2], start)
        order.append(parts[1])
    return segments, order


def parse_links(path: str) -> list[Link]:
    """Read the L lines of a GFA file; lines with fewer than six columns are skipped."""
    links: list[Link] = []
    for line in _read_lines(path):
        if not line.startswith("L"):
            continue
        parts = line.split("\t")
        if len(parts) < 6:
            continue
        sr = 0
        for tag in parts[5:]:
            if tag.startswith("SR:i:"):
                sr = _parse_unsigned(tag[5:], 32)
                break
        links.append(Link(parts[1], parts[3], sr))
    return links


def build_graph(segments: Mapping[str, Segment], links: Sequence[Link]) -> SegmentGraph:
    """Build a graph of the segments, keeping only links whose both ends exist."""
    graph = SegmentGraph()
    for name in segments:
        graph.add_node(name)
    for link in links:
        source = graph.node_index.get(link.source)
        target = graph.node_index.get(link.target)
        if source is not None and target is not None:
            graph.add_edge(source, target, link.sr)
    return graph


def traverse_bubble_depth(graph: SegmentGraph, start_id: str) -> list[str]:
    """Walk the SR0 backbone from start_id and return the segments outside any bubble."""
    current = graph.node_index.get(start_id)
    if current is None:
        return []

    segments = [graph.names[current]]
    visited = {current}
    traversed: set[tuple[int, int]] = set()
    depth = 0

    while True:
        edges = graph.outgoing(current)
        backbone = [edge for edge in edges if edge.sr == 0]
        branches = [edge for edge in edges if edge.sr != 0]

        next_edge = next((edge for edge in backbone if edge.target not in visited), None)
        new_bubbles = sum(1 for edge in branches if edge.target not in visited)
        if new_bubbles:
            depth += new_bubbles
            logger.debug(
                "Entering bubble at %s: depth increased to %d", graph.names[current], depth
            )

        if next_edge is not None:
            following = next_edge.target
            traversed.add((current, following))
            visited.add(following)

            merges = [edge for edge in graph.incoming(following) if edge.sr != 0]
            if merges:
                if depth >= 2:
                    subtract = investigate_bubble(graph, following, traversed)
                else:
                    subtract = len(merges)
                depth = max(depth - subtract, 0)
                logger.debug(
                    "Merging bubble at %s: subtracted %d, depth now %d",
                    graph.names[following],
                    subtract,
                    depth,
                )

            if depth == 0:
                segments.append(graph.names[following])
                logger.debug("Adding segment: %s", graph.names[following])
            else:
                logger.debug(
                    "Skipping segment %s (depth %d)", graph.names[following], depth
                )
            current = following
        elif depth > 0:
            branch = next((edge for edge in branches if edge.target not in visited), None)
            if branch is None:
                break
            logger.info("Following bubble path to %s", graph.names[branch.target])
            traversed.add((current, branch.target))
            visited.add(branch.target)
            current = branch.target
        else:
            break

    return segments


def investigate_bubble(
    graph: SegmentGraph,
    merge_node: int,
    traversed_edges: set[tuple[int, int]],
) -> int:
    """Count traversed backbone edges that feed the bubble paths merging at merge_node."""
    visited_nodes: set[int] = set()
    visited_edges: set[int] = set()
    queue = deque(
        (edge.source, edge.id) for edge in graph.incoming(merge_node) if edge.sr != 0
    )
    merge_count = 0

    while queue:
        node, edge_id = queue.popleft()
        if node in visited_nodes:
            continue
        visited_nodes.add(node)
        visited_edges.add(edge_id)

        for edge in graph.incoming(node):
            if edge.sr == 0:
                if (edge.source, node) in traversed_edges:
                    merge_count += 1
            elif edge.id not in visited_edges:
                queue.append((edge.source, edge.id))

    logger.debug(
        "Bubble investigation at %s: found %d merging edges",
        graph.names[merge_node],
        merge_count,
    )
    return merge_count


def run_graph_mode(gfa_path: str, kmer_size: int, start_id: str = "s1") -> list[FilteredKmers]:
    """Tile the core segments of a GFA graph, walked from start_id, into k-mers."""
    segments, _ = parse_segments(gfa_path)
    links = parse_links(gfa_path)
    graph = build_graph(segments, links)

    results: list[FilteredKmers] = []
    for name in traverse_bubble_depth(graph, start_id):
        segment = segments.get(name)
        if segment is None:
            continue
        results.append(
            FilteredKmers(
                gene=name,
                start=segment.start,
                end=segment.start + len(segment.sequence),
                kmers=kmer.tile_segment(segment.sequence, segment.start, kmer_size),
                strand="+",
            )
        )

    total = sum(len(item.kmers) for item in results)
    logger.info(
        "Generated kmers for %d segments (total kmers: %d, avg per segment: %.2f)",
        len(results),
        total,
        total / max(len(results), 1),
    )
    return results