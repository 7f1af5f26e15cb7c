"""
Deterministic layered auto-layout.

Nodes are ranked by longest path from the roots, ordered inside each rank by
the barycenter of their predecessors, and spaced evenly around the rank's
centre line. Only relative positions are produced; fitting the result into a
viewport is up to the canvas.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from src.config.settings import get_settings

from .models import Node, Position, WorkflowGraph


logger = logging.getLogger(__name__)


class LayoutDirection(str, Enum):
    TOP_DOWN = "TOP_DOWN"
    LEFT_RIGHT = "LEFT_RIGHT"


@dataclass(frozen=True)
class LayoutOptions:
    node_width: float = 220.0
    node_height: float = 80.0
    rank_gap: float = 80.0
    node_gap: float = 40.0

    @classmethod
    def from_settings(cls) -> "LayoutOptions":
        settings = get_settings()
        return cls(
            node_width=settings.layout_node_width,
            node_height=settings.layout_node_height,
            rank_gap=settings.layout_rank_gap,
            node_gap=settings.layout_node_gap,
        )


def layout(
    graph: WorkflowGraph,
    direction: LayoutDirection = LayoutDirection.TOP_DOWN,
    options: Optional[LayoutOptions] = None,
) -> WorkflowGraph:
    """ Return a copy of `graph` with a position on every node. """
    direction = LayoutDirection(direction)
    if options is None:
        options = LayoutOptions.from_settings()

    predecessors = _acyclic_predecessors(graph)
    ranks = _longest_path_ranks(graph.node_ids, predecessors)
    layers = _order_layers(graph.node_ids, ranks, predecessors)

    positions: Dict[str, Position] = {}
    for rank, layer in enumerate(layers):
        for slot, node_id in enumerate(layer):
            positions[node_id] = _to_position(rank, slot, len(layer), direction, options)

    nodes = [replace(node, position=positions[node.id]) for node in graph.nodes]
    logger.debug("Laid out %d node(s) in %d rank(s)", len(positions), len(layers))
    return graph.evolve(nodes=nodes)


def assign_ranks(graph: WorkflowGraph) -> Dict[str, int]:
    """ Layer index of every node; roots are rank 0. Terminates on cyclic graphs. """
    return _longest_path_ranks(graph.node_ids, _acyclic_predecessors(graph))


def _acyclic_predecessors(graph: WorkflowGraph) -> Dict[str, List[str]]:
    """
    Predecessor lists with back edges dropped.

    Back edges are found by an iterative DFS visiting roots and children in
    document order, so the same graph always loses the same edges. Self loops,
    parallel edges and edges to unknown nodes are ignored.
    """
    node_ids = graph.node_ids
    children: Dict[str, List[str]] = {n: [] for n in node_ids}
    for edge in graph.edges:
        if edge.src in children and edge.dest in children and edge.src != edge.dest:
            if edge.dest not in children[edge.src]:
                children[edge.src].append(edge.dest)

    back_edges: Set[Tuple[str, str]] = set()
    visited: Set[str] = set()
    # start from real roots first so a cycle hanging off a root breaks downstream
    has_parent = {dest for kids in children.values() for dest in kids}
    roots = [n for n in node_ids if n not in has_parent] + node_ids
    for root in roots:
        if root in visited:
            continue
        visited.add(root)
        on_stack = {root}
        frames = [[root, 0]]
        while frames:
            frame = frames[-1]
            current, cursor = frame
            if cursor == len(children[current]):
                on_stack.discard(current)
                frames.pop()
                continue
            frame[1] += 1
            child = children[current][cursor]
            if child in on_stack:
                back_edges.add((current, child))
            elif child not in visited:
                visited.add(child)
                on_stack.add(child)
                frames.append([child, 0])

    predecessors: Dict[str, List[str]] = {n: [] for n in node_ids}
    for src in node_ids:
        for dest in children[src]:
            if (src, dest) not in back_edges:
                predecessors[dest].append(src)
    return predecessors


def _longest_path_ranks(node_ids: List[str], predecessors: Dict[str, List[str]]) -> Dict[str, int]:
    successors: Dict[str, List[str]] = {n: [] for n in node_ids}
    indegree: Dict[str, int] = {}
    for node_id in node_ids:
        indegree[node_id] = len(predecessors[node_id])
        for pred in predecessors[node_id]:
            successors[pred].append(node_id)

    ranks: Dict[str, int] = {n: 0 for n in node_ids}
    queue = [n for n in node_ids if indegree[n] == 0]
    while queue:
        current = queue.pop(0)
        for succ in successors[current]:
            ranks[succ] = max(ranks[succ], ranks[current] + 1)
            indegree[succ] -= 1
            if indegree[succ] == 0:
                queue.append(succ)
    return ranks


def _order_layers(
    node_ids: List[str],
    ranks: Dict[str, int],
    predecessors: Dict[str, List[str]],
) -> List[List[str]]:
    depth = max(ranks.values(), default=-1) + 1
    layers: List[List[str]] = [[] for _ in range(depth)]
    for node_id in node_ids:
        layers[ranks[node_id]].append(node_id)

    document_order = {n: i for i, n in enumerate(node_ids)}
    slot: Dict[str, float] = {}
    for rank, layer in enumerate(layers):
        if rank > 0:
            # ranks are longest paths, so every predecessor sits in an earlier, placed rank
            def barycenter(node_id: str) -> float:
                placed = [slot[p] for p in predecessors[node_id]]
                return sum(placed) / len(placed)

            layer.sort(key=lambda n: (barycenter(n), document_order[n]))
        # slots are centred so ranks of different widths line up
        offset = (len(layer) - 1) / 2.0
        for index, node_id in enumerate(layer):
            slot[node_id] = index - offset
    return layers


def _to_position(
    rank: int,
    slot: int,
    layer_size: int,
    direction: LayoutDirection,
    options: LayoutOptions,
) -> Position:
    centred = slot - (layer_size - 1) / 2.0
    if direction == LayoutDirection.TOP_DOWN:
        return Position(
            x=centred * (options.node_width + options.node_gap),
            y=rank * (options.node_height + options.rank_gap),
        )
    return Position(
        x=rank * (options.node_width + options.rank_gap),
        y=centred * (options.node_height + options.node_gap),
    )
