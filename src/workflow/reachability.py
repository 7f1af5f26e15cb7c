""" Upstream reachability: which nodes may feed data into a given node. """

from collections import deque
from dataclasses import dataclass
from typing import Dict, List

from .catalog import NodeTypeCatalog
from .models import Node, WorkflowGraph


@dataclass(frozen=True)
class UpstreamNode:
    node: Node
    depth: int


def upstream_of(graph: WorkflowGraph, node_id: str) -> List[UpstreamNode]:
    """
    Nodes that can structurally precede `node_id`, nearest first.

    Backward BFS over incoming edges. Each node keeps the depth at which it
    was first reached; ties keep discovery order. The queried node is never
    part of the result, even when a cycle leads back to it. Safe on drafts:
    unknown ids and dangling edges yield fewer results, never an error.
    """
    if not graph.has_node(node_id):
        return []

    depths: Dict[str, int] = {node_id: 0}
    order: List[str] = []
    queue = deque([node_id])
    while queue:
        current = queue.popleft()
        for edge in graph.incoming(current):
            pred = edge.src
            if pred in depths or not graph.has_node(pred):
                continue
            depths[pred] = depths[current] + 1
            order.append(pred)
            queue.append(pred)

    # stable: ties keep BFS discovery order
    order.sort(key=lambda n: depths[n])
    return [UpstreamNode(graph.node_by_id(n), depths[n]) for n in order]


def variable_sources(graph: WorkflowGraph, node_id: str, catalog: NodeTypeCatalog) -> List[UpstreamNode]:
    """
    Upstream nodes usable in a variable picker: those whose type declares at
    least one output field in `catalog`.
    """
    return [u for u in upstream_of(graph, node_id) if catalog.output_fields(u.node.type)]
