"""
Version-to-version diff of workflow graphs.

Classifies every node of two snapshots of the same logical workflow as added,
removed, modified or unchanged and returns a merged graph for review. Removed
nodes keep their former edges (retyped as error edges) when the other endpoint
is still present, so deleted steps stay visibly in context.
"""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Mapping, Set

from src.observability.logging import workflow_context

from .models import DiffStatus, Edge, EdgeType, Node, WorkflowGraph


logger = logging.getLogger(__name__)

# config keys written by the canvas or by a previous diff, not by authors
TRANSIENT_CONFIG_KEYS = frozenset({"_position", "diffStatus"})


@dataclass(frozen=True)
class DiffStats:
    added: int = 0
    removed: int = 0
    modified: int = 0
    unchanged: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.modified + self.unchanged

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class DiffResult:
    merged_graph: WorkflowGraph
    stats: DiffStats


def diff(base: WorkflowGraph, target: WorkflowGraph) -> DiffResult:
    """ Compare `base` with `target`; neither input is modified. """
    base_index: Dict[str, Node] = {}
    for node in base.nodes:
        base_index.setdefault(node.id, node)

    merged_nodes: List[Node] = []
    matched: Set[str] = set()
    for node in target.nodes:
        previous = base_index.get(node.id)
        if previous is None:
            status = DiffStatus.ADDED
        else:
            matched.add(node.id)
            status = DiffStatus.UNCHANGED if nodes_equal(previous, node) else DiffStatus.MODIFIED
        merged_nodes.append(replace(node, config=dict(node.config), diff_status=status))

    removed_ids = set(base_index) - matched
    for node_id in base_index:
        if node_id in removed_ids:
            previous = base_index[node_id]
            merged_nodes.append(replace(previous, config=dict(previous.config), diff_status=DiffStatus.REMOVED))

    merged_edges = _merge_edges(base, target, merged_nodes)

    counts = {status: 0 for status in DiffStatus}
    for node in merged_nodes:
        counts[node.diff_status] += 1
    stats = DiffStats(
        added=counts[DiffStatus.ADDED],
        removed=counts[DiffStatus.REMOVED],
        modified=counts[DiffStatus.MODIFIED],
        unchanged=counts[DiffStatus.UNCHANGED],
    )
    logger.debug("Computed workflow diff: %s", stats.as_dict(), extra=workflow_context(target.id))

    merged = target.evolve(nodes=merged_nodes, edges=merged_edges)
    return DiffResult(merged_graph=merged, stats=stats)


def _merge_edges(base: WorkflowGraph, target: WorkflowGraph, merged_nodes: List[Node]) -> List[Edge]:
    status_by_id: Dict[str, DiffStatus] = {}
    for node in merged_nodes:
        status_by_id.setdefault(node.id, node.diff_status)

    base_edges: Dict[str, Edge] = {}
    for edge in base.edges:
        base_edges.setdefault(edge.id, edge)

    merged: List[Edge] = []
    target_edge_ids: Set[str] = set()
    for edge in target.edges:
        target_edge_ids.add(edge.id)
        previous = base_edges.get(edge.id)
        if previous is None:
            status = DiffStatus.ADDED
        elif edges_equal(previous, edge):
            status = DiffStatus.UNCHANGED
        else:
            status = DiffStatus.MODIFIED
        merged.append(replace(edge, diff_status=status))

    for edge in base.edges:
        if edge.id in target_edge_ids:
            continue
        src_status = status_by_id.get(edge.src)
        dest_status = status_by_id.get(edge.dest)
        if src_status is None or dest_status is None:
            continue
        if DiffStatus.REMOVED in (src_status, dest_status):
            merged.append(replace(edge, edge_type=EdgeType.ERROR, diff_status=DiffStatus.REMOVED))
    return merged


def nodes_equal(a: Node, b: Node) -> bool:
    """
    Domain equality of two nodes. Position, diff status and transient config
    keys are ignored. Values that cannot be compared count as different.
    """
    try:
        return _canonical(_domain_fields(a)) == _canonical(_domain_fields(b))
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning("Node %s has incomparable values, treating as modified: %s", b.id, e)
        return False


def edges_equal(a: Edge, b: Edge) -> bool:
    try:
        return (a.src, a.dest, a.edge_type, a.condition) == (b.src, b.dest, b.edge_type, b.condition)
    except (TypeError, ValueError) as e:
        logger.warning("Edge %s has incomparable values, treating as modified: %s", b.id, e)
        return False


def _domain_fields(node: Node) -> Dict[str, Any]:
    config = {k: v for k, v in (node.config or {}).items() if k not in TRANSIENT_CONFIG_KEYS}
    return {
        "id": node.id,
        "type": node.type,
        "name": node.name,
        "enabled": node.enabled,
        "config": config,
        "runtime_policy": node.runtime_policy,
        "input_bindings": node.input_bindings,
        "output_schema": node.output_schema,
    }


def _canonical(value: Any) -> Any:
    # mappings compare order-insensitively; sequences keep their order
    if isinstance(value, Mapping):
        return {k: _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    # tagged so that True != 1 and False != 0; 1 and 1.0 stay equal
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", value)
    return value
