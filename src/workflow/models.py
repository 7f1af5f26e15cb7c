""" Data models for workflow DSL graphs """

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class WorkflowMode(str, Enum):
    LINEAR = "LINEAR"
    DAG = "DAG"
    DEBATE = "DEBATE"


class EdgeType(str, Enum):
    CONTROL = "control"
    DATA = "data"
    CONDITION = "condition"
    ERROR = "error"


class DiffStatus(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class Node:
    id: str
    type: str
    name: str = ""
    enabled: bool = True
    config: Dict[str, Any] = field(default_factory=dict)
    runtime_policy: Optional[Dict[str, Any]] = None
    input_bindings: Optional[Dict[str, Any]] = None
    output_schema: Optional[Any] = None
    # transient: never part of domain equality
    position: Optional[Position] = None
    diff_status: Optional[DiffStatus] = None

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Edge:
    id: str
    src: str
    dest: str
    edge_type: EdgeType = EdgeType.CONTROL
    condition: Optional[str] = None
    diff_status: Optional[DiffStatus] = None


@dataclass
class WorkflowGraph:
    """
    Structural projection of a workflow DSL document.

    Indices are built once in __post_init__ and are never validated: duplicate
    node ids resolve to the first occurrence and edges may point at unknown
    nodes. Treat instances as snapshots; use `evolve` to derive a new graph.
    """
    id: str
    name: str
    mode: WorkflowMode = WorkflowMode.DAG
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    _by_id: Dict[str, Node] = field(default_factory=dict, init=False, repr=False, compare=False)
    _outgoing: Dict[str, List[Edge]] = field(default_factory=dict, init=False, repr=False, compare=False)
    _incoming: Dict[str, List[Edge]] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.mode = WorkflowMode(self.mode)
        self.nodes = list(self.nodes)
        self.edges = list(self.edges)

        by_id: Dict[str, Node] = {}
        for node in self.nodes:
            by_id.setdefault(node.id, node)
        outgoing: Dict[str, List[Edge]] = {}
        incoming: Dict[str, List[Edge]] = {}
        for edge in self.edges:
            outgoing.setdefault(edge.src, []).append(edge)
            incoming.setdefault(edge.dest, []).append(edge)

        self._by_id = by_id
        self._outgoing = outgoing
        self._incoming = incoming

    @property
    def node_ids(self) -> List[str]:
        """ Distinct node ids in document order. """
        return list(self._by_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._by_id

    def node_by_id(self, node_id: str) -> Optional[Node]:
        return self._by_id.get(node_id)

    def outgoing(self, node_id: str) -> List[Edge]:
        return list(self._outgoing.get(node_id, []))

    def incoming(self, node_id: str) -> List[Edge]:
        return list(self._incoming.get(node_id, []))

    def evolve(self, **changes: Any) -> "WorkflowGraph":
        """ Return a copy with the given fields replaced and indices rebuilt. """
        return replace(self, **changes)
