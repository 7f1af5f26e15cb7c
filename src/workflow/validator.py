"""
Structural validation of workflow DSL graphs.

The validator never raises: every violation found is accumulated so that the
caller can show all problems at once and decide whether to block a publish.

Checks run in a fixed order. Common structural and connectivity checks come
first, then the rules of the declared orchestration mode:

    LINEAR  - no cycle, at most one outgoing edge per node
    DAG     - no cycle; advisory warning when branches split but never join
    DEBATE  - exactly one context node, a minimum of agents, exactly one judge
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, Union

from src.config.settings import get_settings
from src.observability.logging import workflow_context

from .catalog import NodeCategory, NodeTypeCatalog, default_catalog
from .guards import check_condition_syntax
from .models import EdgeType, Node, WorkflowGraph, WorkflowMode
from .reachability import upstream_of


logger = logging.getLogger(__name__)


DUPLICATE_ID = "structural-duplicate-id"
DANGLING_EDGE = "structural-dangling-edge"
CONDITION_MISSING = "structural-condition-missing"
APPROVAL_SUCCESSOR = "structural-approval-successor"
JOIN_QUORUM = "structural-join-quorum"
BINDING_REFERENCE = "structural-binding-reference"
MISSING_INCOMING = "connectivity-missing-incoming"
MISSING_OUTGOING = "connectivity-missing-outgoing"
INSUFFICIENT_FAN_IN = "connectivity-insufficient-fan-in"
CYCLE = "topology-cycle"
LINEAR_FAN_OUT = "topology-linear-fan-out"
MODE_CONSTRAINT = "topology-mode-constraint"
UNKNOWN_MODE = "topology-unknown-mode"
MISSING_JOIN = "advisory-missing-join"
CONDITION_SYNTAX = "advisory-condition-syntax"
BINDING_NOT_UPSTREAM = "advisory-binding-not-upstream"

# `{{scope.path}}` references inside input bindings; `| default` suffixes are dropped
_BINDING_REF = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")
_RESERVED_SCOPES = frozenset({"params", "meta"})


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    severity: Severity = Severity.ERROR
    node_id: Optional[str] = None
    edge_id: Optional[str] = None


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def codes(self) -> List[str]:
        return [issue.code for issue in self.errors]


class StructuralValidator:
    """ Mode-aware structural validator bound to a node-type catalog. """

    def __init__(self, catalog: NodeTypeCatalog, debate_min_agents: Optional[int] = None):
        self.catalog = catalog
        if debate_min_agents is None:
            debate_min_agents = get_settings().debate_min_agents
        self.debate_min_agents = debate_min_agents

    def validate(self, graph: WorkflowGraph, mode: Union[WorkflowMode, str, None] = None) -> ValidationResult:
        result = ValidationResult()

        self._check_duplicate_ids(graph, result)
        self._check_edge_endpoints(graph, result)
        self._check_connectivity(graph, result)
        self._check_fan_in(graph, result)
        self._check_conditions(graph, result)
        self._check_approval_successors(graph, result)
        self._check_join_quorum(graph, result)
        self._check_input_bindings(graph, result)

        declared = graph.mode if mode is None else mode
        try:
            declared = WorkflowMode(declared.upper() if isinstance(declared, str) else declared)
        except ValueError:
            self._error(result, UNKNOWN_MODE, f"Unknown orchestration mode: {declared!r}")
        else:
            if declared == WorkflowMode.LINEAR:
                self._check_linear(graph, result)
            elif declared == WorkflowMode.DAG:
                self._check_dag(graph, result)
            elif declared == WorkflowMode.DEBATE:
                self._check_debate(graph, result)

        logger.debug(
            "Validated workflow graph: %d error(s), %d warning(s)",
            len(result.errors), len(result.warnings),
            extra=workflow_context(graph.id),
        )
        return result

    # -------------------------
    # COMMON CHECKS
    # -------------------------

    def _check_duplicate_ids(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        seen: Set[str] = set()
        reported: Set[str] = set()
        for node in graph.nodes:
            if node.id in seen and node.id not in reported:
                self._error(result, DUPLICATE_ID, f"Duplicate node id: {node.id}", node_id=node.id)
                reported.add(node.id)
            seen.add(node.id)

        seen.clear()
        reported.clear()
        for edge in graph.edges:
            if edge.id in seen and edge.id not in reported:
                self._error(result, DUPLICATE_ID, f"Duplicate edge id: {edge.id}", edge_id=edge.id)
                reported.add(edge.id)
            seen.add(edge.id)

    def _check_edge_endpoints(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        for edge in graph.edges:
            missing = [end for end in (edge.src, edge.dest) if not graph.has_node(end)]
            if missing:
                self._error(
                    result, DANGLING_EDGE,
                    f"Edge {edge.id} references unknown node(s): {', '.join(missing)}",
                    edge_id=edge.id,
                )

    def _check_connectivity(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        for node in graph.nodes:
            if self.catalog.is_group(node.type):
                continue
            if self.catalog.is_trigger(node.type):
                if not graph.outgoing(node.id):
                    self._error(
                        result, MISSING_OUTGOING,
                        f"Trigger node \"{node.label}\" ({node.id}) has no outgoing edge",
                        node_id=node.id,
                    )
            elif not graph.incoming(node.id):
                self._error(
                    result, MISSING_INCOMING,
                    f"Node \"{node.label}\" ({node.id}) has no incoming edge",
                    node_id=node.id,
                )

    def _check_fan_in(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        for node in graph.nodes:
            required = self.catalog.min_incoming(node.type)
            found = len(graph.incoming(node.id))
            # zero incoming is already reported as a connectivity defect
            if found and found < required:
                self._error(
                    result, INSUFFICIENT_FAN_IN,
                    f"Node \"{node.label}\" ({node.id}) expects at least {required} incoming edges, found {found}",
                    node_id=node.id,
                )

    def _check_conditions(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        for edge in graph.edges:
            if edge.edge_type != EdgeType.CONDITION:
                continue
            if edge.condition is None or not str(edge.condition).strip():
                self._error(
                    result, CONDITION_MISSING,
                    f"Condition edge {edge.id} has no condition expression",
                    edge_id=edge.id,
                )
            elif not check_condition_syntax(edge.condition):
                self._warn(
                    result, CONDITION_SYNTAX,
                    f"Condition of edge {edge.id} is not a recognised expression: {edge.condition}",
                    edge_id=edge.id,
                )

    def _check_approval_successors(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        for node in graph.nodes:
            if not self.catalog.feeds_outputs_only(node.type):
                continue
            for edge in graph.outgoing(node.id):
                target = graph.node_by_id(edge.dest)
                if target is None:
                    continue
                if self.catalog.category_of(target.type) != NodeCategory.OUTPUT:
                    self._error(
                        result, APPROVAL_SUCCESSOR,
                        f"Node \"{node.label}\" ({node.id}) may only connect to output nodes, "
                        f"found {target.type} ({target.id})",
                        node_id=node.id, edge_id=edge.id,
                    )

    def _check_join_quorum(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        for node in graph.nodes:
            if not self.catalog.is_join(node.type) or node.config.get("joinPolicy") != "QUORUM":
                continue
            quorum = node.config.get("quorumBranches")
            if not _is_whole_number(quorum) or quorum < 2:
                self._error(
                    result, JOIN_QUORUM,
                    f"Join node \"{node.label}\" ({node.id}) uses joinPolicy=QUORUM; "
                    f"quorumBranches must be an integer >= 2, found {quorum!r}",
                    node_id=node.id,
                )

    def _check_input_bindings(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        for node in graph.nodes:
            if not isinstance(node.input_bindings, dict):
                continue
            upstream: Optional[Set[str]] = None
            for scope, path in _binding_refs(node.input_bindings):
                if scope in _RESERVED_SCOPES:
                    continue
                source = graph.node_by_id(scope)
                if source is None:
                    self._error(
                        result, BINDING_REFERENCE,
                        f"Input bindings of \"{node.label}\" ({node.id}) reference unknown node: {scope}",
                        node_id=node.id,
                    )
                    continue
                fields = self._declared_outputs(source)
                if fields and not _resolves(fields, path):
                    self._error(
                        result, BINDING_REFERENCE,
                        f"Input bindings of \"{node.label}\" ({node.id}) reference unknown field: {scope}.{path}",
                        node_id=node.id,
                    )
                    continue
                if upstream is None:
                    upstream = {u.node.id for u in upstream_of(graph, node.id)}
                if scope not in upstream:
                    self._warn(
                        result, BINDING_NOT_UPSTREAM,
                        f"Input bindings of \"{node.label}\" ({node.id}) read {scope}.{path}, "
                        f"but {scope} does not run before it",
                        node_id=node.id,
                    )

    def _declared_outputs(self, node: Node) -> Set[str]:
        """ Output fields from the node's own schema, else from its catalog type. """
        candidates = [node.output_schema, node.config.get("outputSchema"), node.config.get("outputFields")]
        for candidate in candidates:
            fields = _field_names(candidate)
            if fields:
                return fields
        return set(self.catalog.output_fields(node.type))

    # -------------------------
    # MODE RULES
    # -------------------------

    def _check_linear(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        self._check_cycle(graph, result)
        for node_id in graph.node_ids:
            fan_out = len(graph.outgoing(node_id))
            if fan_out > 1:
                node = graph.node_by_id(node_id)
                self._error(
                    result, LINEAR_FAN_OUT,
                    f"Node \"{node.label}\" ({node_id}) has {fan_out} outgoing edges; "
                    "LINEAR mode allows a single successor",
                    node_id=node_id,
                )

    def _check_dag(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        self._check_cycle(graph, result)
        splits = [n for n in graph.node_ids if len(graph.outgoing(n)) > 1]
        has_join = any(self.catalog.is_join(node.type) for node in graph.nodes)
        if splits and not has_join:
            self._warn(
                result, MISSING_JOIN,
                f"Branches split at {', '.join(splits)} but the graph has no join node",
            )

    def _check_debate(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        counts: Dict[NodeCategory, int] = {}
        for node in graph.nodes:
            category = self.catalog.category_of(node.type)
            if category is not None:
                counts[category] = counts.get(category, 0) + 1

        rules = (
            (NodeCategory.CONTEXT, 1, True),
            (NodeCategory.AGENT, self.debate_min_agents, False),
            (NodeCategory.JUDGE, 1, True),
        )
        for category, expected, exact in rules:
            found = counts.get(category, 0)
            if exact and found != expected:
                self._error(
                    result, MODE_CONSTRAINT,
                    f"DEBATE mode: expected exactly {expected} {category.value} node, found {found}",
                )
            elif not exact and found < expected:
                self._error(
                    result, MODE_CONSTRAINT,
                    f"DEBATE mode: expected at least {expected} {category.value} nodes, found {found}",
                )

    def _check_cycle(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        entry = find_cycle_entry(graph)
        if entry is not None:
            self._error(result, CYCLE, f"Cycle detected through node {entry}", node_id=entry)

    @staticmethod
    def _error(result: ValidationResult, code: str, message: str, **refs) -> None:
        result.errors.append(ValidationIssue(code, message, Severity.ERROR, **refs))

    @staticmethod
    def _warn(result: ValidationResult, code: str, message: str, **refs) -> None:
        result.warnings.append(ValidationIssue(code, message, Severity.WARNING, **refs))


def _is_whole_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _binding_refs(bindings: Dict[str, Any]) -> Iterator[Tuple[str, str]]:
    """ Yield (scope, path) for every `{{scope.path}}` in the string leaves of nested mappings. """
    pending = [bindings]
    while pending:
        mapping = pending.pop(0)
        for value in mapping.values():
            if isinstance(value, dict):
                pending.append(value)
            elif isinstance(value, str):
                for raw in _BINDING_REF.findall(value):
                    expr = raw.split("|", 1)[0].strip()
                    scope, _, path = expr.partition(".")
                    scope, path = scope.strip(), path.strip()
                    if scope and path:
                        yield scope, path


def _field_names(schema: Any) -> Set[str]:
    """
    Field names of an output schema: a JSON-schema style `properties` mapping,
    a plain mapping of field -> type, or a list of names / {"name": ...} entries.
    """
    if isinstance(schema, dict):
        properties = schema.get("properties")
        if isinstance(properties, dict):
            return set(properties)
        return {key for key in schema if isinstance(key, str)}
    if isinstance(schema, list):
        names = set()
        for item in schema:
            if isinstance(item, str):
                names.add(item)
            elif isinstance(item, dict) and isinstance(item.get("name") or item.get("key"), str):
                names.add(item.get("name") or item.get("key"))
        return names
    return set()


def _resolves(fields: Set[str], path: str) -> bool:
    # items[0].price -> items.0.price; a declared parent field covers its children
    tokens = re.sub(r"\[(\d+)\]", r".\1", path).split(".")
    while tokens:
        if ".".join(tokens) in fields:
            return True
        tokens.pop()
    return path in fields


def find_cycle_entry(graph: WorkflowGraph) -> Optional[str]:
    """
    Return the id of a node closing a directed cycle, or None if acyclic.

    Iterative DFS over a stack of [node, child cursor] frames with an on-stack
    set; stops at the first back edge. Edges with an unknown endpoint are ignored.
    """
    adjacency: Dict[str, List[str]] = {node_id: [] for node_id in graph.node_ids}
    for edge in graph.edges:
        if edge.src in adjacency and edge.dest in adjacency:
            adjacency[edge.src].append(edge.dest)

    visited: Set[str] = set()
    for root in adjacency:
        if root in visited:
            continue
        visited.add(root)
        on_stack = {root}
        frames = [[root, 0]]
        while frames:
            frame = frames[-1]
            current, cursor = frame
            children = adjacency[current]
            if cursor == len(children):
                on_stack.discard(current)
                frames.pop()
                continue
            frame[1] += 1
            child = children[cursor]
            if child in on_stack:
                return child
            if child not in visited:
                visited.add(child)
                on_stack.add(child)
                frames.append([child, 0])
    return None


def has_cycle(graph: WorkflowGraph) -> bool:
    return find_cycle_entry(graph) is not None


def validate(
    graph: WorkflowGraph,
    mode: Union[WorkflowMode, str, None] = None,
    catalog: Optional[NodeTypeCatalog] = None,
) -> ValidationResult:
    """ Validate `graph` against `mode` (defaults to the graph's own mode). """
    validator = StructuralValidator(catalog if catalog is not None else default_catalog())
    return validator.validate(graph, mode)
