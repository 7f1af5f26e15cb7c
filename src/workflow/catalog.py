""" Node-type catalog: categories and declared outputs per node type. """
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, List, Optional, Tuple


class NodeCategory(str, Enum):
    TRIGGER = "trigger"
    DATA = "data"
    COMPUTE = "compute"
    RULE = "rule"
    AGENT = "agent"
    CONTROL = "control"
    DECISION = "decision"
    OUTPUT = "output"
    CONTEXT = "context"
    JUDGE = "judge"
    GROUP = "group"


@dataclass(frozen=True)
class NodeTypeInfo:
    type: str
    label: str
    category: NodeCategory
    output_fields: Tuple[str, ...] = ()
    min_incoming: int = 0
    joins_branches: bool = False
    # successors must be output-category nodes
    feeds_outputs_only: bool = False


class NodeTypeCatalog:
    """
    Immutable lookup of node types.

    Passed explicitly to the validator and to reachability consumers so tests
    can swap in synthetic catalogs.
    """

    def __init__(self, entries: Iterable[NodeTypeInfo]):
        table = {}
        for entry in entries:
            if entry.type in table:
                raise ValueError(f"Node type registered twice: {entry.type}")
            table[entry.type] = entry
        self._entries = MappingProxyType(table)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._entries

    def __iter__(self) -> Iterator[NodeTypeInfo]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, node_type: str) -> Optional[NodeTypeInfo]:
        return self._entries.get(node_type)

    def require(self, node_type: str) -> NodeTypeInfo:
        if node_type not in self._entries:
            raise ValueError(f"Node type not found: {node_type}")
        return self._entries[node_type]

    def category_of(self, node_type: str) -> Optional[NodeCategory]:
        """
        Category of a node type. Unregistered types fall back on naming:
        'group' is a group and 'trigger' / '*-trigger' is a trigger.
        """
        entry = self._entries.get(node_type)
        if entry is not None:
            return entry.category
        if node_type == "group":
            return NodeCategory.GROUP
        if node_type == "trigger" or node_type.endswith("-trigger"):
            return NodeCategory.TRIGGER
        return None

    def is_trigger(self, node_type: str) -> bool:
        return self.category_of(node_type) == NodeCategory.TRIGGER

    def is_group(self, node_type: str) -> bool:
        return self.category_of(node_type) == NodeCategory.GROUP

    def is_join(self, node_type: str) -> bool:
        entry = self._entries.get(node_type)
        return bool(entry and entry.joins_branches)

    def feeds_outputs_only(self, node_type: str) -> bool:
        entry = self._entries.get(node_type)
        return bool(entry and entry.feeds_outputs_only)

    def output_fields(self, node_type: str) -> Tuple[str, ...]:
        entry = self._entries.get(node_type)
        return entry.output_fields if entry else ()

    def min_incoming(self, node_type: str) -> int:
        entry = self._entries.get(node_type)
        return entry.min_incoming if entry else 0

    def types_in(self, category: NodeCategory) -> List[str]:
        return [e.type for e in self._entries.values() if e.category == category]


_DEFAULT_ENTRIES = (
    # triggers
    NodeTypeInfo("manual-trigger", "Manual trigger", NodeCategory.TRIGGER, ("triggeredAt", "triggeredBy")),
    NodeTypeInfo("cron-trigger", "Scheduled trigger", NodeCategory.TRIGGER, ("triggeredAt",)),
    NodeTypeInfo("api-trigger", "API trigger", NodeCategory.TRIGGER, ("payload", "triggeredAt")),
    # data
    NodeTypeInfo("data-fetch", "Data fetch", NodeCategory.DATA, ("data", "meta")),
    NodeTypeInfo("knowledge-fetch", "Knowledge search", NodeCategory.DATA, ("documents",)),
    # compute
    NodeTypeInfo("formula-calc", "Formula", NodeCategory.COMPUTE, ("value",)),
    NodeTypeInfo("feature-calc", "Feature engineering", NodeCategory.COMPUTE, ("features",)),
    NodeTypeInfo("quantile-calc", "Quantiles", NodeCategory.COMPUTE, ("quantiles", "rank")),
    # rules and decisions
    NodeTypeInfo("rule-pack-eval", "Rule pack evaluation", NodeCategory.RULE, ("score", "hits")),
    NodeTypeInfo("risk-gate", "Risk gate", NodeCategory.DECISION, ("riskLevel", "action")),
    NodeTypeInfo("approval", "Approval", NodeCategory.DECISION, ("approved", "comment"),
                 feeds_outputs_only=True),
    NodeTypeInfo("decision-merge", "Decision merge", NodeCategory.DECISION, ("decision",),
                 min_incoming=2, joins_branches=True),
    # agents
    NodeTypeInfo("agent-call", "Agent call", NodeCategory.AGENT, ("result",)),
    NodeTypeInfo("debate-round", "Debate round", NodeCategory.AGENT, ("transcript",)),
    NodeTypeInfo("debate-agent-a", "Debater A", NodeCategory.AGENT, ("argument",)),
    NodeTypeInfo("debate-agent-b", "Debater B", NodeCategory.AGENT, ("argument",)),
    # debate framing
    NodeTypeInfo("context-builder", "Context builder", NodeCategory.CONTEXT, ("context",)),
    NodeTypeInfo("debate-topic", "Debate topic", NodeCategory.CONTEXT, ("topic",)),
    NodeTypeInfo("judge-agent", "Judge", NodeCategory.JUDGE, ("verdict", "scores")),
    NodeTypeInfo("debate-judge", "Debate judge", NodeCategory.JUDGE, ("verdict",)),
    # control
    NodeTypeInfo("if-else", "If / else", NodeCategory.CONTROL),
    NodeTypeInfo("parallel-split", "Parallel split", NodeCategory.CONTROL),
    NodeTypeInfo("join", "Join", NodeCategory.CONTROL, ("branches",), joins_branches=True),
    NodeTypeInfo("group", "Group", NodeCategory.GROUP),
    # outputs
    NodeTypeInfo("notify", "Notify", NodeCategory.OUTPUT),
    NodeTypeInfo("report-generate", "Report", NodeCategory.OUTPUT, ("reportUrl",)),
    NodeTypeInfo("dashboard-publish", "Dashboard publish", NodeCategory.OUTPUT),
)


def default_catalog() -> NodeTypeCatalog:
    """ Catalog of the node types offered by the workflow studio palette. """
    return NodeTypeCatalog(_DEFAULT_ENTRIES)
