import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import Edge, EdgeType, Node, Position, WorkflowGraph, WorkflowMode


POSITION_KEY = "_position"
DIFF_STATUS_KEY = "diffStatus"


class PositionSpec(BaseModel):
    x: float
    y: float


class NodeSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    name: str = ""
    enabled: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)
    runtime_policy: Optional[Dict[str, Any]] = Field(default=None, alias="runtimePolicy")
    input_bindings: Optional[Dict[str, Any]] = Field(default=None, alias="inputBindings")
    output_schema: Optional[Any] = Field(default=None, alias="outputSchema")
    position: Optional[PositionSpec] = None

    @field_validator("config", mode="before")
    @classmethod
    def _config_defaults_to_empty(cls, value):
        return {} if value is None else value


class EdgeSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    src: str = Field(alias="from", min_length=1)
    dest: str = Field(alias="to", min_length=1)
    edge_type: EdgeType = Field(default=EdgeType.CONTROL, alias="edgeType")
    condition: Optional[str] = None

    @field_validator("edge_type", mode="before")
    @classmethod
    def _normalize_edge_type(cls, value):
        # documents written by the studio use the "data-edge" spelling
        if isinstance(value, str):
            value = value.strip().lower()
            if value.endswith("-edge"):
                value = value[: -len("-edge")]
        return value

    @field_validator("condition", mode="before")
    @classmethod
    def _condition_to_text(cls, value):
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, sort_keys=True)
        return value


class WorkflowDocumentSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "workflowId"))
    name: str
    mode: WorkflowMode
    nodes: List[NodeSpec] = Field(default_factory=list)
    edges: List[EdgeSpec] = Field(default_factory=list)

    @field_validator("mode", mode="before")
    @classmethod
    def _mode_is_case_insensitive(cls, value):
        return value.upper() if isinstance(value, str) else value


def validate_document(raw: Dict[str, Any]) -> Tuple[WorkflowDocumentSpec, Dict[str, Any]]:
    """Validate a raw document dict against WorkflowDocumentSpec."""
    try:
        spec = WorkflowDocumentSpec.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"DSL validation error: {e}") from e
    return spec, spec.model_dump(by_alias=True)


def document_to_graph(spec: WorkflowDocumentSpec) -> WorkflowGraph:
    nodes = []
    for node_spec in spec.nodes:
        config = dict(node_spec.config)
        position = _position_from(config.pop(POSITION_KEY, None)) or _position_from(node_spec.position)
        config.pop(DIFF_STATUS_KEY, None)
        nodes.append(Node(
            id=node_spec.id,
            type=node_spec.type,
            name=node_spec.name,
            enabled=node_spec.enabled,
            config=config,
            runtime_policy=node_spec.runtime_policy,
            input_bindings=node_spec.input_bindings,
            output_schema=node_spec.output_schema,
            position=position,
        ))

    edges = [
        Edge(
            id=e.id,
            src=e.src,
            dest=e.dest,
            edge_type=e.edge_type,
            condition=e.condition,
        )
        for e in spec.edges
    ]
    return WorkflowGraph(id=spec.id, name=spec.name, mode=spec.mode, nodes=nodes, edges=edges)


def graph_to_document(graph: WorkflowGraph) -> Dict[str, Any]:
    """
    Serialize a graph back into the document shape. Positions travel inside
    `config._position`; `diffStatus` is emitted only on annotated graphs.
    """
    nodes = []
    for node in graph.nodes:
        config = dict(node.config)
        if node.position is not None:
            config[POSITION_KEY] = {"x": node.position.x, "y": node.position.y}
        data: Dict[str, Any] = {
            "id": node.id,
            "type": node.type,
            "name": node.name,
            "enabled": node.enabled,
            "config": config,
        }
        if node.runtime_policy is not None:
            data["runtimePolicy"] = node.runtime_policy
        if node.input_bindings is not None:
            data["inputBindings"] = node.input_bindings
        if node.output_schema is not None:
            data["outputSchema"] = node.output_schema
        if node.diff_status is not None:
            data[DIFF_STATUS_KEY] = node.diff_status.value
        nodes.append(data)

    edges = []
    for edge in graph.edges:
        data = {"id": edge.id, "from": edge.src, "to": edge.dest, "edgeType": edge.edge_type.value}
        if edge.condition is not None:
            data["condition"] = edge.condition
        if edge.diff_status is not None:
            data[DIFF_STATUS_KEY] = edge.diff_status.value
        edges.append(data)

    return {
        "id": graph.id,
        "name": graph.name,
        "mode": graph.mode.value,
        "nodes": nodes,
        "edges": edges,
    }


def _position_from(value: Any) -> Optional[Position]:
    if isinstance(value, PositionSpec):
        return Position(value.x, value.y)
    if isinstance(value, dict):
        try:
            return Position(float(value["x"]), float(value["y"]))
        except (KeyError, TypeError, ValueError):
            return None
    return None
