""" Load workflow DSL documents from YAML or JSON text. """

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from src.config.settings import get_settings
from src.observability.logging import workflow_context

from .models import WorkflowGraph
from .schema import document_to_graph, graph_to_document, validate_document


logger = logging.getLogger(__name__)


class GraphTooLargeError(ValueError):
    """ Document exceeds the configured node or edge limit. """


def load_workflow_graph(
    text: str,
    max_nodes: Optional[int] = None,
    max_edges: Optional[int] = None,
) -> WorkflowGraph:
    """
    Load a WorkflowGraph from a YAML (or JSON) string.

    Only the document shape is checked here; structural problems such as
    cycles or dangling edges are left for the validator.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Unable to parse workflow document: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Workflow document must be a mapping at the top level")
    return build_workflow_graph(data, max_nodes=max_nodes, max_edges=max_edges)


def load_workflow_graph_file(path: Union[str, Path], **limits: Any) -> WorkflowGraph:
    with open(path, "r", encoding="utf-8") as fh:
        return load_workflow_graph(fh.read(), **limits)


def build_workflow_graph(
    data: Dict[str, Any],
    max_nodes: Optional[int] = None,
    max_edges: Optional[int] = None,
) -> WorkflowGraph:
    """ Build a graph from an already-parsed document dict. """
    settings = get_settings()
    max_nodes = settings.max_nodes if max_nodes is None else max_nodes
    max_edges = settings.max_edges if max_edges is None else max_edges
    _check_size(data, max_nodes, max_edges)

    spec, _ = validate_document(data)
    graph = document_to_graph(spec)
    logger.info(
        "Loaded workflow graph %s (%s): %d nodes, %d edges",
        graph.name, graph.mode.value, len(graph.nodes), len(graph.edges),
        extra=workflow_context(graph.id),
    )
    return graph


def dump_workflow_graph(graph: WorkflowGraph) -> str:
    """ Serialize a graph to YAML in the document shape. """
    return yaml.safe_dump(graph_to_document(graph), sort_keys=False, allow_unicode=True)


def _check_size(data: Dict[str, Any], max_nodes: int, max_edges: int) -> None:
    nodes = data.get("nodes") or []
    edges = data.get("edges") or []
    if isinstance(nodes, list) and len(nodes) > max_nodes:
        raise GraphTooLargeError(f"Workflow has {len(nodes)} nodes; the limit is {max_nodes}")
    if isinstance(edges, list) and len(edges) > max_edges:
        raise GraphTooLargeError(f"Workflow has {len(edges)} edges; the limit is {max_edges}")
