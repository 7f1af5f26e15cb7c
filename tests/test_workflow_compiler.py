"""Tests for workflow document loading (YAML/JSON parsing and schema checks)."""

import json

import pytest

from src.workflow.compiler import (
    GraphTooLargeError,
    build_workflow_graph,
    dump_workflow_graph,
    load_workflow_graph,
    load_workflow_graph_file,
)
from src.workflow.models import DiffStatus, EdgeType, Node, Position, WorkflowGraph, WorkflowMode
from src.workflow.schema import graph_to_document, validate_document


PRICE_ALERT_YAML = """
id: wf_price_alert
name: Corn price alert
mode: DAG
nodes:
  - id: start
    type: manual-trigger
    name: Start
    config: {}
  - id: fetch
    type: data-fetch
    name: Fetch prices
    config:
      connectorCode: corn_spot
      lookbackDays: 7
      _position: { x: 120, y: 40 }
    runtimePolicy: { timeoutMs: 30000 }
  - id: alert
    type: notify
    name: Alert
    enabled: false
    config: { channel: SYSTEM }
edges:
  - { id: e1, from: start, to: fetch, edgeType: control-edge }
  - { id: e2, from: fetch, to: alert, edgeType: condition-edge, condition: "{{fetch.data}} != null" }
"""


def test_load_workflow_graph_from_valid_yaml():
    """Test loading a valid workflow document from YAML."""
    graph = load_workflow_graph(PRICE_ALERT_YAML)

    assert graph.id == "wf_price_alert"
    assert graph.name == "Corn price alert"
    assert graph.mode == WorkflowMode.DAG
    assert [n.id for n in graph.nodes] == ["start", "fetch", "alert"]
    assert len(graph.edges) == 2
    assert graph.edges[0].src == "start"
    assert graph.edges[0].dest == "fetch"


def test_load_workflow_graph_preserves_node_metadata():
    graph = load_workflow_graph(PRICE_ALERT_YAML)
    fetch = graph.node_by_id("fetch")
    alert = graph.node_by_id("alert")

    assert fetch.type == "data-fetch"
    assert fetch.name == "Fetch prices"
    assert fetch.config == {"connectorCode": "corn_spot", "lookbackDays": 7}
    assert fetch.position == Position(120.0, 40.0)
    assert fetch.runtime_policy == {"timeoutMs": 30000}
    assert alert.enabled is False


def test_studio_edge_types_are_normalized():
    """'control-edge' style types map onto the engine's edge types."""
    graph = load_workflow_graph(PRICE_ALERT_YAML)

    assert graph.edges[0].edge_type == EdgeType.CONTROL
    assert graph.edges[1].edge_type == EdgeType.CONDITION
    assert graph.edges[1].condition == "{{fetch.data}} != null"


def test_load_workflow_graph_missing_required_field():
    """Test that missing required fields raise ValueError."""
    yaml_text = """
id: wf_incomplete
name: incomplete
nodes: []
"""

    with pytest.raises(ValueError, match="DSL validation error"):
        load_workflow_graph(yaml_text)


def test_load_workflow_graph_rejects_unknown_mode():
    with pytest.raises(ValueError, match="DSL validation error"):
        load_workflow_graph("id: wf_x\nname: x\nmode: RING\n")


def test_load_workflow_graph_rejects_bad_yaml():
    with pytest.raises(ValueError, match="Unable to parse"):
        load_workflow_graph("id: [unclosed")


def test_load_workflow_graph_requires_a_mapping():
    with pytest.raises(ValueError, match="mapping"):
        load_workflow_graph("- just\n- a list\n")


def test_loader_leaves_structure_to_the_validator():
    """Cycles and dangling edges load fine; they are validation findings."""
    yaml_text = """
workflowId: wf_cyclic
name: cyclic
mode: dag
nodes:
  - { id: a, type: formula-calc, name: a }
  - { id: b, type: formula-calc, name: b }
edges:
  - { id: e1, from: a, to: b }
  - { id: e2, from: b, to: a }
  - { id: e3, from: b, to: nowhere }
"""

    graph = load_workflow_graph(yaml_text)

    assert graph.id == "wf_cyclic"
    assert graph.mode == WorkflowMode.DAG
    assert [e.edge_type for e in graph.edges] == [EdgeType.CONTROL] * 3


def test_json_documents_are_accepted():
    document = {
        "id": "wf_json",
        "name": "json",
        "mode": "LINEAR",
        "nodes": [{"id": "t", "type": "manual-trigger", "name": "t", "config": None}],
        "edges": [{"id": "e1", "from": "t", "to": "t", "edgeType": "data", "condition": True}],
    }

    graph = load_workflow_graph(json.dumps(document))

    assert graph.node_by_id("t").config == {}
    assert graph.edges[0].edge_type == EdgeType.DATA
    assert graph.edges[0].condition == "true"


def test_size_limits_are_enforced_before_building():
    document = {
        "id": "wf_big",
        "name": "big",
        "mode": "DAG",
        "nodes": [{"id": f"n{i}", "type": "formula-calc"} for i in range(4)],
        "edges": [{"id": f"e{i}", "from": "n0", "to": "n1"} for i in range(3)],
    }

    with pytest.raises(GraphTooLargeError, match="4 nodes"):
        build_workflow_graph(document, max_nodes=3)
    with pytest.raises(GraphTooLargeError, match="3 edges"):
        build_workflow_graph(document, max_edges=2)
    assert len(build_workflow_graph(document, max_nodes=4, max_edges=3).nodes) == 4


def test_size_limits_default_to_settings(monkeypatch):
    monkeypatch.setenv("WORKFLOW_DSL_MAX_NODES", "2")

    with pytest.raises(GraphTooLargeError):
        load_workflow_graph(PRICE_ALERT_YAML)


def test_dump_and_reload_keeps_the_graph(tmp_path):
    graph = load_workflow_graph(PRICE_ALERT_YAML)
    path = tmp_path / "price_alert.yaml"
    path.write_text(dump_workflow_graph(graph), encoding="utf-8")

    assert load_workflow_graph_file(path) == graph


def test_graph_to_document_emits_annotations_only_when_present():
    graph = WorkflowGraph(
        id="wf_doc",
        name="doc",
        mode=WorkflowMode.LINEAR,
        nodes=[
            Node("a", "notify", name="a", position=Position(1, 2), diff_status=DiffStatus.REMOVED),
            Node("b", "notify", name="b"),
        ],
    )

    document = graph_to_document(graph)

    assert document["mode"] == "LINEAR"
    assert document["nodes"][0]["config"] == {"_position": {"x": 1, "y": 2}}
    assert document["nodes"][0]["diffStatus"] == "removed"
    assert "diffStatus" not in document["nodes"][1]
    spec, _ = validate_document(document)
    assert spec.nodes[0].id == "a"
