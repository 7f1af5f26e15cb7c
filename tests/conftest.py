"""Pytest configuration and fixtures."""
import os

import pytest

from src.config.settings import reset_settings
from src.workflow.catalog import default_catalog
from src.workflow.models import Edge, Node, WorkflowGraph, WorkflowMode

os.environ["WORKFLOW_DSL_ENV"] = "test"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so env overrides in one test do not leak."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def build_graph():
    """
    Build a WorkflowGraph from compact specs.

    Nodes are Node instances or (id, type) tuples; edges are Edge instances or
    (from, to) tuples, which get the id "from->to".
    """
    def _build(nodes, edges=(), mode=WorkflowMode.DAG, graph_id="wf_test"):
        node_objs = [
            n if isinstance(n, Node) else Node(id=n[0], type=n[1], name=n[0])
            for n in nodes
        ]
        edge_objs = [
            e if isinstance(e, Edge) else Edge(id=f"{e[0]}->{e[1]}", src=e[0], dest=e[1])
            for e in edges
        ]
        return WorkflowGraph(id=graph_id, name="test workflow", mode=mode, nodes=node_objs, edges=edge_objs)

    return _build
