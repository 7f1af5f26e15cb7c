"""Example: load a workflow document, validate it and print an auto layout.

Usage: python -m examples.validate_dsl [path/to/workflow.yaml]
"""
import sys

from src.observability.logging import setup_logging
from src.workflow.compiler import load_workflow_graph_file
from src.workflow.layout import LayoutDirection, layout
from src.workflow.reachability import upstream_of
from src.workflow.validator import validate


def main():
    path = sys.argv[1] if len(sys.argv) > 1 else 'examples/specs/price_alert_v1.yaml'
    setup_logging()

    graph = load_workflow_graph_file(path)
    result = validate(graph)

    print(f'Workflow {graph.name} ({graph.mode.value}): {len(graph.nodes)} nodes, {len(graph.edges)} edges')
    if result.is_valid:
        print('Valid')
    for issue in result.errors + result.warnings:
        print(f'  [{issue.severity.value}] {issue.code}: {issue.message}')

    # Variables available to the last node
    last = graph.nodes[-1]
    print(f'Upstream of {last.label}:')
    for upstream in upstream_of(graph, last.id):
        print(f'  {upstream.depth}  {upstream.node.label}')

    print('Layout (left to right):')
    for node in layout(graph, LayoutDirection.LEFT_RIGHT).nodes:
        print(f'  {node.id:<8} x={node.position.x:>7.1f} y={node.position.y:>7.1f}')

    return 0 if result.is_valid else 1


if __name__ == '__main__':
    sys.exit(main())
