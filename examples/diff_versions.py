"""Example: diff two versions of a workflow and print the merged view."""
import sys

from src.workflow.compiler import load_workflow_graph_file
from src.workflow.diff import diff


def main():
    base_path = sys.argv[1] if len(sys.argv) > 2 else 'examples/specs/price_alert_v1.yaml'
    target_path = sys.argv[2] if len(sys.argv) > 2 else 'examples/specs/price_alert_v2.yaml'

    base = load_workflow_graph_file(base_path)
    target = load_workflow_graph_file(target_path)
    result = diff(base, target)

    print('Stats:', result.stats.as_dict())
    for node in result.merged_graph.nodes:
        print(f'  {node.diff_status.value:<9} {node.id:<8} {node.label}')
    for edge in result.merged_graph.edges:
        print(f'  {edge.diff_status.value:<9} {edge.id}: {edge.src} -> {edge.dest} ({edge.edge_type.value})')


if __name__ == '__main__':
    main()
