"""
Structural validation of workflow definitions
"""

from collections import Counter

from ..errors import MissingStartNodeError, ValidationError
from .models import NodeType, WorkflowDefinition, WorkflowNode


def validate_workflow(workflow: WorkflowDefinition) -> WorkflowNode:
    """
    Check node id uniqueness, the single start node and edge endpoints.

    Returns the start node.
    """
    counts = Counter(node.id for node in workflow.nodes)
    duplicates = sorted(node_id for node_id, count in counts.items() if count > 1)
    if duplicates:
        raise ValidationError(
            f"Duplicate node ids: {', '.join(duplicates)}",
            field="nodes",
            details={"duplicates": duplicates},
        )

    start_nodes = [node for node in workflow.nodes if node.type == NodeType.START.value]
    if not start_nodes:
        raise MissingStartNodeError()
    if len(start_nodes) > 1:
        raise ValidationError(
            f"Workflow must have exactly one start node, found {len(start_nodes)}",
            field="nodes",
        )

    node_ids = set(counts)
    for edge in workflow.edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in node_ids:
                raise ValidationError(
                    f"Edge {edge.id} references unknown node: {endpoint}",
                    field="edges",
                    details={"edge": edge.id, "node": endpoint},
                )

    return start_nodes[0]
