"""
Reverse reachability over the flowchart.

Answers "which earlier questions can a transition into this node depend on?"
by walking edges backwards from the node. State nodes are not reported
themselves; they stand in for the question nodes their compound condition
was built from.
"""

from collections.abc import Iterable

from branchflow.flowchart.model import Edge, Node


def _reverse_edges(edges: Iterable[Edge]) -> dict[str, list[str]]:
    reverse: dict[str, list[str]] = {}
    for edge in edges:
        reverse.setdefault(edge.target, []).append(edge.source)
    return reverse


def reachable_question_nodes(
    target_id: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
) -> list[Node]:
    """
    Collect the SA/MA/NA question nodes lying on any path into ``target_id``.

    The walk keeps going past question nodes, since several questions can
    stack along one path, and every node is expanded at most once so cycles
    terminate. The target is not reported as its own predecessor.

    Args:
        target_id: Node the user selected
        nodes: All nodes of the snapshot
        edges: All edges of the snapshot

    Returns:
        Question nodes, unique by id, in discovery order
    """
    by_id = {node.id: node for node in nodes}
    reverse = _reverse_edges(edges)

    found: dict[str, Node] = {}
    visited: set[str] = set()
    stack = [target_id]

    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)

        node = by_id.get(node_id)
        if node is None:
            # Dangling reference, nothing to expand
            continue

        if node.is_state_node:
            for condition in node.compound_condition.conditions:
                source = by_id.get(condition.node_id)
                if source is not None and source.can_branch and source.id != target_id:
                    found.setdefault(source.id, source)
        elif node.can_branch and node_id != target_id:
            found.setdefault(node.id, node)

        # Reversed so the first-declared predecessor is explored first
        stack.extend(reversed(reverse.get(node_id, [])))

    return list(found.values())


def condition_candidates(
    selected_id: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
) -> list[Node]:
    """Question nodes a compound condition committed from ``selected_id`` may use."""
    nodes = list(nodes)
    candidates = []
    selected = next((node for node in nodes if node.id == selected_id), None)
    if selected is not None and selected.can_branch:
        candidates.append(selected)
    candidates.extend(
        node
        for node in reachable_question_nodes(selected_id, nodes, edges)
        if node.id != selected_id
    )
    return candidates
