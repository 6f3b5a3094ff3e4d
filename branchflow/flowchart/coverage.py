"""
Choice coverage audit.

A choice is covered when some transition out of its question selects it:
a structured edge condition naming its id, a compound condition naming its
id, or, for hand-labeled edges without a structured condition, an edge label
containing the choice label. The label match is plain case-sensitive
substring containment, so choices whose labels overlap ("Yes" / "Yes, later")
can be reported as used when only one of them is.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from branchflow.flowchart.model import Edge, Node


@dataclass(frozen=True)
class CoverageResult:
    node_id: str
    node_label: str
    unused_choices: tuple
    outgoing_edge_count: int

    @property
    def is_covered(self) -> bool:
        # A question with no way out is a dead end even if no choice is missed
        return not self.unused_choices and self.outgoing_edge_count > 0


def _used_by_edges(node: Node, outgoing: list[Edge]) -> set[str]:
    used = set()
    for edge in outgoing:
        if edge.condition is not None and edge.condition.choice_condition is not None:
            used.update(edge.condition.choice_ids)
            continue
        if not edge.label:
            continue
        for choice in node.choices:
            if choice.label and choice.label in edge.label:
                used.add(choice.id)
    return used


def _used_by_state_nodes(node: Node, state_nodes: list[Node]) -> set[str]:
    used = set()
    for state in state_nodes:
        for condition in state.compound_condition.conditions:
            if condition.node_id == node.id and condition.choice_condition is not None:
                used.update(condition.choice_condition.choice_ids)
    return used


def check_choice_coverage(nodes: Iterable[Node], edges: Iterable[Edge]) -> list[CoverageResult]:
    """One result per SA/MA question node that declares choices."""
    nodes = list(nodes)
    edges = list(edges)
    state_nodes = [node for node in nodes if node.is_state_node]

    results = []
    for node in nodes:
        if node.is_state_node or node.question_category is None:
            continue
        if not node.question_category.has_choices or not node.choices:
            continue

        outgoing = [edge for edge in edges if edge.source == node.id]
        used = _used_by_edges(node, outgoing) | _used_by_state_nodes(node, state_nodes)

        results.append(
            CoverageResult(
                node_id=node.id,
                node_label=node.label,
                unused_choices=tuple(c for c in node.choices if c.id not in used),
                outgoing_edge_count=len(outgoing),
            )
        )
    return results
