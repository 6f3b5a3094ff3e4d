"""
Map a click on the rendered diagram back to a node.

Mermaid gives node elements DOM ids like ``flowchart-Q1-0``. The first
capture group of CLICK_ID_PATTERN recovers the original node id; when an
element does not follow that scheme the visible text is used instead.
"""

import re

from branchflow.flowchart.model import FlowchartDefinition, Node

CLICK_ID_PATTERN = re.compile(r"(?:flowchart|node)-([^-]+)")


def extract_node_id(dom_id: str | None, text_content: str | None = None) -> str | None:
    if dom_id:
        match = CLICK_ID_PATTERN.search(dom_id)
        if match:
            return match.group(1)
    if text_content and text_content.strip():
        return text_content.strip()
    return None


def resolve_clicked_node(
    definition: FlowchartDefinition,
    dom_id: str | None,
    text_content: str | None = None,
) -> Node | None:
    """Find the clicked node by id, falling back to a label match."""
    key = extract_node_id(dom_id, text_content)
    if key is None:
        return None

    node = definition.node(key)
    if node is not None:
        return node

    for candidate in definition.nodes:
        if candidate.label == key:
            return candidate
    return None
