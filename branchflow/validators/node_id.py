"""
Node id grammar.

Ids must survive the round trip through rendered DOM ids such as
``flowchart-Q1-3``, so hyphens are forbidden. The grammar also keeps the
reserved ``_state_`` prefix out of reach of user-created nodes.
"""

import re
from dataclasses import dataclass

NODE_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


@dataclass
class NodeIdValidation:
    valid: bool
    message: str | None = None


def validate_node_id(node_id: str) -> NodeIdValidation:
    if not node_id:
        return NodeIdValidation(valid=False, message="Node id is required")
    if not NODE_ID_PATTERN.match(node_id):
        return NodeIdValidation(
            valid=False,
            message=(
                f"Invalid node id '{node_id}': must start with a letter and contain "
                "only letters, digits and underscores"
            ),
        )
    return NodeIdValidation(valid=True)
