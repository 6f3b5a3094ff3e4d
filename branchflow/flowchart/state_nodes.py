"""
State-node registry.

A compound condition is drawn as one synthetic hexagon node. Its id is
derived from the condition itself, so committing the same set of answers a
second time (in any order) lands on the node that already exists.
"""

from collections.abc import Iterable

from branchflow.flowchart.conditions import CompoundCondition, SingleCondition, format_number
from branchflow.flowchart.model import STATE_NODE_PREFIX, Node, NodeShape, QuestionCategory


def _value_token(value: float) -> str:
    # Keep the id inside the [A-Za-z0-9_] alphabet
    return format_number(value).replace("-", "neg").replace(".", "p")


def _token(condition: SingleCondition) -> str:
    if condition.condition_type == "choice" and condition.choice_condition is not None:
        return "_".join([condition.node_id, *sorted(set(condition.choice_condition.choice_ids))])
    if condition.condition_type == "numeric" and condition.numeric_condition is not None:
        numeric = condition.numeric_condition
        return f"{condition.node_id}_{numeric.operator.value}{_value_token(numeric.value)}"
    return condition.node_id


def identity_of(compound: CompoundCondition) -> str:
    """Canonical state-node id. Entry order of the conditions does not matter."""
    tokens = [_token(c) for c in compound.sorted_conditions()]
    return STATE_NODE_PREFIX + "_".join(tokens)


def describe_condition(condition: SingleCondition, node: Node | None) -> str:
    node_label = node.label if node is not None and node.label else condition.node_id

    if condition.condition_type == "choice" and condition.choice_condition is not None:
        labels = []
        for choice_id in dict.fromkeys(condition.choice_condition.choice_ids):
            option = node.choice(choice_id) if node is not None else None
            labels.append(option.label if option is not None and option.label else choice_id)
        return f"{node_label}: {', '.join(labels)}"
    if condition.condition_type == "numeric" and condition.numeric_condition is not None:
        return f"{node_label} {condition.numeric_condition.describe()}"
    return node_label


def label_of(compound: CompoundCondition, nodes: Iterable[Node]) -> str:
    by_id = {node.id: node for node in nodes}
    return " AND ".join(
        describe_condition(c, by_id.get(c.node_id)) for c in compound.sorted_conditions()
    )


class StateNodeRegistry:
    """Looks up, validates and mints state nodes against one snapshot's nodes."""

    def __init__(self, nodes: Iterable[Node]):
        self._nodes = {node.id: node for node in nodes}

    def validate(self, compound: CompoundCondition) -> list[str]:
        errors = compound.problems()
        for condition in compound.conditions:
            node = self._nodes.get(condition.node_id)
            if node is None:
                errors.append(f"Condition references unknown node '{condition.node_id}'")
                continue
            if node.is_state_node:
                errors.append(f"Condition cannot reference state node '{node.id}'")
                continue
            if node.question_category is None:
                errors.append(f"Node '{node.id}' is not a question")
                continue
            if node.question_category is QuestionCategory.FA:
                errors.append(f"Free-answer question '{node.id}' cannot gate a branch")
                continue
            if condition.condition_type == "choice":
                if not node.question_category.has_choices:
                    errors.append(f"Choice condition on '{node.id}', which has no choices")
                elif condition.choice_condition is not None:
                    missing = [
                        c for c in condition.choice_condition.choice_ids if node.choice(c) is None
                    ]
                    if missing:
                        errors.append(f"Unknown choice(s) on '{node.id}': {', '.join(missing)}")
            if (
                condition.condition_type == "numeric"
                and node.question_category is not QuestionCategory.NA
            ):
                errors.append(f"Numeric condition on non-numeric question '{node.id}'")
        return errors

    def find(self, compound: CompoundCondition) -> Node | None:
        return self._nodes.get(identity_of(compound))

    def resolve(self, compound: CompoundCondition) -> tuple[Node, bool]:
        """
        Return the state node for ``compound`` and whether it is new.

        An existing node is returned untouched, including the condition payload
        it was created with.
        """
        existing = self.find(compound)
        if existing is not None:
            return existing, False

        node = Node(
            id=identity_of(compound),
            label=label_of(compound, self._nodes.values()),
            shape=NodeShape.HEXAGON,
            compound_condition=compound,
        )
        self._nodes[node.id] = node
        return node, True
