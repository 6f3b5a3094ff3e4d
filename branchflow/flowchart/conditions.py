"""
Branch conditions.

A SingleCondition gates a transition on one question's answer, either by
selected choices or by a numeric comparison. A CompoundCondition ANDs several
of them together, each anchored to a different question node.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from branchflow.flowchart.errors import DefinitionError, InvalidConditionError


class NumericOperator(Enum):
    """Comparison applied to a numeric (NA) answer."""

    EQ = "eq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"

    @property
    def symbol(self) -> str:
        return OPERATOR_SYMBOLS[self]


OPERATOR_SYMBOLS = {
    NumericOperator.EQ: "=",
    NumericOperator.GT: ">",
    NumericOperator.LT: "<",
    NumericOperator.GTE: ">=",
    NumericOperator.LTE: "<=",
}


def format_number(value: float) -> str:
    """Render a number the way a user typed it: 5.0 -> '5', 2.5 -> '2.5'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


@dataclass(frozen=True)
class ChoiceCondition:
    """Selected choices. SA matches any of them, MA matches all of them."""

    choice_ids: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"choiceIds": list(self.choice_ids)}


@dataclass(frozen=True)
class NumericCondition:
    operator: NumericOperator
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"operator": self.operator.value, "value": self.value}

    def describe(self) -> str:
        return f"{self.operator.symbol} {format_number(self.value)}"


@dataclass(frozen=True)
class SingleCondition:
    """One question's answer requirement inside a compound condition."""

    node_id: str
    condition_type: Literal["choice", "numeric"]
    choice_condition: ChoiceCondition | None = None
    numeric_condition: NumericCondition | None = None

    @classmethod
    def choice(cls, node_id: str, *choice_ids: str) -> SingleCondition:
        return cls(node_id, "choice", choice_condition=ChoiceCondition(tuple(choice_ids)))

    @classmethod
    def numeric(cls, node_id: str, operator: NumericOperator | str, value: float) -> SingleCondition:
        return cls(
            node_id,
            "numeric",
            numeric_condition=NumericCondition(NumericOperator(operator), float(value)),
        )

    def problems(self) -> list[str]:
        """Structural problems that do not need the graph to detect."""
        if self.condition_type == "choice":
            if self.choice_condition is None or not self.choice_condition.choice_ids:
                return [f"Condition on '{self.node_id}' selects no choices"]
        elif self.condition_type == "numeric":
            if self.numeric_condition is None:
                return [f"Condition on '{self.node_id}' has no numeric comparison"]
            if not math.isfinite(self.numeric_condition.value):
                return [f"Condition on '{self.node_id}' compares against a non-finite value"]
        else:
            return [f"Unknown condition type '{self.condition_type}' on '{self.node_id}'"]
        return []

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"nodeId": self.node_id, "conditionType": self.condition_type}
        if self.choice_condition is not None:
            data["choiceCondition"] = self.choice_condition.to_dict()
        if self.numeric_condition is not None:
            data["numericCondition"] = self.numeric_condition.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SingleCondition:
        try:
            node_id = data["nodeId"]
            condition_type = data.get("conditionType", "choice")
            choice = data.get("choiceCondition")
            numeric = data.get("numericCondition")
            return cls(
                node_id=node_id,
                condition_type=condition_type,
                choice_condition=ChoiceCondition(tuple(choice["choiceIds"])) if choice else None,
                numeric_condition=(
                    NumericCondition(NumericOperator(numeric["operator"]), float(numeric["value"]))
                    if numeric
                    else None
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DefinitionError(f"Invalid condition {data!r}: {e}") from e


@dataclass(frozen=True)
class CompoundCondition:
    """AND of single conditions on distinct question nodes."""

    conditions: tuple[SingleCondition, ...]

    @property
    def operator(self) -> str:
        return "AND"

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(c.node_id for c in self.conditions)

    def references(self, node_id: str) -> bool:
        return node_id in self.node_ids

    def sorted_conditions(self) -> list[SingleCondition]:
        """Conditions in canonical order, independent of entry order."""
        return sorted(self.conditions, key=lambda c: c.node_id)

    def problems(self) -> list[str]:
        errors = []
        if len(self.conditions) < 2:
            errors.append("A compound condition needs at least two conditions")
        seen = set()
        for condition in self.conditions:
            if condition.node_id in seen:
                errors.append(f"Node '{condition.node_id}' appears in more than one condition")
            seen.add(condition.node_id)
            errors.extend(condition.problems())
        return errors

    def require_valid(self) -> None:
        errors = self.problems()
        if errors:
            raise InvalidConditionError(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "conditions": [c.to_dict() for c in self.conditions],
            "operator": self.operator,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompoundCondition:
        if data.get("operator", "AND") != "AND":
            raise DefinitionError(f"Unsupported compound operator: {data.get('operator')}")
        try:
            conditions = data["conditions"]
        except (KeyError, TypeError) as e:
            raise DefinitionError(f"Invalid compound condition {data!r}") from e
        return cls(tuple(SingleCondition.from_dict(c) for c in conditions))


@dataclass(frozen=True)
class EdgeCondition:
    """Condition on a plain edge. The edge's source node is the anchor."""

    choice_condition: ChoiceCondition | None = None
    numeric_condition: NumericCondition | None = None

    @property
    def choice_ids(self) -> tuple[str, ...]:
        if self.choice_condition is None:
            return ()
        return self.choice_condition.choice_ids

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.choice_condition is not None:
            data["choiceIds"] = list(self.choice_condition.choice_ids)
        if self.numeric_condition is not None:
            data["numericCondition"] = self.numeric_condition.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EdgeCondition:
        try:
            numeric = data.get("numericCondition")
            return cls(
                choice_condition=(
                    ChoiceCondition(tuple(data["choiceIds"])) if data.get("choiceIds") else None
                ),
                numeric_condition=(
                    NumericCondition(NumericOperator(numeric["operator"]), float(numeric["value"]))
                    if numeric
                    else None
                ),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DefinitionError(f"Invalid edge condition {data!r}: {e}") from e
