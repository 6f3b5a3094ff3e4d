"""Flowchart model, analysis and Mermaid generation."""

from branchflow.flowchart.conditions import (
    ChoiceCondition,
    CompoundCondition,
    EdgeCondition,
    NumericCondition,
    NumericOperator,
    SingleCondition,
)
from branchflow.flowchart.coverage import CoverageResult, check_choice_coverage
from branchflow.flowchart.errors import DefinitionError, InvalidConditionError
from branchflow.flowchart.generator import generate
from branchflow.flowchart.model import (
    STATE_NODE_PREFIX,
    ChoiceOption,
    ClickBinding,
    ClickKind,
    Direction,
    Edge,
    EdgeStyle,
    FlowchartDefinition,
    Node,
    NodeShape,
    QuestionCategory,
)
from branchflow.flowchart.reachability import condition_candidates, reachable_question_nodes
from branchflow.flowchart.state_nodes import StateNodeRegistry, identity_of, label_of
from branchflow.flowchart.store import FlowchartStore, MutationResult, NewNode

__all__ = [
    "STATE_NODE_PREFIX",
    "ChoiceCondition",
    "ChoiceOption",
    "ClickBinding",
    "ClickKind",
    "CompoundCondition",
    "CoverageResult",
    "DefinitionError",
    "Direction",
    "Edge",
    "EdgeCondition",
    "EdgeStyle",
    "FlowchartDefinition",
    "FlowchartStore",
    "InvalidConditionError",
    "MutationResult",
    "NewNode",
    "Node",
    "NodeShape",
    "NumericCondition",
    "NumericOperator",
    "QuestionCategory",
    "SingleCondition",
    "StateNodeRegistry",
    "check_choice_coverage",
    "condition_candidates",
    "generate",
    "identity_of",
    "label_of",
    "reachable_question_nodes",
]
