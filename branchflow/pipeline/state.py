"""
LangGraph state definitions for the render pipeline.

This module defines the RenderState that flows from loader to writer.
"""

from typing import TypedDict

from branchflow.flowchart.coverage import CoverageResult
from branchflow.flowchart.model import FlowchartDefinition


class RenderState(TypedDict, total=False):
    """
    State that flows through the render pipeline.

    This is the central data structure that all nodes read from and write to.
    """

    # Input
    definition_path: str
    output_path: str | None
    default_direction: str

    # Loader output
    definition: FlowchartDefinition | None
    load_error: str | None

    # Renderer output
    mermaid: str | None
    coverage: list[CoverageResult]

    # Validation
    is_valid_mermaid: bool
    validation_error: str | None
    warnings: list[str]

    # Writer output
    written_path: str | None


# Starter document written by `branchflow init`
STARTER_DEFINITION = {
    "direction": "TD",
    "nodes": [
        {"id": "Start", "label": "Start", "shape": "stadium"},
        {
            "id": "Q1",
            "label": "Do you smoke?",
            "shape": "rhombus",
            "questionCategory": "SA",
            "choices": [{"id": "yes", "label": "Yes"}, {"id": "no", "label": "No"}],
        },
        {"id": "Q2", "label": "Cigarettes per day", "questionCategory": "NA"},
        {"id": "End", "label": "End", "shape": "stadium"},
    ],
    "edges": [
        {"from": "Start", "to": "Q1", "style": "solid"},
        {"from": "Q1", "to": "Q2", "style": "solid", "label": "Yes", "condition": {"choiceIds": ["yes"]}},
        {"from": "Q1", "to": "End", "style": "solid", "label": "No", "condition": {"choiceIds": ["no"]}},
        {
            "from": "Q2",
            "to": "End",
            "style": "solid",
            "label": ">= 0",
            "condition": {"numericCondition": {"operator": "gte", "value": 0}},
        },
    ],
}
