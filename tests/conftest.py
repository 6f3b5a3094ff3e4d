"""Shared fixtures."""

import pytest

from branchflow.flowchart.model import ChoiceOption
from branchflow.flowchart.store import FlowchartStore


@pytest.fixture
def questionnaire() -> FlowchartStore:
    """Q1 (SA: a/b) --a--> Q2 (MA: c/d) --> End, plus an unrelated NA and FA question."""
    store = FlowchartStore()
    store.add_node("Start", "Start", shape="stadium")
    store.add_node(
        "Q1",
        "Smoker",
        category="SA",
        choices=[ChoiceOption("a", "Yes"), ChoiceOption("b", "No")],
    )
    store.add_node(
        "Q2",
        "Drinks",
        category="MA",
        choices=[ChoiceOption("c", "Beer"), ChoiceOption("d", "Wine")],
    )
    store.add_node("Age", "Age", category="NA")
    store.add_node("Notes", "Notes", category="FA")
    store.add_node("End", "End", shape="stadium")
    store.add_edge("Start", "Q1")
    store.add_edge("Q1", "Q2", label="Yes")
    store.add_edge("Q2", "End")
    return store
