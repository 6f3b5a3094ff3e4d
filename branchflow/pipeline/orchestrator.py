"""
LangGraph Orchestrator.

This module builds and compiles the LangGraph that renders a definition
document into a Markdown flowchart.
"""

from langgraph.graph import END, StateGraph
from rich.console import Console

from branchflow.pipeline.loader import loader_node, render_node
from branchflow.pipeline.state import RenderState
from branchflow.pipeline.writer import writer_node
from branchflow.validators.mermaid import validator_node

console = Console()


def check_loaded(state: RenderState) -> str:
    """Router function after loading."""
    if state.get("definition") is None:
        return "failed"
    return "loaded"


def check_validity(state: RenderState) -> str:
    """
    Router function after validation.

    Invalid output is never written; rendering is deterministic, so there is
    nothing to retry.
    """
    if state.get("is_valid_mermaid", False):
        return "valid"

    console.print("[yellow]   WARNING: Diagram not written[/yellow]")
    return "abort"


def build_graph(write: bool = True):
    """
    Build the render graph.

    The flow is:
    1. Loader reads the definition document
    2. Renderer generates Mermaid text and coverage
    3. Validator checks the diagram and the definition
    4. If valid -> Writer saves the Markdown file

    Args:
        write: When False the graph stops after validation

    Returns:
        Compiled StateGraph ready to invoke
    """
    graph = StateGraph(RenderState)

    # Add nodes
    graph.add_node("loader", loader_node)
    graph.add_node("renderer", render_node)
    graph.add_node("validator", validator_node)
    if write:
        graph.add_node("writer", writer_node)

    # Set entry point
    graph.set_entry_point("loader")

    # Define edges
    graph.add_conditional_edges(
        "loader",
        check_loaded,
        {
            "failed": END,
            "loaded": "renderer",
        },
    )

    graph.add_edge("renderer", "validator")

    if write:
        graph.add_conditional_edges(
            "validator",
            check_validity,
            {
                "valid": "writer",
                "abort": END,
            },
        )
        graph.add_edge("writer", END)
    else:
        graph.add_edge("validator", END)

    return graph.compile()


def render_definition(
    definition_path: str,
    output_path: str | None = None,
    default_direction: str = "TD",
    write: bool = True,
) -> RenderState:
    """Run the pipeline once for a definition document."""
    graph = build_graph(write=write)
    return graph.invoke(
        {
            "definition_path": str(definition_path),
            "output_path": output_path,
            "default_direction": default_direction,
        }
    )
