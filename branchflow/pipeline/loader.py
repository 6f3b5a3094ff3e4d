"""
Loader and renderer nodes.

The loader reads a definition document (the structured snapshot format of
FlowchartDefinition.to_dict) and the renderer turns it into Mermaid text
plus a coverage audit.
"""

import json
from pathlib import Path

from rich.console import Console

from branchflow.flowchart.coverage import check_choice_coverage
from branchflow.flowchart.errors import DefinitionError
from branchflow.flowchart.generator import generate
from branchflow.flowchart.model import FlowchartDefinition
from branchflow.pipeline.state import RenderState

console = Console()


def load_definition(path: str | Path, default_direction: str = "TD") -> FlowchartDefinition:
    """
    Read a definition document from disk.

    Raises:
        DefinitionError: if the file is not UTF-8 JSON or not a definition
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise DefinitionError(f"{path} is not UTF-8 text: {e}") from e
    except json.JSONDecodeError as e:
        raise DefinitionError(f"{path} is not valid JSON: {e}") from e
    return FlowchartDefinition.from_dict(data, default_direction=default_direction)


def loader_node(state: RenderState) -> RenderState:
    """
    Load the definition document.

    Input: definition_path, default_direction
    Output: definition, load_error
    """
    path = state.get("definition_path", "")
    try:
        definition = load_definition(path, state.get("default_direction", "TD"))
    except (OSError, DefinitionError) as e:
        console.print(f"[red]   -> Could not load {path}: {e}[/red]")
        return {**state, "definition": None, "load_error": str(e)}

    console.print(
        f"[dim]   -> Loaded {len(definition.nodes)} nodes, {len(definition.edges)} edges[/dim]"
    )
    return {**state, "definition": definition, "load_error": None}


def render_node(state: RenderState) -> RenderState:
    """
    Generate Mermaid text and the choice coverage audit.

    Input: definition
    Output: mermaid, coverage
    """
    definition = state["definition"]
    return {
        **state,
        "mermaid": generate(definition),
        "coverage": check_choice_coverage(definition.nodes, definition.edges),
    }
