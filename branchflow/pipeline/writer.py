"""
Writer Node - renders the Markdown document.

Writes the validated Mermaid diagram and the coverage audit to the output
file.
"""

from datetime import datetime
from pathlib import Path

from rich.console import Console

from branchflow.flowchart.coverage import CoverageResult
from branchflow.pipeline.state import RenderState

console = Console()


def coverage_table(results: list[CoverageResult]) -> str:
    if not results:
        return "_No SA/MA questions with choices._\n"

    rows = [
        "| Question | Unused choices | Outgoing | Covered |",
        "|----------|----------------|----------|---------|",
    ]
    for result in results:
        unused = ", ".join(c.label for c in result.unused_choices) or "-"
        rows.append(
            f"| {result.node_label} (`{result.node_id}`) | {unused} "
            f"| {result.outgoing_edge_count} | {'yes' if result.is_covered else 'NO'} |"
        )
    return "\n".join(rows) + "\n"


def render_markdown(source: str, mermaid: str, coverage: list[CoverageResult]) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return f"""# Flowchart

> **Auto-generated by branchflow** - Do not edit manually
> Source: {source}
> Last updated: {timestamp}

## Diagram

```mermaid
{mermaid}
```

## Choice Coverage

{coverage_table(coverage)}"""


def default_output_path(definition_path: str) -> Path:
    path = Path(definition_path)
    return path.with_suffix(".md")


def writer_node(state: RenderState) -> RenderState:
    """
    Write the Markdown document.

    Input: definition_path, output_path, mermaid, coverage
    Output: written_path
    """
    source = state.get("definition_path", "")
    output = Path(state.get("output_path") or default_output_path(source))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        render_markdown(source, state["mermaid"], state.get("coverage", [])),
        encoding="utf-8",
    )
    console.print(f"[dim]   -> Written to {output}[/dim]")
    return {**state, "written_path": str(output)}
