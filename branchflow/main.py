"""
branchflow - branching questionnaire flowcharts

Main entry point and CLI interface.
"""

import json
import os
import signal
import sys
import time
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from branchflow import __version__
from branchflow.flowchart.coverage import check_choice_coverage
from branchflow.flowchart.errors import DefinitionError
from branchflow.flowchart.generator import generate
from branchflow.flowchart.reachability import reachable_question_nodes
from branchflow.pipeline.loader import load_definition
from branchflow.pipeline.state import STARTER_DEFINITION
from branchflow.watcher import FileChangeEvent, start_watching

# Load environment variables
load_dotenv()

console = Console()


def default_direction() -> str:
    return os.getenv("BRANCHFLOW_DIRECTION", "TD")


def load_or_exit(path: str):
    """Load a definition document, or print the problem and exit 1."""
    try:
        return load_definition(path, default_direction())
    except DefinitionError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli():
    """branchflow - branching questionnaire flowcharts

    Build question flows as JSON definitions and render them as Mermaid.
    """
    pass


@cli.command()
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "-o",
    default=None,
    help="Markdown output file (default: $BRANCHFLOW_OUTPUT or ./output/FLOWCHART.md)",
)
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the Mermaid text only")
def render(definition: str, output: str | None, to_stdout: bool):
    """Render a definition document to Mermaid."""
    if to_stdout:
        click.echo(generate(load_or_exit(definition)))
        return

    from branchflow.pipeline.orchestrator import render_definition

    output = output or os.getenv("BRANCHFLOW_OUTPUT", "./output/FLOWCHART.md")
    console.print(f"[cyan]Rendering {definition}...[/cyan]")
    result = render_definition(definition, output, default_direction())

    if result.get("load_error"):
        console.print(f"[red]ERROR: {result['load_error']}[/red]")
        sys.exit(1)
    if not result.get("is_valid_mermaid"):
        console.print(f"[red]ERROR: {result.get('validation_error')}[/red]")
        sys.exit(1)

    console.print(f"[green]OK: Written {result['written_path']}[/green]")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def validate(file: str):
    """Validate a Mermaid file, a Markdown file or a definition document."""
    from branchflow.validators.mermaid import validate_definition, validate_mermaid

    audit = None
    if file.endswith(".json"):
        definition = load_or_exit(file)
        mermaid = generate(definition)
        audit = validate_definition(definition)
    else:
        content = Path(file).read_text(encoding="utf-8")

        # Extract mermaid if in markdown
        if "```mermaid" in content:
            start = content.index("```mermaid") + len("```mermaid")
            end = content.index("```", start)
            mermaid = content[start:end].strip()
        else:
            mermaid = content

    result = validate_mermaid(mermaid)
    errors = result.errors + (audit.errors if audit else [])
    warnings = result.warnings + (audit.warnings if audit else [])

    if not errors:
        console.print("[green]OK: Diagram is valid[/green]")
    else:
        console.print("[red]ERROR: Diagram has errors:[/red]")
        for error in errors:
            console.print(f"   - {error}")

    if warnings:
        console.print("[yellow]WARNINGS:[/yellow]")
        for warning in warnings:
            console.print(f"   - {warning}")

    if errors:
        sys.exit(1)


@cli.command()
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True, help="Exit with status 1 if any question is not covered")
def audit(definition: str, strict: bool):
    """Report choices that no transition ever selects."""
    flowchart = load_or_exit(definition)
    results = check_choice_coverage(flowchart.nodes, flowchart.edges)

    if not results:
        console.print("[dim]No SA/MA questions with choices[/dim]")
        return

    table = Table(title="Choice coverage")
    table.add_column("Question")
    table.add_column("Unused choices")
    table.add_column("Outgoing", justify="right")
    table.add_column("Covered")
    for result in results:
        table.add_row(
            f"{result.node_label} ({result.node_id})",
            ", ".join(c.id for c in result.unused_choices) or "-",
            str(result.outgoing_edge_count),
            "[green]yes[/green]" if result.is_covered else "[red]NO[/red]",
        )
    console.print(table)

    uncovered = [r for r in results if not r.is_covered]
    if uncovered:
        console.print(f"[yellow]WARNING: {len(uncovered)} question(s) not fully covered[/yellow]")
        if strict:
            sys.exit(1)


@cli.command()
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.argument("target")
def reachable(definition: str, target: str):
    """List the questions on any path into TARGET."""
    flowchart = load_or_exit(definition)
    if flowchart.node(target) is None:
        console.print(f"[yellow]WARNING: Unknown node '{target}'[/yellow]")

    nodes = reachable_question_nodes(target, flowchart.nodes, flowchart.edges)
    if not nodes:
        console.print(f"[dim]No questions lead to {target}[/dim]")
        return

    for node in sorted(nodes, key=lambda n: n.id):
        console.print(f"  {node.id}  [dim]{node.question_category.value}[/dim]  {node.label}")


@cli.command()
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
def snapshot(definition: str):
    """Print the normalized structured snapshot as JSON."""
    flowchart = load_or_exit(definition)
    click.echo(json.dumps(flowchart.to_dict(), ensure_ascii=False, indent=2))


@cli.command()
@click.option(
    "--output",
    "-o",
    default="./flows/flowchart.json",
    help="Definition file to create",
)
def init(output: str):
    """Create a starter definition document."""
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.exists():
        if not click.confirm(f"{output} already exists. Overwrite?"):
            console.print("[yellow]Aborted.[/yellow]")
            return

    output_path.write_text(
        json.dumps(STARTER_DEFINITION, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )

    console.print(f"[green]OK: Created {output}[/green]")
    console.print("\nNext steps:")
    console.print(f"  1. Edit {output}")
    console.print(f"  2. Run: [cyan]branchflow watch {output_path.parent}[/cyan]")


@cli.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--output",
    "-o",
    default=None,
    help="Output directory (default: $BRANCHFLOW_OUTPUT_DIR or ./output)",
)
@click.option(
    "--debounce",
    "-d",
    default=None,
    type=float,
    help="Debounce delay in seconds (default: $BRANCHFLOW_DEBOUNCE or 1.0)",
)
def watch(path: str, output: str | None, debounce: float | None):
    """Re-render definition documents whenever they change."""
    from branchflow.pipeline.orchestrator import render_definition

    output_dir = Path(output or os.getenv("BRANCHFLOW_OUTPUT_DIR", "./output"))
    if debounce is None:
        debounce = float(os.getenv("BRANCHFLOW_DEBOUNCE", "1.0"))

    console.print(
        Panel.fit(
            "[bold cyan]BRANCHFLOW[/bold cyan] - Flowchart Watcher\n\n"
            f"[>] Definitions: [green]{Path(path).absolute()}[/green]\n"
            f"[>] Output: [yellow]{output_dir}[/yellow]\n"
            f"[>] Debounce: [dim]{debounce}s[/dim]",
            border_style="cyan",
        )
    )

    def on_file_change(event: FileChangeEvent):
        """Callback for definition changes."""
        if event.event_type == "deleted":
            console.print(f"[dim]{event.file_path.name} deleted, leaving its output in place[/dim]")
            return
        console.print(f"\n[cyan]{event.file_path.name} {event.event_type}[/cyan]")
        render_definition(
            str(event.file_path),
            str(output_dir / f"{event.file_path.stem}.md"),
            default_direction(),
        )

    watcher = None

    def signal_handler(sig, frame):
        console.print("\n[yellow]Shutting down gracefully...[/yellow]")
        if watcher:
            watcher.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    console.print("\n[dim]Watching for changes... (CTRL+C to stop)[/dim]\n")

    watcher = start_watching(
        path=path,
        callback=on_file_change,
        debounce_seconds=debounce,
    )

    try:
        while watcher.is_running():
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()


if __name__ == "__main__":
    cli()
