"""
Mermaid syntax validator.

Checks generated flowcharts before they are written out, and audits a
definition for references the renderer would choke on.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console

from branchflow.flowchart.model import FlowchartDefinition
from branchflow.validators.node_id import validate_node_id

console = Console()

INIT_DIRECTIVE = re.compile(r"^%%\{.*\}%%$")
NODE_DECLARATION = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(?:\[|\(|\{|>)")
EDGE_LINE = re.compile(
    r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s+(?:<-->|-->|-\.->|==>|---|-\.-|===|--o|--x)"
    r"(?:\|[^|]*\|)?\s+([A-Za-z_][A-Za-z0-9_]*)\s*$"
)
CLICK_LINE = re.compile(r"^\s*click\s+([A-Za-z_][A-Za-z0-9_]*)\s")


@dataclass
class ValidationResult:
    """Result of Mermaid validation."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_mermaid(mermaid: str) -> ValidationResult:
    """
    Validate Mermaid flowchart syntax.

    Performs structural validation to catch common errors.
    """
    errors = []
    warnings = []

    if not mermaid or not mermaid.strip():
        errors.append("Empty diagram")
        return ValidationResult(is_valid=False, errors=errors)

    lines = mermaid.strip().split("\n")

    # Rule 1: Must start with graph/flowchart directive (after an optional init)
    body = lines[1:] if INIT_DIRECTIVE.match(lines[0].strip()) else lines
    first_line = body[0].strip() if body else ""
    if not re.match(r"^(graph|flowchart)\s+(TD|TB|LR|RL|BT)\s*$", first_line):
        errors.append(
            f"Diagram must start with 'flowchart TD' or similar directive, got: {first_line[:50]}"
        )

    # Rule 2: Balanced subgraphs
    subgraph_count = sum(1 for line in body if line.strip().startswith("subgraph"))
    end_count = sum(1 for line in body if re.match(r"^\s*end\s*$", line))

    if subgraph_count != end_count:
        errors.append(
            f"Unbalanced subgraphs: {subgraph_count} 'subgraph' vs {end_count} 'end'"
        )

    # Rule 3: No dangerous content
    dangerous_patterns = ["<script", "javascript:", "onclick", "onerror"]
    for pattern in dangerous_patterns:
        if pattern.lower() in mermaid.lower():
            errors.append(f"Potentially dangerous content detected: {pattern}")

    # Rule 4: Edges and clicks should point at declared nodes
    declared = set()
    for line in body:
        match = NODE_DECLARATION.match(line)
        if match and not line.strip().startswith(("subgraph", "classDef", "linkStyle")):
            declared.add(match.group(1))

    for line in body:
        edge = EDGE_LINE.match(line)
        if edge:
            for endpoint in edge.groups():
                if endpoint not in declared:
                    warnings.append(f"Edge references undeclared node '{endpoint}'")
        click = CLICK_LINE.match(line)
        if click and click.group(1) not in declared:
            warnings.append(f"Click binding on undeclared node '{click.group(1)}'")

    # Rule 5: Check for common syntax issues (warnings)
    if re.search(r"\w+->\w+", mermaid):
        warnings.append("Found '->' instead of '-->'. Consider using '-->' for arrows.")

    # Rule 6: Check for empty subgraphs (warning, not error)
    subgraph_pattern = re.compile(r"subgraph\s+.*?\n\s*end", re.DOTALL)
    for match in subgraph_pattern.finditer(mermaid):
        inner = match.group().split("\n")[1:-1]
        if not any(line.strip() for line in inner):
            warnings.append("Found empty subgraph")

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def validate_definition(definition: FlowchartDefinition) -> ValidationResult:
    """
    Audit a definition before it is rendered.

    Bad or duplicate ids are errors. Dangling references are only warnings:
    the generator writes them through and the renderer reports them.
    """
    errors = []
    warnings = []

    seen = set()
    for node in definition.nodes:
        if node.id in seen:
            errors.append(f"Duplicate node id '{node.id}'")
        seen.add(node.id)
        if node.is_state_node:
            continue
        result = validate_node_id(node.id)
        if not result.valid:
            errors.append(result.message)

    for edge in definition.edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in seen:
                warnings.append(f"Edge {edge.source} -> {edge.target} references unknown node '{endpoint}'")

    for node in definition.state_nodes():
        for node_id in node.compound_condition.node_ids:
            if node_id not in seen:
                warnings.append(f"State node '{node.id}' references unknown node '{node_id}'")

    for subgraph in definition.subgraphs:
        for node_id in subgraph.node_ids:
            if node_id not in seen:
                warnings.append(f"Subgraph '{subgraph.id}' lists unknown node '{node_id}'")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)


def validator_node(state: dict[str, Any]) -> dict[str, Any]:
    """
    LangGraph node to validate the rendered Mermaid diagram.

    Input: mermaid, definition
    Output: is_valid_mermaid, validation_error, warnings
    """
    mermaid = state.get("mermaid")

    if not mermaid:
        return {
            **state,
            "is_valid_mermaid": False,
            "validation_error": "No diagram to validate",
        }

    result = validate_mermaid(mermaid)
    warnings = list(result.warnings)
    errors = list(result.errors)

    definition = state.get("definition")
    if definition is not None:
        audit = validate_definition(definition)
        errors.extend(audit.errors)
        warnings.extend(w for w in audit.warnings if w not in warnings)

    for warning in warnings:
        console.print(f"[yellow]   WARNING: {warning}[/yellow]")

    if errors:
        error_msg = "; ".join(errors)
        console.print(f"[red]   FAILED: Validation failed: {error_msg}[/red]")
        return {
            **state,
            "is_valid_mermaid": False,
            "validation_error": error_msg,
            "warnings": warnings,
        }

    console.print("[dim]   -> Validation passed[/dim]")
    return {
        **state,
        "is_valid_mermaid": True,
        "validation_error": None,
        "warnings": warnings,
    }
