"""
Mermaid flowchart generator.

Turns a FlowchartDefinition into Mermaid text. Output is a pure function of
the definition: the same snapshot always yields byte-identical text. Edge
endpoints are written as given even when no such node exists; the renderer
reports those, the generator does not.
"""

import json

from branchflow.flowchart.model import (
    ClassStyle,
    ClickKind,
    Edge,
    EdgeStyle,
    FlowchartDefinition,
    InitOptions,
    LinkStyle,
    Node,
    NodeShape,
    Subgraph,
)

INDENT = "    "

SHAPE_DELIMITERS = {
    NodeShape.RECTANGLE: ("[", "]"),
    NodeShape.ROUND: ("(", ")"),
    NodeShape.STADIUM: ("([", "])"),
    NodeShape.SUBROUTINE: ("[[", "]]"),
    NodeShape.DATABASE: ("[(", ")]"),
    NodeShape.CIRCLE: ("((", "))"),
    NodeShape.DOUBLE_CIRCLE: ("(((", ")))"),
    NodeShape.ASYMMETRIC: (">", "]"),
    NodeShape.RHOMBUS: ("{", "}"),
    NodeShape.HEXAGON: ("{{", "}}"),
    NodeShape.PARALLELOGRAM: ("[/", "/]"),
    NodeShape.PARALLELOGRAM_ALT: ("[\\", "\\]"),
    NodeShape.TRAPEZOID: ("[/", "\\]"),
    NodeShape.TRAPEZOID_ALT: ("[\\", "/]"),
}

ARROWS = {
    EdgeStyle.SOLID: "-->",
    EdgeStyle.DOTTED: "-.->",
    EdgeStyle.THICK: "==>",
    EdgeStyle.SOLID_NO_ARROW: "---",
    EdgeStyle.DOTTED_NO_ARROW: "-.-",
    EdgeStyle.THICK_NO_ARROW: "===",
    EdgeStyle.BI_DIRECTIONAL: "<-->",
    EdgeStyle.CIRCLE_END: "--o",
    EdgeStyle.CROSS_END: "--x",
}


def escape_text(text: str) -> str:
    """Quote node text that Mermaid would otherwise misparse."""
    if '"' in text or "\n" in text:
        return '"' + text.replace('"', "#quot;") + '"'
    return text


def escape_edge_label(text: str) -> str:
    # Mermaid treats bare angle brackets in edge labels as markup
    return text.replace(">", "&gt;").replace("<", "&lt;").replace('"', "&quot;")


def wrap_node_text(text: str, shape: NodeShape) -> str:
    opening, closing = SHAPE_DELIMITERS.get(shape, SHAPE_DELIMITERS[NodeShape.RECTANGLE])
    return f"{opening}{escape_text(text)}{closing}"


def unwrap_node_text(wrapped: str, shape: NodeShape) -> str:
    """Inverse of wrap_node_text."""
    opening, closing = SHAPE_DELIMITERS.get(shape, SHAPE_DELIMITERS[NodeShape.RECTANGLE])
    if not (wrapped.startswith(opening) and wrapped.endswith(closing)):
        raise ValueError(f"{wrapped!r} is not wrapped as {shape.value}")
    inner = wrapped[len(opening) : len(wrapped) - len(closing)]
    if len(inner) >= 2 and inner.startswith('"') and inner.endswith('"'):
        inner = inner[1:-1].replace("#quot;", '"')
    return inner


def arrow_for(style: EdgeStyle) -> str:
    return ARROWS.get(style, ARROWS[EdgeStyle.SOLID])


def _style_pairs(styles) -> str:
    return ",".join(f"{key}:{value}" for key, value in styles)


def generate_init_directive(init: InitOptions) -> str:
    config = json.dumps(init.config(), separators=(",", ":"), ensure_ascii=False)
    return f"%%{{init: {config}}}%%"


def generate_node(node: Node) -> str:
    line = node.id + wrap_node_text(node.label, node.shape)
    if node.class_name:
        line += f":::{node.class_name}"
    return line


def generate_edge(edge: Edge) -> str:
    arrow = arrow_for(edge.style)
    if edge.label:
        return f"{edge.source} {arrow}|{escape_edge_label(edge.label)}| {edge.target}"
    return f"{edge.source} {arrow} {edge.target}"


def generate_subgraph(subgraph: Subgraph) -> list[str]:
    lines = [f"{INDENT}subgraph {subgraph.id}[{subgraph.title}]"]
    if subgraph.direction is not None:
        lines.append(f"{INDENT * 2}direction {subgraph.direction.value}")
    lines.extend(f"{INDENT * 2}{node_id}" for node_id in subgraph.node_ids)
    lines.append(f"{INDENT}end")
    return lines


def generate_class_def(style: ClassStyle) -> str:
    return f"classDef {style.class_name} {_style_pairs(style.styles)}"


def generate_link_style(style: LinkStyle) -> str:
    return f"linkStyle {style.link_index} {_style_pairs(style.styles)}"


def generate_click(node: Node) -> str:
    binding = node.click
    tooltip = f' "{binding.tooltip}"' if binding.tooltip else ""
    if binding.kind is ClickKind.CALLBACK:
        return f"click {node.id} call {binding.target}(){tooltip}"
    return f'click {node.id} "{binding.target}"{tooltip}'


def generate(definition: FlowchartDefinition) -> str:
    """
    Render a definition as Mermaid flowchart text.

    Order: init directive, flowchart header, nodes, edges, subgraphs,
    classDef lines, linkStyle lines, then click bindings.
    """
    lines = []

    if definition.init is not None:
        lines.append(generate_init_directive(definition.init))

    lines.append(f"flowchart {definition.direction.value}")

    lines.extend(INDENT + generate_node(node) for node in definition.nodes)
    lines.extend(INDENT + generate_edge(edge) for edge in definition.edges)

    for subgraph in definition.subgraphs:
        lines.extend(generate_subgraph(subgraph))

    lines.extend(INDENT + generate_class_def(style) for style in definition.styles)
    lines.extend(INDENT + generate_link_style(style) for style in definition.link_styles)

    lines.extend(INDENT + generate_click(node) for node in definition.nodes if node.click)

    return "\n".join(lines)
