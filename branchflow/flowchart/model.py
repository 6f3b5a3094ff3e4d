"""
Flowchart model.

Nodes, edges and the presentation extras (subgraphs, class styles, link
styles, init options) that together make one FlowchartDefinition snapshot.
Everything here is frozen: a mutation builds a new snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from branchflow.flowchart.conditions import CompoundCondition, EdgeCondition
from branchflow.flowchart.errors import DefinitionError

# Reserved id prefix of synthetic compound-condition nodes
STATE_NODE_PREFIX = "_state_"


class Direction(Enum):
    TB = "TB"
    TD = "TD"
    BT = "BT"
    LR = "LR"
    RL = "RL"


class NodeShape(Enum):
    """Geometric presentation of a node."""

    RECTANGLE = "rectangle"
    ROUND = "round"
    STADIUM = "stadium"
    SUBROUTINE = "subroutine"
    DATABASE = "database"
    CIRCLE = "circle"
    DOUBLE_CIRCLE = "doubleCircle"
    ASYMMETRIC = "asymmetric"
    RHOMBUS = "rhombus"
    HEXAGON = "hexagon"
    PARALLELOGRAM = "parallelogram"
    PARALLELOGRAM_ALT = "parallelogramAlt"
    TRAPEZOID = "trapezoid"
    TRAPEZOID_ALT = "trapezoidAlt"

    @classmethod
    def _missing_(cls, value):
        return cls.RECTANGLE


class EdgeStyle(Enum):
    """Line and arrow-head presentation of an edge."""

    SOLID = "solid"
    DOTTED = "dotted"
    THICK = "thick"
    SOLID_NO_ARROW = "solidNoArrow"
    DOTTED_NO_ARROW = "dottedNoArrow"
    THICK_NO_ARROW = "thickNoArrow"
    BI_DIRECTIONAL = "biDirectional"
    CIRCLE_END = "circleEnd"
    CROSS_END = "crossEnd"

    @classmethod
    def _missing_(cls, value):
        return cls.SOLID


class QuestionCategory(Enum):
    SA = "SA"  # single answer
    MA = "MA"  # multiple answer
    FA = "FA"  # free answer, never branches
    NA = "NA"  # numeric answer

    @property
    def has_choices(self) -> bool:
        return self in (QuestionCategory.SA, QuestionCategory.MA)


class ClickKind(Enum):
    CALLBACK = "callback"
    LINK = "link"


class Theme(Enum):
    DEFAULT = "default"
    FOREST = "forest"
    DARK = "dark"
    NEUTRAL = "neutral"
    BASE = "base"


Styles = tuple[tuple[str, str], ...]


def _styles_from(data: Any) -> Styles:
    if not isinstance(data, dict):
        raise DefinitionError(f"Styles must be an object, got {data!r}")
    return tuple((str(k), str(v)) for k, v in data.items())


def _entries(data: dict[str, Any], key: str) -> list:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise DefinitionError(f"'{key}' must be a list, got {entries!r}")
    return entries


@dataclass(frozen=True)
class ChoiceOption:
    id: str
    label: str


@dataclass(frozen=True)
class ClickBinding:
    kind: ClickKind
    target: str
    tooltip: str | None = None


@dataclass(frozen=True)
class Node:
    id: str
    label: str
    shape: NodeShape = NodeShape.RECTANGLE
    class_name: str | None = None
    click: ClickBinding | None = None
    question_category: QuestionCategory | None = None
    choices: tuple[ChoiceOption, ...] = ()
    compound_condition: CompoundCondition | None = None

    @property
    def is_state_node(self) -> bool:
        return self.compound_condition is not None

    @property
    def can_branch(self) -> bool:
        """Question node whose answer may gate a transition (SA, MA or NA)."""
        return (
            not self.is_state_node
            and self.question_category is not None
            and self.question_category is not QuestionCategory.FA
        )

    def choice(self, choice_id: str) -> ChoiceOption | None:
        for option in self.choices:
            if option.id == choice_id:
                return option
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "label": self.label, "shape": self.shape.value}
        if self.class_name:
            data["className"] = self.class_name
        if self.click is not None:
            data["click"] = {"type": self.click.kind.value, "target": self.click.target}
            if self.click.tooltip:
                data["click"]["tooltip"] = self.click.tooltip
        if self.question_category is not None:
            data["questionCategory"] = self.question_category.value
            if self.question_category.has_choices:
                data["choices"] = [{"id": c.id, "label": c.label} for c in self.choices]
        if self.compound_condition is not None:
            data["compoundCondition"] = self.compound_condition.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        if not isinstance(data, dict):
            raise DefinitionError(f"Node entry must be an object, got {data!r}")
        try:
            click = data.get("click")
            category = data.get("questionCategory")
            compound = data.get("compoundCondition")
            return cls(
                id=str(data["id"]),
                label=str(data.get("label", data["id"])),
                shape=NodeShape(data.get("shape", "rectangle")),
                class_name=data.get("className"),
                click=(
                    ClickBinding(ClickKind(click["type"]), click["target"], click.get("tooltip"))
                    if click
                    else None
                ),
                question_category=QuestionCategory(category) if category else None,
                choices=tuple(
                    ChoiceOption(str(c["id"]), str(c.get("label", c["id"])))
                    for c in data.get("choices") or []
                ),
                compound_condition=CompoundCondition.from_dict(compound) if compound else None,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            if isinstance(e, DefinitionError):
                raise
            raise DefinitionError(f"Invalid node {data!r}: {e}") from e


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    style: EdgeStyle = EdgeStyle.SOLID
    label: str | None = None
    condition: EdgeCondition | None = None

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"from": self.source, "to": self.target, "style": self.style.value}
        if self.label:
            data["label"] = self.label
        if self.condition is not None:
            data["condition"] = self.condition.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Edge:
        if not isinstance(data, dict):
            raise DefinitionError(f"Edge entry must be an object, got {data!r}")
        try:
            condition = data.get("condition")
            return cls(
                source=str(data["from"]),
                target=str(data["to"]),
                style=EdgeStyle(data.get("style", "solid")),
                label=data.get("label") or None,
                condition=EdgeCondition.from_dict(condition) if condition else None,
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise DefinitionError(f"Invalid edge {data!r}: {e}") from e


@dataclass(frozen=True)
class Subgraph:
    id: str
    title: str
    node_ids: tuple[str, ...] = ()
    direction: Direction | None = None


@dataclass(frozen=True)
class ClassStyle:
    class_name: str
    styles: Styles = ()


@dataclass(frozen=True)
class LinkStyle:
    link_index: int
    styles: Styles = ()


@dataclass(frozen=True)
class InitOptions:
    theme: Theme | None = None
    theme_variables: Styles = ()

    def config(self) -> dict[str, Any]:
        config: dict[str, Any] = {}
        if self.theme is not None:
            config["theme"] = self.theme.value
        if self.theme_variables:
            config["themeVariables"] = dict(self.theme_variables)
        return config


@dataclass(frozen=True)
class FlowchartDefinition:
    """One immutable snapshot of the whole flowchart."""

    direction: Direction = Direction.TD
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    subgraphs: tuple[Subgraph, ...] = ()
    styles: tuple[ClassStyle, ...] = ()
    link_styles: tuple[LinkStyle, ...] = ()
    init: InitOptions | None = None
    version: int = field(default=0, compare=False)

    def node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_by_id(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def state_nodes(self) -> list[Node]:
        return [node for node in self.nodes if node.is_state_node]

    def to_dict(self) -> dict[str, Any]:
        """Plain structured snapshot for display, debugging and documents."""
        data: dict[str, Any] = {
            "direction": self.direction.value,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
        if self.subgraphs:
            data["subgraphs"] = []
            for subgraph in self.subgraphs:
                entry: dict[str, Any] = {
                    "id": subgraph.id,
                    "title": subgraph.title,
                    "nodeIds": list(subgraph.node_ids),
                }
                if subgraph.direction is not None:
                    entry["direction"] = subgraph.direction.value
                data["subgraphs"].append(entry)
        if self.styles:
            data["styles"] = [
                {"className": s.class_name, "styles": dict(s.styles)} for s in self.styles
            ]
        if self.link_styles:
            data["linkStyles"] = [
                {"linkIndex": s.link_index, "styles": dict(s.styles)} for s in self.link_styles
            ]
        if self.init is not None:
            data["init"] = self.init.config()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_direction: str = "TD") -> FlowchartDefinition:
        if not isinstance(data, dict):
            raise DefinitionError("Definition document must be a JSON object")
        try:
            direction = Direction(data.get("direction", default_direction))
            subgraphs = tuple(
                Subgraph(
                    id=str(s["id"]),
                    title=str(s.get("title", s["id"])),
                    node_ids=tuple(s.get("nodeIds", [])),
                    direction=Direction(s["direction"]) if s.get("direction") else None,
                )
                for s in data.get("subgraphs") or []
            )
            styles = tuple(
                ClassStyle(str(s["className"]), _styles_from(s.get("styles", {})))
                for s in data.get("styles") or []
            )
            link_styles = tuple(
                LinkStyle(int(s["linkIndex"]), _styles_from(s.get("styles", {})))
                for s in data.get("linkStyles") or []
            )
            init = data.get("init")
            init_options = (
                InitOptions(
                    theme=Theme(init["theme"]) if init.get("theme") else None,
                    theme_variables=_styles_from(init.get("themeVariables", {})),
                )
                if init
                else None
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            if isinstance(e, DefinitionError):
                raise
            raise DefinitionError(f"Invalid definition: {e}") from e

        return cls(
            direction=direction,
            nodes=tuple(Node.from_dict(n) for n in _entries(data, "nodes")),
            edges=tuple(Edge.from_dict(e) for e in _entries(data, "edges")),
            subgraphs=subgraphs,
            styles=styles,
            link_styles=link_styles,
            init=init_options,
        )
