"""
Flowchart store.

The one place a flowchart is mutated. The store holds the current
FlowchartDefinition snapshot; every accepted mutation swaps in a whole new
snapshot with a bumped version, so a snapshot handed to the analyzer or the
generator never changes under it. Refused mutations leave the snapshot as
it was and come back as a MutationResult carrying the reasons.
"""

from dataclasses import dataclass, field, replace

from rich.console import Console

from branchflow.flowchart.conditions import CompoundCondition, EdgeCondition
from branchflow.flowchart.coverage import CoverageResult, check_choice_coverage
from branchflow.flowchart.errors import InvalidConditionError
from branchflow.flowchart.generator import generate
from branchflow.flowchart.model import (
    ChoiceOption,
    ClassStyle,
    Direction,
    Edge,
    EdgeStyle,
    FlowchartDefinition,
    InitOptions,
    LinkStyle,
    Node,
    NodeShape,
    QuestionCategory,
    Subgraph,
    Theme,
)
from branchflow.flowchart.reachability import condition_candidates, reachable_question_nodes
from branchflow.flowchart.state_nodes import StateNodeRegistry, label_of
from branchflow.validators.node_id import validate_node_id

console = Console()

_UNSET = object()


@dataclass
class MutationResult:
    """Outcome of a store mutation."""

    applied: bool
    definition: FlowchartDefinition
    errors: list[str] = field(default_factory=list)
    state_node_id: str | None = None


@dataclass(frozen=True)
class NewNode:
    """Destination node created as part of a connect or commit."""

    id: str
    label: str
    shape: NodeShape = NodeShape.RECTANGLE


class FlowchartStore:
    """
    Single writer over immutable flowchart snapshots.

    Usage:
        store = FlowchartStore()
        store.add_node("Q1", "Smoker?", category="SA")
        store.add_choice("Q1")
        print(store.mermaid())
    """

    def __init__(self, definition: FlowchartDefinition | None = None):
        self._definition = definition if definition is not None else FlowchartDefinition()
        self._reachable_cache: dict[tuple[str, int], list[Node]] = {}

    @property
    def definition(self) -> FlowchartDefinition:
        return self._definition

    @property
    def version(self) -> int:
        return self._definition.version

    # ----- internals -----

    def _commit(self, state_node_id: str | None = None, **changes) -> MutationResult:
        self._definition = replace(
            self._definition, version=self._definition.version + 1, **changes
        )
        self._reachable_cache.clear()
        return MutationResult(True, self._definition, state_node_id=state_node_id)

    def _refuse(self, *errors: str) -> MutationResult:
        for error in errors:
            console.print(f"[yellow]WARNING: {error}[/yellow]")
        return MutationResult(False, self._definition, list(errors))

    def _replace_node(self, node_id: str, updated: Node) -> tuple[Node, ...]:
        return tuple(updated if node.id == node_id else node for node in self._definition.nodes)

    def _referencing_state_nodes(self, node_id: str) -> list[Node]:
        return [
            node
            for node in self._definition.state_nodes()
            if node.compound_condition.references(node_id)
        ]

    def _is_state_id(self, node_id: str) -> bool:
        node = self._definition.node(node_id)
        return node is not None and node.is_state_node

    def _new_node_errors(self, new_node: NewNode) -> list[str]:
        validation = validate_node_id(new_node.id)
        if not validation.valid:
            return [validation.message]
        if self._definition.node(new_node.id) is not None:
            return [f"Node '{new_node.id}' already exists"]
        if not new_node.label.strip():
            return ["Node label cannot be empty"]
        return []

    # ----- nodes -----

    def add_node(
        self,
        node_id: str,
        label: str,
        shape: NodeShape | str = NodeShape.RECTANGLE,
        category: QuestionCategory | str | None = None,
        choices: list[ChoiceOption] | tuple[ChoiceOption, ...] = (),
    ) -> MutationResult:
        errors = self._new_node_errors(NewNode(node_id, label))
        if errors:
            return self._refuse(*errors)

        category = QuestionCategory(category) if category is not None else None
        node = Node(
            id=node_id,
            label=label,
            shape=NodeShape(shape),
            question_category=category,
            choices=tuple(choices) if category is not None and category.has_choices else (),
        )
        return self._commit(nodes=self._definition.nodes + (node,))

    def update_node(
        self,
        node_id: str,
        *,
        label=_UNSET,
        shape=_UNSET,
        class_name=_UNSET,
        click=_UNSET,
        category=_UNSET,
        choices=_UNSET,
    ) -> MutationResult:
        """Change node settings. Pass ``category=None`` to make it a plain node."""
        node = self._definition.node(node_id)
        if node is None:
            return self._refuse(f"Unknown node '{node_id}'")
        if node.is_state_node:
            return self._refuse(f"State node '{node_id}' cannot be edited")

        changes = {}
        if label is not _UNSET:
            if not label or not label.strip():
                return self._refuse("Node label cannot be empty")
            changes["label"] = label
        if shape is not _UNSET:
            changes["shape"] = NodeShape(shape)
        if class_name is not _UNSET:
            changes["class_name"] = class_name or None
        if click is not _UNSET:
            changes["click"] = click

        resulting_category = node.question_category
        if category is not _UNSET:
            resulting_category = QuestionCategory(category) if category is not None else None
            if resulting_category is not node.question_category and self._referencing_state_nodes(
                node_id
            ):
                return self._refuse(
                    f"Question '{node_id}' is used by a compound condition; "
                    "its category cannot change"
                )
            changes["question_category"] = resulting_category

        if choices is not _UNSET:
            if resulting_category is None or not resulting_category.has_choices:
                return self._refuse(f"Only SA/MA questions have choices ('{node_id}')")
            changes["choices"] = tuple(choices)
        elif resulting_category is None or not resulting_category.has_choices:
            changes["choices"] = ()

        return self._commit(nodes=self._replace_node(node_id, replace(node, **changes)))

    def rename_node(self, old_id: str, new_id: str) -> MutationResult:
        node = self._definition.node(old_id)
        if node is None:
            return self._refuse(f"Unknown node '{old_id}'")
        if node.is_state_node:
            return self._refuse(f"State node '{old_id}' cannot be renamed")
        if old_id == new_id:
            return MutationResult(True, self._definition)
        errors = self._new_node_errors(NewNode(new_id, node.label))
        if errors:
            return self._refuse(*errors)
        if self._referencing_state_nodes(old_id):
            return self._refuse(
                f"Question '{old_id}' is used by a compound condition and cannot be renamed"
            )

        def rename(node_ref: str) -> str:
            return new_id if node_ref == old_id else node_ref

        return self._commit(
            nodes=self._replace_node(old_id, replace(node, id=new_id)),
            edges=tuple(
                replace(edge, source=rename(edge.source), target=rename(edge.target))
                for edge in self._definition.edges
            ),
            subgraphs=tuple(
                replace(s, node_ids=tuple(rename(n) for n in s.node_ids))
                for s in self._definition.subgraphs
            ),
        )

    def remove_node(self, node_id: str) -> MutationResult:
        """
        Delete a node with everything that depends on it.

        State nodes built from a compound condition on this node go too, along
        with every edge touching any deleted node.
        """
        node = self._definition.node(node_id)
        if node is None:
            return self._refuse(f"Unknown node '{node_id}'")
        if node.is_state_node:
            return self._refuse(
                f"State node '{node_id}' can only be removed by deleting a question it uses"
            )

        doomed = {node_id} | {state.id for state in self._referencing_state_nodes(node_id)}
        if len(doomed) > 1:
            console.print(f"[dim]   -> Removing {len(doomed) - 1} dependent state node(s)[/dim]")

        return self._commit(
            nodes=tuple(n for n in self._definition.nodes if n.id not in doomed),
            edges=tuple(
                e
                for e in self._definition.edges
                if e.source not in doomed and e.target not in doomed
            ),
            subgraphs=tuple(
                replace(s, node_ids=tuple(n for n in s.node_ids if n not in doomed))
                for s in self._definition.subgraphs
            ),
        )

    def add_choice(self, node_id: str, label: str | None = None) -> MutationResult:
        node = self._definition.node(node_id)
        if node is None or node.question_category is None or not node.question_category.has_choices:
            return self._refuse(f"Node '{node_id}' is not an SA/MA question")

        number = len(node.choices) + 1
        while node.choice(f"{node_id}_opt{number}") is not None:
            number += 1
        option = ChoiceOption(f"{node_id}_opt{number}", label or f"Choice {number}")
        return self.update_node(node_id, choices=node.choices + (option,))

    def remove_choice(self, node_id: str, choice_id: str) -> MutationResult:
        node = self._definition.node(node_id)
        if node is None or node.choice(choice_id) is None:
            return self._refuse(f"Node '{node_id}' has no choice '{choice_id}'")
        return self.update_node(
            node_id, choices=tuple(c for c in node.choices if c.id != choice_id)
        )

    # ----- edges -----

    def add_edge(
        self,
        source: str,
        target: str,
        label: str | None = None,
        style: EdgeStyle | str = EdgeStyle.SOLID,
    ) -> MutationResult:
        """Plain edge. Endpoints may be declared later."""
        if self._is_state_id(source) or self._is_state_id(target):
            return self._refuse("Edges of state nodes are managed by compound conditions")
        edge = Edge(source, target, EdgeStyle(style), label or None)
        return self._commit(edges=self._definition.edges + (edge,))

    def update_edge(
        self,
        index: int,
        *,
        source=_UNSET,
        target=_UNSET,
        label=_UNSET,
        style=_UNSET,
    ) -> MutationResult:
        edges = self._definition.edges
        if not 0 <= index < len(edges):
            return self._refuse(f"No edge at index {index}")
        edge = edges[index]

        changes = {}
        if source is not _UNSET:
            changes["source"] = source
        if target is not _UNSET:
            changes["target"] = target
        if label is not _UNSET:
            changes["label"] = label or None
        if style is not _UNSET:
            changes["style"] = EdgeStyle(style)
        updated = replace(edge, **changes)

        if any(self._is_state_id(n) for n in (edge.source, edge.target, updated.source, updated.target)):
            return self._refuse("Edges of state nodes are managed by compound conditions")
        return self._commit(edges=edges[:index] + (updated,) + edges[index + 1 :])

    def remove_edge(self, index: int) -> MutationResult:
        edges = self._definition.edges
        if not 0 <= index < len(edges):
            return self._refuse(f"No edge at index {index}")
        if self._is_state_id(edges[index].source) or self._is_state_id(edges[index].target):
            return self._refuse("Edges of state nodes are managed by compound conditions")
        return self._commit(edges=edges[:index] + edges[index + 1 :])

    # ----- condition flows -----

    def _destination(self, target_id: str, new_node: NewNode | None) -> tuple[list[str], Node | None]:
        if new_node is not None:
            if new_node.id != target_id:
                return [f"New node '{new_node.id}' does not match target '{target_id}'"], None
            errors = self._new_node_errors(new_node)
            if errors:
                return errors, None
            return [], Node(new_node.id, new_node.label, NodeShape(new_node.shape))

        target = self._definition.node(target_id)
        if target is None:
            return [f"Unknown target node '{target_id}'"], None
        if target.is_state_node:
            return [f"State node '{target_id}' cannot be a destination"], None
        return [], None

    def connect(
        self,
        source_id: str,
        target_id: str,
        label: str = "",
        style: EdgeStyle | str = EdgeStyle.SOLID,
        condition: EdgeCondition | None = None,
        new_node: NewNode | None = None,
    ) -> MutationResult:
        """
        Add a transition gated by at most one answer of ``source_id``.

        When a condition is given the edge label is generated from it: the
        selected choice labels, or the comparison for a numeric question.
        """
        source = self._definition.node(source_id)
        if source is None:
            return self._refuse(f"Unknown node '{source_id}'")
        if source.is_state_node:
            return self._refuse("Edges of state nodes are managed by compound conditions")

        category = source.question_category
        if category is QuestionCategory.FA and condition is not None:
            return self._refuse(f"Free-answer question '{source_id}' cannot carry a condition")

        if condition is not None:
            if condition.choice_condition is not None:
                if category is None or not category.has_choices:
                    return self._refuse(f"'{source_id}' has no choices to branch on")
                missing = [c for c in condition.choice_ids if source.choice(c) is None]
                if missing:
                    return self._refuse(f"Unknown choice(s) on '{source_id}': {', '.join(missing)}")
                label = ", ".join(source.choice(c).label for c in condition.choice_ids)
            elif condition.numeric_condition is not None:
                if category is not QuestionCategory.NA:
                    return self._refuse(f"'{source_id}' is not a numeric question")
                label = condition.numeric_condition.describe()
            else:
                condition = None
        elif category is not None and category.has_choices and source.choices:
            return self._refuse(f"Select at least one choice of '{source_id}'")
        elif category is QuestionCategory.NA:
            return self._refuse(f"Numeric question '{source_id}' needs a comparison")

        errors, created = self._destination(target_id, new_node)
        if errors:
            return self._refuse(*errors)

        nodes = self._definition.nodes + ((created,) if created is not None else ())
        edge = Edge(source_id, target_id, EdgeStyle(style), label or None, condition)
        return self._commit(nodes=nodes, edges=self._definition.edges + (edge,))

    def commit_condition(
        self,
        selected_id: str,
        compound: CompoundCondition,
        target_id: str,
        label: str = "",
        style: EdgeStyle | str = EdgeStyle.SOLID,
        new_node: NewNode | None = None,
    ) -> MutationResult:
        """
        Route ``selected_id`` to a destination through a compound condition.

        The condition's state node is reused when one with the same identity
        exists. Exactly one edge enters it from the selected node, labeled with
        every condition; the state node then leads to the destination with the
        caller's label and style. The other questions named in the condition
        get no edges.
        """
        selected = self._definition.node(selected_id)
        if selected is None:
            return self._refuse(f"Unknown node '{selected_id}'")
        if selected.is_state_node:
            return self._refuse("Conditions are committed from question nodes, not state nodes")

        try:
            compound.require_valid()
        except InvalidConditionError as e:
            return self._refuse(*e.errors)

        registry = StateNodeRegistry(self._definition.nodes)
        errors = registry.validate(compound)
        allowed = {node.id for node in self.condition_candidates(selected_id)}
        errors.extend(
            f"'{node_id}' is not on a path into '{selected_id}'"
            for node_id in compound.node_ids
            if self._definition.node(node_id) is not None and node_id not in allowed
        )
        if errors:
            return self._refuse(*errors)

        dest_errors, created = self._destination(target_id, new_node)
        if dest_errors:
            return self._refuse(*dest_errors)

        nodes = list(self._definition.nodes)
        if created is not None:
            nodes.append(created)

        state, is_new = registry.resolve(compound)
        if is_new:
            nodes.append(state)
            console.print(f"[dim]   -> New state node {state.id}[/dim]")
        else:
            console.print(f"[dim]   -> Reusing state node {state.id}[/dim]")

        edges = list(self._definition.edges)
        if not any(e.source == selected_id and e.target == state.id for e in edges):
            edges.append(Edge(selected_id, state.id, EdgeStyle.DOTTED, label_of(compound, nodes)))
        outgoing = Edge(state.id, target_id, EdgeStyle(style), label or None)
        if outgoing not in edges:
            edges.append(outgoing)

        return self._commit(state_node_id=state.id, nodes=tuple(nodes), edges=tuple(edges))

    # ----- presentation -----

    def set_direction(self, direction: Direction | str) -> MutationResult:
        return self._commit(direction=Direction(direction))

    def set_init(
        self,
        theme: Theme | str | None = None,
        theme_variables: dict[str, str] | None = None,
    ) -> MutationResult:
        if theme is None and not theme_variables:
            return self._commit(init=None)
        return self._commit(
            init=InitOptions(
                theme=Theme(theme) if theme is not None else None,
                theme_variables=tuple((theme_variables or {}).items()),
            )
        )

    def add_subgraph(
        self,
        subgraph_id: str,
        title: str,
        node_ids: list[str],
        direction: Direction | str | None = None,
    ) -> MutationResult:
        validation = validate_node_id(subgraph_id)
        if not validation.valid:
            return self._refuse(validation.message)
        subgraph = Subgraph(
            subgraph_id,
            title,
            tuple(node_ids),
            Direction(direction) if direction is not None else None,
        )
        return self._commit(subgraphs=self._definition.subgraphs + (subgraph,))

    def add_style(self, class_name: str, styles: dict[str, str]) -> MutationResult:
        style = ClassStyle(class_name, tuple(styles.items()))
        return self._commit(styles=self._definition.styles + (style,))

    def add_link_style(self, link_index: int, styles: dict[str, str]) -> MutationResult:
        if link_index < 0:
            return self._refuse(f"Invalid link index {link_index}")
        style = LinkStyle(link_index, tuple(styles.items()))
        return self._commit(link_styles=self._definition.link_styles + (style,))

    # ----- projections -----

    def display_nodes(self) -> list[Node]:
        """Nodes a user manages directly; state nodes are hidden."""
        return [node for node in self._definition.nodes if not node.is_state_node]

    def display_edges(self) -> list[Edge]:
        return [
            edge
            for edge in self._definition.edges
            if not self._is_state_id(edge.source) and not self._is_state_id(edge.target)
        ]

    def condition_nodes(self) -> list[Node]:
        return [node for node in self._definition.nodes if node.can_branch]

    def condition_candidates(self, selected_id: str) -> list[Node]:
        return condition_candidates(selected_id, self._definition.nodes, self._definition.edges)

    def reachable(self, target_id: str) -> list[Node]:
        key = (target_id, self.version)
        if key not in self._reachable_cache:
            self._reachable_cache[key] = reachable_question_nodes(
                target_id, self._definition.nodes, self._definition.edges
            )
        return list(self._reachable_cache[key])

    def coverage(self) -> list[CoverageResult]:
        return check_choice_coverage(self._definition.nodes, self._definition.edges)

    def mermaid(self) -> str:
        return generate(self._definition)

    def to_dict(self) -> dict:
        return self._definition.to_dict()


