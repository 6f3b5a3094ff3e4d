"""Tests for the flowchart store."""

from branchflow.flowchart.conditions import (
    ChoiceCondition,
    CompoundCondition,
    EdgeCondition,
    NumericCondition,
    NumericOperator,
    SingleCondition,
)
from branchflow.flowchart.model import ChoiceOption, Direction, EdgeStyle, NodeShape, QuestionCategory
from branchflow.flowchart.store import FlowchartStore, NewNode

SMOKES_AND_BEER = CompoundCondition(
    (SingleCondition.choice("Q1", "a"), SingleCondition.choice("Q2", "c"))
)


def edge_pairs(store: FlowchartStore) -> list[tuple[str, str]]:
    return [(e.source, e.target) for e in store.definition.edges]


class TestNodes:
    """Test cases for node mutations."""

    def test_every_mutation_bumps_the_version(self, questionnaire):
        before = questionnaire.definition

        result = questionnaire.add_node("Q3", "Exercise")

        assert result.applied is True
        assert questionnaire.version == before.version + 1
        assert before.node("Q3") is None

    def test_refused_mutation_keeps_the_snapshot(self, questionnaire):
        before = questionnaire.definition

        for result in (
            questionnaire.add_node("Q1", "Duplicate"),
            questionnaire.add_node("bad-id", "Bad"),
            questionnaire.add_node("_state_x", "Reserved"),
            questionnaire.add_node("Q9", "   "),
        ):
            assert result.applied is False
            assert result.errors

        assert questionnaire.definition is before

    def test_choices_only_on_choice_questions(self, questionnaire):
        questionnaire.add_node("N", "Count", category="NA", choices=[ChoiceOption("x", "X")])

        assert questionnaire.definition.node("N").choices == ()

    def test_category_change_drops_choices(self, questionnaire):
        result = questionnaire.update_node("Q1", category="NA")

        assert result.applied is True
        node = questionnaire.definition.node("Q1")
        assert node.question_category is QuestionCategory.NA
        assert node.choices == ()

    def test_choices_refused_on_numeric_question(self, questionnaire):
        result = questionnaire.update_node("Age", choices=(ChoiceOption("x", "X"),))

        assert result.applied is False

    def test_update_label_and_shape(self, questionnaire):
        questionnaire.update_node("Q1", label="Do you smoke?", shape="rhombus", class_name="q")

        node = questionnaire.definition.node("Q1")
        assert node.label == "Do you smoke?"
        assert node.shape is NodeShape.RHOMBUS
        assert node.class_name == "q"
        assert len(node.choices) == 2

    def test_empty_label_refused(self, questionnaire):
        assert questionnaire.update_node("Q1", label=" ").applied is False

    def test_rename_rewrites_references(self, questionnaire):
        questionnaire.add_subgraph("body", "Body", ["Q1", "Q2"])

        result = questionnaire.rename_node("Q2", "Drinks")

        assert result.applied is True
        assert ("Q1", "Drinks") in edge_pairs(questionnaire)
        assert ("Drinks", "End") in edge_pairs(questionnaire)
        assert questionnaire.definition.subgraphs[0].node_ids == ("Q1", "Drinks")

    def test_rename_to_taken_id_refused(self, questionnaire):
        assert questionnaire.rename_node("Q2", "Q1").applied is False

    def test_add_and_remove_choice(self, questionnaire):
        questionnaire.add_choice("Q1")
        node = questionnaire.definition.node("Q1")
        assert node.choices[-1] == ChoiceOption("Q1_opt3", "Choice 3")

        questionnaire.remove_choice("Q1", "a")
        assert [c.id for c in questionnaire.definition.node("Q1").choices] == ["b", "Q1_opt3"]

    def test_add_choice_refused_on_non_choice_question(self, questionnaire):
        assert questionnaire.add_choice("Age").applied is False
        assert questionnaire.remove_choice("Q1", "zzz").applied is False


class TestEdges:
    """Test cases for plain edge mutations."""

    def test_edges_may_point_at_undeclared_nodes(self, questionnaire):
        assert questionnaire.add_edge("End", "Later").applied is True

    def test_update_edge(self, questionnaire):
        questionnaire.update_edge(1, label="Smokes", style="thick")

        edge = questionnaire.definition.edges[1]
        assert edge.label == "Smokes"
        assert edge.style is EdgeStyle.THICK

    def test_bad_index(self, questionnaire):
        assert questionnaire.update_edge(42, label="x").applied is False
        assert questionnaire.remove_edge(-1).applied is False

    def test_remove_edge(self, questionnaire):
        questionnaire.remove_edge(0)

        assert ("Start", "Q1") not in edge_pairs(questionnaire)


class TestConnect:
    """Test cases for single-answer transitions."""

    def test_choice_condition_names_the_edge(self, questionnaire):
        condition = EdgeCondition(ChoiceCondition(("b",)))

        result = questionnaire.connect("Q1", "End", condition=condition, label="ignored")

        assert result.applied is True
        edge = questionnaire.definition.edges[-1]
        assert edge.label == "No"
        assert edge.condition == condition

    def test_numeric_condition_names_the_edge(self, questionnaire):
        condition = EdgeCondition(numeric_condition=NumericCondition(NumericOperator.GTE, 18.0))

        questionnaire.connect("Age", "End", condition=condition)

        assert questionnaire.definition.edges[-1].label == ">= 18"

    def test_free_answer_flows_on_unconditionally(self, questionnaire):
        """A free-answer question still needs a way to the next step."""
        result = questionnaire.connect("Notes", "End")

        assert result.applied is True
        assert ("Notes", "End") in edge_pairs(questionnaire)

    def test_free_answer_cannot_carry_a_condition(self, questionnaire):
        condition = EdgeCondition(ChoiceCondition(("a",)))

        result = questionnaire.connect("Notes", "End", condition=condition)

        assert result.applied is False
        assert "cannot carry a condition" in result.errors[0]

    def test_choice_question_needs_a_choice(self, questionnaire):
        assert questionnaire.connect("Q1", "End").applied is False

    def test_numeric_question_needs_a_comparison(self, questionnaire):
        assert questionnaire.connect("Age", "End").applied is False

    def test_condition_must_match_category(self, questionnaire):
        numeric = EdgeCondition(numeric_condition=NumericCondition(NumericOperator.LT, 3.0))
        choice = EdgeCondition(ChoiceCondition(("a",)))

        assert questionnaire.connect("Q1", "End", condition=numeric).applied is False
        assert questionnaire.connect("Age", "End", condition=choice).applied is False

    def test_unknown_choice(self, questionnaire):
        condition = EdgeCondition(ChoiceCondition(("zzz",)))

        result = questionnaire.connect("Q1", "End", condition=condition)

        assert result.applied is False
        assert "zzz" in result.errors[0]

    def test_plain_node_connects_freely(self, questionnaire):
        result = questionnaire.connect("Start", "End", label="skip", style=EdgeStyle.DOTTED)

        assert result.applied is True
        assert questionnaire.definition.edges[-1].label == "skip"

    def test_new_destination_node(self, questionnaire):
        condition = EdgeCondition(ChoiceCondition(("b",)))

        result = questionnaire.connect(
            "Q1", "Bye", condition=condition, new_node=NewNode("Bye", "Goodbye", NodeShape.STADIUM)
        )

        assert result.applied is True
        assert questionnaire.definition.node("Bye").shape is NodeShape.STADIUM
        assert ("Q1", "Bye") in edge_pairs(questionnaire)

    def test_destination_must_exist(self, questionnaire):
        result = questionnaire.connect("Start", "Nowhere")

        assert result.applied is False
        assert result.errors == ["Unknown target node 'Nowhere'"]

    def test_new_node_must_match_target(self, questionnaire):
        result = questionnaire.connect("Start", "Bye", new_node=NewNode("Other", "Other"))

        assert result.applied is False


class TestCommitCondition:
    """Test cases for compound-condition commits."""

    def test_creates_state_node_and_edges(self, questionnaire):
        result = questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End", label="heavy")

        assert result.applied is True
        assert result.state_node_id == "_state_Q1_a_Q2_c"

        state = questionnaire.definition.node(result.state_node_id)
        assert state.shape is NodeShape.HEXAGON
        assert state.compound_condition == SMOKES_AND_BEER

        into_state = [e for e in questionnaire.definition.edges if e.target == state.id]
        assert len(into_state) == 1
        assert into_state[0].source == "Q2"
        assert into_state[0].style is EdgeStyle.DOTTED
        assert into_state[0].label == "Smoker: Yes AND Drinks: Beer"

        out_of_state = [e for e in questionnaire.definition.edges if e.source == state.id]
        assert [(e.target, e.label) for e in out_of_state] == [("End", "heavy")]

    def test_other_questions_get_no_edges(self, questionnaire):
        before = [e for e in questionnaire.definition.edges if e.source == "Q1"]

        questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End")

        assert [e for e in questionnaire.definition.edges if e.source == "Q1"] == before

    def test_same_condition_reuses_state_node(self, questionnaire):
        questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End")
        nodes_before = len(questionnaire.definition.nodes)
        edges_before = len(questionnaire.definition.edges)

        reordered = CompoundCondition(tuple(reversed(SMOKES_AND_BEER.conditions)))
        result = questionnaire.commit_condition("Q2", reordered, "End")

        assert result.state_node_id == "_state_Q1_a_Q2_c"
        assert len(questionnaire.definition.nodes) == nodes_before
        assert len(questionnaire.definition.edges) == edges_before

    def test_reused_state_node_gains_new_destination(self, questionnaire):
        questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End")

        questionnaire.commit_condition(
            "Q2", SMOKES_AND_BEER, "Clinic", new_node=NewNode("Clinic", "See a doctor")
        )

        targets = {e.target for e in questionnaire.definition.edges if e.source == "_state_Q1_a_Q2_c"}
        assert targets == {"End", "Clinic"}

    def test_invalid_condition_refused(self, questionnaire):
        before = questionnaire.definition

        result = questionnaire.commit_condition(
            "Q2", CompoundCondition((SingleCondition.choice("Q1", "a"),)), "End"
        )

        assert result.applied is False
        assert questionnaire.definition is before

    def test_unknown_choice_refused(self, questionnaire):
        compound = CompoundCondition(
            (SingleCondition.choice("Q1", "zzz"), SingleCondition.choice("Q2", "c"))
        )

        result = questionnaire.commit_condition("Q2", compound, "End")

        assert result.applied is False
        assert "Unknown choice(s) on 'Q1': zzz" in result.errors
        assert questionnaire.definition.state_nodes() == []

    def test_repeated_choice_ids_reuse_state_node(self, questionnaire):
        questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End")
        repeated = CompoundCondition(
            (SingleCondition.choice("Q1", "a", "a"), SingleCondition.choice("Q2", "c"))
        )

        result = questionnaire.commit_condition("Q2", repeated, "End")

        assert result.state_node_id == "_state_Q1_a_Q2_c"
        assert len(questionnaire.definition.state_nodes()) == 1

    def test_condition_must_lie_upstream(self, questionnaire):
        compound = CompoundCondition(
            (SingleCondition.numeric("Age", "gt", 40), SingleCondition.choice("Q2", "c"))
        )

        result = questionnaire.commit_condition("Q2", compound, "End")

        assert result.applied is False
        assert "'Age' is not on a path into 'Q2'" in result.errors

    def test_state_node_is_not_a_destination(self, questionnaire):
        state_id = questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End").state_node_id
        other = CompoundCondition(
            (SingleCondition.choice("Q1", "b"), SingleCondition.choice("Q2", "d"))
        )

        assert questionnaire.commit_condition("Q2", other, state_id).applied is False

    def test_state_node_edges_are_protected(self, questionnaire):
        state_id = questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End").state_node_id
        index = next(
            i for i, e in enumerate(questionnaire.definition.edges) if e.source == state_id
        )

        assert questionnaire.add_edge(state_id, "Start").applied is False
        assert questionnaire.remove_edge(index).applied is False
        assert questionnaire.update_edge(index, label="x").applied is False
        assert questionnaire.remove_node(state_id).applied is False
        assert questionnaire.rename_node(state_id, "S").applied is False
        assert questionnaire.update_node(state_id, label="S").applied is False

    def test_referenced_question_is_locked(self, questionnaire):
        questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End")

        assert questionnaire.rename_node("Q1", "Smokes").applied is False
        assert questionnaire.update_node("Q1", category="NA").applied is False
        assert questionnaire.update_node("Q1", label="Smokes?").applied is True

    def test_removing_a_question_cascades(self, questionnaire):
        state_id = questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End").state_node_id

        result = questionnaire.remove_node("Q1")

        assert result.applied is True
        assert questionnaire.definition.node(state_id) is None
        assert edge_pairs(questionnaire) == [("Q2", "End")]


class TestProjections:
    """Test cases for read-only views."""

    def test_display_views_hide_state_nodes(self, questionnaire):
        state_id = questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End").state_node_id

        assert state_id not in {n.id for n in questionnaire.display_nodes()}
        assert all(state_id not in (e.source, e.target) for e in questionnaire.display_edges())
        assert len(questionnaire.display_edges()) == 3

    def test_condition_nodes(self, questionnaire):
        assert [n.id for n in questionnaire.condition_nodes()] == ["Q1", "Q2", "Age"]

    def test_reachable_follows_the_current_snapshot(self, questionnaire):
        assert {n.id for n in questionnaire.reachable("End")} == {"Q1", "Q2"}

        questionnaire.add_edge("Age", "End")

        assert {n.id for n in questionnaire.reachable("End")} == {"Q1", "Q2", "Age"}

    def test_coverage_counts_compound_conditions(self, questionnaire):
        questionnaire.commit_condition("Q2", SMOKES_AND_BEER, "End")

        results = {r.node_id: r for r in questionnaire.coverage()}

        assert [c.id for c in results["Q1"].unused_choices] == ["b"]
        assert [c.id for c in results["Q2"].unused_choices] == ["d"]

    def test_presentation_settings(self, questionnaire):
        questionnaire.set_direction("LR")
        questionnaire.set_init(theme="dark")
        questionnaire.add_style("hot", {"fill": "#f00"})
        questionnaire.add_link_style(0, {"stroke": "red"})

        mermaid = questionnaire.mermaid()

        assert questionnaire.definition.direction is Direction.LR
        assert mermaid.startswith('%%{init: {"theme":"dark"}}%%\nflowchart LR')
        assert "classDef hot fill:#f00" in mermaid
        assert "linkStyle 0 stroke:red" in mermaid

    def test_bad_presentation_settings(self, questionnaire):
        assert questionnaire.add_subgraph("bad id", "Bad", []).applied is False
        assert questionnaire.add_link_style(-1, {}).applied is False

    def test_snapshot(self, questionnaire):
        snapshot = questionnaire.to_dict()

        assert snapshot["direction"] == "TD"
        assert [n["id"] for n in snapshot["nodes"]] == ["Start", "Q1", "Q2", "Age", "Notes", "End"]
        assert snapshot["edges"][1] == {"from": "Q1", "to": "Q2", "style": "solid", "label": "Yes"}
