"""Unit tests for program trees: construction, ingestion, serialization."""
from __future__ import annotations

import pytest

from lembots.program.nodes import (
    ActionNode,
    And,
    ConditionKind,
    IfNode,
    Not,
    Primitive,
    ProgramError,
    RepeatNode,
    RepeatUntilNode,
    Sequence,
    actions,
    condition_from_dict,
    count_actions,
    program_from_dict,
    program_to_dict,
    sequence,
)
from lembots.simulation.robot import Action

pytestmark = pytest.mark.unit


def _prim(name):
    return {"kind": "primitive", "condition": name}


def _make_program_dict():
    return {
        "type": "sequence",
        "steps": [
            {"type": "action", "action": "TURN_LEFT", "blockId": "b1"},
            {
                "type": "repeat_until",
                "blockId": "b2",
                "condition": _prim("ON_GOAL"),
                "body": {
                    "type": "sequence",
                    "steps": [{
                        "type": "if",
                        "condition": {"kind": "not", "operand": _prim("PATH_AHEAD_CLEAR")},
                        "thenBranch": {"type": "sequence", "steps": [
                            {"type": "action", "action": "TURN_RIGHT"},
                        ]},
                        "elseBranch": {"type": "sequence", "steps": [
                            {"type": "action", "action": "MOVE_FORWARD"},
                        ]},
                    }],
                },
            },
            {"type": "repeat", "count": 2, "body": {"type": "sequence", "steps": [
                {"type": "action", "action": "WAIT"},
            ]}},
        ],
    }


class TestConstruction:
    def test_actions_shorthand(self):
        program = actions("MOVE_FORWARD", Action.WAIT)
        assert program.steps == (ActionNode(Action.MOVE_FORWARD), ActionNode(Action.WAIT))

    def test_append_returns_new_sequence(self):
        base = sequence(ActionNode(Action.WAIT))
        longer = base.append(ActionNode(Action.TURN_LEFT))
        assert len(base) == 1
        assert len(longer) == 2
        assert longer.steps[0] is base.steps[0]

    def test_trees_are_values(self):
        assert actions("WAIT", "WAIT") == actions("WAIT", "WAIT")
        assert hash(actions("WAIT")) == hash(actions("WAIT"))

    def test_count_actions(self):
        program = program_from_dict(_make_program_dict())
        assert count_actions(program) == 4


class TestIngestion:
    def test_parses_full_tree(self):
        program = program_from_dict(_make_program_dict())
        first, loop, rep = program.steps
        assert first == ActionNode(Action.TURN_LEFT, "b1")
        assert isinstance(loop, RepeatUntilNode)
        assert loop.block_id == "b2"
        assert loop.condition == Primitive(ConditionKind.ON_GOAL)
        branch = loop.body.steps[0]
        assert isinstance(branch, IfNode)
        assert branch.condition == Not(Primitive(ConditionKind.PATH_AHEAD_CLEAR))
        assert branch.else_branch == actions("MOVE_FORWARD")
        assert rep == RepeatNode(2, actions("WAIT"))

    def test_round_trip(self):
        data = _make_program_dict()
        assert program_to_dict(program_from_dict(data)) == data

    def test_alias_condition(self):
        assert condition_from_dict(_prim("AHEAD_CLEAR")) == Primitive(ConditionKind.PATH_AHEAD_CLEAR)

    def test_compound_conditions(self):
        cond = condition_from_dict({"kind": "and", "left": _prim("WALL_LEFT"),
                                    "right": _prim("ON_RAFT")})
        assert cond == And(Primitive(ConditionKind.WALL_LEFT), Primitive(ConditionKind.ON_RAFT))

    def test_if_without_else(self):
        program = program_from_dict({"type": "sequence", "steps": [{
            "type": "if", "condition": _prim("ON_GOAL"),
            "thenBranch": {"type": "sequence", "steps": []},
        }]})
        assert program.steps[0].else_branch is None

    @pytest.mark.parametrize("data", [
        None,
        [],
        {"type": "block", "steps": []},
        {"type": "sequence", "steps": {}},
        {"type": "sequence", "steps": [{"type": "jump"}]},
        {"type": "sequence", "steps": [{"type": "action", "action": "FLY"}]},
        {"type": "sequence", "steps": ["MOVE_FORWARD"]},
        {"type": "sequence", "steps": [{"type": "repeat", "count": -1,
                                        "body": {"type": "sequence", "steps": []}}]},
        {"type": "sequence", "steps": [{"type": "repeat", "count": True,
                                        "body": {"type": "sequence", "steps": []}}]},
        {"type": "sequence", "steps": [{"type": "repeat", "count": 2}]},
        {"type": "sequence", "steps": [{"type": "repeat_until", "condition": _prim("SUNNY"),
                                        "body": {"type": "sequence", "steps": []}}]},
        {"type": "sequence", "steps": [{"type": "if", "condition": {"kind": "xor"},
                                        "thenBranch": {"type": "sequence", "steps": []}}]},
    ])
    def test_malformed_programs_rejected(self, data):
        with pytest.raises(ProgramError):
            program_from_dict(data)

    def test_program_error_is_a_value_error(self):
        assert issubclass(ProgramError, ValueError)

    def test_empty_program(self):
        assert program_from_dict({"type": "sequence"}) == Sequence()
