"""Program trees — the closed vocabulary a robot program is built from.

A program is a ``Sequence`` of nodes.  A node is one of:

    ActionNode(action)                     -- yields one Action
    RepeatNode(count, body)                -- body exactly ``count`` times
    RepeatUntilNode(condition, body)       -- pre-checked loop
    IfNode(condition, then, else_)         -- one-shot branch

Conditions are ``Primitive(kind)``, ``Not``, ``And`` or ``Or``.

Every dataclass is frozen: search builds new programs by appending to
copies (``Sequence.append``) and never mutates a shared subtree.
``block_id`` is an opaque tag owned by the editor (used to highlight the
running block); nothing here interprets it.

Ingestion from the editor's JSON goes through ``program_from_dict`` which
raises ``ProgramError`` on anything outside the vocabulary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..simulation.robot import Action


class ProgramError(ValueError):
    """A program tree that is not in the closed vocabulary."""


class ConditionKind(str, Enum):
    PATH_AHEAD_CLEAR = "PATH_AHEAD_CLEAR"
    LEFT_CLEAR = "LEFT_CLEAR"
    RIGHT_CLEAR = "RIGHT_CLEAR"
    ON_GOAL = "ON_GOAL"
    ON_PRESSURE_PLATE = "ON_PRESSURE_PLATE"
    HAZARD_AHEAD = "HAZARD_AHEAD"
    HAZARD_LEFT = "HAZARD_LEFT"
    HAZARD_RIGHT = "HAZARD_RIGHT"
    WALL_LEFT = "WALL_LEFT"
    WALL_RIGHT = "WALL_RIGHT"
    GLOBAL_SIGNAL_ON = "GLOBAL_SIGNAL_ON"
    ON_RAFT = "ON_RAFT"


# Alternate spellings accepted on ingestion
_CONDITION_ALIASES = {"AHEAD_CLEAR": ConditionKind.PATH_AHEAD_CLEAR}


# -- Conditions ----------------------------------------------------------------

@dataclass(frozen=True)
class Primitive:
    kind: ConditionKind


@dataclass(frozen=True)
class Not:
    operand: Condition


@dataclass(frozen=True)
class And:
    left: Condition
    right: Condition


@dataclass(frozen=True)
class Or:
    left: Condition
    right: Condition


Condition = Union[Primitive, Not, And, Or]


# -- Statements ----------------------------------------------------------------

@dataclass(frozen=True)
class Sequence:
    steps: tuple[Node, ...] = ()

    def __len__(self) -> int:
        return len(self.steps)

    def append(self, node: Node) -> Sequence:
        """Return a new Sequence with ``node`` added at the end."""
        return Sequence(steps=self.steps + (node,))


@dataclass(frozen=True)
class ActionNode:
    action: Action
    block_id: Optional[str] = None


@dataclass(frozen=True)
class RepeatNode:
    count: int
    body: Sequence
    block_id: Optional[str] = None


@dataclass(frozen=True)
class RepeatUntilNode:
    condition: Condition
    body: Sequence
    block_id: Optional[str] = None


@dataclass(frozen=True)
class IfNode:
    condition: Condition
    then_branch: Sequence
    else_branch: Optional[Sequence] = None
    block_id: Optional[str] = None


Node = Union[ActionNode, RepeatNode, RepeatUntilNode, IfNode]

# A whole program is just its top-level sequence.
Program = Sequence


def sequence(*steps: Node) -> Sequence:
    return Sequence(steps=tuple(steps))


def actions(*names: Action | str) -> Sequence:
    """Shorthand for a flat program of actions."""
    return Sequence(steps=tuple(ActionNode(Action(n)) for n in names))


def count_actions(program: Sequence) -> int:
    """Number of Action leaves in the tree (not the number executed)."""
    total = 0
    for node in program.steps:
        if isinstance(node, ActionNode):
            total += 1
        elif isinstance(node, (RepeatNode, RepeatUntilNode)):
            total += count_actions(node.body)
        elif isinstance(node, IfNode):
            total += count_actions(node.then_branch)
            if node.else_branch is not None:
                total += count_actions(node.else_branch)
    return total


# -- JSON ingestion ------------------------------------------------------------

def condition_from_dict(data: Any) -> Condition:
    if not isinstance(data, dict):
        raise ProgramError(f"Condition must be an object, got {type(data).__name__}")
    kind = data.get("kind")
    if kind == "primitive":
        name = data.get("condition")
        if name in _CONDITION_ALIASES:
            return Primitive(_CONDITION_ALIASES[name])
        try:
            return Primitive(ConditionKind(name))
        except ValueError:
            raise ProgramError(f"Unsupported condition: {name!r}") from None
    if kind == "not":
        return Not(condition_from_dict(data.get("operand")))
    if kind == "and":
        return And(condition_from_dict(data.get("left")), condition_from_dict(data.get("right")))
    if kind == "or":
        return Or(condition_from_dict(data.get("left")), condition_from_dict(data.get("right")))
    raise ProgramError(f"Unsupported condition kind: {kind!r}")


def node_from_dict(data: Any) -> Node:
    if not isinstance(data, dict):
        raise ProgramError(f"Node must be an object, got {type(data).__name__}")
    node_type = data.get("type")
    block_id = data.get("blockId")

    if node_type == "action":
        try:
            action = Action(data.get("action"))
        except ValueError:
            raise ProgramError(f"Unsupported action: {data.get('action')!r}") from None
        return ActionNode(action=action, block_id=block_id)

    if node_type == "repeat":
        count = data.get("count")
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ProgramError(f"Repeat count must be a non-negative integer, got {count!r}")
        return RepeatNode(count=count, body=program_from_dict(data.get("body")), block_id=block_id)

    if node_type == "repeat_until":
        return RepeatUntilNode(
            condition=condition_from_dict(data.get("condition")),
            body=program_from_dict(data.get("body")),
            block_id=block_id,
        )

    if node_type == "if":
        else_data = data.get("elseBranch")
        return IfNode(
            condition=condition_from_dict(data.get("condition")),
            then_branch=program_from_dict(data.get("thenBranch")),
            else_branch=program_from_dict(else_data) if else_data is not None else None,
            block_id=block_id,
        )

    raise ProgramError(f"Unsupported node type: {node_type!r}")


def program_from_dict(data: Any) -> Sequence:
    """Parse ``{"type": "sequence", "steps": [...]}`` into a Sequence."""
    if not isinstance(data, dict) or data.get("type") != "sequence":
        raise ProgramError("Program must be an object with type 'sequence'")
    steps = data.get("steps", [])
    if not isinstance(steps, list):
        raise ProgramError("Sequence steps must be a list")
    return Sequence(steps=tuple(node_from_dict(step) for step in steps))


# -- JSON serialization --------------------------------------------------------

def condition_to_dict(condition: Condition) -> dict[str, Any]:
    if isinstance(condition, Primitive):
        return {"kind": "primitive", "condition": condition.kind.value}
    if isinstance(condition, Not):
        return {"kind": "not", "operand": condition_to_dict(condition.operand)}
    if isinstance(condition, And):
        return {"kind": "and", "left": condition_to_dict(condition.left),
                "right": condition_to_dict(condition.right)}
    if isinstance(condition, Or):
        return {"kind": "or", "left": condition_to_dict(condition.left),
                "right": condition_to_dict(condition.right)}
    raise ProgramError(f"Unsupported condition: {condition!r}")


def node_to_dict(node: Node) -> dict[str, Any]:
    if isinstance(node, ActionNode):
        data: dict[str, Any] = {"type": "action", "action": node.action.value}
    elif isinstance(node, RepeatNode):
        data = {"type": "repeat", "count": node.count, "body": program_to_dict(node.body)}
    elif isinstance(node, RepeatUntilNode):
        data = {"type": "repeat_until", "condition": condition_to_dict(node.condition),
                "body": program_to_dict(node.body)}
    elif isinstance(node, IfNode):
        data = {"type": "if", "condition": condition_to_dict(node.condition),
                "thenBranch": program_to_dict(node.then_branch)}
        if node.else_branch is not None:
            data["elseBranch"] = program_to_dict(node.else_branch)
    else:
        raise ProgramError(f"Unsupported node: {node!r}")
    if node.block_id is not None:
        data["blockId"] = node.block_id
    return data


def program_to_dict(program: Sequence) -> dict[str, Any]:
    return {"type": "sequence", "steps": [node_to_dict(n) for n in program.steps]}
