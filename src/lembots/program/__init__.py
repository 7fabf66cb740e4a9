"""Program trees and the per-robot interpreter."""
from .conditions import VmContext, evaluate_condition
from .nodes import (
    ActionNode,
    And,
    Condition,
    ConditionKind,
    IfNode,
    Node,
    Not,
    Or,
    Primitive,
    Program,
    ProgramError,
    RepeatNode,
    RepeatUntilNode,
    Sequence,
    actions,
    count_actions,
    program_from_dict,
    program_to_dict,
    sequence,
)
from .vm import VmState, VmStatus, create_vm, step_vm

__all__ = [
    "ActionNode",
    "And",
    "Condition",
    "ConditionKind",
    "IfNode",
    "Node",
    "Not",
    "Or",
    "Primitive",
    "Program",
    "ProgramError",
    "RepeatNode",
    "RepeatUntilNode",
    "Sequence",
    "VmContext",
    "VmState",
    "VmStatus",
    "actions",
    "count_actions",
    "create_vm",
    "evaluate_condition",
    "program_from_dict",
    "program_to_dict",
    "sequence",
    "step_vm",
]
