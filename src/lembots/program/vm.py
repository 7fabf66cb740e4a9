"""Program VM — resumable, one-action-per-call interpreter.

Architecture
------------
A ``VmState`` is a frozen value: the program, a tuple of frames, a step
counter and a status.  ``step_vm(state, ctx)`` returns a new state and at
most one Action.  Keeping the frame stack as a value means any VM can be
snapshotted, compared, or resumed from the middle of a nested loop without
re-running the program from the start.

Frames:

    SequenceFrame(body, index)               -- plain block / if-branch
    RepeatFrame(body, index, remaining)      -- counted loop
    RepeatUntilFrame(node, index, mark)      -- conditional loop

Structural work (advancing cursors, loop bookkeeping, condition checks,
branch selection) happens inside one call and costs no tick; only an
Action leaf or the end of the program hands control back.  Only Action
leaves count toward ``max_steps``.

A RepeatUntil iteration that finishes without yielding any action cannot
make progress within the same tick, because conditions only read the tick
context.  Instead of spinning, the VM yields an implicit WAIT for that
iteration (counted as a step), so ``repeat_until(cond, [])`` waits for
``cond`` one tick at a time.  ``mark`` records the step counter at the
start of the current iteration to detect this.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from ..simulation.robot import Action
from .conditions import VmContext, evaluate_condition
from .nodes import ActionNode, IfNode, Node, RepeatNode, RepeatUntilNode, Sequence

DEFAULT_MAX_STEPS = 200


class VmStatus(str, Enum):
    RUNNING = "running"
    DONE = "done"
    STEP_LIMIT = "step_limit"


@dataclass(frozen=True)
class SequenceFrame:
    body: Sequence
    index: int = 0


@dataclass(frozen=True)
class RepeatFrame:
    body: Sequence
    remaining: int
    index: int = 0


@dataclass(frozen=True)
class RepeatUntilFrame:
    node: RepeatUntilNode
    mark: int
    index: int = 0


Frame = Union[SequenceFrame, RepeatFrame, RepeatUntilFrame]


@dataclass(frozen=True)
class VmState:
    program: Sequence
    stack: tuple[Frame, ...]
    status: VmStatus = VmStatus.RUNNING
    steps: int = 0
    max_steps: int = DEFAULT_MAX_STEPS
    current_node: Optional[ActionNode] = None


def create_vm(program: Sequence, max_steps: int = DEFAULT_MAX_STEPS) -> VmState:
    return VmState(program=program, stack=(SequenceFrame(program),), max_steps=max_steps)


def _yield(state: VmState, stack: list[Frame], node: ActionNode) -> tuple[VmState, Optional[Action]]:
    if state.steps >= state.max_steps:
        return replace(state, stack=tuple(stack), status=VmStatus.STEP_LIMIT, current_node=None), None
    nxt = replace(state, stack=tuple(stack), steps=state.steps + 1, current_node=node)
    return nxt, node.action


def _enter(node: Node, stack: list[Frame], ctx: VmContext, steps: int) -> Optional[ActionNode]:
    """Push whatever ``node`` needs.  Returns the node itself if it is an Action."""
    if isinstance(node, ActionNode):
        return node
    if isinstance(node, RepeatNode):
        if node.count > 0:
            stack.append(RepeatFrame(body=node.body, remaining=node.count))
        return None
    if isinstance(node, RepeatUntilNode):
        if not evaluate_condition(node.condition, ctx):
            stack.append(RepeatUntilFrame(node=node, mark=steps))
        return None
    if isinstance(node, IfNode):
        branch = node.then_branch if evaluate_condition(node.condition, ctx) else node.else_branch
        if branch is not None and branch.steps:
            stack.append(SequenceFrame(body=branch))
        return None
    raise ValueError(f"Unsupported node: {node!r}")


def step_vm(state: VmState, ctx: VmContext) -> tuple[VmState, Optional[Action]]:
    """Run structural nodes until the next Action leaf or the end of the program."""
    if state.status != VmStatus.RUNNING:
        return state, None

    stack = list(state.stack)

    while stack:
        frame = stack[-1]

        if isinstance(frame, RepeatFrame):
            if frame.remaining <= 0:
                stack.pop()
                continue
            if frame.index >= len(frame.body.steps):
                remaining = frame.remaining - 1
                if remaining <= 0:
                    stack.pop()
                else:
                    stack[-1] = replace(frame, remaining=remaining, index=0)
                continue
            body = frame.body

        elif isinstance(frame, RepeatUntilFrame):
            body = frame.node.body
            if frame.index >= len(body.steps):
                if evaluate_condition(frame.node.condition, ctx):
                    stack.pop()
                    continue
                if frame.mark == state.steps:
                    # no action this iteration: wait a tick instead of spinning
                    stack[-1] = replace(frame, index=0, mark=state.steps + 1)
                    return _yield(state, stack, ActionNode(Action.WAIT, frame.node.block_id))
                stack[-1] = replace(frame, index=0, mark=state.steps)
                continue

        else:
            body = frame.body
            if frame.index >= len(body.steps):
                stack.pop()
                continue

        node = body.steps[frame.index]
        stack[-1] = replace(frame, index=frame.index + 1)
        action_node = _enter(node, stack, ctx, state.steps)
        if action_node is not None:
            return _yield(state, stack, action_node)

    return replace(state, stack=(), status=VmStatus.DONE, current_node=None), None
