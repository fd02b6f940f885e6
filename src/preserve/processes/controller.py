"""Step Controller — per-recipe lifecycle state machine.

The executor creates one controller per recipe and drives it through
``begin → (log | declare | step)* → succeed | fail``.  Each call returns the
events the transition produces; the controller is the *only* source of
events in a run.

ARCHITECTURE
────────────
::

                begin()              succeed()  (all steps settled)
    PENDING ──────────────▶ ACTIVE ─────────────────────────────▶ DONE
                              │  │
                              │  │ step(.., FAILED) / succeed() with
                              │  │ unfinished steps
                              │  ▼
                              │ ERROR
                              │  │
                     fail()   ▼  ▼  fail()
                            FAILED

``DONE`` is the only state in which the executor records the recipe's
label.  ``succeed()`` is a no-op outside ``ACTIVE`` so the executor can
always call it after a recipe returns.

Example::

    controller = StepController(scope=("ipfs",))
    events = [*controller.begin()]
    events += controller.declare("upload")
    events += controller.step("upload", StepStatus.DONE)
    events += controller.succeed(label={"cid": "Qm..."})
    assert controller.state is State.DONE

Tags:
    preserve, processes, state-machine, lifecycle
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any

from preserve.core.errors import StepLifecycleError
from preserve.core.logging import get_logger
from preserve.processes.events import (
    Begin,
    Declare,
    Event,
    Fail,
    Log,
    Scope,
    StepStatus,
    StepUpdate,
    Succeed,
)

logger = get_logger(__name__)


class State(str, Enum):
    """Lifecycle state of a :class:`StepController`."""

    PENDING = "pending"
    ACTIVE = "active"
    DONE = "done"
    ERROR = "error"  # Inconsistent step lifecycle
    FAILED = "failed"  # Recipe raised

    @property
    def terminal(self) -> bool:
        return self in (State.DONE, State.ERROR, State.FAILED)


class StepController:
    """Lifecycle state machine scoped to a single recipe.

    Every method returns an iterator of events so recipes can write
    ``yield from ctx.log("...")``.  Transitions happen when the returned
    iterator is consumed.
    """

    def __init__(self, scope: Scope | list[str]):
        self._scope: Scope = tuple(scope)
        self._state = State.PENDING
        self._steps: dict[str, StepStatus] = {}

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def state(self) -> State:
        return self._state

    @property
    def steps(self) -> dict[str, StepStatus]:
        """Copy of the known steps and their current status."""
        return dict(self._steps)

    @property
    def unfinished_steps(self) -> list[str]:
        return [name for name, status in self._steps.items() if not status.settled]

    # =========================================================================
    # Transitions
    # =========================================================================

    def begin(self) -> Iterator[Event]:
        if self._state is not State.PENDING:
            raise StepLifecycleError(
                f"Cannot begin {self._describe()}: already {self._state.value}"
            )
        self._state = State.ACTIVE
        logger.debug("preserve.controller.begin", scope=list(self._scope))
        yield Begin(scope=self._scope)

    def log(self, message: str) -> Iterator[Event]:
        self._require_active("log")
        yield Log(scope=self._scope, message=str(message))

    def declare(self, step: str) -> Iterator[Event]:
        self._require_active("declare")
        self._validate_step_name(step)
        if step in self._steps:
            raise StepLifecycleError(
                f"Step '{step}' is already declared in {self._describe()}"
            ).with_context(recipe=self.recipe, step=step)
        self._steps[step] = StepStatus.PENDING
        yield Declare(scope=self._scope, step=step)

    def step(self, step: str, status: StepStatus | str = StepStatus.ACTIVE) -> Iterator[Event]:
        self._require_active("step")
        self._validate_step_name(step)
        status = StepStatus(status)
        if status is StepStatus.PENDING:
            raise StepLifecycleError(
                f"Step '{step}' cannot be moved back to pending; use declare()"
            ).with_context(recipe=self.recipe, step=step)

        current = self._steps.get(step)
        if current is not None and current.settled:
            raise StepLifecycleError(
                f"Step '{step}' already finished as {current.value} in {self._describe()}"
            ).with_context(recipe=self.recipe, step=step)

        self._steps[step] = status
        if status is StepStatus.FAILED:
            self._state = State.ERROR
            logger.debug("preserve.controller.step_failed", scope=list(self._scope), step=step)
        yield StepUpdate(scope=self._scope, step=step, status=status)

    def succeed(self, label: Any = None) -> Iterator[Event]:
        """Finish the recipe. Only acts while ``ACTIVE``."""
        if self._state is not State.ACTIVE:
            return

        unfinished = self.unfinished_steps
        if unfinished:
            self._state = State.ERROR
            logger.debug(
                "preserve.controller.unfinished_steps",
                scope=list(self._scope),
                steps=unfinished,
            )
            yield Log(
                scope=self._scope,
                message=f"Unfinished steps: {', '.join(unfinished)}",
            )
            return

        self._state = State.DONE
        yield Succeed(scope=self._scope, label=label)

    def fail(self, error: BaseException | None = None) -> Iterator[Event]:
        """Mark the recipe as failed. No-op once ``DONE`` or ``FAILED``."""
        if self._state in (State.DONE, State.FAILED):
            return
        self._state = State.FAILED
        yield Fail(scope=self._scope, error=error)

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def recipe(self) -> str:
        return self._scope[-1] if self._scope else ""

    def _describe(self) -> str:
        return f"controller for {'/'.join(self._scope) or '<root>'}"

    def _require_active(self, action: str) -> None:
        if self._state is not State.ACTIVE:
            raise StepLifecycleError(
                f"Cannot {action} in {self._describe()}: state is {self._state.value}"
            ).with_context(recipe=self.recipe)

    @staticmethod
    def _validate_step_name(step: str) -> None:
        if not isinstance(step, str) or not step.strip():
            raise StepLifecycleError("Step name must be a non-empty string")

    def __repr__(self) -> str:
        return f"StepController(scope={list(self._scope)}, state={self._state.value})"


__all__ = ["State", "StepController"]
