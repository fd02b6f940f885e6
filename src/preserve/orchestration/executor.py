"""Executor — runs a plan recipe by recipe, streaming events.

The Executor takes a resolved :class:`~preserve.orchestration.planner.Plan`
and the loaded target, and executes each recipe strictly in plan order:

1. Create a fresh :class:`~preserve.processes.controller.StepController`
   scoped to the recipe and forward its ``Begin`` events
2. Build a :class:`~preserve.orchestration.context.PreserveContext` with the
   target, a snapshot of the labels so far, and the recipe's settings
3. Drive the recipe through a :class:`~preserve.orchestration.task.RecipeTask`,
   forwarding every event it yields verbatim
4. On completion, run the controller's ``succeed``; record the label only if
   the controller reached ``DONE``, otherwise stop silently (abort)
5. On error, run the controller's ``fail`` and stop

The executor owns the labels accumulator.  A label is committed before the
``Succeed`` event that announces it is handed to the consumer, and never
for a recipe whose controller did not reach ``DONE``.

Example::

    executor = Executor(plan, target, request)
    for event in executor.execute():
        print(event.to_dict())

    if executor.outcome is ExecutionOutcome.SUCCEEDED:
        print(executor.labels)
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from preserve.core.logging import get_logger
from preserve.orchestration.context import PreserveContext
from preserve.orchestration.planner import Plan
from preserve.orchestration.request import PreserveRequest
from preserve.orchestration.task import RecipeTask, TaskState
from preserve.processes.controller import State, StepController
from preserve.processes.events import Event

logger = get_logger(__name__)


class ExecutionOutcome(str, Enum):
    """How execution of a plan ended."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"  # A recipe raised; Fail event emitted
    ABORTED = "aborted"  # A recipe completed but its controller was not DONE


class Executor:
    """Sequential, pull-driven plan executor.

    ``execute()`` is a generator: nothing runs ahead of the consumer asking
    for the next event.  Abandoning the generator (or closing it) stops the
    run before the next recipe starts and closes the in-flight recipe.
    """

    def __init__(self, plan: Plan, target: Any, request: PreserveRequest):
        self._plan = plan
        self._target = target
        self._request = request
        self._labels: dict[str, Any] = {}
        self._outcome: ExecutionOutcome | None = None
        self._failed_recipe: str | None = None
        self._error: BaseException | None = None
        self._current: RecipeTask | None = None

    @property
    def plan(self) -> Plan:
        return self._plan

    @property
    def labels(self) -> Mapping[str, Any]:
        """Read-only view of the labels committed so far."""
        return MappingProxyType(self._labels)

    @property
    def outcome(self) -> ExecutionOutcome | None:
        """``None`` while execution is still in progress."""
        return self._outcome

    @property
    def failed_recipe(self) -> str | None:
        return self._failed_recipe

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def current(self) -> RecipeTask | None:
        """Task of the recipe currently executing, if any."""
        return self._current

    def execute(self) -> Iterator[Event]:
        """Execute the plan, yielding every event in order."""
        total = len(self._plan)
        try:
            for position, recipe in enumerate(self._plan):
                if not (yield from self._execute_recipe(recipe, position, total)):
                    return
        finally:
            if self._current is not None:
                self._current.close()
                self._current = None

    def _execute_recipe(self, recipe: Any, position: int, total: int) -> Iterator[Event]:
        """Run one recipe. Returns True to continue with the next recipe."""
        name = recipe.name
        settings = self._request.settings_for(name)
        controller = StepController(scope=(name,))

        logger.info(
            "preserve.recipe.start",
            recipe=name,
            position=position,
            total=total,
            has_settings=settings is not None,
        )

        yield from controller.begin()

        context = PreserveContext.create(
            recipe=name,
            target=self._target,
            labels=self._labels,
            settings=settings,
            controller=controller,
        )
        task = RecipeTask(recipe, context)
        self._current = task

        while True:
            event = task.resume()
            if event is None:
                break
            yield event

        self._current = None

        if task.state is TaskState.FAILED:
            self._outcome = ExecutionOutcome.FAILED
            self._failed_recipe = name
            self._error = task.error
            logger.warning(
                "preserve.recipe.failed",
                recipe=name,
                position=position,
                error_type=type(task.error).__name__,
                error=str(task.error),
            )
            yield from list(controller.fail(task.error))
            return False

        events = list(controller.succeed(task.label))

        if controller.state is not State.DONE:
            self._outcome = ExecutionOutcome.ABORTED
            self._failed_recipe = name
            logger.warning(
                "preserve.recipe.aborted",
                recipe=name,
                position=position,
                controller_state=controller.state.value,
                unfinished_steps=controller.unfinished_steps,
            )
            yield from events
            return False

        self._labels[name] = task.label
        if position == total - 1:
            self._outcome = ExecutionOutcome.SUCCEEDED

        logger.info(
            "preserve.recipe.complete",
            recipe=name,
            position=position,
            events=task.yields,
        )
        yield from events
        return True


__all__ = ["ExecutionOutcome", "Executor"]
