"""Recipe Task — resumable wrapper around a recipe's computation.

A recipe's ``preserve(context)`` is a generator that yields events and
returns a label.  The executor does not iterate it directly; it drives a
``RecipeTask`` whose state is explicit and inspectable:

::

    PENDING ──resume()──▶ RUNNING ──┬──▶ YIELDED ──resume()──▶ RUNNING ...
                                    ├──▶ COMPLETED   (label available)
                                    └──▶ FAILED      (error available)

``resume()`` returns the next event, or ``None`` once the task has reached
a terminal state.  Exceptions raised by the recipe never escape
``resume()``; they move the task to ``FAILED``.

A ``preserve()`` that returns a non-generator value completes on its first
resume with that value as the label.
"""

from __future__ import annotations

from collections.abc import Generator
from enum import Enum
from typing import Any

from preserve.orchestration.context import PreserveContext
from preserve.plugins.protocols import Recipe
from preserve.processes.events import Event


class TaskState(str, Enum):
    """Visible state of a :class:`RecipeTask`."""

    PENDING = "pending"
    RUNNING = "running"
    YIELDED = "yielded"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.FAILED)


class RecipeTask:
    """Explicit state machine driving one recipe's computation."""

    def __init__(self, recipe: Recipe, context: PreserveContext):
        self.recipe = recipe
        self.context = context
        self._state = TaskState.PENDING
        self._computation: Generator[Any, None, Any] | None = None
        self._label: Any = None
        self._error: BaseException | None = None
        self._yields = 0

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def label(self) -> Any:
        """The recipe's result; only meaningful once ``COMPLETED``."""
        return self._label

    @property
    def error(self) -> BaseException | None:
        """The recipe's error; only set once ``FAILED``."""
        return self._error

    @property
    def yields(self) -> int:
        """Number of events the computation has yielded so far."""
        return self._yields

    def resume(self) -> Event | None:
        """Advance the computation to its next event.

        Returns:
            The yielded event, or ``None`` when the task is (now) terminal.
        """
        if self._state.terminal:
            return None
        if self._state is TaskState.RUNNING:
            raise RuntimeError(f"Recipe task '{self.recipe.name}' is already running")

        self._state = TaskState.RUNNING

        if self._computation is None and not self._start():
            return None

        try:
            value = next(self._computation)
        except StopIteration as stop:
            self._complete(stop.value)
            return None
        except Exception as exc:
            self._fail(exc)
            return None

        if not isinstance(value, Event):
            self._fail(
                TypeError(
                    f"Recipe '{self.recipe.name}' yielded {type(value).__name__}; "
                    "recipes may only yield events from their context"
                )
            )
            try:
                self.close()
            except Exception as exc:
                self._fail(exc)
            return None

        self._yields += 1
        self._state = TaskState.YIELDED
        return value

    def close(self) -> None:
        """Close the underlying generator (used on cancellation)."""
        if self._computation is not None:
            self._computation.close()

    def _start(self) -> bool:
        """Invoke ``preserve()``. Returns True if there is a generator to drive."""
        try:
            result = self.recipe.preserve(self.context)
        except Exception as exc:
            self._fail(exc)
            return False

        if isinstance(result, Generator):
            self._computation = result
            return True

        self._complete(result)
        return False

    def _complete(self, label: Any) -> None:
        self._label = label
        self._state = TaskState.COMPLETED

    def _fail(self, error: BaseException) -> None:
        self._error = error
        self._state = TaskState.FAILED

    def __repr__(self) -> str:
        return f"RecipeTask(recipe={self.recipe.name!r}, state={self._state.value})"


__all__ = ["TaskState", "RecipeTask"]
