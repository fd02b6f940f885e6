"""Preservation run — the public entry point.

``preserve()`` validates a request against the supplied registries, resolves
the plan, and returns a :class:`Preservation`: an iterator of events that
also reports how the run is going.

Configuration problems (unknown loader, unknown recipe anywhere in the
dependency graph, a cycle) raise immediately from ``preserve()``, before any
event exists and before the loader is called.  Everything else happens on
demand: the loader runs on the first ``next()``, each recipe when the
consumer reaches it.

Example::

    run = preserve(
        {"loader": "fs", "recipe": "ipfs", "settings": {"fs": {"path": "."}}},
        loaders=loaders,
        recipes=recipes,
    )
    for event in run:
        print(event.to_dict())

    if run.status is RunStatus.SUCCEEDED:
        print(run.labels["ipfs"])
    else:
        print(f"{run.status.value} at {run.failed_recipe}: {run.error}")
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from preserve.core.errors import LoadError
from preserve.core.logging import get_logger
from preserve.orchestration.executor import ExecutionOutcome, Executor
from preserve.orchestration.planner import Plan, PlanResolver
from preserve.orchestration.request import PreserveRequest
from preserve.plugins.protocols import Loader, Recipe
from preserve.plugins.registry import assert_loader_exists, assert_recipe_exists
from preserve.processes.events import Event

logger = get_logger(__name__)


class RunStatus(str, Enum):
    """Overall status of a preservation run."""

    PENDING = "pending"  # Validated and planned; nothing pulled yet
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"  # Loader or recipe raised
    ABORTED = "aborted"  # Recipe completed with controller not DONE
    CANCELLED = "cancelled"  # Consumer closed the run early

    @property
    def finished(self) -> bool:
        return self not in (RunStatus.PENDING, RunStatus.RUNNING)


_OUTCOME_STATUS = {
    ExecutionOutcome.SUCCEEDED: RunStatus.SUCCEEDED,
    ExecutionOutcome.FAILED: RunStatus.FAILED,
    ExecutionOutcome.ABORTED: RunStatus.ABORTED,
}


class Preservation(Iterator[Event]):
    """A validated, planned preservation run, consumed by iteration."""

    def __init__(
        self,
        request: PreserveRequest,
        loaders: Mapping[str, Loader],
        recipes: Mapping[str, Recipe],
    ):
        assert_loader_exists(request.loader, loaders)
        assert_recipe_exists(request.recipe, recipes)

        self.request = request
        self._loader = loaders[request.loader]
        self.plan: Plan = PlanResolver(recipes).resolve(request.recipe)

        self._executor: Executor | None = None
        self._load_error: LoadError | None = None
        self._cancelled = False
        self._started = False
        self._events_emitted = 0
        self.started_at: datetime | None = None
        self.completed_at: datetime | None = None
        self._events = self._run()

    # =========================================================================
    # Iteration
    # =========================================================================

    def __iter__(self) -> Preservation:
        return self

    def __next__(self) -> Event:
        try:
            event = next(self._events)
        except (StopIteration, LoadError):
            self._mark_completed()
            raise
        self._events_emitted += 1
        if self.status.finished:
            self._mark_completed()
        return event

    def close(self) -> None:
        """Stop the run; the in-flight recipe generator is closed."""
        if not self.status.finished:
            self._cancelled = True
            logger.info(
                "preserve.run.cancelled",
                recipe=self.request.recipe,
                events_emitted=self._events_emitted,
            )
        self._events.close()
        self._mark_completed()

    def collect(self) -> list[Event]:
        """Consume the remaining events and return them."""
        return list(self)

    def _run(self) -> Iterator[Event]:
        self._started = True
        self.started_at = datetime.now(UTC)
        loader_name = self.request.loader

        logger.info(
            "preserve.run.start",
            loader=loader_name,
            recipe=self.request.recipe,
            plan=self.plan.names,
        )

        try:
            target = self._loader.load(self.request.settings_for(loader_name))
        except Exception as exc:
            self._load_error = LoadError(
                f"Loader '{loader_name}' failed: {exc}", cause=exc
            ).with_context(loader=loader_name)
            logger.error(
                "preserve.load.failed",
                loader=loader_name,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise self._load_error from exc

        logger.debug("preserve.load.complete", loader=loader_name)

        self._executor = Executor(self.plan, target, self.request)
        yield from self._executor.execute()

        logger.info(
            "preserve.run.complete",
            recipe=self.request.recipe,
            status=self.status.value,
            failed_recipe=self.failed_recipe,
            labels=len(self.labels),
        )

    def _mark_completed(self) -> None:
        if self.completed_at is None and self.status.finished:
            self.completed_at = datetime.now(UTC)

    # =========================================================================
    # Reporting
    # =========================================================================

    @property
    def status(self) -> RunStatus:
        if self._cancelled:
            return RunStatus.CANCELLED
        if self._load_error is not None:
            return RunStatus.FAILED
        if self._executor is None:
            return RunStatus.RUNNING if self._started else RunStatus.PENDING
        if self._executor.outcome is None:
            return RunStatus.RUNNING
        return _OUTCOME_STATUS[self._executor.outcome]

    @property
    def labels(self) -> Mapping[str, Any]:
        """Labels committed so far (read-only)."""
        if self._executor is None:
            return MappingProxyType({})
        return self._executor.labels

    @property
    def error(self) -> BaseException | None:
        """The loader or recipe error, when the run failed."""
        if self._load_error is not None:
            return self._load_error
        if self._executor is not None:
            return self._executor.error
        return None

    @property
    def failed_recipe(self) -> str | None:
        """Recipe at which the run failed or aborted."""
        if self._executor is None:
            return None
        return self._executor.failed_recipe

    @property
    def events_emitted(self) -> int:
        return self._events_emitted

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Summary for logging/CLI output."""
        error = self.error
        return {
            "loader": self.request.loader,
            "recipe": self.request.recipe,
            "status": self.status.value,
            "plan": self.plan.names,
            "labels": dict(self.labels),
            "failed_recipe": self.failed_recipe,
            "error": (
                {"type": type(error).__name__, "message": str(error)}
                if error is not None
                else None
            ),
            "events_emitted": self._events_emitted,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }

    def __repr__(self) -> str:
        return (
            f"Preservation(loader={self.request.loader!r}, "
            f"recipe={self.request.recipe!r}, status={self.status.value})"
        )


def preserve(
    request: PreserveRequest | Mapping[str, Any],
    *,
    loaders: Mapping[str, Loader],
    recipes: Mapping[str, Recipe],
) -> Preservation:
    """Validate and plan ``request``; return the run to iterate.

    Raises:
        InvalidRequestError: If the request is malformed
        UnknownModuleError: If the loader, the root recipe, or any
            transitive dependency is not registered
        CycleDetectedError: If the recipe dependencies contain a cycle
    """
    if not isinstance(request, PreserveRequest):
        request = PreserveRequest.from_dict(request)
    return Preservation(request, loaders=loaders, recipes=recipes)


__all__ = ["RunStatus", "Preservation", "preserve"]
