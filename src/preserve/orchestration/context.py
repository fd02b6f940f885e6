"""
Preserve Context - what a recipe sees while it runs.

Every recipe receives a fresh PreserveContext holding:
- the shared target produced by the loader
- a read-only snapshot of the labels recorded so far
- its own settings entry from the request
- three capabilities bound to its step controller: log, declare, step

The capabilities return events; the recipe yields them so they reach the
caller in order::

    def preserve(ctx: PreserveContext):
        yield from ctx.log(f"preserving {ctx.target}")
        yield from ctx.declare("upload")
        yield from ctx.step("upload")
        cid = upload(ctx.target, ctx.get_label("fetch"))
        yield from ctx.step("upload", StepStatus.DONE)
        return {"cid": cid}

The label snapshot is a ``MappingProxyType`` over a copy, so a recipe can
neither mutate the executor's labels nor observe labels committed after it
started.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from preserve.processes.controller import StepController
from preserve.processes.events import Event, StepStatus


@dataclass(frozen=True)
class PreserveContext:
    """
    Per-recipe execution context.

    Attributes:
        recipe: Name of the recipe being executed
        target: Shared target produced by the loader
        labels: Read-only snapshot of labels from recipes completed so far
        settings: This recipe's settings entry (``None`` when absent)
    """

    recipe: str
    target: Any
    labels: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    settings: Any = None
    controller: StepController | None = field(default=None, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        recipe: str,
        target: Any,
        labels: Mapping[str, Any],
        settings: Any,
        controller: StepController,
    ) -> PreserveContext:
        """Build a context, freezing a snapshot of ``labels``."""
        return cls(
            recipe=recipe,
            target=target,
            labels=MappingProxyType(dict(labels)),
            settings=settings,
            controller=controller,
        )

    # =========================================================================
    # Accessors (read-only)
    # =========================================================================

    def get_label(self, name: str, default: Any = None) -> Any:
        """Label recorded by recipe ``name``, or ``default``."""
        return self.labels.get(name, default)

    def has_label(self, name: str) -> bool:
        return name in self.labels

    # =========================================================================
    # Controller capabilities
    # =========================================================================

    def log(self, message: str) -> Iterator[Event]:
        return self._require_controller().log(message)

    def declare(self, step: str) -> Iterator[Event]:
        return self._require_controller().declare(step)

    def step(self, step: str, status: StepStatus | str = StepStatus.ACTIVE) -> Iterator[Event]:
        return self._require_controller().step(step, status)

    def _require_controller(self) -> StepController:
        if self.controller is None:
            raise RuntimeError(f"Context for recipe '{self.recipe}' has no step controller")
        return self.controller


__all__ = ["PreserveContext"]
