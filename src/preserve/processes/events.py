"""Events — the lifecycle/progress stream produced by a preservation run.

Manifesto:
    A consumer watching a run should be able to reconstruct exact
per-recipe progress without polling recipe internals.  Every event is a
small frozen record tagged with the ``scope`` of the recipe it belongs to
and a ``type`` discriminator, so the stream can be rendered, filtered, or
serialized as JSON lines.

ARCHITECTURE
────────────
::

    Event (scope)
      ├── Begin                       recipe started
      ├── Log(message)                free-form progress line
      ├── Declare(step)               step announced, not yet started
      ├── StepUpdate(step, status)    step became active / done / failed
      ├── Succeed(label)              recipe finished with a label
      └── Fail(error)                 recipe raised

Events are produced by the step controller only; recipes obtain them via
their context capabilities and yield them unchanged.

Tags:
    preserve, processes, events, discriminated-union
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

Scope = tuple[str, ...]


class EventType(str, Enum):
    """Discriminator for :class:`Event` subclasses."""

    BEGIN = "begin"
    LOG = "log"
    DECLARE = "declare"
    STEP = "step"
    SUCCEED = "succeed"
    FAIL = "fail"


class StepStatus(str, Enum):
    """Status of a single step inside a recipe."""

    PENDING = "pending"  # Declared, not started
    ACTIVE = "active"
    DONE = "done"
    FAILED = "failed"

    @property
    def settled(self) -> bool:
        return self in (StepStatus.DONE, StepStatus.FAILED)


@dataclass(frozen=True)
class Event:
    """Base event. ``scope`` is the recipe-name path that produced it."""

    scope: Scope

    type: ClassVar[EventType]

    @property
    def recipe(self) -> str:
        """Name of the recipe that produced the event."""
        return self.scope[-1] if self.scope else ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON-lines output."""
        return {"type": self.type.value, "scope": list(self.scope)}


@dataclass(frozen=True)
class Begin(Event):
    type: ClassVar[EventType] = EventType.BEGIN


@dataclass(frozen=True)
class Log(Event):
    message: str = ""

    type: ClassVar[EventType] = EventType.LOG

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "message": self.message}


@dataclass(frozen=True)
class Declare(Event):
    step: str = ""

    type: ClassVar[EventType] = EventType.DECLARE

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "step": self.step}


@dataclass(frozen=True)
class StepUpdate(Event):
    step: str = ""
    status: StepStatus = StepStatus.ACTIVE

    type: ClassVar[EventType] = EventType.STEP

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "step": self.step, "status": self.status.value}


@dataclass(frozen=True)
class Succeed(Event):
    label: Any = None

    type: ClassVar[EventType] = EventType.SUCCEED

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "label": self.label}


@dataclass(frozen=True)
class Fail(Event):
    error: BaseException | None = None

    type: ClassVar[EventType] = EventType.FAIL

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.error is not None:
            result["error"] = {
                "type": type(self.error).__name__,
                "message": str(self.error),
            }
        else:
            result["error"] = None
        return result


__all__ = [
    "Scope",
    "EventType",
    "StepStatus",
    "Event",
    "Begin",
    "Log",
    "Declare",
    "StepUpdate",
    "Succeed",
    "Fail",
]
