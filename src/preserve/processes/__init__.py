"""Processes — events and the per-recipe step controller."""

from .controller import State, StepController
from .events import (
    Begin,
    Declare,
    Event,
    EventType,
    Fail,
    Log,
    Scope,
    StepStatus,
    StepUpdate,
    Succeed,
)

__all__ = [
    "State",
    "StepController",
    "Begin",
    "Declare",
    "Event",
    "EventType",
    "Fail",
    "Log",
    "Scope",
    "StepStatus",
    "StepUpdate",
    "Succeed",
]
