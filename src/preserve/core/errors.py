"""
Structured error types for preserve.

Every error raised by the preserve core derives from :class:`PreserveError`
and carries a category plus structured context, so that callers (and the
CLI) can report *what* failed and *where* without parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** configuration problems, loader problems and
      controller misuse are distinct types
    - **Rich Context:** errors carry the loader, recipe and step involved
    - **Error Chaining:** the original exception is preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        PreserveError                          │
        │              (category, context, cause)                       │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ConfigurationError          LoadError     StepLifecycleError │
        │  (CONFIG)                    (LOAD)        (EXECUTION)        │
        │       │                                                       │
        │  UnknownModuleError                                           │
        │  DuplicateModuleError                                         │
        │  CycleDetectedError                                           │
        │  InvalidRequestError                                          │
        └──────────────────────────────────────────────────────────────┘

    Configuration errors are raised before any recipe runs.  Errors raised
    *inside* a recipe are never raised to the caller; the executor turns
    them into ``Fail`` events.

Examples:
    >>> err = UnknownModuleError("C", kind="recipe", available=["A", "B"])
    >>> err.available
    ['A', 'B']
    >>> str(err)
    'Unknown recipe with name C. Possible choices: [A, B]'

Tags:
    error-handling, exception-hierarchy, error-context, preserve
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    CONFIG = "CONFIG"  # Unknown/duplicate plugin, cycle, malformed request
    LOAD = "LOAD"  # Loader could not acquire the target
    EXECUTION = "EXECUTION"  # Recipe or step lifecycle failure
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        loader: Loader name involved in the failure
        recipe: Recipe name involved in the failure
        step: Step name within the recipe
        kind: Plugin kind ("loader", "recipe") for registry errors
        metadata: Additional key-value pairs
    """

    loader: str | None = None
    recipe: str | None = None
    step: str | None = None
    kind: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["loader", "recipe", "step", "kind"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class PreserveError(Exception):
    """
    Base exception for all preserve errors.

    Subclasses set ``default_category`` so that instances carry a sensible
    category without every raise site having to name one.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> PreserveError:
        """
        Add context to this error (fluent API).

        Usage:
            raise LoadError("Failed").with_context(loader="fs")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(PreserveError):
    """
    The request cannot be executed as configured.

    Raised before the loader is invoked and before any event is emitted.
    """

    default_category = ErrorCategory.CONFIG


class UnknownModuleError(ConfigurationError):
    """A loader or recipe name is absent from its registry."""

    def __init__(self, name: str, kind: str = "module", available: Iterable[str] = ()):
        self.name = name
        self.kind = kind
        self.available = list(available)
        choices = ", ".join(self.available)
        super().__init__(
            f"Unknown {kind} with name {name}. Possible choices: [{choices}]",
            context=ErrorContext(kind=kind, metadata={"name": name}),
        )


class DuplicateModuleError(ConfigurationError):
    """A plugin name was registered twice."""

    def __init__(self, name: str, kind: str = "module"):
        self.name = name
        self.kind = kind
        super().__init__(
            f"A {kind} named '{name}' is already registered",
            context=ErrorContext(kind=kind, metadata={"name": name}),
        )


class CycleDetectedError(ConfigurationError):
    """The recipe dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"Cycle detected in recipe dependencies: {cycle_str}")


class InvalidRequestError(ConfigurationError):
    """The request itself is malformed."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


# =============================================================================
# RUNTIME ERRORS
# =============================================================================


class LoadError(PreserveError):
    """The loader raised while acquiring the target."""

    default_category = ErrorCategory.LOAD


class StepLifecycleError(PreserveError):
    """A step controller was driven through an invalid transition."""

    default_category = ErrorCategory.EXECUTION


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, PreserveError):
        return error.category
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "PreserveError",
    "ConfigurationError",
    "UnknownModuleError",
    "DuplicateModuleError",
    "CycleDetectedError",
    "InvalidRequestError",
    "LoadError",
    "StepLifecycleError",
    "categorize_error",
]
