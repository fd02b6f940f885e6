"""Plugin protocols — what the core needs from a loader and a recipe.

Loaders and recipes are arbitrary caller code.  The core depends on these
structural protocols only, never on concrete classes, so any object with the
right attributes can be registered.

Implementors
------------
* :class:`~preserve.plugins.adapters.FunctionLoader` /
  :class:`~preserve.plugins.adapters.FunctionRecipe` — wrap plain functions
* Custom classes — just provide ``name`` plus ``load()`` or
  ``dependencies`` + ``preserve()``
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from preserve.orchestration.context import PreserveContext
    from preserve.processes.events import Event


@runtime_checkable
class Loader(Protocol):
    """Acquires the target every recipe in a run operates on."""

    name: str

    def load(self, settings: Any) -> Any:
        """Return the target.

        Args:
            settings: This loader's entry from the request settings, or
                ``None`` when the request carries none.
        """
        ...


@runtime_checkable
class Recipe(Protocol):
    """A named unit of work with declared dependencies.

    ``preserve`` returns a generator that yields events (obtained from the
    context capabilities) and returns the recipe's label.  A plain return
    value is accepted too and becomes the label immediately.
    """

    name: str
    dependencies: Sequence[str]

    def preserve(self, context: PreserveContext) -> Generator[Event, None, Any] | Any:
        ...


__all__ = ["Loader", "Recipe"]
