"""Plugin Registry — explicit name → loader/recipe lookup.

Manifesto:
Loaders and recipes are supplied by name.  A registry is a plain read-only
mapping populated by explicit ``register()`` calls made by the caller, never
by import-time discovery, so the set of plugins available to a run is
exactly what the caller put there.

ARCHITECTURE
────────────
::

    ModuleRegistry(kind)                 → Mapping[str, plugin]
      .register(plugin_or_factory)       → stores by plugin.name
      .names()                           → sorted names
      .describe()                        → rows for listing

    assert_exists(name, modules, kind)   → raises UnknownModuleError

Any ``Mapping`` (a plain ``dict`` included) is accepted wherever a registry
is expected; ``ModuleRegistry`` adds duplicate protection and the
``kind`` used in error messages.

Example::

    recipes = ModuleRegistry("recipe")
    recipes.register(FunctionRecipe("a", fn_a))

    @recipes.register
    def make_b():
        return FunctionRecipe("b", fn_b, dependencies=["a"])

    assert_exists("b", recipes, kind="recipe")

Tags:
    preserve, plugins, registry, lookup
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any

from preserve.core.errors import DuplicateModuleError, UnknownModuleError
from preserve.core.logging import get_logger

logger = get_logger(__name__)


def assert_exists(name: str, modules: Mapping[str, Any], kind: str = "module") -> None:
    """Fail unless ``name`` is registered in ``modules``.

    Raises:
        UnknownModuleError: naming ``name``, the ``kind`` and every valid name
    """
    if name not in modules:
        raise UnknownModuleError(name, kind=kind, available=list(modules.keys()))


def assert_loader_exists(name: str, modules: Mapping[str, Any]) -> None:
    assert_exists(name, modules, kind="loader")


def assert_recipe_exists(name: str, modules: Mapping[str, Any]) -> None:
    assert_exists(name, modules, kind="recipe")


class ModuleRegistry(Mapping[str, Any]):
    """Read-only mapping of plugin name to plugin, populated explicitly."""

    def __init__(self, kind: str = "module", modules: Mapping[str, Any] | None = None):
        self._kind = kind
        self._modules: dict[str, Any] = {}
        for plugin in (modules or {}).values():
            self.register(plugin)

    @property
    def kind(self) -> str:
        return self._kind

    def register(self, plugin_or_factory: Any | Callable[[], Any]) -> Any:
        """Register a plugin.

        Can be called with a plugin directly, or used as a decorator on a
        zero-argument factory returning one.

        Raises:
            DuplicateModuleError: If the name is already registered
            TypeError: If the plugin has no usable ``name``
        """
        plugin = plugin_or_factory
        if not hasattr(plugin, "name") and callable(plugin):
            plugin = plugin()

        name = getattr(plugin, "name", None)
        if not isinstance(name, str) or not name:
            raise TypeError(
                f"Expected a {self._kind} with a non-empty 'name', "
                f"got {type(plugin).__name__}"
            )

        if name in self._modules:
            raise DuplicateModuleError(name, kind=self._kind)

        self._modules[name] = plugin
        logger.debug("preserve.registry.registered", kind=self._kind, name=name)
        return plugin

    def get_or_raise(self, name: str) -> Any:
        """Return the plugin named ``name`` or raise :class:`UnknownModuleError`."""
        assert_exists(name, self._modules, kind=self._kind)
        return self._modules[name]

    def names(self) -> list[str]:
        return sorted(self._modules)

    def describe(self) -> list[dict[str, Any]]:
        """Rows describing each plugin (name, kind, dependencies, type)."""
        rows = []
        for name in self.names():
            plugin = self._modules[name]
            row: dict[str, Any] = {
                "name": name,
                "kind": self._kind,
                "type": type(plugin).__name__,
            }
            dependencies = getattr(plugin, "dependencies", None)
            if dependencies is not None:
                row["dependencies"] = list(dependencies)
            rows.append(row)
        return rows

    # Mapping protocol

    def __getitem__(self, name: str) -> Any:
        return self._modules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def __repr__(self) -> str:
        return f"ModuleRegistry(kind={self._kind!r}, names={self.names()})"


__all__ = [
    "ModuleRegistry",
    "assert_exists",
    "assert_loader_exists",
    "assert_recipe_exists",
]
