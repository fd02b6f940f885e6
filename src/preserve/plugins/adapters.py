"""Function Adapters — use plain functions as loaders and recipes.

Problem
-------
Loaders and recipes only need a ``name`` and one method, but writing a
class for every small plugin is noise.

Solution
--------
Wrap the function::

    def fetch(settings):
        return Path(settings["path"])

    fs = FunctionLoader("fs", fetch)

or decorate it::

    @recipe("ipfs", dependencies=["fs"])
    def ipfs(ctx):
        yield from ctx.declare("upload")
        yield from ctx.step("upload")
        cid = upload(ctx.target)
        yield from ctx.step("upload", StepStatus.DONE)
        return {"cid": cid}

The decorated object is a :class:`FunctionRecipe` that can be registered
directly and still calls through to the original function, so it stays
usable (and testable) outside a run.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from preserve.orchestration.context import PreserveContext


def _plugin_name(fn: Callable[..., Any], name: str | None) -> str:
    resolved = name or getattr(fn, "__name__", None)
    if not isinstance(resolved, str) or not resolved.strip():
        raise ValueError("Plugin name must be a non-empty string")
    return resolved.strip()


class FunctionLoader:
    """Loader backed by ``fn(settings) -> target``."""

    def __init__(self, name: str | None, fn: Callable[[Any], Any]):
        functools.update_wrapper(self, fn)
        self.name = _plugin_name(fn, name)
        self._fn = fn

    def load(self, settings: Any) -> Any:
        return self._fn(settings)

    def __call__(self, settings: Any = None) -> Any:
        return self._fn(settings)

    def __repr__(self) -> str:
        return f"FunctionLoader(name={self.name!r})"


class FunctionRecipe:
    """Recipe backed by ``fn(context)`` returning a generator or a label."""

    def __init__(
        self,
        name: str | None,
        fn: Callable[[PreserveContext], Any],
        dependencies: Iterable[str] = (),
    ):
        if isinstance(dependencies, str):
            raise TypeError("dependencies must be a sequence of names, not a string")
        functools.update_wrapper(self, fn)
        self.name = _plugin_name(fn, name)
        self.dependencies: tuple[str, ...] = tuple(dependencies)
        self._fn = fn

    def preserve(self, context: PreserveContext) -> Any:
        return self._fn(context)

    def __call__(self, context: PreserveContext) -> Any:
        return self._fn(context)

    def __repr__(self) -> str:
        return f"FunctionRecipe(name={self.name!r}, dependencies={list(self.dependencies)})"


def loader(name: str | None = None) -> Callable[[Callable[[Any], Any]], FunctionLoader]:
    """Decorator turning ``fn(settings)`` into a :class:`FunctionLoader`."""

    def decorator(fn: Callable[[Any], Any]) -> FunctionLoader:
        return FunctionLoader(name, fn)

    return decorator


def recipe(
    name: str | None = None,
    dependencies: Iterable[str] = (),
) -> Callable[[Callable[..., Any]], FunctionRecipe]:
    """Decorator turning ``fn(context)`` into a :class:`FunctionRecipe`."""

    def decorator(fn: Callable[..., Any]) -> FunctionRecipe:
        return FunctionRecipe(name, fn, dependencies=dependencies)

    return decorator


__all__ = ["FunctionLoader", "FunctionRecipe", "loader", "recipe"]
