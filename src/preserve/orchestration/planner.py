"""
Plan Resolver - Resolves a root recipe into an ordered execution plan.

This is the core planning logic:
1. Validate the root recipe exists in the registry
2. Walk its dependencies depth-first, validating every name reached
3. Reject dependency cycles
4. Emit recipes in post-order: every dependency before every dependent

Guarantees:
- Each transitively required recipe appears exactly once, even when it is
  reachable through several dependency edges (diamonds).
- The root recipe is always last.
- Dependencies are visited in declared order, so plans are deterministic.
- Nothing executes here; a missing or cyclic dependency aborts before any
  recipe runs.

The walk is iterative (explicit stack), so long dependency chains are not
bounded by the interpreter recursion limit.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from preserve.core.errors import ConfigurationError, CycleDetectedError
from preserve.core.logging import get_logger
from preserve.plugins.protocols import Recipe
from preserve.plugins.registry import assert_recipe_exists

logger = get_logger(__name__)


@dataclass(frozen=True)
class Plan:
    """
    Ordered, immutable sequence of recipes to execute.

    Attributes:
        root: Name of the requested recipe (always the last entry)
        recipes: Recipes in execution order
    """

    root: str
    recipes: tuple[Recipe, ...]

    @property
    def names(self) -> list[str]:
        return [r.name for r in self.recipes]

    def index(self, name: str) -> int:
        """Position of recipe ``name`` in the plan (-1 if absent)."""
        for i, r in enumerate(self.recipes):
            if r.name == name:
                return i
        return -1

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self.recipes)

    def __len__(self) -> int:
        return len(self.recipes)

    def __contains__(self, name: object) -> bool:
        return any(r.name == name for r in self.recipes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging/CLI output."""
        return {
            "root": self.root,
            "steps": [
                {"name": r.name, "dependencies": list(r.dependencies)}
                for r in self.recipes
            ],
        }


class PlanResolver:
    """
    Resolves a root recipe name into a :class:`Plan`.

    Holds no state between calls; each resolve() is independent.

    Example:
        resolver = PlanResolver(recipes)
        plan = resolver.resolve("publish")
        # plan.names == ["fetch", "pin", "publish"]
    """

    def __init__(self, recipes: Mapping[str, Recipe]):
        self.recipes = recipes

    def resolve(self, root: str) -> Plan:
        """
        Resolve ``root`` and its transitive dependencies into a plan.

        Raises:
            UnknownModuleError: If the root or any dependency is not registered
            CycleDetectedError: If the dependency graph contains a cycle
            ConfigurationError: If a recipe declares malformed dependencies
        """
        logger.debug("preserve.plan.start", root=root)

        assert_recipe_exists(root, self.recipes)

        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {}
        path: list[str] = []  # GRAY chain, for cycle reporting
        order: list[Recipe] = []

        color[root] = GRAY
        path.append(root)
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(self._dependencies(root)))]

        while stack:
            name, pending = stack[-1]
            dependency = next(pending, None)

            if dependency is None:
                stack.pop()
                path.pop()
                color[name] = BLACK
                order.append(self.recipes[name])
                continue

            state = color.get(dependency, WHITE)
            if state == BLACK:
                continue
            if state == GRAY:
                cycle = path[path.index(dependency):] + [dependency]
                raise CycleDetectedError(cycle)

            assert_recipe_exists(dependency, self.recipes)
            color[dependency] = GRAY
            path.append(dependency)
            stack.append((dependency, iter(self._dependencies(dependency))))

        plan = Plan(root=root, recipes=tuple(order))

        logger.info(
            "preserve.plan.resolved",
            root=root,
            step_count=len(plan),
            order=plan.names,
        )
        return plan

    def _dependencies(self, name: str) -> Sequence[str]:
        dependencies = getattr(self.recipes[name], "dependencies", None) or ()
        if isinstance(dependencies, str):
            raise ConfigurationError(
                f"Recipe '{name}' must declare dependencies as a list of names, "
                f"not a string"
            ).with_context(recipe=name)
        dependencies = list(dependencies)
        for dependency in dependencies:
            if not isinstance(dependency, str) or not dependency:
                raise ConfigurationError(
                    f"Recipe '{name}' declares an invalid dependency: {dependency!r}"
                ).with_context(recipe=name)
        return dependencies


def resolve_plan(root: str, recipes: Mapping[str, Recipe]) -> Plan:
    """Resolve ``root`` against ``recipes`` without executing anything."""
    return PlanResolver(recipes).resolve(root)


__all__ = ["Plan", "PlanResolver", "resolve_plan"]
