"""
Shared pytest fixtures for preserve tests.

This module provides:
- Logging/settings reset fixtures for test isolation
- Loader and recipe registries for the common graph shapes
  (linear A -> B, diamond)
- A recording loader that counts how often it was invoked

Usage:
    def test_something(loaders, linear_recipes):
        run = preserve({"loader": "fs", "recipe": "B"}, loaders=loaders, recipes=linear_recipes)
"""

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from preserve.core.logging import clear_context, configure_logging
from preserve.core.settings import clear_settings_cache
from preserve.plugins import FunctionLoader, FunctionRecipe, ModuleRegistry
from preserve.processes.events import StepStatus


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.path).relative_to(Path(__file__).parent)
        if test_path.parts[0] == "cli" or test_path.name == "test_preserve.py":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging_and_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Render every log call (JSON to stderr) and start from clean settings."""
    for key in ("PRESERVE_LOG_LEVEL", "PRESERVE_LOG_FORMAT", "PRESERVE_DEFAULT_PLUGINS"):
        monkeypatch.delenv(key, raising=False)
    configure_logging(level="DEBUG", json_format=True)
    clear_settings_cache()
    clear_context()
    yield
    clear_context()
    clear_settings_cache()


# =============================================================================
# Loader Fixtures
# =============================================================================


class RecordingLoader:
    """Loader returning a fixed target and remembering each call."""

    def __init__(self, name: str = "fs", target: Any = "TARGET"):
        self.name = name
        self.target = target
        self.calls: list[Any] = []

    def load(self, settings: Any) -> Any:
        self.calls.append(settings)
        return self.target


@pytest.fixture
def recording_loader() -> RecordingLoader:
    return RecordingLoader()


@pytest.fixture
def loaders(recording_loader: RecordingLoader) -> ModuleRegistry:
    return ModuleRegistry("loader", {"fs": recording_loader})


# =============================================================================
# Recipe Fixtures
# =============================================================================


def stepping_recipe(name: str, label: Any, dependencies: tuple[str, ...] = ()) -> FunctionRecipe:
    """Recipe that logs, runs one step to completion and returns ``label``."""

    def preserve(ctx):
        yield from ctx.log(f"running {name}")
        yield from ctx.declare("work")
        yield from ctx.step("work")
        yield from ctx.step("work", StepStatus.DONE)
        return label

    return FunctionRecipe(name, preserve, dependencies=dependencies)


@pytest.fixture
def linear_recipes() -> ModuleRegistry:
    """
    Linear chain: A -> B (B depends on A).

    A returns 1; B returns A's label + 1.
    """
    recipes = ModuleRegistry("recipe")
    recipes.register(FunctionRecipe("A", lambda ctx: 1))

    def b(ctx):
        yield from ctx.log("adding one")
        return ctx.get_label("A") + 1

    recipes.register(FunctionRecipe("B", b, dependencies=["A"]))
    return recipes


@pytest.fixture
def diamond_recipes() -> ModuleRegistry:
    """
    Diamond dependency pattern:
          D
         / \\
        B   C
         \\ /
          A
    """
    recipes = ModuleRegistry("recipe")
    recipes.register(stepping_recipe("A", "a"))
    recipes.register(stepping_recipe("B", "b", ("A",)))
    recipes.register(stepping_recipe("C", "c", ("A",)))
    recipes.register(stepping_recipe("D", "d", ("B", "C")))
    return recipes


@pytest.fixture
def fs_loader() -> FunctionLoader:
    return FunctionLoader("fs", lambda settings: settings)


@pytest.fixture
def make_recipe():
    """Factory for :func:`stepping_recipe`."""
    return stepping_recipe
