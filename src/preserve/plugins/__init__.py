"""Plugins — loader/recipe protocols, explicit registries, function adapters."""

from .adapters import FunctionLoader, FunctionRecipe, loader, recipe
from .protocols import Loader, Recipe
from .registry import (
    ModuleRegistry,
    assert_exists,
    assert_loader_exists,
    assert_recipe_exists,
)

__all__ = [
    "FunctionLoader",
    "FunctionRecipe",
    "loader",
    "recipe",
    "Loader",
    "Recipe",
    "ModuleRegistry",
    "assert_exists",
    "assert_loader_exists",
    "assert_recipe_exists",
]
