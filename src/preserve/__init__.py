"""
preserve — run a dependency graph of recipes against a loaded target.

WHY
───
A preservation request names a *loader* (how to acquire the target) and a
*recipe* (what to do with it).  Recipes depend on other recipes; each one
produces a *label* that later recipes can read.  ``preserve()`` validates
the request, plans the recipe graph in dependency order, and returns an
iterator of lifecycle events covering the whole run.

ARCHITECTURE
────────────
::

    preserve(request, loaders=..., recipes=...)
      ├── assert_exists          ─ loader + root recipe registered
      ├── PlanResolver           ─ depth-first topological plan
      └── Preservation           ─ pull-driven iterator
            ├── Loader.load      ─ on first next()
            └── Executor         ─ per recipe:
                  StepController ─ Begin / Log / Declare / Step / Succeed / Fail
                  RecipeTask     ─ drives recipe.preserve(context)

Example::

    from preserve import ModuleRegistry, StepStatus, loader, preserve, recipe

    loaders = ModuleRegistry("loader")
    recipes = ModuleRegistry("recipe")

    @loaders.register
    @loader("fs")
    def load_fs(settings):
        return settings["path"]

    @recipes.register
    @recipe("checksum")
    def checksum(ctx):
        yield from ctx.log(f"hashing {ctx.target}")
        return "sha256:..."

    run = preserve({"loader": "fs", "recipe": "checksum",
                    "settings": {"fs": {"path": "./build"}}},
                   loaders=loaders, recipes=recipes)
    for event in run:
        print(event.to_dict())
"""

__version__ = "0.1.0"

from preserve.core.errors import (
    ConfigurationError,
    CycleDetectedError,
    DuplicateModuleError,
    InvalidRequestError,
    LoadError,
    PreserveError,
    StepLifecycleError,
    UnknownModuleError,
)
from preserve.orchestration import (
    Plan,
    PlanResolver,
    Preservation,
    PreserveContext,
    PreserveRequest,
    RunStatus,
    preserve,
    resolve_plan,
)
from preserve.plugins import (
    FunctionLoader,
    FunctionRecipe,
    Loader,
    ModuleRegistry,
    Recipe,
    assert_exists,
    loader,
    recipe,
)
from preserve.processes import (
    Begin,
    Declare,
    Event,
    EventType,
    Fail,
    Log,
    State,
    StepController,
    StepStatus,
    StepUpdate,
    Succeed,
)

__all__ = [
    "__version__",
    # Errors
    "ConfigurationError",
    "CycleDetectedError",
    "DuplicateModuleError",
    "InvalidRequestError",
    "LoadError",
    "PreserveError",
    "StepLifecycleError",
    "UnknownModuleError",
    # Orchestration
    "Plan",
    "PlanResolver",
    "Preservation",
    "PreserveContext",
    "PreserveRequest",
    "RunStatus",
    "preserve",
    "resolve_plan",
    # Plugins
    "FunctionLoader",
    "FunctionRecipe",
    "Loader",
    "ModuleRegistry",
    "Recipe",
    "assert_exists",
    "loader",
    "recipe",
    # Processes
    "Begin",
    "Declare",
    "Event",
    "EventType",
    "Fail",
    "Log",
    "State",
    "StepController",
    "StepStatus",
    "StepUpdate",
    "Succeed",
]
