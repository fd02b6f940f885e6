"""
preserve orchestration — plan a recipe graph and execute it as an event stream.

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. request.py    ─ PreserveRequest (loader, recipe, per-plugin settings)
2. planner.py    ─ PlanResolver: root recipe → dependency-ordered Plan
3. context.py    ─ PreserveContext handed to each recipe
4. task.py       ─ RecipeTask: resumable state machine around preserve()
5. executor.py   ─ Executor: runs a plan, commits labels, stops on failure
6. run.py        ─ preserve() / Preservation: the public iterator

Example:
    from preserve.orchestration import preserve

    run = preserve({"loader": "fs", "recipe": "ipfs"}, loaders=loaders, recipes=recipes)
    events = run.collect()
    run.status, run.labels
"""

from .context import PreserveContext
from .executor import ExecutionOutcome, Executor
from .planner import Plan, PlanResolver, resolve_plan
from .request import PreserveRequest
from .run import Preservation, RunStatus, preserve
from .task import RecipeTask, TaskState

__all__ = [
    "PreserveContext",
    "ExecutionOutcome",
    "Executor",
    "Plan",
    "PlanResolver",
    "resolve_plan",
    "PreserveRequest",
    "Preservation",
    "RunStatus",
    "preserve",
    "RecipeTask",
    "TaskState",
]
