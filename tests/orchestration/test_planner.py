"""Tests for PlanResolver — dependency ordering, validation and cycles."""

import pytest

from preserve.core.errors import ConfigurationError, CycleDetectedError, UnknownModuleError
from preserve.orchestration.planner import Plan, PlanResolver, resolve_plan
from preserve.plugins import FunctionRecipe, ModuleRegistry


def _recipes(graph: dict[str, list[str]]) -> dict[str, FunctionRecipe]:
    return {
        name: FunctionRecipe(name, lambda ctx: None, dependencies=deps)
        for name, deps in graph.items()
    }


class TestResolveOrder:
    def test_single_recipe(self):
        plan = resolve_plan("A", _recipes({"A": []}))
        assert plan.names == ["A"]
        assert plan.root == "A"

    def test_linear(self, linear_recipes):
        assert resolve_plan("B", linear_recipes).names == ["A", "B"]

    def test_dependency_only_plan(self, linear_recipes):
        assert resolve_plan("A", linear_recipes).names == ["A"]

    def test_diamond_deduplicates(self, diamond_recipes):
        plan = resolve_plan("D", diamond_recipes)
        assert plan.names == ["A", "B", "C", "D"]

    def test_root_is_last(self, diamond_recipes):
        for root in diamond_recipes:
            assert resolve_plan(root, diamond_recipes).names[-1] == root

    def test_dependencies_precede_dependents(self):
        recipes = _recipes(
            {
                "publish": ["pin", "index"],
                "pin": ["fetch"],
                "index": ["fetch", "hash"],
                "fetch": [],
                "hash": ["fetch"],
            }
        )
        plan = resolve_plan("publish", recipes)
        assert sorted(plan.names) == ["fetch", "hash", "index", "pin", "publish"]
        for recipe in plan:
            for dependency in recipe.dependencies:
                assert plan.index(dependency) < plan.index(recipe.name)

    def test_declared_order_is_kept(self):
        recipes = _recipes({"root": ["z", "a", "m"], "z": [], "a": [], "m": []})
        assert resolve_plan("root", recipes).names == ["z", "a", "m", "root"]

    def test_unrelated_recipes_excluded(self):
        recipes = _recipes({"A": [], "B": ["A"], "X": []})
        assert "X" not in resolve_plan("B", recipes)

    def test_deep_chain_is_not_recursive(self):
        depth = 5000
        graph = {f"r{i}": [f"r{i - 1}"] if i else [] for i in range(depth)}
        plan = resolve_plan(f"r{depth - 1}", _recipes(graph))
        assert len(plan) == depth
        assert plan.names[0] == "r0"

    def test_works_with_registry(self, diamond_recipes):
        assert isinstance(diamond_recipes, ModuleRegistry)
        assert len(PlanResolver(diamond_recipes).resolve("B")) == 2


class TestResolveErrors:
    def test_unknown_root(self):
        with pytest.raises(UnknownModuleError) as exc_info:
            resolve_plan("C", _recipes({"A": [], "B": ["A"]}))
        assert exc_info.value.kind == "recipe"
        assert exc_info.value.available == ["A", "B"]

    def test_unknown_transitive_dependency(self):
        recipes = _recipes({"A": ["missing"], "B": ["A"]})
        with pytest.raises(UnknownModuleError) as exc_info:
            resolve_plan("B", recipes)
        assert exc_info.value.name == "missing"

    def test_self_cycle(self):
        with pytest.raises(CycleDetectedError) as exc_info:
            resolve_plan("A", _recipes({"A": ["A"]}))
        assert exc_info.value.cycle == ["A", "A"]

    def test_cycle_path(self):
        recipes = _recipes({"root": ["A"], "A": ["B"], "B": ["C"], "C": ["A"]})
        with pytest.raises(CycleDetectedError) as exc_info:
            resolve_plan("root", recipes)
        assert exc_info.value.cycle == ["A", "B", "C", "A"]

    def test_string_dependencies_rejected(self):
        class Broken:
            name = "A"
            dependencies = "B"

            def preserve(self, context):
                return None

        with pytest.raises(ConfigurationError, match="not a string"):
            resolve_plan("A", {"A": Broken()})

    def test_invalid_dependency_entry(self):
        class Broken:
            name = "A"
            dependencies = [None]

            def preserve(self, context):
                return None

        with pytest.raises(ConfigurationError, match="invalid dependency"):
            resolve_plan("A", {"A": Broken()})


class TestPlan:
    def test_container_protocol(self, linear_recipes):
        plan = resolve_plan("B", linear_recipes)
        assert len(plan) == 2
        assert "A" in plan
        assert "Z" not in plan
        assert plan.index("B") == 1
        assert plan.index("Z") == -1
        assert [r.name for r in plan] == ["A", "B"]

    def test_to_dict(self, linear_recipes):
        assert resolve_plan("B", linear_recipes).to_dict() == {
            "root": "B",
            "steps": [
                {"name": "A", "dependencies": []},
                {"name": "B", "dependencies": ["A"]},
            ],
        }

    def test_immutable(self, linear_recipes):
        plan = resolve_plan("B", linear_recipes)
        assert isinstance(plan, Plan)
        assert isinstance(plan.recipes, tuple)
