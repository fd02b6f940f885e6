"""Tests for preserve.cli — command smoke tests via CliRunner.

A small plugin module is written to a temporary directory and put on
``sys.path`` so that every command runs against real registries.
"""

from __future__ import annotations

import importlib
import json
import sys
import textwrap

import pytest
from typer.testing import CliRunner

from preserve import __version__
from preserve.cli.app import app

runner = CliRunner()

PLUGIN_MODULE = "preserve_cli_test_plugins"

PLUGIN_SOURCE = textwrap.dedent(
    '''
    from preserve import FunctionLoader, FunctionRecipe, ModuleRegistry, StepStatus

    loaders = ModuleRegistry("loader")
    recipes = ModuleRegistry("recipe")

    loaders.register(FunctionLoader("fs", lambda settings: settings or {}))


    def unplugged(settings):
        raise OSError("disk gone")


    loaders.register(FunctionLoader("unplugged", unplugged))


    def fetch(ctx):
        yield from ctx.log("fetching")
        return "fetched"


    def publish(ctx):
        yield from ctx.declare("upload")
        yield from ctx.step("upload")
        yield from ctx.step("upload", StepStatus.DONE)
        return {"cid": "Qm-" + ctx.get_label("fetch"), "settings": ctx.settings}


    def broken(ctx):
        raise RuntimeError("broken recipe")


    def unfinished(ctx):
        yield from ctx.declare("upload")
        return "half-done"


    recipes.register(FunctionRecipe("fetch", fetch))
    recipes.register(FunctionRecipe("publish", publish, dependencies=["fetch"]))
    recipes.register(FunctionRecipe("broken", broken, dependencies=["fetch"]))
    recipes.register(FunctionRecipe("unfinished", unfinished))


    class Bundle:
        loaders = loaders
        recipes = recipes


    bundle = Bundle()
    not_a_bundle = object()
    '''
)


@pytest.fixture
def plugins(tmp_path, monkeypatch) -> str:
    """Write the plugin module and return its import path."""
    (tmp_path / f"{PLUGIN_MODULE}.py").write_text(PLUGIN_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.chdir(tmp_path)
    importlib.invalidate_caches()
    yield PLUGIN_MODULE
    sys.modules.pop(PLUGIN_MODULE, None)


def _json_lines(output: str, key: str) -> list[dict]:
    """Parse JSON lines carrying ``key`` (skips operator log lines)."""
    records = []
    for line in output.splitlines():
        line = line.strip()
        if not line.startswith(("{", "[")):
            continue
        record = json.loads(line)
        if isinstance(record, dict) and key in record:
            records.append(record)
    return records


# ─── Root options ────────────────────────────────────────────────────────


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"preserve {__version__}" in result.output

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("run", "plan", "list"):
            assert command in result.output


# ─── list ────────────────────────────────────────────────────────────────


class TestList:
    def test_table(self, plugins):
        result = runner.invoke(app, ["list", "--plugins", plugins])
        assert result.exit_code == 0
        for name in ("fs", "fetch", "publish", "broken"):
            assert name in result.output

    def test_json(self, plugins):
        result = runner.invoke(app, ["list", "--plugins", plugins, "--json"])
        assert result.exit_code == 0
        rows = json.loads(result.stdout.strip().splitlines()[-1])
        assert [(r["kind"], r["name"]) for r in rows] == [
            ("loader", "fs"),
            ("loader", "unplugged"),
            ("recipe", "broken"),
            ("recipe", "fetch"),
            ("recipe", "publish"),
            ("recipe", "unfinished"),
        ]

    def test_attribute_bundle(self, plugins):
        result = runner.invoke(app, ["list", "--plugins", f"{plugins}:bundle"])
        assert result.exit_code == 0
        assert "publish" in result.output

    def test_default_plugins_from_env(self, plugins, monkeypatch):
        monkeypatch.setenv("PRESERVE_DEFAULT_PLUGINS", plugins)
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "publish" in result.output

    def test_missing_plugins(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 1
        assert "no plugin module given" in result.output

    def test_unimportable_module(self):
        result = runner.invoke(app, ["list", "--plugins", "no_such_plugin_module_xyz"])
        assert result.exit_code == 1
        assert "cannot import" in result.output

    def test_missing_attribute(self, plugins):
        result = runner.invoke(app, ["list", "--plugins", f"{plugins}:nope"])
        assert result.exit_code == 1
        assert "has no attribute" in result.output

    def test_object_without_registries(self, plugins):
        result = runner.invoke(app, ["list", "--plugins", f"{plugins}:not_a_bundle"])
        assert result.exit_code == 1
        assert "must expose a 'loaders' mapping" in result.output


# ─── plan ────────────────────────────────────────────────────────────────


class TestPlan:
    def test_json(self, plugins):
        result = runner.invoke(app, ["plan", "publish", "--plugins", plugins, "--json"])
        assert result.exit_code == 0
        plan = _json_lines(result.stdout, "root")[-1]
        assert plan["root"] == "publish"
        assert [s["name"] for s in plan["steps"]] == ["fetch", "publish"]

    def test_table(self, plugins):
        result = runner.invoke(app, ["plan", "publish", "--plugins", plugins])
        assert result.exit_code == 0
        assert "fetch" in result.output
        assert "publish" in result.output

    def test_unknown_recipe(self, plugins):
        result = runner.invoke(app, ["plan", "nope", "--plugins", plugins])
        assert result.exit_code == 1
        assert "Unknown recipe with name nope" in result.output


# ─── run ─────────────────────────────────────────────────────────────────


class TestRun:
    def test_success_json(self, plugins):
        result = runner.invoke(
            app,
            ["run", "--plugins", plugins, "--loader", "fs", "--recipe", "publish", "--json"],
        )
        assert result.exit_code == 0

        events = _json_lines(result.stdout, "type")
        assert [(e["scope"][-1], e["type"]) for e in events] == [
            ("fetch", "begin"),
            ("fetch", "log"),
            ("fetch", "succeed"),
            ("publish", "begin"),
            ("publish", "declare"),
            ("publish", "step"),
            ("publish", "step"),
            ("publish", "succeed"),
        ]
        summary = _json_lines(result.stdout, "summary")[-1]["summary"]
        assert summary["status"] == "succeeded"
        assert summary["labels"]["fetch"] == "fetched"

    def test_success_rich(self, plugins):
        result = runner.invoke(
            app, ["run", "-p", plugins, "-l", "fs", "-r", "publish"]
        )
        assert result.exit_code == 0
        assert "Succeeded" in result.output
        assert "fetching" in result.output

    def test_settings_file(self, plugins, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("publish:\n  address: ipfs://local\n")

        result = runner.invoke(
            app,
            [
                "run",
                "--plugins", plugins,
                "--loader", "fs",
                "--recipe", "publish",
                "--settings", str(settings),
                "--json",
            ],
        )
        assert result.exit_code == 0
        succeed = [e for e in _json_lines(result.stdout, "type") if e["type"] == "succeed"]
        assert succeed[-1]["label"]["settings"] == {"address": "ipfs://local"}

    def test_settings_file_must_be_mapping(self, plugins, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("- just\n- a list\n")
        result = runner.invoke(
            app,
            ["run", "-p", plugins, "-l", "fs", "-r", "publish", "-s", str(settings)],
        )
        assert result.exit_code == 1
        assert "must contain a mapping" in result.output

    def test_failing_recipe(self, plugins):
        result = runner.invoke(
            app,
            ["run", "--plugins", plugins, "--loader", "fs", "--recipe", "broken", "--json"],
        )
        assert result.exit_code == 1
        events = _json_lines(result.stdout, "type")
        assert events[-1]["type"] == "fail"
        assert events[-1]["error"] == {"type": "RuntimeError", "message": "broken recipe"}
        summary = _json_lines(result.stdout, "summary")[-1]["summary"]
        assert summary["status"] == "failed"
        assert summary["failed_recipe"] == "broken"

    def test_failing_recipe_rich(self, plugins):
        result = runner.invoke(app, ["run", "-p", plugins, "-l", "fs", "-r", "broken"])
        assert result.exit_code == 1
        assert "broken recipe" in result.output
        assert "Failed at 'broken'" in result.output

    def test_aborted_run_rich(self, plugins):
        result = runner.invoke(app, ["run", "-p", plugins, "-l", "fs", "-r", "unfinished"])
        assert result.exit_code == 1
        assert "Unfinished steps: upload" in result.output
        assert "Aborted at 'unfinished'" in result.output

    def test_loader_failure(self, plugins):
        result = runner.invoke(app, ["run", "-p", plugins, "-l", "unplugged", "-r", "fetch"])
        assert result.exit_code == 1
        assert "Loader 'unplugged' failed: disk gone" in result.output
        assert "fetching" not in result.output

    def test_unknown_recipe(self, plugins):
        result = runner.invoke(app, ["run", "-p", plugins, "-l", "fs", "-r", "nope"])
        assert result.exit_code == 1
        assert "Unknown recipe with name nope" in result.output

    def test_unknown_loader(self, plugins):
        result = runner.invoke(
            app, ["run", "--plugins", plugins, "--loader", "s3", "--recipe", "publish"]
        )
        assert result.exit_code == 1
        assert "Unknown loader with name s3" in result.output
        assert "begin" not in result.output

    def test_requires_loader_and_recipe(self, plugins):
        result = runner.invoke(app, ["run", "--plugins", plugins])
        assert result.exit_code != 0
