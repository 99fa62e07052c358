"""Configuration loading, runtime wiring and CLI smoke tests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from core.orchestrator import Orchestrator
from core.policy_runtime import load_settings, load_yaml, merge_dicts, resolve_db_path
from llm.providers.mock_provider import MockProvider
from planner.execution_plan import Goal
from ui.cli import commands
from ui.cli.cli import app


def write_config(root: Path, name: str, payload: object) -> None:
    config_dir = root / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / name).write_text(yaml.safe_dump(payload), encoding="utf-8")


def test_load_yaml_missing_and_invalid(tmp_path: Path) -> None:
    assert load_yaml(tmp_path / "absent.yaml") == {}
    bad = tmp_path / "list.yaml"
    bad.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml(bad)


def test_merge_dicts_is_recursive_and_non_destructive() -> None:
    base = {"agent": {"max_retries": 3, "timeout_seconds": 300}, "paths": {"db_path": "a.db"}}
    merged = merge_dicts(base, {"agent": {"max_retries": 1}, "extra": True})

    assert merged == {
        "agent": {"max_retries": 1, "timeout_seconds": 300},
        "paths": {"db_path": "a.db"},
        "extra": True,
    }
    assert base["agent"]["max_retries"] == 3


def test_settings_layer_files_and_overrides(tmp_path: Path) -> None:
    write_config(tmp_path, "default.yaml", {"agent": {"max_iterations": 10}, "memory": {"decay_rate": 0.02}})
    write_config(tmp_path, "tools.yaml", {"recall": {"enabled": False}})

    settings = load_settings(tmp_path, overrides={"agent": {"max_retries": 0}})

    assert settings.agent.max_iterations == 10
    assert settings.agent.max_retries == 0
    assert settings.memory.decay_rate == pytest.approx(0.02)
    assert settings.memory.max_short_term_size == 100
    assert settings.tools == {"recall": {"enabled": False}}
    assert settings.correction.circuit_breaker_threshold == 5


def test_db_path_can_be_disabled(tmp_path: Path) -> None:
    settings = load_settings(tmp_path, overrides={"paths": {"db_path": None}})
    assert resolve_db_path(tmp_path, settings) is None


def test_orchestrator_persists_memory_between_runs(tmp_path: Path) -> None:
    bundle = Orchestrator(root=tmp_path).build()
    assert isinstance(bundle.llm, MockProvider)
    assert bundle.tool_registry.names() == ["recall", "remember"]
    entry = bundle.memory.store("critical step 1: rotate the api keys")
    bundle.close()

    assert (tmp_path / "workspace" / "memory.db").exists()
    reopened = Orchestrator(root=tmp_path).build()
    try:
        assert reopened.memory.tier_of(entry.id) == "short_term"
    finally:
        reopened.close()


def test_bundle_agent_pursues_goal_with_mock_llm(tmp_path: Path) -> None:
    bundle = Orchestrator(root=tmp_path, overrides={"agent": {"iteration_pause_seconds": 0}}).build()
    try:
        state = asyncio.run(bundle.new_agent().pursue(Goal(description="lint the code and run the tests")))
    finally:
        bundle.close()

    assert state.status.value == "completed"
    assert [t.description for t in state.completed_tasks] == ["lint the code", "run the tests"]
    assert bundle.metrics.counters["agent.tasks.completed"] == 2


@pytest.fixture()
def cli_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    overrides = {"agent": {"iteration_pause_seconds": 0}}
    monkeypatch.setattr(commands, "_runtime", lambda root=None: Orchestrator(root=tmp_path, overrides=overrides).build())
    return tmp_path


def test_cli_run_goal(cli_root: Path) -> None:
    result = CliRunner().invoke(app, ["run-goal", "write the changelog and tag the release"])

    assert result.exit_code == 0, result.output
    assert "Status: completed" in result.output
    assert "[done]   tag the release" in result.output


def test_cli_memory_add_then_stats(cli_root: Path) -> None:
    runner = CliRunner()

    added = runner.invoke(app, ["memory", "add", "deploys happen on tuesdays", "--kind", "semantic"])
    stats = runner.invoke(app, ["memory", "stats"])

    assert added.exit_code == 0, added.output
    assert "Stored semantic memory" in added.output
    assert '"total_memories": 1' in stats.output


def test_cli_tools_list(cli_root: Path) -> None:
    result = CliRunner().invoke(app, ["tools", "list"])

    assert result.exit_code == 0, result.output
    assert "recall: enabled" in result.output
    assert "remember: enabled" in result.output
