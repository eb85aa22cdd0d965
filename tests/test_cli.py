"""Tests for the lockgraph command line."""

import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from lockgraph.cli import cli
from lockgraph.workflow import compile_workflow, load_workflow

PIPELINE = """
from lockgraph import wf, job, sh, build

def workflow():
    return wf(
        build("agent").define_step("Run", "run").upload("agent-artifacts", "/tmp/gh-aw/aw.patch"),
        build("detection").depends_on("agent").download("/tmp/in", name="{artifact}").define_step("Scan", "scan"),
        job("lint", sh("Lint", "ruff check .")),
    )
"""

CYCLE = """
from lockgraph import wf, job, sh

def workflow():
    return wf(job("a", sh("A", "true"), needs=["b"]), job("b", sh("B", "true"), needs=["a"]))
"""

DUPLICATE_STEP = """
from lockgraph import wf, job, sh

def workflow():
    step = sh("Same", "true")
    return wf(job("a", step, step))
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def write(tmp_path: Path, body: str, name: str = "ci_workflow.py") -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(body))
    return path


def test_compile_prints_jobs_block(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="agent-artifacts"))
    result = runner.invoke(cli, ["compile", "--workflow", str(path)])
    assert result.exit_code == 0, result.output
    assert result.output == compile_workflow(load_workflow(path)).yaml


def test_compile_to_file(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="agent-artifacts"))
    out = tmp_path / "jobs.yml"
    result = runner.invoke(cli, ["compile", "--workflow", str(path), "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_text().startswith("jobs:\n  agent:\n")
    assert "Wrote 3 job(s)" in result.output


def test_compile_warns_on_unresolved_artifacts(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="typo"))
    result = runner.invoke(cli, ["compile", "--workflow", str(path)])
    assert result.exit_code == 0
    assert "WARNING: 1 artifact download(s) could not be resolved" in result.output


def test_compile_can_fail_on_unresolved_artifacts(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="typo"))
    result = runner.invoke(cli, ["compile", "--workflow", str(path), "--fail-on-artifacts"])
    assert result.exit_code == 1
    assert "ERROR: Unresolved artifacts" in result.output
    assert "job detection: artifact 'typo'" in result.output


def test_cycle_is_fatal(runner, tmp_path) -> None:
    path = write(tmp_path, CYCLE)
    result = runner.invoke(cli, ["compile", "--workflow", str(path)])
    assert result.exit_code == 1
    assert "ERROR: Invalid job graph" in result.output
    assert "cycle detected" in result.output


def test_duplicate_step_reported_as_internal_error(runner, tmp_path) -> None:
    path = write(tmp_path, DUPLICATE_STEP)
    result = runner.invoke(cli, ["validate", "--workflow", str(path)])
    assert result.exit_code == 1
    assert "ERROR: Internal error" in result.output
    assert "compiler bug" in result.output


def test_validate(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="agent-artifacts"))
    result = runner.invoke(cli, ["validate", "--workflow", str(path), "--strict-artifacts"])
    assert result.exit_code == 0, result.output
    assert "STATUS: valid (3 jobs)" in result.output


def test_plan(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="agent-artifacts"))
    result = runner.invoke(cli, ["plan", "--workflow", str(path)])
    assert result.exit_code == 0, result.output
    assert "  1. agent\n  2. detection\n  3. lint\n" in result.output
    assert "  Stage 1: agent, lint\n  Stage 2: detection\n" in result.output
    assert "COMPILE STARTED\nWorkflow: " in result.output
    assert "Jobs: 3\n" in result.output


def test_artifacts_report(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="agent-artifacts"))
    result = runner.invoke(cli, ["artifacts", "--workflow", str(path)])
    assert result.exit_code == 0, result.output
    assert "[detection] agent-artifacts: /tmp/gh-aw/aw.patch -> /tmp/in/aw.patch" in result.output


def test_debug_traces_components(runner, tmp_path) -> None:
    path = write(tmp_path, PIPELINE.format(artifact="agent-artifacts"))
    result = runner.invoke(cli, ["--debug", "compile", "--workflow", str(path)])
    assert result.exit_code == 0, result.output
    assert "[DEBUG] Adding job: agent" in result.output
    assert "[DEBUG] Recording upload: artifact=agent-artifacts" in result.output


def test_missing_workflow(runner, tmp_path) -> None:
    result = runner.invoke(cli, ["compile", "--workflow", str(tmp_path / "nope")])
    assert result.exit_code == 1
    assert "Workflow file not found" in result.output


def test_default_workflow_discovered(runner, tmp_path, monkeypatch) -> None:
    write(tmp_path, PIPELINE.format(artifact="agent-artifacts"), name="lockgraph_workflow.py")
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(cli, ["plan"])
    assert result.exit_code == 0, result.output


def test_ambiguous_workflows(runner, tmp_path, monkeypatch) -> None:
    write(tmp_path, CYCLE, name="a_workflow.py")
    write(tmp_path, CYCLE, name="b_workflow.py")
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(cli, ["plan"])
    assert result.exit_code == 1
    assert "Multiple workflow files found" in result.output


def test_load_failure(runner, tmp_path) -> None:
    path = write(tmp_path, "raise RuntimeError('boom')\n")
    result = runner.invoke(cli, ["compile", "--workflow", str(path)])
    assert result.exit_code == 1
    assert "Failed to load workflow" in result.output
    assert "boom" in result.output
