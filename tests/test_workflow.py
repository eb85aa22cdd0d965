"""Tests for workflow loading and the compilation pass."""

import textwrap
from pathlib import Path

import pytest

from lockgraph.dsl import build, job, sh, wf
from lockgraph.errors import ArtifactValidationError, DependencyCycleError, DuplicateStepError
from lockgraph.model import ArtifactDownload, ArtifactUpload, WorkflowDefinition
from lockgraph.workflow import build_tracker, compile_workflow, load_workflow

EXAMPLE = Path(__file__).resolve().parent.parent / "lockgraph_workflow.py"


def write(tmp_path: Path, name: str, body: str) -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(body))
    return path


# =============================================================================
# Loading
# =============================================================================


class TestLoadWorkflow:
    def test_workflow_function(self, tmp_path) -> None:
        path = write(tmp_path, "ci_workflow.py", """
            from lockgraph import wf, job, sh

            def workflow():
                return wf(job("a", sh("A", "true")), job("b", sh("B", "true"), needs=["a"]))
        """)
        definition = load_workflow(path)
        assert [j.name for j in definition.jobs] == ["a", "b"]

    def test_workflow_function_returning_list(self, tmp_path) -> None:
        path = write(tmp_path, "list_workflow.py", """
            from lockgraph import job, sh

            def workflow():
                return [job("a", sh("A", "true"))]
        """)
        assert isinstance(load_workflow(path), WorkflowDefinition)

    def test_jobs_constant(self, tmp_path) -> None:
        path = write(tmp_path, "const_workflow.py", """
            from lockgraph import job, sh, ArtifactUpload, ArtifactDownload

            JOBS = [job("a", sh("A", "true")), job("b", sh("B", "true"), needs=["a"])]
            UPLOADS = [ArtifactUpload(name="out", paths=["/tmp/out"], job_name="a")]
            DOWNLOADS = [ArtifactDownload(path="/in", name="out", job_name="b")]
        """)
        definition = load_workflow(path)
        assert len(definition.jobs) == 2
        assert definition.uploads[0].name == "out"
        assert definition.downloads[0].job_name == "b"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_workflow(tmp_path / "nope.py")

    def test_not_python(self, tmp_path) -> None:
        path = write(tmp_path, "workflow.yml", "jobs: {}\n")
        with pytest.raises(ValueError, match="must be a .py file"):
            load_workflow(path)

    def test_wrong_contents(self, tmp_path) -> None:
        path = write(tmp_path, "bad_workflow.py", "JOBS = ['not a job']\n")
        with pytest.raises(TypeError, match="List\\[Job\\]"):
            load_workflow(path)

    def test_example_workflow_loads(self) -> None:
        definition = load_workflow(EXAMPLE)
        assert {"activation", "agent", "detection", "safe_outputs"} <= {j.name for j in definition.jobs}


# =============================================================================
# Compilation
# =============================================================================


def agent_pipeline(**download_kwargs) -> WorkflowDefinition:
    return wf(
        build("agent")
        .define_step("Run", "run")
        .upload("agent-artifacts", "/tmp/gh-aw/aw-prompts/prompt.txt", "/tmp/gh-aw/aw.patch"),
        build("detection")
        .depends_on("agent")
        .download("/tmp/gh-aw/threat-detection", **download_kwargs)
        .define_step("Scan", "scan"),
    )


class TestCompileWorkflow:
    def test_compiles(self) -> None:
        compiled = compile_workflow(agent_pipeline(name="agent-artifacts"))
        assert compiled.order == ["agent", "detection"]
        assert compiled.levels == [["agent"], ["detection"]]
        assert compiled.artifact_errors == []
        assert compiled.yaml == compiled.manager.render()
        assert compiled.yaml.startswith("jobs:\n  agent:\n")

    def test_artifact_files(self) -> None:
        compiled = compile_workflow(agent_pipeline(name="agent-artifacts"))
        files = compiled.artifact_files()
        assert list(files) == ["detection"]
        assert [f.download_path for f in files["detection"]] == [
            "/tmp/gh-aw/threat-detection/aw-prompts/prompt.txt",
            "/tmp/gh-aw/threat-detection/aw.patch",
        ]

    def test_unresolved_artifacts_collected(self) -> None:
        compiled = compile_workflow(agent_pipeline(name="typo-artifacts"))
        assert [e.artifact for e in compiled.artifact_errors] == ["typo-artifacts"]

    def test_unresolved_artifacts_can_fail(self) -> None:
        with pytest.raises(ArtifactValidationError):
            compile_workflow(agent_pipeline(pattern="typo-*"), fail_on_artifacts=True)

    def test_graph_errors_propagate(self) -> None:
        definition = wf(job("a", sh("A", "true"), needs=["b"]), job("b", sh("B", "true"), needs=["a"]))
        with pytest.raises(DependencyCycleError):
            compile_workflow(definition)

    def test_duplicate_steps_propagate(self) -> None:
        step = sh("Same", "true")
        with pytest.raises(DuplicateStepError):
            compile_workflow(wf(job("a", step, step)))

    def test_example_workflow_compiles(self) -> None:
        compiled = compile_workflow(load_workflow(EXAMPLE), fail_on_artifacts=True, strict_artifacts=True)
        assert compiled.order[0] == "activation"
        assert compiled.order.index("detection") < compiled.order.index("safe_outputs")
        paths = [f.download_path for f in compiled.artifact_files()["safe_outputs"]]
        assert "/tmp/gh-aw/agent-artifacts/aw.patch" in paths


class TestBuildTracker:
    def test_downloads_inherit_needs(self) -> None:
        definition = WorkflowDefinition(
            jobs=[job("a", sh("A", "true")), job("b", sh("B", "true"), needs=["a"])],
            uploads=[ArtifactUpload(name="out", paths=["/tmp/out"], job_name="a")],
            downloads=[ArtifactDownload(path="/in", name="out", job_name="b")],
        )
        tracker = build_tracker(definition, strict=True)
        assert tracker.downloads_for_job("b")[0].depends_on == ["a"]
        assert tracker.validate_all_downloads() == []

    def test_explicit_depends_on_kept(self) -> None:
        definition = WorkflowDefinition(
            jobs=[job("b", sh("B", "true"), needs=["a"])],
            downloads=[ArtifactDownload(path="/in", name="out", job_name="b", depends_on=["x"])],
        )
        assert build_tracker(definition).downloads_for_job("b")[0].depends_on == ["x"]
