# workflow.py
from __future__ import annotations

import runpy
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional

from .artifacts import ArtifactTracker
from .dag import JobManager
from .errors import ArtifactValidationError, UnresolvedArtifactError
from .model import ArtifactFile, Job, WorkflowDefinition
from .ui.console import get_console


# ----------------------------------------------------------------------
# Workflow loading (local file)
# ----------------------------------------------------------------------

def load_workflow(path: str | Path) -> WorkflowDefinition:
    """
    Load a workflow definition from a python file path.

    The file must define either:
      - workflow() -> WorkflowDefinition | List[Job]
      - JOBS = [Job, ...]  (optionally UPLOADS = [...], DOWNLOADS = [...])
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {wf_path}")
    if wf_path.suffix != ".py":
        raise ValueError(f"Workflow must be a .py file, got: {wf_path.name}")

    module_name = f"lockgraph_workflow_{wf_path.stem}"
    globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

    result = None
    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        try:
            result = globals_dict["workflow"]()
        except TypeError as e:
            if "positional argument" in str(e):
                raise TypeError(
                    "Your workflow() is being called with arguments (name collision with the helper). "
                    "Use the 'wf' helper instead: `from lockgraph import wf, job, sh` then "
                    "`def workflow(): return wf(job(...), job(...))`"
                ) from e
            raise
    elif "JOBS" in globals_dict:
        result = WorkflowDefinition(
            jobs=globals_dict["JOBS"],
            uploads=list(globals_dict.get("UPLOADS", [])),
            downloads=list(globals_dict.get("DOWNLOADS", [])),
        )

    if isinstance(result, list):
        result = WorkflowDefinition(jobs=result)

    if not isinstance(result, WorkflowDefinition) or not all(isinstance(j, Job) for j in result.jobs):
        raise TypeError(
            "Workflow must return/define a WorkflowDefinition or List[Job]. "
            "Define workflow() -> wf(...) or JOBS = [Job, ...]."
        )

    return result


# ----------------------------------------------------------------------
# Compilation pass
# ----------------------------------------------------------------------

@dataclass
class CompiledWorkflow:
    yaml: str
    order: List[str]
    levels: List[List[str]]
    manager: JobManager
    tracker: ArtifactTracker
    artifact_errors: List[UnresolvedArtifactError] = field(default_factory=list)

    def artifact_files(self) -> Dict[str, List[ArtifactFile]]:
        """Where every downloaded file lands, keyed by downloading job (name order)."""
        files: Dict[str, List[ArtifactFile]] = {}
        for job_name in self.manager.job_names:
            for download in self.tracker.downloads_for_job(job_name):
                files.setdefault(job_name, []).extend(self.tracker.resolve_download(download))
        return files


def build_manager(definition: WorkflowDefinition) -> JobManager:
    manager = JobManager()
    for job in definition.jobs:
        manager.add_job(job)
    return manager


def build_tracker(definition: WorkflowDefinition, *, strict: Optional[bool] = None) -> ArtifactTracker:
    """
    Record every transfer. Downloads without explicit `depends_on` inherit
    their job's `needs`.
    """
    needs = {j.name: j.needs for j in definition.jobs}
    tracker = ArtifactTracker(strict=strict)
    for upload in definition.uploads:
        tracker.set_current_job(upload.job_name)
        tracker.record_upload(upload)
    for download in definition.downloads:
        if not download.depends_on:
            download = replace(download, depends_on=list(needs.get(download.job_name, [])))
        tracker.set_current_job(download.job_name)
        tracker.record_download(download)
    return tracker


def compile_workflow(
    definition: WorkflowDefinition,
    *,
    strict_artifacts: Optional[bool] = None,
    fail_on_artifacts: bool = False,
) -> CompiledWorkflow:
    """
    Run one compilation pass: register, validate, order and render.

    Graph errors and compiler bugs propagate. Unresolved artifacts are
    collected on the result, or raised together as ArtifactValidationError
    when `fail_on_artifacts` is set.
    """
    console = get_console()

    manager = build_manager(definition)
    manager.validate_dependencies()
    manager.validate_duplicate_steps()

    tracker = build_tracker(definition, strict=strict_artifacts)
    artifact_errors = tracker.validate_all_downloads()
    if artifact_errors and fail_on_artifacts:
        raise ArtifactValidationError(artifact_errors)

    order = manager.topological_order()
    levels = manager.execution_levels()
    console.print_debug(f"Execution order: {order}")

    return CompiledWorkflow(
        yaml=manager.render(),
        order=order,
        levels=levels,
        manager=manager,
        tracker=tracker,
        artifact_errors=artifact_errors,
    )
