# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Job:
    """
    A compiled GitHub Actions job.

    `steps` are pre-rendered YAML blocks (already indented for the `steps:`
    list) and are emitted verbatim. A job is either a steps job or a
    reusable workflow call (`uses` + `with_` + `secrets`), never both.

    The opaque fields (`runs_on`, `environment`, `container`, `services`,
    `permissions`, `concurrency`) take either a plain value, rendered as
    `key: value`, or a pre-rendered fragment starting with `key:`.
    """
    name: str
    display_name: str = ""
    runs_on: str = ""
    if_: str = ""
    needs: List[str] = field(default_factory=list)

    permissions: str = ""
    timeout_minutes: int = 0
    concurrency: str = ""
    environment: str = ""
    container: str = ""
    services: str = ""
    env: Dict[str, str] = field(default_factory=dict)

    steps: List[str] = field(default_factory=list)
    outputs: Dict[str, str] = field(default_factory=dict)

    # Reusable workflow call
    uses: str = ""
    with_: Dict[str, Any] = field(default_factory=dict)
    secrets: Dict[str, str] = field(default_factory=dict)

    # The `if:` already guards a workflow_run trigger (adds a zizmor suppression)
    workflow_run_safety_checks: bool = False

    def __post_init__(self) -> None:
        if self.uses and self.steps:
            raise ValueError(f"Job '{self.name}' cannot have both steps and uses")

    @property
    def is_reusable_call(self) -> bool:
        return bool(self.uses)


@dataclass(frozen=True)
class ArtifactUpload:
    """
    One `actions/upload-artifact` invocation.

    `normalized_paths` maps each cleaned source path to its path inside the
    artifact. It is filled in by the tracker when the upload is recorded.
    """
    name: str
    paths: List[str]
    normalized_paths: Optional[Dict[str, str]] = None
    if_no_files_found: str = "warn"     # "warn" | "error" | "ignore"
    include_hidden_files: bool = False
    job_name: str = ""


@dataclass(frozen=True)
class ArtifactDownload:
    """One `actions/download-artifact` invocation, by `name` or by `pattern`."""
    path: str
    name: str = ""
    pattern: str = ""
    merge_multiple: bool = False        # only meaningful with pattern
    job_name: str = ""
    depends_on: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ArtifactFile:
    """A single uploaded file and where a given download places it."""
    artifact_name: str
    original_path: str
    download_path: str
    job_name: str


@dataclass(frozen=True)
class ArtifactMatch:
    """
    Result of an artifact lookup.

    `scoped` is True when the upload came from a job the downloader depends
    on, False when it was only found by scanning every job.
    """
    upload: ArtifactUpload
    scoped: bool


@dataclass
class WorkflowDefinition:
    """Everything one compilation pass needs: jobs plus their artifact transfers."""
    jobs: List[Job] = field(default_factory=list)
    uploads: List[ArtifactUpload] = field(default_factory=list)
    downloads: List[ArtifactDownload] = field(default_factory=list)
