# dsl.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .model import ArtifactDownload, ArtifactUpload, Job, WorkflowDefinition
from .render import format_scalar, quote_scalar

UPLOAD_ARTIFACT_ACTION = "actions/upload-artifact@v4"
DOWNLOAD_ARTIFACT_ACTION = "actions/download-artifact@v4"

# Steps are rendered for a `steps:` list nested under a job
STEP_INDENT = " " * 6
FIELD_INDENT = " " * 8


# ---------------------------------------------------------------------
# Step helpers (pre-rendered YAML blocks)
# ---------------------------------------------------------------------

def _block(key: str, value: str, indent: str) -> str:
    if "\n" not in value:
        return f"{indent}{key}: {quote_scalar(value)}\n"
    body = "".join(f"{indent}  {line}\n" for line in value.rstrip("\n").split("\n"))
    return f"{indent}{key}: |\n{body}"


def _mapping(key: str, values: Dict[str, Any], indent: str) -> str:
    out = f"{indent}{key}:\n"
    for k in sorted(values):
        out += _block(k, format_scalar(values[k]), indent + "  ")
    return out


def _step_header(name: str, *, id: str | None, if_: str | None) -> str:
    out = f"{STEP_INDENT}- name: {quote_scalar(name)}\n"
    if id:
        out += f"{FIELD_INDENT}id: {id}\n"
    if if_:
        out += f"{FIELD_INDENT}if: {quote_scalar(if_)}\n"
    return out


def sh(
    name: str,
    cmd: str,
    *,
    cwd: str | None = None,
    env: Optional[Dict[str, str]] = None,
    id: str | None = None,
    if_: str | None = None,
) -> str:
    """Create a shell (`run:`) step."""
    out = _step_header(name, id=id, if_=if_)
    if cwd:
        out += f"{FIELD_INDENT}working-directory: {quote_scalar(cwd)}\n"
    if env:
        out += _mapping("env", env, FIELD_INDENT)
    return out + _block("run", cmd, FIELD_INDENT)


def uses(
    name: str,
    action: str,
    *,
    with_: Optional[Dict[str, Any]] = None,
    id: str | None = None,
    if_: str | None = None,
) -> str:
    """Create an action (`uses:`) step."""
    out = _step_header(name, id=id, if_=if_)
    out += f"{FIELD_INDENT}uses: {action}\n"
    if with_:
        out += _mapping("with", with_, FIELD_INDENT)
    return out


def upload_artifact_step(upload: ArtifactUpload) -> str:
    with_: Dict[str, Any] = {
        "name": upload.name,
        "path": "\n".join(upload.paths),
        "if-no-files-found": upload.if_no_files_found,
    }
    if upload.include_hidden_files:
        with_["include-hidden-files"] = "true"
    return uses(f"Upload {upload.name}", UPLOAD_ARTIFACT_ACTION, with_=with_)


def download_artifact_step(download: ArtifactDownload) -> str:
    with_: Dict[str, Any] = {}
    if download.name:
        with_["name"] = download.name
    if download.pattern:
        with_["pattern"] = download.pattern
        if download.merge_multiple:
            with_["merge-multiple"] = "true"
    with_["path"] = download.path
    return uses(f"Download {download.name or download.pattern}", DOWNLOAD_ARTIFACT_ACTION, with_=with_)


# ---------------------------------------------------------------------
# Functional Job helper
# ---------------------------------------------------------------------

def job(
    name: str,
    *steps: str,  # allow: job("x", sh(...), sh(...))
    needs: Optional[List[str]] = None,
    runs_on: str = "ubuntu-latest",
    if_: str = "",
    display_name: str = "",
    permissions: str = "",
    timeout_minutes: int = 0,
    concurrency: str = "",
    environment: str = "",
    container: str = "",
    services: str = "",
    env: Optional[Dict[str, str]] = None,
    outputs: Optional[Dict[str, str]] = None,
) -> Job:
    if not steps:
        raise ValueError(f"job({name!r}) must have at least one step")

    return Job(
        name=name,
        display_name=display_name,
        runs_on=runs_on,
        if_=if_,
        needs=list(needs or []),
        permissions=permissions,
        timeout_minutes=timeout_minutes,
        concurrency=concurrency,
        environment=environment,
        container=container,
        services=services,
        env=dict(env or {}),
        steps=list(steps),
        outputs=dict(outputs or {}),
    )


def call(
    name: str,
    workflow: str,
    *,
    with_: Optional[Dict[str, Any]] = None,
    secrets: Optional[Dict[str, str]] = None,
    needs: Optional[List[str]] = None,
    if_: str = "",
    permissions: str = "",
) -> Job:
    """A job that calls a reusable workflow instead of running steps."""
    return Job(
        name=name,
        uses=workflow,
        with_=dict(with_ or {}),
        secrets=dict(secrets or {}),
        needs=list(needs or []),
        if_=if_,
        permissions=permissions,
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class JobBuilder:
    """
    Fluent job builder that also keeps the artifact records for the
    upload/download steps it adds, so the two never drift apart.
    """

    def __init__(self, name: str):
        self.name = name
        self._needs: list[str] = []
        self._steps: list[str] = []
        self._env: dict[str, str] = {}
        self._outputs: dict[str, str] = {}
        self._runs_on: str = "ubuntu-latest"
        self._if: str = ""
        self._display_name: str = ""
        self._permissions: str = ""
        self._timeout_minutes: int = 0
        self._uploads: list[ArtifactUpload] = []
        self._downloads: list[ArtifactDownload] = []

    def depends_on(self, *job_names: str):
        self._needs.extend(job_names)
        return self

    def runs_on(self, runner: str):
        self._runs_on = runner
        return self

    def when(self, condition: str):
        self._if = condition
        return self

    def named(self, display_name: str):
        self._display_name = display_name
        return self

    def with_permissions(self, **scopes: str):
        self._permissions = "\n".join(f"{k.replace('_', '-')}: {v}" for k, v in scopes.items())
        return self

    def timeout(self, minutes: int):
        self._timeout_minutes = minutes
        return self

    def define_step(self, name: str, run: str, cwd: str | None = None):
        self._steps.append(sh(name, run, cwd=cwd))
        return self

    def use_action(self, name: str, action: str, **with_: Any):
        self._steps.append(uses(name, action, with_=with_ or None))
        return self

    def with_env(self, **env):
        # force values to str, env values are strings in the workflow
        self._env.update({k: str(v) for k, v in env.items()})
        return self

    def output(self, name: str, value: str):
        self._outputs[name] = value
        return self

    def upload(self, name: str, *paths: str, if_no_files_found: str = "warn", include_hidden_files: bool = False):
        record = ArtifactUpload(
            name=name,
            paths=list(paths),
            if_no_files_found=if_no_files_found,
            include_hidden_files=include_hidden_files,
            job_name=self.name,
        )
        self._uploads.append(record)
        self._steps.append(upload_artifact_step(record))
        return self

    def download(self, path: str, *, name: str = "", pattern: str = "", merge_multiple: bool = False):
        record = ArtifactDownload(
            path=path,
            name=name,
            pattern=pattern,
            merge_multiple=merge_multiple,
            job_name=self.name,
        )
        self._downloads.append(record)
        self._steps.append(download_artifact_step(record))
        return self

    @property
    def uploads(self) -> List[ArtifactUpload]:
        return list(self._uploads)

    @property
    def downloads(self) -> List[ArtifactDownload]:
        # depends_on is whatever the job needs at the time of asking
        return [replace(d, depends_on=list(self._needs)) for d in self._downloads]

    def build(self) -> Job:
        if not self._steps:
            raise ValueError(f"Job '{self.name}' has no steps")

        return Job(
            name=self.name,
            display_name=self._display_name,
            runs_on=self._runs_on,
            if_=self._if,
            needs=list(self._needs),
            permissions=self._permissions,
            timeout_minutes=self._timeout_minutes,
            env=dict(self._env),
            steps=list(self._steps),
            outputs=dict(self._outputs),
        )


def build(name: str) -> JobBuilder:
    """Convenience: build('test').define_step(...).build()"""
    return JobBuilder(name)


# ---------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------

class Matrix:
    """
    Minimal matrix expander (one job per value, expanded at compile time).

    Example:
        matrix("py", ["3.11", "3.12"]).jobs(
            lambda v: job(f"test-py{v}", sh(...))
        )
    """
    def __init__(self, key: str, values: Iterable[Any]):
        self.key = key
        self.values = list(values)

    def jobs(self, builder: Callable[[Any], Union[Job, JobBuilder]]) -> List[Union[Job, JobBuilder]]:
        return [builder(v) for v in self.values]


def matrix(key: str, values: Iterable[Any]) -> Matrix:
    return Matrix(key, values)


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

WorkflowItem = Union[Job, JobBuilder, List[Union[Job, JobBuilder]]]


def wf(*items: WorkflowItem) -> WorkflowDefinition:
    """
    Collect jobs (and builders' artifact records) into a workflow.

    Users can write:
        from lockgraph import wf, job, sh, build

        def workflow():
            return wf(
                job("lint", sh("Lint", "ruff check .")),
                build("test").depends_on("lint").define_step("Test", "pytest"),
            )
    """
    definition = WorkflowDefinition()
    for item in items:
        for entry in (item if isinstance(item, list) else [item]):
            if isinstance(entry, JobBuilder):
                definition.jobs.append(entry.build())
                definition.uploads.extend(entry.uploads)
                definition.downloads.extend(entry.downloads)
            elif isinstance(entry, Job):
                definition.jobs.append(entry)
            else:
                raise TypeError(f"wf() expects Job or JobBuilder, got {type(entry).__name__}")
    return definition


workflow = wf  # alias (avoid naming your own function workflow if you use it)
