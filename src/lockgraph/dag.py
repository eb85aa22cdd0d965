# dag.py
from __future__ import annotations

from bisect import insort
from dataclasses import replace
from typing import Dict, List, Optional

from .errors import (
    DependencyCycleError,
    DuplicateJobError,
    DuplicateStepError,
    EmptyJobNameError,
    UnknownDependencyError,
)
from .model import Job
from .render import render_jobs
from .ui.console import get_console

# DFS visit states
_UNVISITED, _VISITING, _VISITED = 0, 1, 2


def extract_step_name(step: str) -> str:
    """
    Return the value of the first `name:` line in a pre-rendered step block.

    Leading dash and surrounding quotes are stripped. Returns "" when the
    step has no name.
    """
    for line in step.split("\n"):
        trimmed = line.strip()
        if trimmed.startswith("-"):
            trimmed = trimmed[1:].strip()
        if trimmed.startswith("name:"):
            return trimmed[len("name:"):].strip().strip("\"'")
    return ""


class JobManager:
    """
    Registry of compiled jobs for one compilation pass.

    Jobs may be added in any order; `needs` is only checked by
    `validate_dependencies`, so forward references are fine. The name index
    stays sorted alphabetically and is the order used for rendering.

    Not thread-safe: add every job first, then read.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._order: List[str] = []

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add_job(self, job: Job) -> None:
        if not job.name:
            raise EmptyJobNameError()
        if job.name in self._jobs:
            raise DuplicateJobError(job.name)

        get_console().print_debug(f"Adding job: {job.name}")
        # stored jobs never share lists or dicts with the caller
        self._jobs[job.name] = replace(
            job,
            needs=list(job.needs),
            steps=list(job.steps),
            env=dict(job.env),
            outputs=dict(job.outputs),
            with_=dict(job.with_),
            secrets=dict(job.secrets),
        )
        insort(self._order, job.name)

    def get_job(self, name: str) -> Optional[Job]:
        return self._jobs.get(name)

    def all_jobs(self) -> Dict[str, Job]:
        """Copy of the registry, so callers can't add jobs behind our back."""
        return dict(self._jobs)

    @property
    def job_names(self) -> List[str]:
        return list(self._order)

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_dependencies(self) -> None:
        """Check every `needs` entry exists, then that the graph has no cycle."""
        get_console().print_debug(f"Validating dependencies for {len(self._jobs)} jobs")
        for name in self._order:
            for dep in self._jobs[name].needs:
                if dep not in self._jobs:
                    get_console().print_debug(f"Validation failed: job {name} depends on non-existent job {dep}")
                    raise UnknownDependencyError(name, dep)

        self._detect_cycles()

    def _detect_cycles(self) -> None:
        state: Dict[str, int] = {name: _UNVISITED for name in self._order}
        for name in self._order:
            if state[name] == _UNVISITED:
                self._visit(name, state)
        get_console().print_debug("No cycles detected in job dependencies")

    def _visit(self, name: str, state: Dict[str, int]) -> None:
        state[name] = _VISITING
        for dep in self._jobs[name].needs:
            if state[dep] == _VISITING:
                get_console().print_debug(f"Cycle detected: job {name} has circular dependency through {dep}")
                raise DependencyCycleError(name, dep)
            if state[dep] == _UNVISITED:
                self._visit(dep, state)
        state[name] = _VISITED

    def validate_duplicate_steps(self) -> None:
        """
        Self-check on generated steps: the same named step twice in one job
        means a generator emitted it twice. Unnamed steps are ignored.
        """
        for name in self._order:
            seen: Dict[str, int] = {}
            for idx, step in enumerate(self._jobs[name].steps):
                step_name = extract_step_name(step)
                if not step_name:
                    continue
                if step_name in seen:
                    raise DuplicateStepError(name, step_name, seen[step_name], idx)
                seen[step_name] = idx
        get_console().print_debug("No duplicate steps detected in any job")

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_order(self) -> List[str]:
        """
        Jobs ordered so every job comes after everything it needs.

        Kahn's algorithm; among ready jobs the alphabetically first one is
        always taken next, which makes the order stable across runs.
        """
        self.validate_dependencies()

        indeg: Dict[str, int] = {name: len(self._jobs[name].needs) for name in self._order}
        queue = [name for name in self._order if indeg[name] == 0]
        result: List[str] = []

        while queue:
            queue.sort()
            current = queue.pop(0)
            result.append(current)

            for name in self._order:
                for dep in self._jobs[name].needs:
                    if dep == current:
                        indeg[name] -= 1
                        if indeg[name] == 0:
                            queue.append(name)

        return result

    def execution_levels(self) -> List[List[str]]:
        """
        Group jobs into stages. Every job in a stage only needs jobs from
        earlier stages, so each stage could run in parallel.
        """
        self.validate_dependencies()

        dependents: Dict[str, List[str]] = {name: [] for name in self._order}
        indeg: Dict[str, int] = {}
        for name in self._order:
            needs = set(self._jobs[name].needs)
            indeg[name] = len(needs)
            for dep in needs:
                dependents[dep].append(name)

        level = [name for name in self._order if indeg[name] == 0]
        levels: List[List[str]] = []
        while level:
            levels.append(level)
            nxt: List[str] = []
            for node in level:
                for child in dependents[node]:
                    indeg[child] -= 1
                    if indeg[child] == 0:
                        nxt.append(child)
            level = sorted(nxt)

        return levels

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> str:
        """Render the `jobs:` block (alphabetical order, not execution order)."""
        return render_jobs(self)
