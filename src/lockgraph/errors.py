# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


# ----------------------------------------------------------------------
# Job graph errors (fatal: the graph cannot be compiled)
# ----------------------------------------------------------------------

class JobGraphError(Exception):
    """Base class for structural problems in the job graph."""


@dataclass
class EmptyJobNameError(JobGraphError):
    def __str__(self) -> str:
        return "job name cannot be empty"


@dataclass
class DuplicateJobError(JobGraphError):
    job: str

    def __str__(self) -> str:
        return f"job '{self.job}' already exists"


@dataclass
class UnknownDependencyError(JobGraphError):
    job: str
    dependency: str

    def __str__(self) -> str:
        return f"job '{self.job}' depends on non-existent job '{self.dependency}'"


@dataclass
class DependencyCycleError(JobGraphError):
    """
    Raised for the first back edge found while walking `needs`.

    `job` is the job being expanded, `dependency` the already-in-progress
    job it points back to.
    """
    job: str
    dependency: str

    def __str__(self) -> str:
        return (
            f"cycle detected in job dependencies: job '{self.job}' "
            f"has circular dependency through '{self.dependency}'"
        )


# ----------------------------------------------------------------------
# Internal self-checks (the generator produced bad output)
# ----------------------------------------------------------------------

class CompilerBugError(Exception):
    """Base class for violated internal invariants. Never a user mistake."""


@dataclass
class DuplicateStepError(CompilerBugError):
    job: str
    step: str
    first_index: int
    index: int

    def __str__(self) -> str:
        return (
            f"compiler bug: duplicate step '{self.step}' found in job '{self.job}' "
            f"(positions {self.first_index} and {self.index})"
        )


# ----------------------------------------------------------------------
# Artifact errors
# ----------------------------------------------------------------------

class ArtifactError(Exception):
    """Base class for artifact upload/download problems."""


@dataclass
class InvalidUploadError(ArtifactError):
    reason: str

    def __str__(self) -> str:
        return f"artifact upload {self.reason}"


@dataclass
class InvalidDownloadError(ArtifactError):
    reason: str

    def __str__(self) -> str:
        return f"artifact download {self.reason}"


@dataclass
class UnresolvedArtifactError(ArtifactError):
    """A download that no recorded upload can satisfy."""
    job: str
    artifact: Optional[str] = None
    pattern: Optional[str] = None
    # set when a match exists but only outside the job's dependencies
    unscoped_match: Optional[str] = None

    def __str__(self) -> str:
        if self.artifact:
            msg = f"artifact '{self.artifact}' downloaded by job '{self.job}' not found in any dependent job"
        else:
            msg = f"no artifacts matching pattern '{self.pattern}' found for job '{self.job}'"
        if self.unscoped_match:
            msg += f" (uploaded by job '{self.unscoped_match}', which is not in needs)"
        return msg


@dataclass
class ArtifactValidationError(ArtifactError):
    """Every unresolved download of a compilation, reported together."""
    errors: List[UnresolvedArtifactError] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [f"{len(self.errors)} artifact download(s) could not be resolved:"]
        lines.extend(f"  job {e.job}: {e}" for e in self.errors)
        return "\n".join(lines)
