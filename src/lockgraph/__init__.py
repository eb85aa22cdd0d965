from .dsl import job, call, sh, uses, matrix, workflow, wf, JobBuilder, build
from .dag import JobManager
from .artifacts import ArtifactTracker, compute_download_path, compute_normalized_paths, matches_pattern
from .model import Job, ArtifactUpload, ArtifactDownload, ArtifactFile, ArtifactMatch, WorkflowDefinition
from .workflow import compile_workflow, load_workflow

__all__ = [
    "job", "call", "sh", "uses", "matrix", "workflow", "wf", "JobBuilder", "build",
    "JobManager", "ArtifactTracker", "compute_download_path", "compute_normalized_paths", "matches_pattern",
    "Job", "ArtifactUpload", "ArtifactDownload", "ArtifactFile", "ArtifactMatch", "WorkflowDefinition",
    "compile_workflow", "load_workflow",
]
