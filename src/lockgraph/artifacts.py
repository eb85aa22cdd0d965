# artifacts.py
from __future__ import annotations

import posixpath
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from . import settings
from .errors import (
    ArtifactValidationError,
    InvalidDownloadError,
    InvalidUploadError,
    UnresolvedArtifactError,
)
from .model import ArtifactDownload, ArtifactFile, ArtifactMatch, ArtifactUpload
from .ui.console import get_console

# ---------------------------------------------------------------------
# Model of actions/upload-artifact@v4 + actions/download-artifact@v4:
#
#   upload:   every upload creates a new immutable artifact; the deepest
#             directory shared by all uploaded files is stripped
#   download: by name       -> <path>/<file>
#             by pattern    -> <path>/<artifact-name>/<file>
#             pattern+merge -> <path>/<file>
#
# Paths are runner paths, so POSIX rules apply whatever the host OS.
# ---------------------------------------------------------------------


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(path)
    # normpath keeps a leading "//" (POSIX allows it); runner paths don't need it
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _base(path: str) -> str:
    if path == "/":
        return "/"
    return posixpath.basename(path) or "."


def _join(*parts: str) -> str:
    parts = tuple(p for p in parts if p)
    if not parts:
        return ""
    return _clean("/".join(parts))


def _relative_to(parent: str, path: str) -> Optional[str]:
    if path == parent:
        return "."
    if path.startswith(parent.rstrip("/") + "/"):
        return path[len(parent.rstrip("/")) + 1:]
    return None


# ---------------------------------------------------------------------
# Path normalization
# ---------------------------------------------------------------------

def find_common_parent(paths: List[str]) -> str:
    """
    Deepest directory shared by every path, or "" when there is none.

    Segments are compared position by position, never including a path's
    last segment, so the result is always a directory. Absolute inputs give
    an absolute result.
    """
    if not paths:
        return ""
    if len(paths) == 1:
        return posixpath.dirname(_clean(paths[0])) or "."

    split: List[List[str]] = []
    for p in paths:
        cleaned = _clean(p)
        if cleaned.startswith("/"):
            cleaned = cleaned[1:]
        split.append(cleaned.split("/"))

    min_len = min(len(parts) for parts in split)
    common: List[str] = []
    for i in range(min_len - 1):
        part = split[0][i]
        if all(parts[i] == part for parts in split[1:]):
            common.append(part)
        else:
            break

    if not common:
        return ""

    result = _join(*common)
    if paths[0].startswith("/"):
        result = "/" + result
    return result


def compute_normalized_paths(paths: List[str]) -> Dict[str, str]:
    """
    Map each (cleaned) path to where it sits inside the uploaded artifact.

        ["/tmp/gh-aw/aw-prompts/prompt.txt", "/tmp/gh-aw/aw.patch"]
        -> {"/tmp/gh-aw/aw-prompts/prompt.txt": "aw-prompts/prompt.txt",
            "/tmp/gh-aw/aw.patch": "aw.patch"}

    A single path keeps only its last component.
    """
    console = get_console()
    if not paths:
        return {}

    if len(paths) == 1:
        path = _clean(paths[0])
        console.print_debug(f"Single path normalization: {path} -> {_base(path)}")
        return {path: _base(path)}

    parent = find_common_parent(paths)
    console.print_debug(f"Common parent for {len(paths)} paths: {parent!r}")

    normalized: Dict[str, str] = {}
    for p in paths:
        cleaned = _clean(p)
        rel = None
        if parent and parent != ".":
            rel = _relative_to(parent, cleaned)
        # no shared parent (or mixed absolute/relative input): keep the file name
        normalized[cleaned] = rel if rel is not None else _base(cleaned)
    return normalized


# ---------------------------------------------------------------------
# Download paths
# ---------------------------------------------------------------------

def compute_download_path(download: ArtifactDownload, upload: ArtifactUpload, original_path: str) -> str:
    """
    Local path of `original_path` (one of `upload.paths`) after `download`
    runs. Pure: identical inputs always give the same path.
    """
    normalized = None
    if upload.normalized_paths:
        normalized = upload.normalized_paths.get(_clean(original_path))
    if normalized is None:
        normalized = original_path[2:] if original_path.startswith("./") else original_path

    if download.pattern and not download.merge_multiple:
        # one subdirectory per matched artifact
        return _join(download.path, upload.name, normalized)
    return _join(download.path, normalized)


def matches_pattern(name: str, pattern: str) -> bool:
    """
    Minimal wildcard matching for artifact names.

    Supports exactly: no `*` (exact), `*suffix`, `prefix*` and
    `prefix*suffix`. Anything else falls back to exact comparison.
    """
    if "*" not in pattern:
        return name == pattern
    if pattern.startswith("*"):
        return name.endswith(pattern[1:])
    if pattern.endswith("*"):
        return name.startswith(pattern[:-1])

    parts = pattern.split("*")
    if len(parts) == 2:
        prefix, suffix = parts
        return (
            name.startswith(prefix)
            and name.endswith(suffix)
            and len(name) >= len(prefix) + len(suffix)
        )
    return name == pattern


# ---------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------

class ArtifactTracker:
    """
    Records artifact uploads and downloads per job for one compilation.

    Lookups search the downloading job's dependencies first and then, for
    compatibility with callers that don't wire `depends_on`, every job.
    With `strict=True` those global matches are rejected.

    Not thread-safe: record everything first, then query.
    """

    def __init__(self, strict: Optional[bool] = None) -> None:
        self.strict = settings.STRICT_ARTIFACTS if strict is None else strict
        self._uploads: Dict[str, List[ArtifactUpload]] = {}
        self._downloads: Dict[str, List[ArtifactDownload]] = {}
        self._current_job = ""

    # ------------------------------------------------------------------
    # Current job cursor
    # ------------------------------------------------------------------

    def set_current_job(self, job_name: str) -> None:
        get_console().print_debug(f"Setting current job: {job_name}")
        self._current_job = job_name

    @property
    def current_job(self) -> str:
        return self._current_job

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_upload(self, upload: ArtifactUpload) -> ArtifactUpload:
        """Store an upload (job name defaulted, paths normalized) and return the stored record."""
        if not upload.name:
            raise InvalidUploadError("must have a name")
        if not upload.paths:
            raise InvalidUploadError("must have at least one path")

        stored = replace(
            upload,
            paths=list(upload.paths),
            job_name=upload.job_name or self._current_job,
            normalized_paths=compute_normalized_paths(upload.paths),
        )
        get_console().print_debug(
            f"Recording upload: artifact={stored.name}, job={stored.job_name}, "
            f"paths={stored.paths}, normalized={stored.normalized_paths}"
        )
        self._uploads.setdefault(stored.job_name, []).append(stored)
        return stored

    def record_download(self, download: ArtifactDownload) -> ArtifactDownload:
        if not download.name and not download.pattern:
            raise InvalidDownloadError("must have either name or pattern")
        if not download.path:
            raise InvalidDownloadError("must have a path")

        stored = replace(
            download,
            depends_on=list(download.depends_on),
            job_name=download.job_name or self._current_job,
        )
        get_console().print_debug(
            f"Recording download: name={stored.name}, pattern={stored.pattern}, "
            f"job={stored.job_name}, path={stored.path}"
        )
        self._downloads.setdefault(stored.job_name, []).append(stored)
        return stored

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def compute_download_path(self, download: ArtifactDownload, upload: ArtifactUpload, original_path: str) -> str:
        return compute_download_path(download, upload, original_path)

    def _search(self, job_names: Iterable[str], name: str = "", pattern: str = "") -> Optional[ArtifactUpload]:
        for job_name in job_names:
            for upload in self._uploads.get(job_name, []):
                if (name and upload.name == name) or (pattern and matches_pattern(upload.name, pattern)):
                    return upload
        return None

    def _locate(self, depends_on: List[str], name: str = "", pattern: str = "") -> Optional[ArtifactMatch]:
        upload = self._search(depends_on, name=name, pattern=pattern)
        if upload is not None:
            return ArtifactMatch(upload=upload, scoped=True)
        upload = self._search(sorted(self._uploads), name=name, pattern=pattern)
        if upload is not None:
            get_console().print_debug(
                f"Found artifact {upload.name} uploaded by job {upload.job_name} (global search)"
            )
            return ArtifactMatch(upload=upload, scoped=False)
        return None

    def locate_uploaded_artifact(self, artifact_name: str, depends_on: List[str]) -> Optional[ArtifactMatch]:
        """Like `find_uploaded_artifact`, but tells scoped and global matches apart."""
        return self._locate(depends_on, name=artifact_name)

    def find_uploaded_artifact(self, artifact_name: str, depends_on: List[str]) -> Optional[ArtifactUpload]:
        """First upload named `artifact_name`, preferring jobs in `depends_on`."""
        match = self._locate(depends_on, name=artifact_name)
        if match is None or (self.strict and not match.scoped):
            get_console().print_debug(f"Artifact {artifact_name} not found in any job")
            return None
        return match.upload

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_download(self, download: ArtifactDownload) -> None:
        """Raise UnresolvedArtifactError if no upload can satisfy `download`."""
        if download.name:
            match = self._locate(download.depends_on, name=download.name)
            if match is None:
                raise UnresolvedArtifactError(download.job_name, artifact=download.name)
            if self.strict and not match.scoped:
                raise UnresolvedArtifactError(
                    download.job_name, artifact=download.name, unscoped_match=match.upload.job_name
                )

        if download.pattern:
            match = self._locate(download.depends_on, pattern=download.pattern)
            if match is None:
                raise UnresolvedArtifactError(download.job_name, pattern=download.pattern)
            if self.strict and not match.scoped:
                raise UnresolvedArtifactError(
                    download.job_name, pattern=download.pattern, unscoped_match=match.upload.job_name
                )

    def validate_all_downloads(self) -> List[UnresolvedArtifactError]:
        """Every download that can't be resolved, by job name then recording order."""
        errors: List[UnresolvedArtifactError] = []
        for job_name in sorted(self._downloads):
            for download in self._downloads[job_name]:
                try:
                    self.validate_download(download)
                except UnresolvedArtifactError as e:
                    errors.append(e)

        if errors:
            get_console().print_debug(f"Validation found {len(errors)} error(s)")
        else:
            get_console().print_debug("All downloads validated successfully")
        return errors

    def check_all_downloads(self) -> None:
        """Raise one ArtifactValidationError listing every unresolved download."""
        errors = self.validate_all_downloads()
        if errors:
            raise ArtifactValidationError(errors)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def resolve_download(self, download: ArtifactDownload) -> List[ArtifactFile]:
        """Every uploaded file `download` retrieves, with its local path."""
        if download.pattern:
            uploads = self._matching_uploads(download)
        else:
            upload = self.find_uploaded_artifact(download.name, download.depends_on)
            uploads = [upload] if upload is not None else []

        return [
            ArtifactFile(
                artifact_name=upload.name,
                original_path=path,
                download_path=compute_download_path(download, upload, path),
                job_name=upload.job_name,
            )
            for upload in uploads
            for path in upload.paths
        ]

    def _matching_uploads(self, download: ArtifactDownload) -> List[ArtifactUpload]:
        def collect(job_names: Iterable[str]) -> List[ArtifactUpload]:
            return [
                u
                for job_name in job_names
                for u in self._uploads.get(job_name, [])
                if matches_pattern(u.name, download.pattern)
            ]

        scoped = collect(download.depends_on)
        if scoped or self.strict:
            return scoped
        return collect(sorted(self._uploads))

    def uploads_for_job(self, job_name: str) -> List[ArtifactUpload]:
        return list(self._uploads.get(job_name, []))

    def downloads_for_job(self, job_name: str) -> List[ArtifactDownload]:
        return list(self._downloads.get(job_name, []))

    def all_artifacts(self) -> Dict[str, List[ArtifactUpload]]:
        return {job: list(uploads) for job, uploads in self._uploads.items()}

    def all_downloads(self) -> Dict[str, List[ArtifactDownload]]:
        return {job: list(downloads) for job, downloads in self._downloads.items()}

    def reset(self) -> None:
        """Forget everything, as if freshly constructed (strictness is kept)."""
        self._uploads = {}
        self._downloads = {}
        self._current_job = ""
        get_console().print_debug("Reset artifact tracker")
