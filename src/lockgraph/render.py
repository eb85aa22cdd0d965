# render.py
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from . import settings
from .model import Job
from .ui.console import get_console

if TYPE_CHECKING:
    from .dag import JobManager


ZIZMOR_WORKFLOW_RUN_COMMENT = (
    "# zizmor: ignore[dangerous-triggers] - workflow_run trigger is secured with role and fork validation"
)

_OPERATORS = ("&&", "||")


# ---------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------

def break_long_expression(expression: str, threshold: Optional[int] = None) -> List[str]:
    """
    Split a long single-line expression into lines for a folded `>` block.

    A line ends right after a `&&` / `||` operator once it is at least
    `threshold` characters long. Operators inside quoted strings are left
    alone. Folding joins the lines back with single spaces.
    """
    if threshold is None:
        threshold = settings.EXPRESSION_BREAK_THRESHOLD

    lines: List[str] = []
    current = ""
    quote = ""
    i = 0
    while i < len(expression):
        ch = expression[i]
        if quote:
            current += ch
            if ch == quote:
                quote = ""
            i += 1
            continue
        if ch in ("'", '"'):
            quote = ch
            current += ch
            i += 1
            continue
        if expression.startswith(_OPERATORS, i):
            current += expression[i:i + 2]
            i += 2
            if len(current.strip()) >= threshold:
                lines.append(current.strip())
                current = ""
            continue
        current += ch
        i += 1

    if current.strip():
        lines.append(current.strip())
    return lines


def _render_if(job: Job) -> str:
    out = ""
    if job.workflow_run_safety_checks:
        out += f"    {ZIZMOR_WORKFLOW_RUN_COMMENT}\n"

    multiline = "\n" in job.if_
    if not multiline and len(job.if_) <= settings.MAX_EXPRESSION_LINE_LENGTH:
        return out + f"    if: {quote_scalar(job.if_)}\n"

    out += "    if: >\n"
    if multiline:
        lines = [line for line in job.if_.split("\n") if line.strip()]
    else:
        lines = break_long_expression(job.if_)
    for line in lines:
        out += f"      {line.strip()}\n"
    return out


# ---------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------

_MAPPING_ENTRY = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*: \S")
_INDICATORS = tuple("*&!|>'\"%@[]{},#?:-`")


def quote_scalar(value: str) -> str:
    """Single-quote a one-line value that YAML would not read back as plain text."""
    if (
        not value
        or value.startswith(_INDICATORS)
        or value.endswith(":")
        or value != value.strip()
        or ": " in value
        or " #" in value
    ):
        return "'" + value.replace("'", "''") + "'"
    return value


def _render_opaque(key: str, value: str) -> str:
    """
    `key: value` for scalars; mapping text (multi-line, or a single
    `name: v` entry with a bare name) becomes a nested block with relative
    indentation kept; a value already starting with `key:` is pre-rendered
    and emitted as is.
    """
    if value.startswith(f"{key}:"):
        return f"    {value}\n"
    if "\n" in value or _MAPPING_ENTRY.match(value):
        body = "".join(f"      {line.rstrip()}\n" for line in value.split("\n") if line.strip())
        return f"    {key}:\n{body}"
    return f"    {key}: {quote_scalar(value)}\n"


def format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _render_mapping(key: str, values: Dict[str, Any]) -> str:
    out = f"    {key}:\n"
    for k in sorted(values):
        out += f"      {k}: {quote_scalar(format_scalar(values[k]))}\n"
    return out


# ---------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------

def render_job(job: Job) -> str:
    """Render one job. Field order is fixed; the trailing blank line separates jobs."""
    out = f"  {job.name}:\n"

    if job.display_name:
        out += f"    name: {job.display_name}\n"

    if len(job.needs) == 1:
        out += f"    needs: {job.needs[0]}\n"
    elif job.needs:
        out += "    needs:\n"
        for dep in sorted(job.needs):
            out += f"      - {dep}\n"

    if job.if_:
        out += _render_if(job)

    if job.runs_on:
        out += _render_opaque("runs-on", job.runs_on)
    if job.environment:
        out += _render_opaque("environment", job.environment)
    if job.container:
        out += _render_opaque("container", job.container)
    if job.services:
        out += _render_opaque("services", job.services)
    if job.permissions:
        out += _render_opaque("permissions", job.permissions)
    if job.concurrency:
        out += _render_opaque("concurrency", job.concurrency)
    if job.timeout_minutes > 0:
        out += f"    timeout-minutes: {job.timeout_minutes}\n"

    if job.env:
        out += _render_mapping("env", job.env)
    if job.outputs:
        out += _render_mapping("outputs", job.outputs)

    if job.uses:
        out += f"    uses: {job.uses}\n"
        if job.with_:
            out += _render_mapping("with", job.with_)
        if job.secrets:
            out += _render_mapping("secrets", job.secrets)
    elif job.steps:
        out += "    steps:\n"
        for step in job.steps:
            out += step

    return out + "\n"


def render_jobs(manager: "JobManager") -> str:
    """
    Render every job of `manager` as a `jobs:` block.

    Jobs come out in name order. GitHub derives execution order from
    `needs:`, so declaration order only has to be stable.
    """
    get_console().print_debug(f"Rendering {len(manager)} jobs to YAML")
    out = "jobs:\n"
    for name in manager.job_names:
        out += render_job(manager.get_job(name))
    return out
