# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from lockgraph import settings
from lockgraph.errors import ArtifactValidationError, CompilerBugError, JobGraphError
from lockgraph.ui.console import Console, get_console, set_console
from lockgraph.workflow import CompiledWorkflow, compile_workflow, load_workflow


def find_workflow_files() -> list[Path]:
    """
    Find all workflow files in the current directory.

    Returns:
        List of Path objects for workflow files
    """
    workflow_files = []
    current_dir = Path(".")

    default_workflow = current_dir / settings.DEFAULT_WORKFLOW
    if default_workflow.exists():
        workflow_files.append(default_workflow)

    for path in current_dir.glob("*_workflow.py"):
        if path != default_workflow:
            workflow_files.append(path)

    return sorted(workflow_files)


def discover_workflow(workflow_arg: str | None) -> Path:
    """
    Discover workflow file from argument or default.

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists() and workflow_path.suffix != ".py":
            workflow_path = Path(str(workflow_path) + ".py")
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Create a workflow file or specify a different path:\n  lockgraph compile --workflow my_workflow.py",
            )
            sys.exit(1)
        return workflow_path

    workflow_files = find_workflow_files()

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=[
                "Looked for:",
                f"  {settings.DEFAULT_WORKFLOW}",
                "  *_workflow.py",
            ],
            suggestion="Specify a workflow explicitly:\n  lockgraph compile --workflow my_workflow.py",
        )
        sys.exit(1)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a workflow explicitly:\n  lockgraph compile --workflow {settings.DEFAULT_WORKFLOW}",
        )
        sys.exit(1)

    return workflow_files[0]


def _compile(workflow: str | None, announce: bool = False, **kwargs) -> CompiledWorkflow:
    """Load + compile, turning every failure into a clean message and exit code 1."""
    console = get_console()
    workflow_path = discover_workflow(workflow)

    try:
        definition = load_workflow(workflow_path)
    except Exception as e:
        console.print_error(
            "Failed to load workflow",
            f"Could not load workflow from {workflow_path}",
            details=[str(e)],
        )
        console.print_exception(e)
        sys.exit(1)

    console.print_debug(f"Loaded {len(definition.jobs)} job(s) from {workflow_path}")
    if announce:
        console.print_compile_started(str(workflow_path), len(definition.jobs))

    try:
        return compile_workflow(definition, **kwargs)
    except JobGraphError as e:
        console.print_error("Invalid job graph", str(e))
        sys.exit(1)
    except ArtifactValidationError as e:
        console.print_error(
            "Unresolved artifacts",
            f"{len(e.errors)} artifact download(s) could not be resolved",
            details=[f"job {err.job}: {err}" for err in e.errors],
            suggestion="Add the uploading job to `needs`, or fix the artifact name/pattern.",
        )
        sys.exit(1)
    except CompilerBugError as e:
        console.print_error(
            "Internal error",
            str(e),
            suggestion="This is a bug in the step generator, not in your workflow.",
        )
        sys.exit(1)


def _warn_artifacts(compiled: CompiledWorkflow) -> None:
    if compiled.artifact_errors:
        get_console().print_warning(
            f"{len(compiled.artifact_errors)} artifact download(s) could not be resolved",
            details=[f"job {e.job}: {e}" for e in compiled.artifact_errors],
        )


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and component tracing)",
)
@click.pass_context
def cli(ctx, debug):
    """lockgraph: compile job graphs and artifact flows to GitHub Actions YAML."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command(name="compile")
@click.option("--workflow", default=None, help=f"Workflow file path (defaults to {settings.DEFAULT_WORKFLOW} if present)")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write the jobs block here instead of stdout")
@click.option("--strict-artifacts/--lenient-artifacts", default=None, help="Only accept artifacts uploaded by jobs in `needs`")
@click.option("--fail-on-artifacts", is_flag=True, default=False, help="Treat unresolved artifact downloads as errors")
@click.pass_context
def compile_cmd(ctx, workflow, output, strict_artifacts, fail_on_artifacts):
    """Render the `jobs:` block of a workflow."""
    compiled = _compile(workflow, strict_artifacts=strict_artifacts, fail_on_artifacts=fail_on_artifacts)
    _warn_artifacts(compiled)

    if output:
        Path(output).write_text(compiled.yaml)
        get_console().print_info(f"Wrote {len(compiled.order)} job(s) to {output}")
    else:
        click.echo(compiled.yaml, nl=False)


@cli.command()
@click.option("--workflow", default=None, help="Workflow file path")
@click.option("--strict-artifacts/--lenient-artifacts", default=None, help="Only accept artifacts uploaded by jobs in `needs`")
@click.pass_context
def validate(ctx, workflow, strict_artifacts):
    """Validate the job graph, generated steps and artifact references."""
    compiled = _compile(workflow, strict_artifacts=strict_artifacts, fail_on_artifacts=True)
    get_console().print_success(f"valid ({len(compiled.order)} jobs)")


@cli.command()
@click.option("--workflow", default=None, help="Workflow file path")
@click.pass_context
def plan(ctx, workflow):
    """Show execution order and parallel stages."""
    console = get_console()
    compiled = _compile(workflow, announce=True)
    console.print_header("EXECUTION ORDER")
    console.print_order(compiled.order)
    console.print_header("STAGES")
    console.print_levels(compiled.levels)


@cli.command()
@click.option("--workflow", default=None, help="Workflow file path")
@click.option("--strict-artifacts/--lenient-artifacts", default=None, help="Only accept artifacts uploaded by jobs in `needs`")
@click.pass_context
def artifacts(ctx, workflow, strict_artifacts):
    """Show where every downloaded artifact file ends up."""
    console = get_console()
    compiled = _compile(workflow, announce=True, strict_artifacts=strict_artifacts)
    _warn_artifacts(compiled)

    console.print_header("ARTIFACT FILES")
    for job_name, files in compiled.artifact_files().items():
        for f in files:
            console.print_artifact_file(job_name, f.artifact_name, f.original_path, f.download_path)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
