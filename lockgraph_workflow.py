# lockgraph_workflow.py
# Example workflow: an agent job producing a patch, threat detection on it,
# and a safe-outputs job applying it.
from __future__ import annotations
from lockgraph import wf, job, sh, build, matrix


def workflow():
    return wf(
        # Activation - cheap gate that decides whether the agent runs at all
        job(
            "activation",
            sh("Check workflow file timestamps", "node check_workflow_timestamp_api.cjs"),
            permissions="contents: read",
            timeout_minutes=5,
            outputs={"activated": "${{ steps.check.outputs.activated }}"},
        ),

        # Agent - runs the engine and uploads its prompt + patch
        build("agent")
        .depends_on("activation")
        .when("needs.activation.outputs.activated == 'true'")
        .with_permissions(contents="read", issues="read")
        .timeout(20)
        .define_step("Run agent", "gh aw run --prompt /tmp/gh-aw/aw-prompts/prompt.txt")
        .upload("agent-artifacts", "/tmp/gh-aw/aw-prompts/prompt.txt", "/tmp/gh-aw/aw.patch"),

        # Detection - scans the patch before anything is written back
        build("detection")
        .depends_on("agent")
        .download("/tmp/gh-aw/threat-detection/", name="agent-artifacts")
        .define_step("Scan patch", "node setup_threat_detection.cjs /tmp/gh-aw/threat-detection/aw.patch"),

        # Safe outputs - applies the patch once detection passes
        build("safe_outputs")
        .depends_on("agent", "detection")
        .with_permissions(contents="write", pull_requests="write")
        .download("/tmp/gh-aw/", pattern="agent-*")
        .define_step("Apply patch", "git am /tmp/gh-aw/agent-artifacts/aw.patch"),

        # Lint on every supported node version, in parallel with the agent
        matrix("node", ["20", "22"]).jobs(
            lambda v: job(
                f"lint-node{v}",
                sh("Lint", "npm ci && npm run lint", env={"NODE_VERSION": v}),
                needs=["activation"],
            )
        ),
    )
