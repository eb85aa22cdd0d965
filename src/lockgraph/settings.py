from __future__ import annotations
import os

MAX_EXPRESSION_LINE_LENGTH = int(os.environ.get("LOCKGRAPH_MAX_EXPRESSION_LINE_LENGTH", "120"))
EXPRESSION_BREAK_THRESHOLD = int(os.environ.get("LOCKGRAPH_EXPRESSION_BREAK_THRESHOLD", "100"))
STRICT_ARTIFACTS = os.environ.get("LOCKGRAPH_STRICT_ARTIFACTS", "").lower() in ("1", "true", "yes")
DEFAULT_WORKFLOW = os.environ.get("LOCKGRAPH_DEFAULT_WORKFLOW", "lockgraph_workflow.py")
