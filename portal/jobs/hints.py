"""
Hint message shown above the job summary actions.
Pure function of the job record, no I/O.
"""
from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel

from portal.jobs.state import JobState, classify_job
from portal.schemas.jobs import JobInfo

# Exit code the runtime reports when the user's own command failed.
USER_ERROR_EXIT_CODE = 177
RESOURCE_CONFLICT_THRESHOLD = 3

_EXIT_CODE_RE = re.compile(r"<Raw>\[ExitCode\]: (\d+)")
_CONTAINER_ID_RE = re.compile(r'^\s*"containerId"\s*:\s*"(.*?)",?\s*$', re.MULTILINE)


class HintKind(str, Enum):
    USER_ERROR = "User Error"
    SYSTEM_ERROR = "System Error"
    RESOURCE_CONFLICTS = "Resource Conflicts"


class HintLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class HintMessage(BaseModel):
    kind: HintKind
    level: HintLevel
    resolution: str
    container_id: str | None = None
    exit_code: int | None = None
    conflict_count: int | None = None
    # Summary view action linked from the resolution text, if any.
    link_action: str | None = None
    link_text: str | None = None

    model_config = {"frozen": True}


def extract_user_exit_code(diagnostics: str | None) -> int | None:
    if not diagnostics:
        return None
    match = _EXIT_CODE_RE.search(diagnostics)
    if not match:
        return None
    # A zero exit code carries no information for the user.
    return int(match.group(1)) or None


def extract_container_id(diagnostics: str | None) -> str | None:
    if not diagnostics:
        return None
    match = _CONTAINER_ID_RE.search(diagnostics)
    if not match:
        return None
    return match.group(1) or None


def derive_hint(job: JobInfo | None) -> HintMessage | None:
    if job is None:
        return None
    status = job.job_status
    state = classify_job(job)

    if state == JobState.FAILED:
        if status.app_exit_code == USER_ERROR_EXIT_CODE:
            diagnostics = status.app_exit_diagnostics
            return HintMessage(
                kind=HintKind.USER_ERROR,
                level=HintLevel.ERROR,
                container_id=extract_container_id(diagnostics),
                exit_code=extract_user_exit_code(diagnostics),
                resolution="Please check container's Stdout and Stderr for more information.",
            )
        return HintMessage(
            kind=HintKind.SYSTEM_ERROR,
            level=HintLevel.ERROR,
            resolution=(
                "Please send the {link} to your administrator for further investigation."
            ),
            link_action="open_app_summary",
            link_text="application summary",
        )

    if state == JobState.WAITING:
        resource_retries = status.retry_details.resource if status.retry_details else None
        if resource_retries is not None and resource_retries >= RESOURCE_CONFLICT_THRESHOLD:
            return HintMessage(
                kind=HintKind.RESOURCE_CONFLICTS,
                level=HintLevel.WARNING,
                conflict_count=resource_retries,
                resolution=(
                    "Please adjust the resource requirement in your {link}, "
                    "or wait till other jobs release more resources back to the system."
                ),
                link_action="open_job_config",
                link_text="job config",
            )

    return None
