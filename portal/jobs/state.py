"""
Humanized job state.

classify_job maps the raw state reported by the job-execution system onto the
six states the portal shows. It is total: every job gets exactly one state.
"""
from enum import Enum

from portal.schemas.jobs import JobInfo, JobStatus


class JobState(str, Enum):
    WAITING = "Waiting"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    FAILED = "Failed"
    SUCCEEDED = "Succeeded"


_TERMINAL_STATES = {
    "SUCCEEDED": JobState.SUCCEEDED,
    "FAILED": JobState.FAILED,
    "STOPPED": JobState.STOPPED,
}


def classify_status(status: JobStatus) -> JobState:
    raw_state = (status.state or "").upper()
    stop_requested = (status.execution_type or "").upper() == "STOP"

    if raw_state in _TERMINAL_STATES:
        return _TERMINAL_STATES[raw_state]
    if raw_state == "STOPPING":
        return JobState.STOPPING
    if raw_state == "RUNNING":
        return JobState.STOPPING if stop_requested else JobState.RUNNING
    # WAITING, plus anything the scheduler has not reported a known state for yet
    return JobState.STOPPING if stop_requested else JobState.WAITING


def classify_job(job: JobInfo | None) -> JobState:
    if job is None:
        return JobState.WAITING
    return classify_status(job.job_status)
