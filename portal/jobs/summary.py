"""
Job summary card: display values, action enablement and outbound links for a
single job. Everything here tolerates missing job fields.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel

from portal.core.config import settings
from portal.jobs.hints import HintMessage, derive_hint
from portal.jobs.state import JobState, classify_job
from portal.schemas.jobs import JobInfo, JobStatus

STOPPABLE_STATES = frozenset({JobState.RUNNING, JobState.WAITING})

AUTO_RELOAD_OPTIONS: tuple[tuple[int, str], ...] = (
    (0, "Disable Auto Refresh"),
    (10_000, "Refresh every 10s"),
    (30_000, "Refresh every 30s"),
    (60_000, "Refresh every 60s"),
)
AUTO_RELOAD_INTERVALS = frozenset(key for key, _ in AUTO_RELOAD_OPTIONS)

STATUS_COLORS = {
    JobState.WAITING: "#F9B61A",
    JobState.RUNNING: "#579AE6",
    JobState.STOPPING: "#579AE6",
    JobState.SUCCEEDED: "#54D373",
    JobState.FAILED: "#E06260",
    JobState.STOPPED: "#B1B5B8",
}

MESSAGE_BAR_TYPES = {
    JobState.WAITING: "warning",
    JobState.RUNNING: "success",
    JobState.STOPPING: "severeWarning",
    JobState.SUCCEEDED: "success",
    JobState.FAILED: "remove",
    JobState.STOPPED: "blocked",
}

NOT_AVAILABLE = "N/A"


class SummaryActions(BaseModel):
    clone: bool = False
    stop: bool = False
    view_job_config: bool = False
    view_application_summary: bool = False
    retries: bool = False

    model_config = {"frozen": True}


class JobSummary(BaseModel):
    name: str
    username: str
    state: JobState
    badge_color: str
    message_bar_type: str
    start_time: str
    duration: str
    virtual_cluster: str | None = None
    retries: int | None = None
    hint: HintMessage | None = None
    actions: SummaryActions
    tracking_url: str | None = None
    metrics_url: str
    clone_url: str
    attempts_url: str


def is_clonable(job_config: Any) -> bool:
    """Only configs the submit page can load again may be cloned."""
    if not isinstance(job_config, dict) or not job_config:
        return False
    if str(job_config.get("protocolVersion", "")) == "2":
        return True
    return isinstance(job_config.get("taskRoles"), (dict, list)) and bool(job_config["taskRoles"])


def summary_actions(job: JobInfo, job_config: dict[str, Any] | None) -> SummaryActions:
    status = job.job_status
    return SummaryActions(
        clone=job_config is not None and is_clonable(job_config),
        stop=classify_job(job) in STOPPABLE_STATES,
        view_job_config=job_config is not None,
        view_application_summary=bool(status.app_exit_diagnostics),
        retries=status.retries is not None,
    )


def _from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def print_date_time(millis: int | None) -> str:
    if millis is None:
        return NOT_AVAILABLE
    return _from_millis(millis).strftime("%Y/%m/%d %H:%M:%S")


def get_duration_string(status: JobStatus, now: datetime | None = None) -> str:
    if status.created_time is None:
        return NOT_AVAILABLE
    start = _from_millis(status.created_time)
    if status.completed_time is not None:
        end = _from_millis(status.completed_time)
    else:
        end = now or datetime.now(timezone.utc)
    total = max(int((end - start).total_seconds()), 0)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m {seconds}s"
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def get_job_metrics_url(username: str, job_name: str) -> str:
    query = urlencode({"var-job": f"{username}~{job_name}"})
    return f"{settings.grafana_uri}/dashboard/db/joblevelmetrics?{query}"


def get_clone_url(username: str, job_name: str) -> str:
    query = urlencode({"op": "resubmit", "type": "job", "user": username, "jobname": job_name})
    return f"{settings.submit_path}?{query}"


def get_job_attempts_url(username: str, job_name: str) -> str:
    return f"{settings.job_retry_path}?{urlencode({'username': username, 'jobName': job_name})}"


def build_job_summary(
    job: JobInfo,
    job_config: dict[str, Any] | None,
    username: str,
    job_name: str,
    now: datetime | None = None,
) -> JobSummary:
    status = job.job_status
    state = classify_job(job)
    return JobSummary(
        name=job.name or job_name,
        username=status.username or username,
        state=state,
        badge_color=STATUS_COLORS[state],
        message_bar_type=MESSAGE_BAR_TYPES[state],
        start_time=print_date_time(status.created_time),
        duration=get_duration_string(status, now=now),
        virtual_cluster=status.virtual_cluster,
        retries=status.retries,
        hint=derive_hint(job),
        actions=summary_actions(job, job_config),
        tracking_url=status.app_tracking_url,
        metrics_url=get_job_metrics_url(username, job_name),
        clone_url=get_clone_url(username, job_name),
        attempts_url=get_job_attempts_url(username, job_name),
    )
