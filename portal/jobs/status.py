"""
"My job status" card on the home page: per-state job counts with deep links
into the job list.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from urllib.parse import urlencode

from pydantic import BaseModel

from portal.core.config import settings
from portal.jobs.state import JobState, classify_job
from portal.schemas.jobs import JobInfo


class JobStatusCounts(BaseModel):
    waiting: int = 0
    running: int = 0  # Running and Stopping together
    stopped: int = 0
    failed: int = 0
    succeeded: int = 0

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        return self.waiting + self.running + self.stopped + self.failed + self.succeeded


class StatusRow(BaseModel):
    icon: str
    name: str
    count: int
    link: str
    separated: bool

    model_config = {"frozen": True}


# (bucket, icon, classifier outputs counted in the bucket)
# Stopping jobs are shown as Running.
STATUS_BUCKETS: tuple[tuple[JobState, str, frozenset[JobState]], ...] = (
    (JobState.WAITING, "Clock", frozenset({JobState.WAITING})),
    (JobState.RUNNING, "Running", frozenset({JobState.RUNNING, JobState.STOPPING})),
    (JobState.STOPPED, "ErrorBadge", frozenset({JobState.STOPPED})),
    (JobState.FAILED, "Blocked", frozenset({JobState.FAILED})),
    (JobState.SUCCEEDED, "Completed", frozenset({JobState.SUCCEEDED})),
)


def count_job_states(jobs: Iterable[JobInfo] | None) -> JobStatusCounts:
    if not jobs:
        return JobStatusCounts()
    states = Counter(classify_job(job) for job in jobs)
    return JobStatusCounts(**{
        bucket.name.lower(): sum(states[member] for member in members)
        for bucket, _, members in STATUS_BUCKETS
    })


def job_list_link(status: JobState, username: str | None, base_path: str | None = None) -> str:
    query = urlencode({"status": status.value, "user": username or ""})
    return f"{base_path or settings.job_list_path}?{query}"


def build_status_rows(counts: JobStatusCounts, username: str | None) -> list[StatusRow]:
    rows = []
    last = len(STATUS_BUCKETS) - 1
    for index, (state, icon, _) in enumerate(STATUS_BUCKETS):
        rows.append(
            StatusRow(
                icon=icon,
                name=state.value,
                count=getattr(counts, state.name.lower()),
                link=job_list_link(state, username),
                separated=index != last,
            )
        )
    return rows
