"""Tests for job summary display values and action guards."""
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import make_job
from portal.jobs.state import JobState
from portal.jobs.summary import (
    build_job_summary,
    get_clone_url,
    get_duration_string,
    get_job_attempts_url,
    get_job_metrics_url,
    is_clonable,
    print_date_time,
    summary_actions,
)
from portal.schemas.jobs import JobInfo, JobStatus

CONFIG_V2 = {"protocolVersion": 2, "name": "job-1", "taskRoles": {"worker": {"instances": 1}}}
START_MS = int(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc).timestamp() * 1000)


class TestActions:
    @pytest.mark.parametrize("state, stoppable", [
        ("WAITING", True),
        ("RUNNING", True),
        ("STOPPING", False),
        ("STOPPED", False),
        ("FAILED", False),
        ("SUCCEEDED", False),
    ])
    def test_stop_only_for_waiting_or_running(self, state, stoppable):
        assert summary_actions(make_job(state=state), None).stop is stoppable

    def test_stop_disabled_when_stop_already_requested(self):
        job = make_job(state="RUNNING", executionType="STOP")
        assert summary_actions(job, None).stop is False

    def test_missing_config_disables_clone_and_view(self):
        actions = summary_actions(make_job(), None)
        assert actions.clone is False
        assert actions.view_job_config is False

    def test_clonable_config_enables_clone_and_view(self):
        actions = summary_actions(make_job(), CONFIG_V2)
        assert actions.clone is True
        assert actions.view_job_config is True

    def test_unclonable_config_can_still_be_viewed(self):
        actions = summary_actions(make_job(), {"foo": "bar"})
        assert actions.clone is False
        assert actions.view_job_config is True

    def test_application_summary_needs_diagnostics(self):
        assert summary_actions(make_job(appExitDiagnostics=""), None).view_application_summary is False
        assert summary_actions(make_job(appExitDiagnostics="oops"), None).view_application_summary is True

    def test_retries_link_needs_retries(self):
        assert summary_actions(make_job(), None).retries is False
        assert summary_actions(make_job(retries=0), None).retries is True


@pytest.mark.parametrize("config, expected", [
    (None, False),
    ({}, False),
    ("protocolVersion: 2", False),
    ({"protocolVersion": 2}, True),
    ({"protocolVersion": "2"}, True),
    ({"jobName": "legacy", "taskRoles": [{"name": "worker"}]}, True),
    ({"jobName": "legacy", "taskRoles": []}, False),
])
def test_is_clonable(config, expected):
    assert is_clonable(config) is expected


class TestFormatting:
    def test_print_date_time(self):
        assert print_date_time(START_MS) == "2024/01/01 12:00:00"
        assert print_date_time(None) == "N/A"

    def test_duration_of_finished_job(self):
        status = JobStatus(created_time=START_MS, completed_time=START_MS + (26 * 3600 + 3 * 60 + 4) * 1000)
        assert get_duration_string(status) == "1d 2h 3m 4s"

    def test_duration_of_running_job_uses_now(self):
        status = JobStatus(created_time=START_MS)
        now = datetime(2024, 1, 1, 12, 5, 7, tzinfo=timezone.utc)
        assert get_duration_string(status, now=now) == "5m 7s"

    def test_short_durations(self):
        assert get_duration_string(JobStatus(created_time=START_MS, completed_time=START_MS + 9_000)) == "9s"
        assert get_duration_string(JobStatus(created_time=START_MS, completed_time=START_MS + 3_600_000)) == "1h 0m 0s"

    def test_duration_without_created_time(self):
        assert get_duration_string(JobStatus()) == "N/A"


class TestLinks:
    def test_metrics_url(self):
        url = urlparse(get_job_metrics_url("alice", "job-1"))
        assert url.netloc == "grafana.test"
        assert url.path == "/dashboard/db/joblevelmetrics"
        assert parse_qs(url.query) == {"var-job": ["alice~job-1"]}

    def test_clone_url(self):
        url = urlparse(get_clone_url("alice", "job-1"))
        assert url.path == "/submit.html"
        assert parse_qs(url.query) == {"op": ["resubmit"], "type": ["job"], "user": ["alice"], "jobname": ["job-1"]}

    def test_attempts_url(self):
        url = urlparse(get_job_attempts_url("alice", "job-1"))
        assert url.path == "/job-retry.html"
        assert parse_qs(url.query) == {"username": ["alice"], "jobName": ["job-1"]}


def test_build_job_summary_tolerates_empty_job():
    summary = build_job_summary(JobInfo(), None, "alice", "job-1")
    assert summary.name == "job-1"
    assert summary.username == "alice"
    assert summary.state == JobState.WAITING
    assert summary.start_time == "N/A"
    assert summary.duration == "N/A"
    assert summary.hint is None
    assert summary.actions.clone is False
    assert summary.actions.stop is True


def test_build_job_summary_for_failed_job():
    job = make_job(
        state="FAILED",
        createdTime=START_MS,
        completedTime=START_MS + 60_000,
        virtualCluster="default",
        retries=2,
        appExitCode=3,
        appExitDiagnostics="boom",
        appTrackingUrl="http://tracking.test/app",
    )
    summary = build_job_summary(job, CONFIG_V2, "alice", "job-1")
    assert summary.state == JobState.FAILED
    assert summary.badge_color == "#E06260"
    assert summary.message_bar_type == "remove"
    assert summary.duration == "1m 0s"
    assert summary.virtual_cluster == "default"
    assert summary.retries == 2
    assert summary.hint.kind.value == "System Error"
    assert summary.actions.clone is True
    assert summary.actions.stop is False
    assert summary.tracking_url == "http://tracking.test/app"
