"""Tests for the portal pages and the job detail websocket."""
import asyncio
from unittest.mock import AsyncMock

import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import make_job, make_token
from portal.api.routes.jobs import build_callbacks, handle_summary_message
from portal.core.errors import JobServiceError
from portal.jobs.summary_view import JobSummaryView


def _auth(username="alice"):
    return {"Authorization": f"Bearer {make_token(username)}"}


class TestHome:
    def test_renders_status_counts(self, api, job_client):
        job_client.list_jobs.return_value = [
            make_job(state="RUNNING", name="a"),
            make_job(state="RUNNING", executionType="STOP", name="b"),
            make_job(state="FAILED", name="c"),
        ]
        response = api.get("/home", headers=_auth())

        assert response.status_code == 200
        assert "My job status" in response.text
        assert "/job-list.html?status=Running&amp;user=alice" in response.text
        job_client.list_jobs.assert_called_once_with("alice")

    def test_token_cookie_is_accepted(self, api):
        api.cookies.set("token", make_token())
        response = api.get("/home")
        assert response.status_code == 200

    def test_job_service_down_shows_zero_counts(self, api, job_client):
        job_client.list_jobs.side_effect = JobServiceError("Job service is temporarily unavailable")
        response = api.get("/home", headers=_auth())
        assert response.status_code == 200
        assert "Job status is unavailable" in response.text


class TestJobDetail:
    def test_renders_summary_with_hint(self, api, job_client):
        job_client.get_job.return_value = make_job(
            state="FAILED",
            name="job-1",
            appExitCode=177,
            appExitDiagnostics='<Raw>[ExitCode]: 42\n  "containerId": "abc123",\n',
        )
        response = api.get("/job-detail", params={"username": "alice", "jobName": "job-1"}, headers=_auth())

        assert response.status_code == 200
        assert "User Error" in response.text
        assert "abc123" in response.text
        assert "42" in response.text
        job_client.get_job.assert_called_once_with("alice", "job-1")

    def test_job_service_error_renders_error_page(self, api, job_client):
        job_client.get_job.side_effect = JobServiceError("Job service returned 404 for /api/v2/jobs/alice~x")
        response = api.get("/job-detail", params={"username": "alice", "jobName": "x"}, headers=_auth())
        assert response.status_code == 502
        assert "Something went wrong" in response.text

    def test_requires_token(self, api):
        response = api.get("/job-detail", params={"username": "alice", "jobName": "job-1"})
        assert response.status_code == 401


class TestJobDetailSocket:
    URL = "/ws/job-detail/alice/job-1?refresh=0"

    def test_sends_summary_on_connect(self, api):
        with api.websocket_connect(self.URL, headers=_auth()) as ws:
            frame = ws.receive_json()
        assert frame["type"] == "summary"
        assert frame["summary"]["state"] == "Running"
        assert frame["view"]["auto_reload_interval"] == 0
        assert "job-1" in frame["html"]

    def test_modal_round_trip(self, api, job_client):
        job_client.get_job.return_value = make_job(state="FAILED", appExitDiagnostics="exit status 2")
        with api.websocket_connect(self.URL, headers=_auth()) as ws:
            ws.receive_json()
            ws.send_json({"action": "open_app_summary"})
            opened = ws.receive_json()
            ws.send_json({"action": "dismiss"})
            dismissed = ws.receive_json()

        assert opened["type"] == "view"
        assert opened["view"]["modal"] == {
            "title": "Application Summary",
            "content": "exit status 2",
            "content_type": "text",
        }
        assert dismissed["view"]["modal"] is None

    def test_stop_running_job_then_reload(self, api, job_client):
        with api.websocket_connect(self.URL, headers=_auth()) as ws:
            ws.receive_json()
            job_client.get_job.return_value = make_job(state="RUNNING", executionType="STOP")
            ws.send_json({"action": "stop"})
            frame = ws.receive_json()

        job_client.stop_job.assert_called_once_with("alice", "job-1")
        assert frame["type"] == "summary"
        assert frame["summary"]["state"] == "Stopping"
        assert frame["summary"]["actions"]["stop"] is False

    def test_stop_is_refused_for_finished_job(self, api, job_client):
        job_client.get_job.return_value = make_job(state="SUCCEEDED")
        with api.websocket_connect(self.URL, headers=_auth()) as ws:
            ws.receive_json()
            ws.send_json({"action": "stop"})
            frame = ws.receive_json()

        assert frame["type"] == "error"
        job_client.stop_job.assert_not_called()

    def test_clone_navigates_to_submit_page(self, api):
        with api.websocket_connect(self.URL, headers=_auth()) as ws:
            ws.receive_json()
            ws.send_json({"action": "clone"})
            frame = ws.receive_json()

        assert frame["type"] == "navigate"
        assert frame["url"].startswith("/submit.html?op=resubmit")

    def test_interval_change_and_bad_messages(self, api):
        with api.websocket_connect(self.URL, headers=_auth()) as ws:
            ws.receive_json()
            ws.send_json({"action": "interval", "value": 60000})
            changed = ws.receive_json()
            ws.send_json({"action": "interval", "value": 1234})
            rejected = ws.receive_json()
            ws.send_text("not json")
            malformed = ws.receive_json()
            ws.send_json({"action": "explode"})
            unknown = ws.receive_json()
            ws.send_json({"action": "interval", "value": 0})
            ws.receive_json()

        assert changed["view"]["auto_reload_interval"] == 60000
        assert rejected["type"] == "error"
        assert malformed == {"type": "error", "message": "Malformed message"}
        assert unknown["type"] == "error"

    def test_rejects_unauthenticated_socket(self, api):
        with pytest.raises(WebSocketDisconnect):
            with api.websocket_connect(self.URL) as ws:
                ws.receive_json()


def test_stop_publishes_summary_while_timer_reload_in_flight():
    published = []
    stop_job = AsyncMock()

    async def scenario():
        gate = asyncio.Event()
        calls = []

        async def on_reload():
            calls.append(1)
            if len(calls) == 1:
                await gate.wait()
            return make_job(state="RUNNING", executionType="STOP"), {"protocolVersion": 2}

        async def publish(view):
            published.append(view.snapshot())

        view = JobSummaryView(
            "alice",
            "job-1",
            make_job(state="RUNNING"),
            {"protocolVersion": 2},
            callbacks=build_callbacks("alice", "job-1", on_reload=on_reload, on_stop_job=stop_job),
            auto_reload_interval=0,
            publish=publish,
        )
        tick = asyncio.ensure_future(view.reload(trigger="timer"))
        await asyncio.sleep(0)
        assert view.state.reloading is True

        reply = await handle_summary_message(view, {"action": "stop"})

        assert reply is None
        assert len(published) == 1
        gate.set()
        await tick

    asyncio.run(scenario())
    stop_job.assert_awaited_once()
    assert published[0]["summary"]["state"] == "Stopping"
    assert published[0]["summary"]["actions"]["stop"] is False
