"""
Portal pages: home ("My job status") and job detail, plus the websocket that
keeps an open job detail page refreshed.
"""
import json
import logging
from collections.abc import Awaitable, Callable, Iterator
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from starlette.concurrency import run_in_threadpool
from starlette.templating import Jinja2Templates

from portal.api.routes.users import create_user_if_user_not_exist
from portal.core.errors import JobServiceError
from portal.jobs.status import build_status_rows, count_job_states
from portal.jobs.summary import (
    AUTO_RELOAD_INTERVALS,
    AUTO_RELOAD_OPTIONS,
    get_clone_url,
    get_job_attempts_url,
    get_job_metrics_url,
)
from portal.jobs.summary_view import JobSnapshot, JobSummaryView, SummaryCallbacks
from portal.schemas.users import Identity
from portal.services.auth.jwt import decode_identity, get_token
from portal.services.jobs.client import JobClient
from portal.utils.metrics import active_summary_sessions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["portal"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[2] / "templates"))


def get_job_client_factory() -> Callable[[str | None], JobClient]:
    return JobClient


def get_job_client(
    request: Request,
    factory: Callable[[str | None], JobClient] = Depends(get_job_client_factory),
) -> Iterator[JobClient]:
    client = factory(get_token(request))
    try:
        yield client
    finally:
        client.close()


async def _not_connected(*_: Any) -> Any:
    raise RuntimeError("Job summary page is not connected")


def build_callbacks(
    username: str,
    job_name: str,
    on_reload: Callable[[], Awaitable[JobSnapshot]] = _not_connected,
    on_stop_job: Callable[[], Awaitable[None]] = _not_connected,
) -> SummaryCallbacks:
    return SummaryCallbacks(
        on_reload=on_reload,
        on_stop_job=on_stop_job,
        clone_job=lambda _config: get_clone_url(username, job_name),
        open_job_attempts_page=lambda _retries: get_job_attempts_url(username, job_name),
        get_job_metrics_url=lambda: get_job_metrics_url(username, job_name),
    )


def parse_interval(value: Any) -> int | None:
    """Refresh interval from a query parameter; None when absent or not offered."""
    try:
        interval = int(value)
    except (TypeError, ValueError):
        return None
    return interval if interval in AUTO_RELOAD_INTERVALS else None


def render_summary(view: JobSummaryView) -> str:
    return templates.get_template("_job_summary.html").render(
        summary=view.summary(),
        view=view.state,
        reload_options=AUTO_RELOAD_OPTIONS,
    )


@router.get("/home", response_class=HTMLResponse)
def home(
    request: Request,
    identity: Identity = Depends(create_user_if_user_not_exist),
    client: JobClient = Depends(get_job_client),
) -> HTMLResponse:
    jobs_error = None
    try:
        jobs = client.list_jobs(identity.username)
    except JobServiceError as e:
        logger.warning("home_jobs_unavailable", extra={"username": identity.username, "error": e.message})
        jobs = []
        jobs_error = e.message
    rows = build_status_rows(count_job_states(jobs), identity.username)
    return templates.TemplateResponse(
        request,
        "home.html",
        {"identity": identity, "rows": rows, "jobs_error": jobs_error},
    )


@router.get("/job-detail", response_class=HTMLResponse)
def job_detail(
    request: Request,
    username: str = Query(...),
    job_name: str = Query(..., alias="jobName"),
    refresh: str | None = Query(None),
    identity: Identity = Depends(create_user_if_user_not_exist),
    client: JobClient = Depends(get_job_client),
) -> HTMLResponse:
    try:
        job = client.get_job(username, job_name)
        job_config = client.get_job_config(username, job_name)
    except JobServiceError as e:
        logger.warning("job_detail_unavailable", extra={"username": username, "job_name": job_name, "error": e.message})
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": e.message},
            status_code=e.status_code,
        )
    view = JobSummaryView(
        username,
        job_name,
        job,
        job_config,
        callbacks=build_callbacks(username, job_name),
        auto_reload_interval=parse_interval(refresh),
    )
    return templates.TemplateResponse(
        request,
        "job_detail.html",
        {
            "identity": identity,
            "username": username,
            "job_name": job_name,
            "auto_reload_interval": view.state.auto_reload_interval,
            "summary_html": render_summary(view),
        },
    )


@router.websocket("/ws/job-detail/{username}/{job_name}")
async def job_detail_socket(
    websocket: WebSocket,
    username: str,
    job_name: str,
    factory: Callable[[str | None], JobClient] = Depends(get_job_client_factory),
) -> None:
    token = get_token(websocket)
    try:
        decode_identity(token or "")
    except HTTPException:
        await websocket.close(code=1008)
        return
    await websocket.accept()
    client = factory(token)

    async def on_reload() -> JobSnapshot:
        try:
            job = await run_in_threadpool(client.get_job, username, job_name)
            job_config = await run_in_threadpool(client.get_job_config, username, job_name)
        except JobServiceError as e:
            await websocket.send_json({"type": "error", "message": e.message})
            raise
        return job, job_config

    async def on_stop_job() -> None:
        await run_in_threadpool(client.stop_job, username, job_name)

    async def publish(view: JobSummaryView) -> None:
        frame = view.snapshot()
        frame["html"] = render_summary(view)
        await websocket.send_json(frame)

    try:
        job, job_config = await on_reload()
    except JobServiceError:
        client.close()
        await websocket.close(code=1011)
        return

    view = JobSummaryView(
        username,
        job_name,
        job,
        job_config,
        callbacks=build_callbacks(username, job_name, on_reload=on_reload, on_stop_job=on_stop_job),
        auto_reload_interval=parse_interval(websocket.query_params.get("refresh")),
        publish=publish,
    )
    active_summary_sessions.inc()
    try:
        await publish(view)
        view.start()
        while True:
            message = _parse_message(await websocket.receive_text())
            reply = await handle_summary_message(view, message)
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        view.close()
        client.close()
        active_summary_sessions.dec()


def _parse_message(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


async def handle_summary_message(view: JobSummaryView, message: Any) -> dict | None:
    """Apply one client message to the view and return the frame to send back, if any."""
    if not isinstance(message, dict):
        return {"type": "error", "message": "Malformed message"}
    action = message.get("action")

    if action == "stop":
        try:
            stopped = await view.stop_job()
        except JobServiceError as e:
            return {"type": "error", "message": e.message}
        if not stopped:
            return {"type": "error", "message": "Job cannot be stopped in its current state"}
        trigger = "stop"
    else:
        trigger = "manual"

    if action in ("stop", "reload"):
        try:
            await view.reload(trigger=trigger)
        except JobServiceError:
            pass  # on_reload already sent the error frame
        return None

    if action in ("clone", "retries", "metrics"):
        url = {
            "clone": view.clone_job,
            "retries": view.open_job_attempts_page,
            "metrics": view.job_metrics_url,
        }[action]()
        if url is None:
            return {"type": "error", "message": f"Action {action} is not available for this job"}
        return {"type": "navigate", "url": url}

    try:
        if action == "interval":
            view.change_interval(int(message.get("value", 0)))
        elif action == "open_app_summary":
            view.show_application_summary()
        elif action == "open_job_config":
            view.show_job_config()
        elif action == "dismiss":
            view.dismiss()
        else:
            return {"type": "error", "message": f"Unknown action: {action}"}
    except (TypeError, ValueError) as e:
        return {"type": "error", "message": str(e)}
    return {"type": "view", "view": view.state.model_dump(mode="json"), "html": render_summary(view)}
