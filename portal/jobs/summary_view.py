"""
Live job summary session.

JobSummaryView owns the UI state and the refresh timer for one open job
detail page, and invokes the external callbacks only when the corresponding
action is enabled.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from portal.core.config import settings
from portal.jobs.summary import JobSummary, build_job_summary, summary_actions
from portal.jobs.timer import RefreshTimer
from portal.jobs.view_state import (
    ChangeInterval,
    Dismiss,
    ReloadFinished,
    ReloadStarted,
    ShowApplicationSummary,
    ShowJobConfig,
    SummaryViewState,
    reduce,
)
from portal.schemas.jobs import JobInfo
from portal.utils.metrics import metrics

logger = logging.getLogger(__name__)

JobSnapshot = tuple[JobInfo, dict[str, Any] | None]


@dataclass
class SummaryCallbacks:
    on_reload: Callable[[], Awaitable[JobSnapshot]]
    on_stop_job: Callable[[], Awaitable[None]]
    clone_job: Callable[[dict[str, Any]], str]
    open_job_attempts_page: Callable[[int], str]
    get_job_metrics_url: Callable[[], str]


class JobSummaryView:
    def __init__(
        self,
        username: str,
        job_name: str,
        job: JobInfo,
        job_config: dict[str, Any] | None,
        callbacks: SummaryCallbacks,
        auto_reload_interval: int | None = None,
        publish: Callable[["JobSummaryView"], Awaitable[None]] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.username = username
        self.job_name = job_name
        self.job = job
        self.job_config = job_config
        self._callbacks = callbacks
        self._publish = publish
        if auto_reload_interval is None:
            auto_reload_interval = settings.default_auto_reload_interval
        self.state = reduce(SummaryViewState(), ChangeInterval(interval=auto_reload_interval))
        timer_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.timer = RefreshTimer(self._reload_on_tick, **timer_kwargs)

    # ----- lifecycle -----

    def start(self) -> None:
        self.timer.set_interval(self.state.auto_reload_interval)

    def close(self) -> None:
        self.timer.cancel()

    # ----- UI state -----

    def summary(self) -> JobSummary:
        return build_job_summary(self.job, self.job_config, self.username, self.job_name)

    def change_interval(self, interval: int) -> SummaryViewState:
        self.state = reduce(self.state, ChangeInterval(interval=interval))
        self.timer.set_interval(interval)
        logger.info(
            "auto_refresh_changed",
            extra={"username": self.username, "job_name": self.job_name, "interval": interval},
        )
        return self.state

    def show_application_summary(self) -> SummaryViewState:
        diagnostics = self.job.job_status.app_exit_diagnostics
        self.state = reduce(self.state, ShowApplicationSummary(diagnostics=diagnostics))
        return self.state

    def show_job_config(self) -> SummaryViewState:
        if self.job_config is None:
            return self.state
        self.state = reduce(self.state, ShowJobConfig(config=self.job_config))
        return self.state

    def dismiss(self) -> SummaryViewState:
        self.state = reduce(self.state, Dismiss())
        return self.state

    # ----- external actions -----

    async def reload(self, trigger: str = "manual") -> bool:
        """Refetch the job. A manual reload is ignored while one is in flight."""
        if trigger == "manual" and self.state.reloading:
            return False
        self.state = reduce(self.state, ReloadStarted())
        try:
            self.job, self.job_config = await self._callbacks.on_reload()
        finally:
            self.state = reduce(self.state, ReloadFinished())
        metrics.inc_summary_reload(trigger)
        if self._publish is not None:
            await self._publish(self)
        return True

    async def stop_job(self) -> bool:
        if not summary_actions(self.job, self.job_config).stop:
            return False
        await self._callbacks.on_stop_job()
        return True

    def clone_job(self) -> str | None:
        if not summary_actions(self.job, self.job_config).clone:
            return None
        return self._callbacks.clone_job(self.job_config)

    def open_job_attempts_page(self) -> str | None:
        retries = self.job.job_status.retries
        if retries is None:
            return None
        return self._callbacks.open_job_attempts_page(retries)

    def job_metrics_url(self) -> str:
        return self._callbacks.get_job_metrics_url()

    def snapshot(self) -> dict[str, Any]:
        return {
            "type": "summary",
            "summary": self.summary().model_dump(mode="json"),
            "view": self.state.model_dump(mode="json"),
        }

    async def _reload_on_tick(self) -> None:
        await self.reload(trigger="timer")
