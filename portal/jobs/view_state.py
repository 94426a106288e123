"""
UI state of the job summary view and the reducer that updates it.

Only UI state lives here (modal, refresh interval, reload flag); job state is
owned by the job-execution system.
"""
from __future__ import annotations

import json
from typing import Any, Union

from pydantic import BaseModel

from portal.jobs.summary import AUTO_RELOAD_INTERVALS

APPLICATION_SUMMARY_TITLE = "Application Summary"
JOB_CONFIG_TITLE = "Job Config"


class Modal(BaseModel):
    title: str
    content: str
    content_type: str  # "text" | "json"

    model_config = {"frozen": True}


class SummaryViewState(BaseModel):
    modal: Modal | None = None
    auto_reload_interval: int = 10_000  # ms, 0 = disabled
    reloading: bool = False

    model_config = {"frozen": True}


class ShowApplicationSummary(BaseModel):
    diagnostics: str | None = None


class ShowJobConfig(BaseModel):
    config: dict[str, Any] | None = None


class Dismiss(BaseModel):
    pass


class ChangeInterval(BaseModel):
    interval: int


class ReloadStarted(BaseModel):
    pass


class ReloadFinished(BaseModel):
    pass


Action = Union[ShowApplicationSummary, ShowJobConfig, Dismiss, ChangeInterval, ReloadStarted, ReloadFinished]


def reduce(state: SummaryViewState, action: Action) -> SummaryViewState:
    if isinstance(action, ShowApplicationSummary):
        modal = Modal(
            title=APPLICATION_SUMMARY_TITLE,
            content=action.diagnostics or "",
            content_type="text",
        )
        return state.model_copy(update={"modal": modal})
    if isinstance(action, ShowJobConfig):
        modal = Modal(
            title=JOB_CONFIG_TITLE,
            content=json.dumps(action.config, indent=2, ensure_ascii=False, default=str),
            content_type="json",
        )
        return state.model_copy(update={"modal": modal})
    if isinstance(action, Dismiss):
        return state.model_copy(update={"modal": None})
    if isinstance(action, ChangeInterval):
        if action.interval not in AUTO_RELOAD_INTERVALS:
            raise ValueError(f"Unsupported auto refresh interval: {action.interval}")
        return state.model_copy(update={"auto_reload_interval": action.interval})
    if isinstance(action, ReloadStarted):
        return state.model_copy(update={"reloading": True})
    if isinstance(action, ReloadFinished):
        return state.model_copy(update={"reloading": False})
    raise TypeError(f"Unknown summary view action: {type(action).__name__}")
