"""
Job records as returned by the job REST server.

Every status field is optional: the portal renders whatever the server knows
about a job and treats the rest as absent. The server speaks camelCase, the
models expose snake_case and accept both.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RetryDetails(_CamelModel):
    user: int | None = None
    platform: int | None = None
    resource: int | None = None


class JobStatus(_CamelModel):
    state: str | None = None
    execution_type: str | None = None
    created_time: int | None = None  # epoch ms
    completed_time: int | None = None  # epoch ms
    username: str | None = None
    virtual_cluster: str | None = None
    retries: int | None = None
    retry_details: RetryDetails | None = None
    app_exit_code: int | None = None
    app_exit_diagnostics: str | None = None
    app_tracking_url: str | None = None


class JobInfo(_CamelModel):
    name: str | None = None
    job_status: JobStatus = Field(default_factory=JobStatus)

    @classmethod
    def from_list_item(cls, item: dict[str, Any]) -> "JobInfo":
        """Job list items carry the status fields at the top level."""
        return cls(name=item.get("name"), job_status=JobStatus.model_validate(item))
