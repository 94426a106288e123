from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    email: str | None = None
    grouplist: list[str] = Field(default_factory=list)
    extension: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class UserCreate(BaseModel):
    """Default record written on first authenticated access."""

    username: str
    email: str | None = None
    password: str | None = None
    grouplist: list[str] = Field(default_factory=list)
    extension: dict[str, Any] = Field(default_factory=dict)


class Identity(BaseModel):
    """Authenticated identity decoded from the bearer token."""

    username: str
    email: str | None = None
    oid: str | None = None
