"""Messages exchanged with the diff worker processes.

Requests and responses cross the process boundary as plain dicts produced by
``model_dump``; each side validates what it receives.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from gitpanel.models import RenderableDiff


class DiffRequest(BaseModel):
    """Build request for one file's diff."""
    seq: int
    path: str
    patch_text: str
    fallback_patch_text: str | None = None


class DiffSuccess(BaseModel):
    type: Literal["success"] = "success"
    seq: int
    duration_ms: int
    diff: RenderableDiff


class DiffFailure(BaseModel):
    type: Literal["error"] = "error"
    seq: int
    duration_ms: int
    error: str


DiffResponse = Annotated[Union[DiffSuccess, DiffFailure], Field(discriminator="type")]

response_adapter: TypeAdapter[DiffSuccess | DiffFailure] = TypeAdapter(DiffResponse)
