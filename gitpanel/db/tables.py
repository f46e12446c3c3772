"""SQLModel tables."""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class ChangelistStateRow(SQLModel, table=True):
    """Serialized changelist state of one repository."""

    __tablename__ = "changelist_states"

    repo_id: str = Field(primary_key=True)
    state_json: str
    updated_at: str
