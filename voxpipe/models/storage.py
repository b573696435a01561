"""Records owned by the relational storage collaborator.

These are plain data rows consumed by the pipelines: the pipelines never
mutate agents, users or credentials, and documents only ever change their
agent-visibility set.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

ACTIVE_STATUS = "ACTIVE"


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    organization_id: str
    email: str = ""
    name: str = ""


class Agent(BaseModel):
    """A voice agent.  ``external_agent_id`` is the remote provider's id."""

    model_config = ConfigDict(frozen=True)

    id: str
    organization_id: str
    name: str = ""
    external_agent_id: str = Field(description="Agent id used as the sync key.")


class Credential(BaseModel):
    """An organization's own third-party API credential (BYOK)."""

    model_config = ConfigDict(frozen=True)

    organization_id: str
    provider: str = Field(description='Integration provider name, e.g. "elevenlabs".')
    api_key: str
    status: str = ACTIVE_STATUS

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_STATUS


class StoredDocument(BaseModel):
    """The relational record of an uploaded knowledge document."""

    model_config = ConfigDict(frozen=True)

    id: str
    organization_id: str
    name: str
    file_type: str = "unknown"
    agent_ids: list[str] = Field(default_factory=list)
    character_count: int = 0
    chunk_count: int = 0
    created_at: datetime | None = None
