"""Conversation-sync data models.

The remote voice API returns transcripts in three shapes.  Each shape is a
variant of the :data:`Transcript` tagged union, discriminated by ``kind``,
and each has its own normalizer in ``services/sync/transcript.py``:

    FlatTranscript     "Agent: hi ... User: hello"         (a single string)
    TurnsTranscript    [{"role": ..., "message": ...}, ...] (a bare list)
    WrappedTranscript  {"messages": [...]}                  (a wrapped list)

Every variant normalizes to a list of :class:`TranscriptTurn`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TranscriptTurn(BaseModel):
    """One canonical transcript entry."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description='Speaker role: "agent", "user" or "system".')
    message: str = Field(default="", description="What was said.")
    offset_seconds: float | None = Field(
        default=None,
        description="Seconds from the start of the call, when the provider supplies it.",
    )


# ---------------------------------------------------------------------------
# Remote transcript shapes (tagged union)
# ---------------------------------------------------------------------------
class FlatTranscript(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["flat"] = "flat"
    text: str


class TurnsTranscript(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["turns"] = "turns"
    turns: list[dict[str, Any]] = Field(default_factory=list)


class WrappedTranscript(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["wrapped"] = "wrapped"
    messages: list[dict[str, Any]] = Field(default_factory=list)


Transcript = Annotated[
    Union[FlatTranscript, TurnsTranscript, WrappedTranscript],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Stored record and sync output
# ---------------------------------------------------------------------------
class ConversationRecord(BaseModel):
    """A synced conversation, unique per ``(organization_id, external_conversation_id)``."""

    model_config = ConfigDict(frozen=True)

    organization_id: str
    agent_id: str = Field(description="Local id of the agent that handled the call.")
    external_conversation_id: str
    duration_seconds: float = Field(default=0.0, ge=0.0)
    transcript: list[TranscriptTurn] = Field(default_factory=list)
    audio_url: str = ""
    cost: float = Field(default=0.0, ge=0.0)
    status: str = "completed"
    created_at: datetime


class SyncResult(BaseModel):
    """Aggregate outcome of one sync run.

    ``failed_agents`` counts agents whose conversation listing failed;
    ``total_errors`` counts conversations that failed to check, fetch or
    persist.
    """

    model_config = ConfigDict(frozen=True)

    total_synced: int = Field(default=0, ge=0)
    total_errors: int = Field(default=0, ge=0)
    total_skipped: int = Field(default=0, ge=0)
    failed_agents: int = Field(default=0, ge=0)
    elapsed_ms: int = Field(default=0, ge=0)
    message: str = ""


class ApiResult(BaseModel):
    """Success/failure discriminated result of a voice-API call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    data: Any = None
    error: str | None = None
    status_code: int | None = None
