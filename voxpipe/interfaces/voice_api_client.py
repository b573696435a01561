"""Abstract base class for the remote voice-AI provider client.

Every call returns an :class:`~voxpipe.models.conversation.ApiResult`
carrying an explicit ``success`` flag.  HTTP and network failures are
reported through that flag rather than raised, so callers branch on it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from voxpipe.models.conversation import ApiResult


# Concrete implementation: ElevenLabsClient (voxpipe/providers/voice/)
class IVoiceApiClient(ABC):
    """Contract for listing and fetching remote conversations."""

    @abstractmethod
    async def get_conversations(
        self,
        agent_id: str,
        page_size: int = 100,
        cursor: str | None = None,
    ) -> ApiResult:
        """List conversation summaries for one remote agent.

        On success ``data`` is the provider payload, a mapping with a
        ``conversations`` list of summaries.
        """

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> ApiResult:
        """Fetch the full detail of one conversation."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources owned by the client."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the integration provider name, e.g. ``"elevenlabs"``."""
