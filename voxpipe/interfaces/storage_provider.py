"""Abstract base class for the relational storage collaborator.

Both pipelines write through this interface: the sync engine checks for
and creates call logs, the knowledge service creates and deletes document
records.  Implementations raise :class:`~voxpipe.utils.errors.StorageError`
on connectivity failure and
:class:`~voxpipe.utils.errors.DuplicateRecordError` when a uniqueness
constraint rejects a write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from voxpipe.models.conversation import ConversationRecord
from voxpipe.models.storage import Agent, Credential, StoredDocument, User


# Concrete implementation: SQLiteStorageProvider (voxpipe/providers/storage/)
class IStorageProvider(ABC):
    """Contract for point-in-time consistent CRUD over pipeline records."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if they do not exist yet."""

    @abstractmethod
    async def close(self) -> None:
        """Release any held connection."""

    # -- Users / agents / credentials ------------------------------------

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def create_user(self, user: User) -> None: ...

    @abstractmethod
    async def get_agents(self, organization_id: str) -> list[Agent]: ...

    @abstractmethod
    async def create_agent(self, agent: Agent) -> None: ...

    @abstractmethod
    async def get_integration(self, organization_id: str, provider: str) -> Credential | None:
        """Return the organization's credential for *provider*, if any."""

    @abstractmethod
    async def upsert_integration(self, credential: Credential) -> None: ...

    # -- Call logs --------------------------------------------------------

    @abstractmethod
    async def get_call_log_by_external_id(
        self,
        external_conversation_id: str,
        organization_id: str,
    ) -> ConversationRecord | None:
        """Return the stored record for a remote conversation, if any."""

    @abstractmethod
    async def create_call_log(self, record: ConversationRecord) -> None:
        """Persist a synced conversation.

        Raises
        ------
        voxpipe.utils.errors.DuplicateRecordError
            If a record with the same organization and external id exists.
        """

    @abstractmethod
    async def list_call_logs(self, organization_id: str) -> list[ConversationRecord]: ...

    # -- Documents --------------------------------------------------------

    @abstractmethod
    async def create_document(self, document: StoredDocument) -> None: ...

    @abstractmethod
    async def get_document(self, document_id: str, organization_id: str) -> StoredDocument | None: ...

    @abstractmethod
    async def list_documents(self, organization_id: str) -> list[StoredDocument]: ...

    @abstractmethod
    async def update_document_agents(
        self,
        document_id: str,
        organization_id: str,
        agent_ids: list[str],
    ) -> bool:
        """Replace a document's agent-visibility set.  ``False`` if not found."""

    @abstractmethod
    async def delete_document(self, document_id: str, organization_id: str) -> bool:
        """Delete a document record.  ``False`` if not found."""
