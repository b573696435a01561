"""On-demand sync of remote voice conversations into local storage.

One :meth:`ConversationSyncService.sync` call runs these steps for an
organization:

1. Resolve the organization's active voice-API credential.
2. Load its agents from storage.
3. List remote conversation summaries for every agent concurrently.  An
   agent whose listing fails contributes zero conversations.
4. Check storage for every summary concurrently; known conversations are
   skipped.
5. Fetch details and persist the remaining conversations in sequential
   batches, concurrently within a batch.
6. Return aggregate counts.

Only setup failures (missing credential, unreachable storage while loading
agents) raise.  Every per-agent and per-conversation failure is counted in
the returned :class:`~voxpipe.models.conversation.SyncResult`.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from voxpipe.interfaces.storage_provider import IStorageProvider
from voxpipe.interfaces.voice_api_client import IVoiceApiClient
from voxpipe.models.conversation import ConversationRecord, SyncResult
from voxpipe.models.storage import Agent, Credential
from voxpipe.services.sync.cost import DEFAULT_RATE_PER_MINUTE, calculate_call_cost
from voxpipe.services.sync.transcript import normalize_transcript
from voxpipe.utils.concurrency import run_in_batches, settle_all
from voxpipe.utils.errors import (
    DuplicateRecordError,
    IntegrationNotConfiguredError,
    RemoteFetchError,
)

logger = structlog.get_logger(logger_name=__name__)

_COST_FIELDS = ("llm_cost", "cost", "credits_used")

ClientFactory = Callable[[Credential], IVoiceApiClient]


def _first(*values: Any) -> Any:
    """Return the first truthy value, else ``None``."""
    for value in values:
        if value:
            return value
    return None


class ConversationSyncService:
    """Pulls new conversations from the voice API into storage.

    Parameters
    ----------
    storage:
        Source of agents and credentials, target of call logs.
    client_factory:
        Builds a voice-API client from an organization's credential.
    provider_name:
        Integration provider whose credential is required.
    batch_size:
        Conversations fetched and persisted concurrently per batch.
    page_size:
        Summaries requested per agent.
    rate_per_minute:
        Fallback cost rate when the provider reports no cost.
    """

    def __init__(
        self,
        storage: IStorageProvider,
        client_factory: ClientFactory,
        provider_name: str = "elevenlabs",
        batch_size: int = 10,
        page_size: int = 100,
        rate_per_minute: float = DEFAULT_RATE_PER_MINUTE,
        audio_path_template: str = "/api/audio/{conversation_id}",
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._storage = storage
        self._client_factory = client_factory
        self._provider_name = provider_name
        self._batch_size = batch_size
        self._page_size = page_size
        self._rate_per_minute = rate_per_minute
        self._audio_path_template = audio_path_template

    async def sync(self, organization_id: str) -> SyncResult:
        """Sync one organization and return the aggregate counts.

        Raises
        ------
        IntegrationNotConfiguredError
            If the organization has no active credential.
        StorageError
            If agents cannot be loaded.
        """
        started = time.monotonic()

        credential = await self._storage.get_integration(organization_id, self._provider_name)
        if credential is None or not credential.is_active:
            raise IntegrationNotConfiguredError(
                message=f"No active {self._provider_name} integration for organization {organization_id}",
                provider_name=self._provider_name,
            )

        agents = await self._storage.get_agents(organization_id)
        client = self._client_factory(credential)
        try:
            with structlog.contextvars.bound_contextvars(organization_id=organization_id):
                result = await self._run(client, organization_id, agents, started)
        finally:
            await client.aclose()
        return result

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    async def _run(
        self,
        client: IVoiceApiClient,
        organization_id: str,
        agents: list[Agent],
        started: float,
    ) -> SyncResult:
        total_errors = 0
        total_skipped = 0
        total_synced = 0

        # Step 3: list conversations per agent.
        listings = await settle_all(self._list_conversations(client, agent) for agent in agents)
        candidates: dict[str, tuple[Agent, dict[str, Any]]] = {}
        failed_agents = 0
        for agent, outcome in zip(agents, listings):
            if not outcome.ok:
                failed_agents += 1
                logger.warning(
                    "sync_agent_fetch_failed",
                    agent_id=agent.id,
                    external_agent_id=agent.external_agent_id,
                    error=str(outcome.error),
                )
                continue
            for summary in outcome.value or []:
                conversation_id = summary.get("conversation_id")
                if not conversation_id:
                    total_errors += 1
                    continue
                candidates.setdefault(str(conversation_id), (agent, summary))

        # Step 4: drop conversations that are already stored.
        conversation_ids = list(candidates)
        checks = await settle_all(
            self._storage.get_call_log_by_external_id(conversation_id, organization_id)
            for conversation_id in conversation_ids
        )
        queue: list[tuple[Agent, dict[str, Any]]] = []
        for conversation_id, outcome in zip(conversation_ids, checks):
            if not outcome.ok:
                total_errors += 1
                logger.warning(
                    "sync_existence_check_failed",
                    conversation_id=conversation_id,
                    error=str(outcome.error),
                )
            elif outcome.value is not None:
                total_skipped += 1
            else:
                queue.append(candidates[conversation_id])

        # Step 5: fetch and persist in bounded batches.
        async def _process(item: tuple[Agent, dict[str, Any]]) -> bool:
            agent, summary = item
            return await self._sync_conversation(client, organization_id, agent, summary)

        outcomes = await run_in_batches(queue, _process, self._batch_size, logger=logger)
        for (agent, summary), outcome in zip(queue, outcomes):
            if not outcome.ok:
                total_errors += 1
                logger.warning(
                    "sync_conversation_failed",
                    conversation_id=summary.get("conversation_id"),
                    agent_id=agent.id,
                    error=str(outcome.error),
                )
            elif outcome.value:
                total_synced += 1
            else:
                total_skipped += 1

        elapsed_ms = int((time.monotonic() - started) * 1000)
        result = SyncResult(
            total_synced=total_synced,
            total_errors=total_errors,
            total_skipped=total_skipped,
            failed_agents=failed_agents,
            elapsed_ms=elapsed_ms,
            message=self._summary_message(total_synced, total_errors, elapsed_ms),
        )
        logger.info(
            "sync_complete",
            agents=len(agents),
            synced=total_synced,
            skipped=total_skipped,
            errors=total_errors,
            failed_agents=failed_agents,
            elapsed_ms=elapsed_ms,
        )
        return result

    async def _list_conversations(
        self,
        client: IVoiceApiClient,
        agent: Agent,
    ) -> list[dict[str, Any]]:
        result = await client.get_conversations(agent.external_agent_id, page_size=self._page_size)
        if not result.success:
            raise RemoteFetchError(
                message=result.error or "Conversation listing failed",
                provider_name=client.get_provider_name(),
                status_code=result.status_code,
            )
        data = result.data if isinstance(result.data, dict) else {}
        conversations = data.get("conversations") or []
        return [c for c in conversations if isinstance(c, dict)]

    async def _sync_conversation(
        self,
        client: IVoiceApiClient,
        organization_id: str,
        agent: Agent,
        summary: dict[str, Any],
    ) -> bool:
        """Fetch, normalize and store one conversation.

        Returns ``False`` when storage reports the conversation already
        exists (a concurrent run got there first).
        """
        conversation_id = str(summary["conversation_id"])
        result = await client.get_conversation(conversation_id)
        if not result.success:
            raise RemoteFetchError(
                message=result.error or f"Fetching conversation {conversation_id} failed",
                provider_name=client.get_provider_name(),
                status_code=result.status_code,
            )
        detail = result.data if isinstance(result.data, dict) else {}
        record = self.build_record(organization_id, agent, summary, detail)

        try:
            await self._storage.create_call_log(record)
        except DuplicateRecordError:
            logger.info("sync_conversation_duplicate", conversation_id=conversation_id)
            return False
        return True

    # ------------------------------------------------------------------
    # Record construction
    # ------------------------------------------------------------------

    def build_record(
        self,
        organization_id: str,
        agent: Agent,
        summary: dict[str, Any],
        detail: dict[str, Any],
    ) -> ConversationRecord:
        """Turn a remote summary and detail into a storable record.

        Duration, cost fields and start time are read from the detail, then
        the detail's ``metadata`` block, then the summary.
        """
        conversation_id = str(summary.get("conversation_id") or detail.get("conversation_id"))
        metadata = detail.get("metadata") if isinstance(detail.get("metadata"), dict) else {}

        duration = _first(
            detail.get("call_duration_secs"),
            metadata.get("call_duration_secs"),
            summary.get("call_duration_secs"),
        ) or 0
        cost_data = {
            key: _first(detail.get(key), metadata.get(key), summary.get(key))
            for key in _COST_FIELDS
        }
        start = _first(
            summary.get("start_time_unix_secs"),
            metadata.get("start_time_unix_secs"),
            detail.get("start_time_unix_secs"),
        )
        created_at = (
            datetime.fromtimestamp(float(start), tz=timezone.utc)
            if start
            else datetime.now(timezone.utc)
        )

        return ConversationRecord(
            organization_id=organization_id,
            agent_id=agent.id,
            external_conversation_id=conversation_id,
            duration_seconds=float(duration),
            transcript=normalize_transcript(detail.get("transcript")),
            audio_url=self._resolve_audio_url(conversation_id, detail, metadata),
            cost=calculate_call_cost(float(duration), cost_data, self._rate_per_minute),
            status=str(detail.get("status") or "completed"),
            created_at=created_at,
        )

    def _resolve_audio_url(
        self,
        conversation_id: str,
        detail: dict[str, Any],
        metadata: dict[str, Any],
    ) -> str:
        recordings = detail.get("recordings")
        recording_url = None
        if isinstance(recordings, list) and recordings and isinstance(recordings[0], dict):
            recording_url = recordings[0].get("url")
        url = _first(
            detail.get("audio_url"),
            detail.get("recording_url"),
            recording_url,
            metadata.get("audio_url"),
        )
        return str(url) if url else self._audio_path_template.format(conversation_id=conversation_id)

    @staticmethod
    def _summary_message(synced: int, errors: int, elapsed_ms: int) -> str:
        if synced > 0:
            return f"Synced {synced} calls in {elapsed_ms / 1000:.1f}s"
        if errors > 0:
            return f"Sync completed with {errors} errors"
        return "No new calls to sync"
