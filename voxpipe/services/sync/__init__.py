"""Conversation sync: transcript normalization, cost, and the sync engine."""

from voxpipe.services.sync.conversation_sync_service import ConversationSyncService
from voxpipe.services.sync.cost import calculate_call_cost
from voxpipe.services.sync.transcript import classify_transcript, normalize_transcript

__all__ = [
    "ConversationSyncService",
    "calculate_call_cost",
    "classify_transcript",
    "normalize_transcript",
]
