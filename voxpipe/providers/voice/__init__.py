"""Remote voice-AI provider clients."""

from voxpipe.providers.voice.elevenlabs_client import ElevenLabsClient

__all__ = ["ElevenLabsClient"]
