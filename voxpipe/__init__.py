"""voxpipe: document knowledge store and voice-conversation sync pipeline."""

__version__ = "0.1.0"
