"""Configuration module -- exports Settings and load_config."""

from voxpipe.config.loader import load_config
from voxpipe.config.settings import Settings

__all__ = ["Settings", "load_config"]
