"""Configuration layer - Settings and logging setup."""
from config.settings import Settings
from config.logging_config import configure_logging, set_verbosity

__all__ = ["Settings", "configure_logging", "set_verbosity"]
