"""
Utility modules for configuration, logging, and error handling.
"""

from tonescope.utils.errors import (
    ToneScopeError,
    InvalidInputTypeError,
    FileTooLargeError,
    MediaResourceError,
    PlaybackUnavailableError,
    PlaybackStateError,
    AnalysisError,
    ConfigurationError,
)
from tonescope.utils.logging import get_logger, setup_logging, source_logger, JSONFormatter
from tonescope.utils.config import ConfigManager, load_config, get_default_config

__all__ = [
    "ToneScopeError",
    "InvalidInputTypeError",
    "FileTooLargeError",
    "MediaResourceError",
    "PlaybackUnavailableError",
    "PlaybackStateError",
    "AnalysisError",
    "ConfigurationError",
    "get_logger",
    "setup_logging",
    "source_logger",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
    "get_default_config",
]
