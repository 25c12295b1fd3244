"""Configuration module for projectrag."""

from .manager import ConfigManager, get_config, get_config_manager
from .models import (
    DEFAULT_EMBEDDING_MODEL,
    EmbeddingSettings,
    LoggingSettings,
    ProjectRAGConfig,
    ProjectSettings,
    ScanSettings,
    SearchSettings,
)

__all__ = [
    "DEFAULT_EMBEDDING_MODEL",
    "ProjectRAGConfig",
    "EmbeddingSettings",
    "ScanSettings",
    "SearchSettings",
    "LoggingSettings",
    "ProjectSettings",
    "ConfigManager",
    "get_config",
    "get_config_manager",
]
