"""Configuration for code-analyzer."""

from code_analyzer.config.settings import Settings, get_settings, settings

__all__ = ["settings", "Settings", "get_settings"]
