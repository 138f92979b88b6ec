"""Configuration package for the assessment services."""
from .app_config import AppConfig, AssessmentSettings, LlmRoute, load_app_registry, load_config, resolve_registry
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "AssessmentSettings",
    "LlmRoute",
    "load_app_registry",
    "load_config",
    "resolve_registry",
    "Settings",
    "settings",
]
