"""Configuration subpackage - paths and environment overrides."""
from .settings import Settings, get_settings

__all__ = ['Settings', 'get_settings']
