"""
POS Analytics Engine
Configuration Module
"""
from .settings import Settings, get_settings
from .logging import configure_logging

__all__ = ["Settings", "get_settings", "configure_logging"]
