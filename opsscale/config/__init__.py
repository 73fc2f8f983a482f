"""
Configuration management for the contact intake service
"""
from .settings import EnvReport, Settings, load_settings

__all__ = ["EnvReport", "Settings", "load_settings"]
