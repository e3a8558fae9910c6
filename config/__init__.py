"""Configuration management package for the AppKit auth client

Client configuration (AppKitConfig) lives in config.client_config and is
imported from there directly; settings.py depends on this package.
"""

from .loader import ConfigLoader, get_config_loader

__all__ = [
    "ConfigLoader",
    "get_config_loader",
]
