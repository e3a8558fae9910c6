"""Command line interface for the AppKit auth client

Provides login, status, token and logout commands on top of AppKit.
"""

from cli.main import main

__all__ = [
    "main",
]
