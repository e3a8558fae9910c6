"""Shared utilities package for the AppKit auth client"""

from .storage import (
    StorageAdapter,
    MemoryStorage,
    FileStorage,
    SessionStorage,
    CookieStorage,
    create_storage,
)
from .credentials import CredentialStore
from .http import HttpClient

__all__ = [
    "StorageAdapter",
    "MemoryStorage",
    "FileStorage",
    "SessionStorage",
    "CookieStorage",
    "create_storage",
    "CredentialStore",
    "HttpClient",
]
