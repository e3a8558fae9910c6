"""Storage adapters for credentials

Four interchangeable backends share the same small interface. Which one is
used is decided by AppKitConfig.storage; an adapter whose host is missing
(no writable directory, no request/response) degrades to a no-op instead of
raising, so constructing a client never crashes.
"""

import json
import logging
import os
import platform
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional
from urllib.parse import quote, unquote

import settings
from config.client_config import StorageBackend

if TYPE_CHECKING:
    from fastapi import Request, Response
    from config.client_config import AppKitConfig

logger = logging.getLogger(__name__)


class StorageAdapter(ABC):
    """String key/value store used by the credential store"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent"""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one"""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a value; removing a missing key is not an error"""


class MemoryStorage(StorageAdapter):
    """Process-local storage; every instance has its own map"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


def _origin_filename(origin: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", origin) + ".json"


class FileStorage(StorageAdapter):
    """Persistent storage in a JSON file with owner-only permissions

    All keys of one origin live in a single file, so separate clients of the
    same origin see each other's writes (last write wins).
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._available = self._ensure_secure_directory()

    @classmethod
    def for_origin(cls, storage_dir: Path, origin: str) -> "FileStorage":
        return cls(Path(storage_dir) / _origin_filename(origin))

    def _ensure_secure_directory(self) -> bool:
        """Create parent directory with secure permissions"""
        parent_dir = self.path.parent
        try:
            if not parent_dir.exists():
                parent_dir.mkdir(parents=True, exist_ok=True)
                # Set directory permissions to 700 on Unix-like systems
                if platform.system() != "Windows":
                    os.chmod(parent_dir, 0o700)
        except OSError as e:
            logger.warning(f"Credential storage unavailable at {parent_dir}: {e}")
            return False
        return True

    @property
    def available(self) -> bool:
        return self._available

    def _read(self) -> Dict[str, str]:
        if not self._available or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read credential storage {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed credential storage {self.path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        if not self._available:
            return
        try:
            if not data:
                if self.path.exists():
                    self.path.unlink()
                return

            # Write then rename so readers never see a half-written file
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, indent=2))
            # Set file permissions to 600 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write credential storage {self.path}: {e}")

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


def _login_session_id() -> int:
    getsid = getattr(os, "getsid", None)
    if getsid is not None:
        try:
            return getsid(0)
        except OSError:
            pass
    return os.getppid()


class SessionStorage(FileStorage):
    """Session-scoped storage under the system temp directory

    Keyed by the OS login session, so processes of one terminal session share
    it while a new session starts empty. Nothing is written to the user's
    persistent storage directory.
    """

    def __init__(self, origin: str, session_id: Optional[int] = None, temp_dir: Optional[Path] = None):
        session_id = _login_session_id() if session_id is None else session_id
        root = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        super().__init__(root / f"appkit-session-{session_id}" / _origin_filename(origin))


class CookieStorage(StorageAdapter):
    """Cookie-backed storage for server-rendered hosts

    Reads come from the incoming request, writes go to the outgoing response
    as Secure, HttpOnly, SameSite=Lax cookies with a fixed 7 day max age.
    Values written during the current request are visible to later reads.
    """

    def __init__(
        self,
        request: Optional["Request"] = None,
        response: Optional["Response"] = None,
        max_age: int = settings.COOKIE_MAX_AGE,
        path: str = "/",
    ):
        self.request = request
        self.response = response
        self.max_age = max_age
        self.cookie_path = path
        # key -> value written in this request, None marks a removal
        self._pending: Dict[str, Optional[str]] = {}

        if request is None and response is None:
            logger.warning("Cookie storage created without a request/response; credentials will not be stored")

    def get(self, key: str) -> Optional[str]:
        if key in self._pending:
            return self._pending[key]
        if self.request is None:
            return None
        raw = self.request.cookies.get(key)
        return unquote(raw) if raw is not None else None

    def set(self, key: str, value: str) -> None:
        if self.response is None:
            logger.debug(f"No response available, not setting cookie {key}")
            return
        self._pending[key] = value
        self.response.set_cookie(
            key,
            quote(value, safe=""),
            max_age=self.max_age,
            path=self.cookie_path,
            secure=True,
            httponly=True,
            samesite="lax",
        )

    def remove(self, key: str) -> None:
        if self.response is None:
            logger.debug(f"No response available, not deleting cookie {key}")
            return
        self._pending[key] = None
        self.response.delete_cookie(
            key,
            path=self.cookie_path,
            secure=True,
            httponly=True,
            samesite="lax",
        )


def create_storage(config: "AppKitConfig") -> StorageAdapter:
    """Create the storage adapter selected by the client configuration"""
    backend = config.storage
    if backend is StorageBackend.PERSISTENT:
        return FileStorage.for_origin(config.storage_dir, config.origin)
    if backend is StorageBackend.SESSION:
        return SessionStorage(config.origin)
    if backend is StorageBackend.COOKIE:
        return CookieStorage(config.cookie_request, config.cookie_response)
    if backend is StorageBackend.MEMORY:
        return MemoryStorage()
    raise ValueError(f"Unsupported storage backend: {backend!r}")
