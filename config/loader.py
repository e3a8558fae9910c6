"""Environment-backed settings loader for the AppKit auth client

Values are resolved in this order:
1. Process environment
2. .env file (APPKIT_ENV_FILE, or .env in the working directory)
3. The default passed by the caller
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes", "on")


class ConfigLoader:
    """Reads typed settings from the environment after loading a .env file"""

    def __init__(self, env_path: Optional[str] = None):
        """
        Args:
            env_path: .env file to load; APPKIT_ENV_FILE or ./.env when omitted
        """
        self.env_path = Path(env_path or os.getenv("APPKIT_ENV_FILE") or ".env")
        self._load_env_file()

    def _load_env_file(self):
        # Never overrides variables already set in the process environment
        if not self.env_path.is_file():
            logger.debug(f"No .env file at {self.env_path}, reading process environment only")
            return
        load_dotenv(dotenv_path=self.env_path, override=False)
        logger.debug(f"Loaded settings from {self.env_path}")

    def _coerce(self, env_var: str, raw: str, default: Any) -> Any:
        """Convert a raw string to the type of ``default``"""
        if isinstance(default, bool):
            return raw.strip().lower() in _TRUE_VALUES
        for kind in (int, float):
            if isinstance(default, kind):
                try:
                    return kind(raw)
                except ValueError:
                    logger.warning(f"Invalid {kind.__name__} for {env_var}={raw!r}, using {default}")
                    return default
        return raw

    def get(self, env_var: str, default: Any) -> Any:
        """Return ``env_var`` coerced to the type of ``default``, or ``default``"""
        raw = os.getenv(env_var)
        if raw is None or raw == "":
            return default
        return self._coerce(env_var, raw, default)

    def get_path(self, env_var: str, default: Path) -> Path:
        """Return a filesystem path with ``~`` expanded"""
        raw = os.getenv(env_var)
        return Path(raw if raw else default).expanduser()

    def get_list(self, env_var: str, default: Optional[List[str]] = None) -> List[str]:
        """Return a comma or whitespace separated list, or ``default`` when unset"""
        raw = os.getenv(env_var)
        if not raw:
            return list(default or [])
        return raw.replace(",", " ").split()


_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Get or create the global ConfigLoader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
