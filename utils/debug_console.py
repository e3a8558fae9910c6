"""Logging setup and a Rich console that mirrors output to the debug log.

When the CLI runs with --debug, everything printed through the console is
also written (as plain text) to the debug log file next to the library logs.
"""

import io
import logging
import re
from typing import Optional

from rich.console import Console as RichConsole

import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')


class DebugCapturingConsole(RichConsole):
    """Rich Console that also logs a plain text copy of everything printed"""

    def __init__(self, debug_logger: Optional[logging.Logger] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.debug_logger = debug_logger
        self._log_prefix = "[CONSOLE] "

    def print(self, *objects, **kwargs):
        super().print(*objects, **kwargs)

        if self.debug_logger and self.debug_logger.isEnabledFor(logging.DEBUG):
            plain_text = self._render_to_plain_text(*objects, **kwargs)
            if plain_text.strip():
                self.debug_logger.debug(f"{self._log_prefix}{plain_text}")

    def _render_to_plain_text(self, *objects, **kwargs) -> str:
        string_buffer = io.StringIO()
        temp_console = RichConsole(
            file=string_buffer,
            force_terminal=False,
            width=self.width,
            legacy_windows=False
        )
        temp_console.print(*objects, **kwargs)
        return _ANSI_ESCAPE.sub('', string_buffer.getvalue()).rstrip()


def configure_logging(debug: bool = False, log_file: Optional[str] = None) -> Optional[logging.Logger]:
    """
    Configure the root logger for the CLI.

    Without debug, logs go to stderr at settings.LOG_LEVEL. With debug, the
    root logger logs DEBUG to stderr and to the debug log file, and a
    dedicated logger for console capture is returned.

    Args:
        debug: Enable debug logging
        log_file: Debug log path (default: settings.DEBUG_LOG_FILE)

    Returns:
        Console capture logger when debug is enabled, otherwise None
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if not debug:
        level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
        root_logger.setLevel(level)
        return None

    root_logger.setLevel(logging.DEBUG)
    log_file = log_file or settings.DEBUG_LOG_FILE
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    return setup_debug_logger(log_file)


def create_debug_console(debug_enabled: bool = False,
                         debug_logger: Optional[logging.Logger] = None) -> RichConsole:
    """Return a capturing console in debug mode, a plain Rich console otherwise"""
    if debug_enabled and debug_logger:
        return DebugCapturingConsole(debug_logger=debug_logger)
    return RichConsole()


def setup_debug_logger(log_file: str) -> logging.Logger:
    """
    Set up a dedicated logger for debug console output.

    Args:
        log_file: Path to debug log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("debug_console")
    logger.setLevel(logging.DEBUG)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
    logger.addHandler(file_handler)

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False

    return logger
