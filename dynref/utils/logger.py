"""Dev-mode diagnostic logger with terminal-safe output.

Diagnostics are silent unless dev mode is enabled (see dynref.config), so a
production search never prints anything besides its own results. Non-UTF-8
terminals get ASCII stand-ins for the few glyphs the logger emits.
"""
import locale
import sys
from typing import Any, Optional


# Glyphs used in diagnostics, with ASCII fallbacks for legacy terminals
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '→': '->',
    '←': '<-',
    '…': '...',
    '•': '*',
    '🔍': '[search]',
    '📄': '[file]',
    '🚫': '[skip]',
}

DEFAULT_LOG_PREFIX = "DYNAMIC IMPORT DEBUG"

LEVEL_STYLES = {
    'debug': 'dim',
    'info': 'cyan',
    'warn': 'yellow',
    'error': 'bold red',
}


def detect_terminal_encoding() -> str:
    """Return the lower-cased encoding of stderr, falling back to the locale."""
    stream = sys.stderr
    if getattr(stream, 'encoding', None):
        return stream.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (LookupError, ValueError):
        return 'ascii'


def is_utf8_capable() -> bool:
    return detect_terminal_encoding().replace('_', '-') in {'utf-8', 'utf8'}


def sanitize_for_terminal(text: str) -> str:
    """Replace known glyphs with ASCII equivalents on non-UTF-8 terminals."""
    if is_utf8_capable():
        return text

    for glyph, replacement in ICON_MAP.items():
        text = text.replace(glyph, replacement)
    return text


class Logger:
    """Prefix-tagged logger that only speaks in dev mode.

    The enabled flag is read lazily from the configuration on every call, so
    a configuration reload takes effect without rebuilding loggers.
    """

    def __init__(self, prefix: str = DEFAULT_LOG_PREFIX, enabled: Optional[bool] = None):
        self.prefix = prefix
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        if self._enabled is not None:
            return self._enabled
        from dynref.config import get_config
        return get_config().dev_mode

    def debug(self, message: str, *args: Any) -> None:
        self._emit('debug', message, args)

    def info(self, message: str, *args: Any) -> None:
        self._emit('info', message, args)

    def warn(self, message: str, *args: Any) -> None:
        self._emit('warn', message, args)

    def error(self, message: str, *args: Any) -> None:
        self._emit('error', message, args)

    def with_prefix(self, prefix: str) -> 'Logger':
        """Return a logger for a sub-component sharing this logger's gate."""
        return Logger(prefix, self._enabled)

    def _emit(self, level: str, message: str, args: tuple) -> None:
        if not self.enabled:
            return

        from .console import get_error_console

        text = " ".join([f"{self.prefix} - {message}", *(str(arg) for arg in args)])
        get_error_console().print(
            sanitize_for_terminal(text),
            style=LEVEL_STYLES.get(level),
            markup=False,
            highlight=False,
        )


log = Logger()
