"""Rich console wrappers that survive non-UTF-8 terminals."""
from typing import Any, Optional

from rich.console import Console

from .logger import is_utf8_capable, sanitize_for_terminal


class SafeConsole(Console):
    """Rich Console that swaps Unicode glyphs for ASCII when the terminal
    cannot encode them, and uses an ASCII spinner for status displays."""

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs.setdefault('legacy_windows', True)
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)

    def status(self, *args, **kwargs):
        if self._needs_sanitization:
            kwargs['spinner'] = 'line'
        return super().status(*args, **kwargs)


_error_console: Optional[SafeConsole] = None


def get_error_console() -> SafeConsole:
    """Shared stderr console used for diagnostics."""
    global _error_console
    if _error_console is None:
        _error_console = SafeConsole(stderr=True)
    return _error_console
