"""Diagnostic messages for the user, which quiet mode suppresses."""

import threading

_enabled = threading.Event()
_enabled.set()


def disable() -> None:
    """Suppress all further diagnostic messages."""
    _enabled.clear()


def info(message: str) -> None:
    """Print a diagnostic message unless disabled."""
    if _enabled.is_set():
        print(f"::: {message}")