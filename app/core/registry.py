# app/core/registry.py
from __future__ import annotations
from typing import Optional
from threading import RLock
from app.core.context import AppContext


class _NotInitialized(RuntimeError):
    pass


_context: Optional[AppContext] = None
_lock = RLock()


def set_context(context: Optional[AppContext]) -> None:
    """Called once during startup (per worker); None resets it."""
    global _context
    with _lock:
        _context = context


def get_context() -> AppContext:
    """
    Access the AppContext for this worker.
    Raises if called before startup (e.g., at import time).
    """
    c = _context
    if c is None:
        raise _NotInitialized("AppContext not initialized yet (startup not completed).")
    return c
