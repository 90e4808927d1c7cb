"""Persistence of synthesis records for threaded follow-ups."""

from intake.context.store import ContextStore

__all__ = ["ContextStore"]
