"""Routers module - FastAPI route handlers"""

from . import changesets, config, edits, events

__all__ = ["edits", "changesets", "events", "config"]
