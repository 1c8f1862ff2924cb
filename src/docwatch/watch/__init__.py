"""Periodic scanning service."""

from .service import ChangeHandler, WatchService

__all__ = ["ChangeHandler", "WatchService"]
