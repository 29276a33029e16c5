"""Async plumbing shared by lifecycle managers."""

from .background_tasks import BackgroundTaskManager

__all__ = ["BackgroundTaskManager"]
