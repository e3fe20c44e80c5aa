"""UI package: event bus plus the PySide6 presentation layer under ``ui.qt``."""

from .events import EventBus

__all__ = ["EventBus"]
