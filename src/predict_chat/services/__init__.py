"""Services package.

Keep this module lightweight: importing `predict_chat.services` should not
open databases or start threads.
"""

from .event_bus import EventBus, Events, event_bus
from .logger import cleanup_logging, get_logger, setup_logging

__all__ = [
    "EventBus",
    "Events",
    "event_bus",
    "get_logger",
    "setup_logging",
    "cleanup_logging",
]
