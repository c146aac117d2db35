"""Thinking-step notifications.

The orchestrator reports pipeline progress ("validating", "correcting", ...)
through a notifier so chat clients can show what the assistant is doing.
"""

import logging
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, step: str, detail: Dict[str, Any]) -> None:
        ...


class NullNotifier:
    def notify(self, step: str, detail: Dict[str, Any]) -> None:
        return None


class LoggingNotifier:
    """Logs each step at debug level."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def notify(self, step: str, detail: Dict[str, Any]) -> None:
        self.log.debug("step=%s %s", step, detail)
