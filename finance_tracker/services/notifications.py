"""
Notification Sink

Surfaces the outcome of each ledger mutation to the user.

Notifications are fire-and-forget: a failing sink never rolls back the
mutation it reports on. The mutation flow guards every call.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from finance_tracker.models.ledger import utc_now


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FAILURE = "failure"


class Outcome(BaseModel):
    """One user-facing result message."""

    status: OutcomeStatus
    title: str
    message: str = ""
    error_code: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_failure(self) -> bool:
        return self.status == OutcomeStatus.FAILURE


class NotificationSink(ABC):
    """Receives outcomes after each mutation."""

    @abstractmethod
    def notify(self, outcome: Outcome) -> None:
        pass


class LogNotificationSink(NotificationSink):
    """Writes outcomes to the structured log only."""

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def notify(self, outcome: Outcome) -> None:
        log = self._logger.warning if outcome.is_failure else self._logger.info
        log(
            "ledger_outcome",
            status=outcome.status.value,
            title=outcome.title,
            message=outcome.message,
            error_code=outcome.error_code,
        )


class CollectingNotificationSink(NotificationSink):
    """
    Buffers outcomes until the UI drains them.

    The Streamlit app drains this after each action and shows toasts.
    """

    def __init__(self):
        self._outcomes: list[Outcome] = []

    def notify(self, outcome: Outcome) -> None:
        self._outcomes.append(outcome)

    @property
    def outcomes(self) -> list[Outcome]:
        return list(self._outcomes)

    def drain(self) -> list[Outcome]:
        """Return and clear buffered outcomes."""
        drained, self._outcomes = self._outcomes, []
        return drained
