"""Notification collaborator"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

import structlog

logger = structlog.get_logger()


class NotificationEvent:
    """Event names understood by the notification dispatcher"""
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    SAMPLE_COLLECTION_SCHEDULED = "SAMPLE_COLLECTION_SCHEDULED"
    SAMPLE_COLLECTED = "SAMPLE_COLLECTED"
    REPORT_READY = "REPORT_READY"
    ORDER_COMPLETED = "ORDER_COMPLETED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    HOME_VISIT_SCHEDULED = "HOME_VISIT_SCHEDULED"
    HOME_VISIT_REMINDER = "HOME_VISIT_REMINDER"
    OTP_REQUESTED = "OTP_REQUESTED"


class Notifier(ABC):
    """Delivers (event, payload) pairs to customers and staff"""

    @abstractmethod
    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        """Hand an event to the delivery channel"""
        pass


class CeleryNotifier(Notifier):
    """Enqueue notifications on the background worker"""

    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        from labflow.jobs.celery_app import celery_app

        # The state change has already committed; a broker outage must not undo it.
        try:
            celery_app.send_task("dispatch_notification", args=[event, payload])
        except Exception as e:
            logger.error("Failed to enqueue notification", notification_event=event, error=str(e))


class RecordingNotifier(Notifier):
    """Keeps notifications in memory; used in development and tests"""

    def __init__(self):
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info("Notification recorded", notification_event=event)
        self.sent.append((event, payload))

    def events(self) -> List[str]:
        return [event for event, _ in self.sent]
