"""Background job tasks"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Sequence
import asyncio
import structlog

from labflow.jobs.celery_app import celery_app
from labflow.config import settings
from labflow.services.notifications import NotificationEvent

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


def _rupees(paise: Optional[int]) -> str:
    return f"{(paise or 0) / 100:.2f}"


def render_message(event: str, payload: Dict[str, Any]) -> Optional[str]:
    """SMS body for an event, or None when the event has no text template"""
    number = payload.get("order_number", "")

    if event == NotificationEvent.OTP_REQUESTED:
        return f"Your verification code is {payload['otp']}. It expires in 5 minutes."
    if event == NotificationEvent.ORDER_CONFIRMED:
        return (
            f"Your order {number} for Rs {_rupees(payload.get('final_paise'))} is confirmed. "
            "We will schedule your sample collection shortly."
        )
    if event == NotificationEvent.SAMPLE_COLLECTION_SCHEDULED:
        return f"Our agent is on the way to collect samples for order {number}."
    if event == NotificationEvent.SAMPLE_COLLECTED:
        return f"Samples for order {number} have been collected and sent to the lab."
    if event == NotificationEvent.REPORT_READY:
        return f"Your report for order {number} is ready."
    if event == NotificationEvent.ORDER_COMPLETED:
        return f"Order {number} is complete. Thank you for choosing us."
    if event == NotificationEvent.ORDER_CANCELLED:
        return (
            f"Order {number} has been cancelled. "
            f"For help call {settings.support_phone}."
        )
    if event == NotificationEvent.HOME_VISIT_SCHEDULED:
        return (
            f"New home visit assigned for {payload.get('scheduled_date')} "
            f"{payload.get('scheduled_time')}."
        )
    if event == NotificationEvent.HOME_VISIT_REMINDER:
        return (
            f"Reminder: sample collection for order {number} is scheduled on "
            f"{payload.get('scheduled_date')} at {payload.get('scheduled_time')}. "
            "Please stay fasting if your test requires it."
        )
    return None


def recipient_for(event: str, payload: Dict[str, Any]) -> Optional[str]:
    if event == NotificationEvent.HOME_VISIT_SCHEDULED:
        return payload.get("agent_phone")
    return payload.get("phone")


def send_sms(to: str, body: str) -> bool:
    """Send through Twilio; returns False when Twilio is not configured"""
    if not (settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_phone_number):
        logger.info("Twilio not configured, SMS not sent", to_suffix=to[-4:])
        return False

    from twilio.rest import Client as TwilioClient

    client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
    client.messages.create(
        body=body,
        from_=settings.twilio_phone_number,
        to=to,
    )
    return True


@celery_app.task(name="dispatch_notification")
def dispatch_notification(event: str, payload: Dict[str, Any]):
    """Deliver one notification event"""
    body = render_message(event, payload)
    to = recipient_for(event, payload)

    if body is None or not to:
        logger.info("Notification has no SMS delivery", notification_event=event)
        return

    try:
        sent = send_sms(to, body)
    except Exception as e:
        logger.error("Failed to send notification", notification_event=event, error=str(e))
        raise

    logger.info("Notification dispatched", notification_event=event, sent=sent)


async def find_due_reminders(db, today: date) -> Sequence:
    """Scheduled visits for tomorrow that have not been reminded yet"""
    from labflow.models.home_visit import HomeVisit, VisitStatus
    from labflow.models.order import Order, OrderStatus
    from sqlalchemy import select, and_
    from sqlalchemy.orm import selectinload

    result = await db.execute(
        select(HomeVisit)
        .join(Order, Order.id == HomeVisit.order_id)
        .where(
            and_(
                HomeVisit.scheduled_date == today + timedelta(days=1),
                HomeVisit.status == VisitStatus.SCHEDULED,
                HomeVisit.reminder_sent.is_(None),
                Order.status != OrderStatus.CANCELLED,
            )
        )
        .options(selectinload(HomeVisit.order).selectinload(Order.user))
    )
    return result.scalars().all()


def reminder_payload(visit) -> Dict[str, Any]:
    return {
        "order_number": visit.order.order_number,
        "phone": visit.order.user.phone,
        "scheduled_date": visit.scheduled_date.isoformat(),
        "scheduled_time": visit.scheduled_time,
    }


async def send_due_reminders(db, today: date) -> int:
    """Text each due customer; a visit is marked reminded only once its SMS went out"""
    from labflow.models.home_visit import HomeVisit
    from sqlalchemy import update

    visits = await find_due_reminders(db, today)
    due = [(visit.id, reminder_payload(visit)) for visit in visits]
    sent_count = 0

    for visit_id, payload in due:
        try:
            sent = send_sms(payload["phone"], render_message(NotificationEvent.HOME_VISIT_REMINDER, payload))
            if not sent:
                logger.warning("Home visit reminder not sent", visit_id=str(visit_id))
                continue

            await db.execute(
                update(HomeVisit)
                .where(HomeVisit.id == visit_id)
                .values(reminder_sent=datetime.utcnow())
            )
            await db.commit()
            sent_count += 1

            logger.info("Sent home visit reminder", visit_id=str(visit_id))

        except Exception as e:
            await db.rollback()
            logger.error(
                "Failed to send home visit reminder",
                visit_id=str(visit_id),
                error=str(e),
            )

    return sent_count


@celery_app.task(name="send_home_visit_reminders")
def send_home_visit_reminders():
    """Remind customers of tomorrow's sample collection"""
    logger.info("Sending home visit reminders")

    async def _send_reminders():
        from labflow import database

        try:
            async with database.SessionLocal() as db:
                return await send_due_reminders(db, datetime.utcnow().date())
        finally:
            # Each run gets a fresh event loop; pooled connections must not outlive it
            await database.engine.dispose()

    sent = run_async(_send_reminders())
    logger.info("Home visit reminders sent", count=sent)
    return sent
