"""Background job tests"""

import asyncio
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from labflow import database
from labflow.database import Base
from labflow.jobs import tasks
from labflow.jobs.tasks import (
    find_due_reminders,
    recipient_for,
    reminder_payload,
    render_message,
    send_due_reminders,
)
from labflow.models.home_visit import HomeVisit
from labflow.models.order import OrderStatus
from labflow.services.notifications import NotificationEvent


def test_render_order_confirmed_in_rupees():
    body = render_message(
        NotificationEvent.ORDER_CONFIRMED,
        {"order_number": "LF2026ABCDEF12", "final_paise": 72050},
    )

    assert "LF2026ABCDEF12" in body
    assert "Rs 720.50" in body


def test_render_otp():
    body = render_message(NotificationEvent.OTP_REQUESTED, {"phone": "+917777777777", "otp": "123456"})

    assert "123456" in body


def test_unknown_event_has_no_template():
    assert render_message("SOMETHING_ELSE", {}) is None


def test_agent_receives_assignment():
    payload = {"phone": "+919999999999", "agent_phone": "+919000000002"}

    assert recipient_for(NotificationEvent.HOME_VISIT_SCHEDULED, payload) == "+919000000002"
    assert recipient_for(NotificationEvent.ORDER_CONFIRMED, payload) == "+919999999999"


def test_dispatch_sends_sms(monkeypatch):
    sent = []
    monkeypatch.setattr(tasks, "send_sms", lambda to, body: sent.append((to, body)) or True)

    tasks.dispatch_notification(
        NotificationEvent.REPORT_READY,
        {"order_number": "LF1", "phone": "+919999999999"},
    )

    assert sent == [("+919999999999", "Your report for order LF1 is ready.")]


def test_dispatch_skips_without_recipient(monkeypatch):
    sent = []
    monkeypatch.setattr(tasks, "send_sms", lambda to, body: sent.append((to, body)) or True)

    tasks.dispatch_notification(NotificationEvent.REPORT_READY, {"order_number": "LF1"})

    assert sent == []


def test_send_sms_without_twilio(monkeypatch):
    monkeypatch.setattr(tasks.settings, "twilio_account_sid", "")

    assert tasks.send_sms("+919999999999", "hello") is False


@pytest.mark.asyncio
async def test_due_reminders(test_db, ledger, place_order, test_admin):
    due = await place_order()
    cancelled = await place_order()
    await ledger.transition(cancelled.id, OrderStatus.CANCELLED, test_admin.id)
    reminded = await place_order()
    await test_db.execute(
        update(HomeVisit)
        .where(HomeVisit.order_id == reminded.id)
        .values(reminder_sent=datetime.utcnow())
    )
    await test_db.commit()

    visits = await find_due_reminders(test_db, date.today())

    assert [visit.order_id for visit in visits] == [due.id]
    payload = reminder_payload(visits[0])
    assert payload["phone"] == "+919999999999"
    assert payload["scheduled_date"] == (date.today() + timedelta(days=1)).isoformat()
    assert "Reminder" in render_message(NotificationEvent.HOME_VISIT_REMINDER, payload)


@pytest.mark.asyncio
async def test_no_reminders_for_other_days(test_db, place_order):
    await place_order()

    assert await find_due_reminders(test_db, date.today() - timedelta(days=1)) == []


@pytest.mark.asyncio
async def test_reminder_not_marked_when_sms_fails(monkeypatch, test_db, session_factory, place_order):
    order_id = (await place_order()).id
    monkeypatch.setattr(tasks, "send_sms", lambda to, body: False)

    async with session_factory() as db:
        assert await send_due_reminders(db, date.today()) == 0

    result = await test_db.execute(select(HomeVisit.reminder_sent).where(HomeVisit.order_id == order_id))
    assert result.scalar_one() is None
    assert len(await find_due_reminders(test_db, date.today())) == 1


@pytest.mark.asyncio
async def test_reminder_marked_once_sent(monkeypatch, test_db, session_factory, place_order):
    order_id = (await place_order()).id
    sent = []
    monkeypatch.setattr(tasks, "send_sms", lambda to, body: sent.append(to) or True)

    async with session_factory() as db:
        assert await send_due_reminders(db, date.today()) == 1
    assert sent == ["+919999999999"]

    result = await test_db.execute(select(HomeVisit.reminder_sent).where(HomeVisit.order_id == order_id))
    assert result.scalar_one() is not None
    async with session_factory() as db:
        assert await send_due_reminders(db, date.today()) == 0


class CountingEngine:
    """Wraps an engine and counts pool disposals"""

    def __init__(self, engine):
        self.engine = engine
        self.disposals = 0

    async def dispose(self):
        self.disposals += 1
        await self.engine.dispose()


def test_reminder_task_disposes_engine_each_run(monkeypatch, tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(create_tables())
    counting = CountingEngine(engine)
    monkeypatch.setattr(database, "engine", counting)
    monkeypatch.setattr(database, "SessionLocal", async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    # Every run owns its event loop, so the second one only works with a clean pool
    assert tasks.send_home_visit_reminders() == 0
    assert tasks.send_home_visit_reminders() == 0

    assert counting.disposals == 2
