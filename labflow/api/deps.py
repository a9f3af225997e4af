"""Shared API dependencies"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from labflow.database import get_db
from labflow.services.notifications import CeleryNotifier, Notifier
from labflow.services.order_ledger import OrderLedger


def get_notifier() -> Notifier:
    return CeleryNotifier()


async def get_ledger(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> OrderLedger:
    return OrderLedger(db, notifier)
