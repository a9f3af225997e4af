"""Report storage and delivery"""

import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from labflow.config import settings
from labflow.errors import (
    AlreadyDelivered,
    DuplicateReport,
    ReportNotFound,
    TooLarge,
    UnsupportedType,
)
from labflow.models.order import OrderStatus
from labflow.models.report import Report
from labflow.services.order_ledger import OrderLedger

logger = structlog.get_logger()


ALLOWED_CONTENT_TYPES = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
}


def report_file_name(order_id: uuid.UUID, content_type: str, original_name: Optional[str] = None) -> str:
    """``report_<order_id>_<millis>.<ext>``, keeping the uploaded extension when it is recognised"""
    extension = ALLOWED_CONTENT_TYPES[content_type]
    if original_name and "." in original_name:
        candidate = original_name.rsplit(".", 1)[1].lower()
        if candidate in {"pdf", "jpg", "jpeg", "png"}:
            extension = candidate
    timestamp = int(datetime.utcnow().timestamp() * 1000)
    return f"report_{order_id}_{timestamp}.{extension}"


class ReportVault:
    """
    Stores one report per order and tracks its delivery.

    Uploading moves the order to REPORT_READY; delivering moves it to
    COMPLETED. Both run the order transition in the same transaction as the
    report row.
    """

    def __init__(
        self,
        ledger: OrderLedger,
        storage_path: Optional[str] = None,
        max_bytes: Optional[int] = None,
    ):
        self.ledger = ledger
        self.db = ledger.db
        self.storage_path = Path(storage_path or settings.report_storage_path)
        self.max_bytes = max_bytes if max_bytes is not None else settings.report_max_bytes

    def _write_file(self, file_path: Path, data: bytes) -> None:
        self.storage_path.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)

    @staticmethod
    def _remove_file(file_path: Path) -> None:
        if file_path.exists():
            os.remove(file_path)

    async def get_report(self, report_id: uuid.UUID) -> Report:
        result = await self.db.execute(
            select(Report)
            .where(Report.id == report_id)
            .options(selectinload(Report.order))
            .execution_options(populate_existing=True)
        )
        report = result.scalar_one_or_none()
        if report is None:
            raise ReportNotFound(report_id=str(report_id))
        return report

    async def upload(
        self,
        order_id: uuid.UUID,
        file_name: Optional[str],
        content_type: Optional[str],
        data: bytes,
        uploader_id: uuid.UUID,
        notes: Optional[str] = None,
    ) -> Report:
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedType(content_type=content_type)

        if len(data) > self.max_bytes:
            raise TooLarge(
                f"File size too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB.",
                size=len(data),
                max_bytes=self.max_bytes,
            )

        order = await self.ledger.get_order(order_id)
        if order.report is not None:
            raise DuplicateReport(order_id=str(order_id))

        stored_name = report_file_name(order.id, content_type, file_name)
        file_path = self.storage_path / stored_name

        await run_in_threadpool(self._write_file, file_path, data)

        try:
            report = Report(
                order_id=order.id,
                uploaded_by=uploader_id,
                file_name=stored_name,
                file_path=str(file_path),
                content_type=content_type,
                file_size=len(data),
                notes=notes,
                is_delivered=False,
            )
            self.db.add(report)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise DuplicateReport(order_id=str(order_id)) from e

            if order.status != OrderStatus.REPORT_READY:
                await self.ledger.apply_transition(
                    order.id,
                    OrderStatus.REPORT_READY,
                    uploader_id,
                    notes="Report uploaded",
                )
            await self.ledger.commit()
        except Exception:
            await self.ledger.rollback()
            await run_in_threadpool(self._remove_file, file_path)
            raise

        logger.info(
            "Report uploaded",
            report_id=str(report.id),
            order_id=str(order.id),
            file_size=len(data),
        )
        return await self.get_report(report.id)

    async def deliver(self, report_id: uuid.UUID, actor_id: uuid.UUID) -> Report:
        try:
            report = await self.get_report(report_id)
            if report.is_delivered:
                raise AlreadyDelivered(report_id=str(report.id))

            result = await self.db.execute(
                update(Report)
                .where(Report.id == report.id, Report.is_delivered == False)
                .values(is_delivered=True, delivered_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise AlreadyDelivered(report_id=str(report.id))

            if report.order.status != OrderStatus.COMPLETED:
                await self.ledger.apply_transition(
                    report.order_id,
                    OrderStatus.COMPLETED,
                    actor_id,
                    notes="Report delivered",
                )
            await self.ledger.commit()
        except Exception:
            await self.ledger.rollback()
            raise

        logger.info("Report delivered", report_id=str(report_id), actor_id=str(actor_id))
        return await self.get_report(report_id)
