"""Report API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from labflow.api.auth import get_current_active_user, require_capability
from labflow.api.deps import get_ledger
from labflow.errors import Forbidden
from labflow.models.user import Capability, User
from labflow.schemas.report import ReportResponse
from labflow.services.authz import can_view_order
from labflow.services.order_ledger import OrderLedger
from labflow.services.reports import ReportVault

router = APIRouter()


async def get_report_vault(ledger: OrderLedger = Depends(get_ledger)) -> ReportVault:
    return ReportVault(ledger)


@router.post("/upload", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def upload_report(
    order_id: UUID = Form(...),
    file: UploadFile = File(...),
    notes: Optional[str] = Form(None),
    current_user: User = Depends(require_capability(Capability.MANAGE_REPORTS)),
    vault: ReportVault = Depends(get_report_vault),
):
    """Upload the report for an order"""
    # One byte past the limit is enough to reject an oversized upload
    data = await file.read(vault.max_bytes + 1)
    return await vault.upload(
        order_id,
        file.filename,
        file.content_type,
        data,
        uploader_id=current_user.id,
        notes=notes,
    )


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: UUID,
    current_user: User = Depends(get_current_active_user),
    vault: ReportVault = Depends(get_report_vault),
):
    """Report metadata"""
    report = await vault.get_report(report_id)
    if not can_view_order(current_user, report.order):
        raise Forbidden(report_id=str(report_id))
    return report


@router.put("/{report_id}/deliver", response_model=ReportResponse)
async def deliver_report(
    report_id: UUID,
    current_user: User = Depends(require_capability(Capability.MANAGE_REPORTS)),
    vault: ReportVault = Depends(get_report_vault),
):
    """Mark a report as delivered; completes the order"""
    return await vault.deliver(report_id, actor_id=current_user.id)
