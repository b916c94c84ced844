# orderflow/routes/money_receipt.py

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import FileResponse

from orderflow.models.user import User as UserModel
from orderflow.routes.auth import require_capability
from orderflow.schemas.common import Envelope
from orderflow.schemas.money_receipt import (
    MoneyReceipt,
    OutstandingInvoice,
    OutstandingSummary,
    ReceiptStatistics,
)
from orderflow.services.money_receipt import (
    create_receipt_service,
    outstanding_orders_service,
    outstanding_summary_service,
    read_receipt_service,
    read_receipts_service,
    receipt_statistics_service,
)
from orderflow.utils.database import utcnow
from orderflow.utils.uploads import resolve_upload

router = APIRouter()

# ────────────── OUTSTANDING ──────────────
@router.get(
    "/outstanding",
    response_model=Envelope[OutstandingSummary],
    summary="Cash each courier still holds",
    responses={
        401: {"description": "Token missing or invalid"},
        403: {"description": "Only wallet and admin see the ledger"},
    },
)
async def outstanding_summary(request: Request, _: UserModel = Depends(require_capability("receipts:read"))):
    return {"success": True, "data": await outstanding_summary_service(request)}


@router.get(
    "/outstanding/{messenger_name}",
    response_model=Envelope[List[OutstandingInvoice]],
    summary="Invoices behind one courier's balance",
)
async def outstanding_orders(
    messenger_name: str,
    request: Request,
    _: UserModel = Depends(require_capability("receipts:read")),
):
    return {"success": True, "data": await outstanding_orders_service(messenger_name, request)}


# ────────────── CREATE ──────────────
@router.post(
    "/",
    response_model=Envelope[MoneyReceipt],
    status_code=status.HTTP_201_CREATED,
    summary="Confirm cash received from a courier",
    response_description="The stored receipt",
    responses={
        201: {"description": "Receipt stored and the invoices marked as received"},
        400: {"description": "Missing fields, bad amount, total mismatch, or bad file"},
        401: {"description": "Token missing or invalid"},
        403: {"description": "Only wallet and admin confirm receipts"},
        404: {"description": "An invoice code does not exist"},
        409: {"description": "An invoice has no outstanding cash from this courier"},
    },
)
async def create_receipt(
    request: Request,
    messenger_name: Optional[str] = Form(None),
    total_amount: Optional[str] = Form(None),
    invoice_codes: Optional[str] = Form(None, description='JSON array, e.g. ["INV-1","INV-2"]'),
    notes: Optional[str] = Form(None),
    receipt_photo: Optional[UploadFile] = File(None),
    current_user: UserModel = Depends(require_capability("receipts:create")),
):
    try:
        receipt = await create_receipt_service(
            request,
            current_user.username,
            messenger_name,
            total_amount,
            invoice_codes,
            photo=receipt_photo,
            notes=notes,
        )
        return {"success": True, "message": "Money receipt created successfully", "data": receipt}
    except Exception as e:
        await request.app.state.log.log_error(
            "ledger", f"Error creating money receipt: {str(e)}", {"messenger_name": messenger_name}
        )
        raise


# ────────────── QUERIES ──────────────
@router.get(
    "/",
    response_model=Envelope[List[MoneyReceipt]],
    summary="All receipts, newest first",
)
async def read_receipts(request: Request, _: UserModel = Depends(require_capability("receipts:read"))):
    return {"success": True, "data": await read_receipts_service(request)}


@router.get(
    "/today",
    response_model=Envelope[List[MoneyReceipt]],
    summary="Receipts recorded today (UTC)",
)
async def read_today_receipts(request: Request, _: UserModel = Depends(require_capability("receipts:read"))):
    today = utcnow().date()
    return {"success": True, "data": await read_receipts_service(request, start_date=today, end_date=today)}


@router.get(
    "/date-range",
    response_model=Envelope[List[MoneyReceipt]],
    summary="Receipts between two dates, both inclusive",
    responses={400: {"description": "start_date or end_date missing, or start after end"}},
)
async def read_receipts_by_date_range(
    request: Request,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    _: UserModel = Depends(require_capability("receipts:read")),
):
    if start_date is None or end_date is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date and end_date are required")
    if start_date > end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must not be after end_date")
    receipts = await read_receipts_service(request, start_date=start_date, end_date=end_date)
    return {"success": True, "data": receipts}


@router.get(
    "/messenger/{messenger_name}",
    response_model=Envelope[List[MoneyReceipt]],
    summary="Receipts for one courier",
)
async def read_receipts_by_messenger(
    messenger_name: str,
    request: Request,
    _: UserModel = Depends(require_capability("receipts:read")),
):
    return {"success": True, "data": await read_receipts_service(request, messenger_name=messenger_name)}


@router.get(
    "/statistics",
    response_model=Envelope[ReceiptStatistics],
    summary="Today's receipt totals",
)
async def receipt_statistics(request: Request, _: UserModel = Depends(require_capability("receipts:read"))):
    return {"success": True, "data": await receipt_statistics_service(request)}


@router.get(
    "/photo/{filename}",
    summary="Download a receipt photo",
    response_class=FileResponse,
    responses={404: {"description": "Photo not found"}},
)
async def read_receipt_photo(
    filename: str,
    request: Request,
    _: UserModel = Depends(require_capability("receipts:read")),
):
    path = resolve_upload(filename)
    if path is None:
        await request.app.state.log.log_warning("ledger", "Receipt photo not found", {"filename": filename})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found")
    return FileResponse(path)


@router.get(
    "/{id}",
    response_model=Envelope[MoneyReceipt],
    summary="Get a receipt by ID",
    responses={404: {"description": "Receipt not found"}},
)
async def read_receipt(
    id: int,
    request: Request,
    _: UserModel = Depends(require_capability("receipts:read")),
):
    return {"success": True, "data": await read_receipt_service(id, request)}
