# orderflow/services/money_receipt.py

"""
Cash reconciliation between couriers and the wallet department.

Outstanding cash is never stored: it is computed from delivered cash orders
that still carry a collected amount and have no money_received_at stamp.
A money receipt zeroes those amounts and stamps the orders, which drops them
out of the next computation.
"""

import datetime
import json
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import and_, func
from sqlalchemy.future import select
from sqlalchemy.orm.exc import StaleDataError
from fastapi import HTTPException, Request, UploadFile, status

from orderflow.models.money_receipt import MoneyReceipt as MoneyReceiptModel
from orderflow.models.order import Order as OrderModel, OrderStatus, PaymentMethod
from orderflow.services import workflow
from orderflow.utils.database import utcnow
from orderflow.utils.uploads import remove_upload, save_upload

# delivered, paid in cash, cash still with the courier
OUTSTANDING = and_(
    OrderModel.status == OrderStatus.DELIVERED.value,
    OrderModel.payment_method == PaymentMethod.CASH.value,
    OrderModel.amount_collected > 0,
    OrderModel.money_received_at.is_(None),
    OrderModel.delivered_by.isnot(None),
)


def is_outstanding(order: OrderModel) -> bool:
    return (
        order.status == OrderStatus.DELIVERED.value
        and order.payment_method == PaymentMethod.CASH.value
        and order.amount_collected is not None
        and order.amount_collected > 0
        and order.money_received_at is None
        and order.delivered_by is not None
    )


def receipt_changes(receipt_id: int, user: str, now: datetime.datetime) -> dict:
    """Field changes that mark an order's cash as handed over."""
    return {
        "amount_collected": Decimal("0"),
        "money_received_at": now,
        "money_received_by": user,
        "receipt_id": receipt_id,
    }


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def parse_invoice_codes(raw: Optional[str]) -> List[str]:
    """JSON array of invoice codes from the form; duplicates are dropped."""
    try:
        codes = json.loads(raw)
    except (TypeError, ValueError):
        raise _bad_request("invoice_codes must be a valid JSON array")
    if not isinstance(codes, list) or not codes or not all(isinstance(c, str) and c for c in codes):
        raise _bad_request("invoice_codes must be a non-empty JSON array of invoice codes")
    return list(dict.fromkeys(codes))


def parse_amount(raw: Optional[str]) -> Decimal:
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise _bad_request("total_amount must be a number")
    if not amount.is_finite() or amount <= 0:
        raise _bad_request("total_amount must be greater than zero")
    return amount


# ────────────── Outstanding cash ──────────────
async def outstanding_summary_service(request: Request) -> dict:
    """
    Per courier: number of deliveries and cash not yet handed over.
    """
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(
        select(
            OrderModel.delivered_by,
            func.count(OrderModel.id),
            func.sum(OrderModel.amount_collected),
        )
        .where(OUTSTANDING)
        .group_by(OrderModel.delivered_by)
        .order_by(OrderModel.delivered_by)
    )

    couriers = [
        {"messenger_name": name, "delivery_count": count, "total_amount": Decimal(str(total or 0))}
        for name, count, total in result.all()
    ]
    summary = {
        "couriers": couriers,
        "messenger_count": len(couriers),
        "delivery_count": sum(c["delivery_count"] for c in couriers),
        "total_amount": sum((c["total_amount"] for c in couriers), Decimal("0")),
    }

    await log.log_info("ledger", "Outstanding cash computed", {
        "messengers": summary["messenger_count"],
        "total_amount": summary["total_amount"],
    })
    return summary


async def outstanding_orders_service(messenger_name: str, request: Request) -> list[OrderModel]:
    """
    The invoices behind one courier's outstanding balance.
    """
    db = request.state.db

    result = await db.execute(
        select(OrderModel)
        .where(OUTSTANDING, OrderModel.delivered_by == messenger_name)
        .order_by(OrderModel.delivery_date, OrderModel.id)
    )
    return result.scalars().all()


# ────────────── Confirming a handoff ──────────────
async def create_receipt_service(
    request: Request,
    username: str,
    messenger_name: Optional[str],
    total_amount: Optional[str],
    invoice_codes: Optional[str],
    photo: Optional[UploadFile] = None,
    notes: Optional[str] = None,
) -> MoneyReceiptModel:
    """
    Records cash received from a courier for the selected invoices.

    The photo is stored before anything is written to the database and is
    removed again when the database write fails. The receipt and every order
    stamp are committed together.
    """
    db = request.state.db
    log = request.app.state.log

    if not messenger_name or not total_amount or not invoice_codes:
        raise _bad_request("messenger_name, total_amount, and invoice_codes are required")

    amount = parse_amount(total_amount)
    codes = parse_invoice_codes(invoice_codes)

    result = await db.execute(select(OrderModel).where(OrderModel.invoice_code.in_(codes)))
    orders = {o.invoice_code: o for o in result.scalars().all()}

    missing = [c for c in codes if c not in orders]
    if missing:
        await log.log_warning("ledger", "Receipt for unknown invoices", {"invoice_codes": missing})
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Orders not found: {', '.join(missing)}",
        )

    not_owed = [c for c in codes if not is_outstanding(orders[c]) or orders[c].delivered_by != messenger_name]
    if not_owed:
        await log.log_warning("ledger", "Receipt for invoices not owed", {
            "messenger_name": messenger_name,
            "invoice_codes": not_owed,
        })
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"No outstanding cash from {messenger_name} for: {', '.join(not_owed)}",
        )

    expected = sum((orders[c].amount_collected for c in codes), Decimal("0"))
    if expected != amount:
        raise _bad_request(f"total_amount {amount} does not match the collected amount {expected}")

    filename = None
    if photo is not None and photo.filename:
        filename = await save_upload(photo)

    now = utcnow()
    try:
        receipt = MoneyReceiptModel(
            messenger_name=messenger_name,
            total_amount=amount,
            invoice_codes=json.dumps(codes),
            receipt_photo=filename,
            received_by=username,
            received_at=now,
            notes=notes or None,
        )
        db.add(receipt)
        await db.flush()

        for code in codes:
            workflow.apply_changes(orders[code], receipt_changes(receipt.id, username, now), username, now)

        await db.commit()
    except StaleDataError:
        await db.rollback()
        if filename:
            remove_upload(filename)
        await log.log_warning("ledger", "Concurrent update while recording receipt", {"invoice_codes": codes})
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Orders were modified by someone else, reload and try again",
        )
    except Exception:
        await db.rollback()
        if filename:
            remove_upload(filename)
        raise

    await log.log_info("ledger", "Money receipt created", {
        "id": receipt.id,
        "messenger_name": messenger_name,
        "total_amount": amount,
        "invoice_codes": codes,
        "photo": filename,
    })
    return receipt


# ────────────── Receipt queries ──────────────
def _day_bounds(start: datetime.date, end: datetime.date):
    lower = datetime.datetime.combine(start, datetime.time.min, tzinfo=datetime.timezone.utc)
    upper = datetime.datetime.combine(end + datetime.timedelta(days=1), datetime.time.min, tzinfo=datetime.timezone.utc)
    return lower, upper


async def read_receipts_service(
    request: Request,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
    messenger_name: Optional[str] = None,
) -> list[MoneyReceiptModel]:
    """
    Receipts newest first, optionally within [start_date, end_date] (UTC days)
    or for one courier.
    """
    db = request.state.db
    log = request.app.state.log

    query = select(MoneyReceiptModel).order_by(MoneyReceiptModel.received_at.desc(), MoneyReceiptModel.id.desc())
    if start_date is not None and end_date is not None:
        lower, upper = _day_bounds(start_date, end_date)
        query = query.where(MoneyReceiptModel.received_at >= lower, MoneyReceiptModel.received_at < upper)
    if messenger_name is not None:
        query = query.where(MoneyReceiptModel.messenger_name == messenger_name)

    result = await db.execute(query)
    receipts = result.scalars().all()

    await log.log_info("ledger", f"{len(receipts)} receipts loaded", {
        "start_date": start_date,
        "end_date": end_date,
        "messenger_name": messenger_name,
    })
    return receipts


async def read_receipt_service(id: int, request: Request) -> MoneyReceiptModel:
    db = request.state.db
    log = request.app.state.log

    receipt = await db.get(MoneyReceiptModel, id)
    if receipt is None:
        await log.log_error("ledger", "Receipt not found", {"id": id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    return receipt


async def receipt_statistics_service(request: Request) -> dict:
    """
    Today's receipts: count, sum, distinct couriers.
    """
    db = request.state.db

    today = utcnow().date()
    lower, upper = _day_bounds(today, today)
    result = await db.execute(
        select(
            func.count(MoneyReceiptModel.id),
            func.sum(MoneyReceiptModel.total_amount),
            func.count(func.distinct(MoneyReceiptModel.messenger_name)),
        ).where(MoneyReceiptModel.received_at >= lower, MoneyReceiptModel.received_at < upper)
    )
    count, total, messengers = result.one()
    return {
        "total_receipts": count,
        "total_amount": Decimal(str(total or 0)),
        "unique_messengers": messengers,
        "receipt_date": today,
    }
