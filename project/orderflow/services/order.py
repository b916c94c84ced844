# orderflow/services/order.py

from typing import Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.orm.exc import StaleDataError
from fastapi import HTTPException, Request, status

from orderflow.config import settings
from orderflow.models.order import Order as OrderModel, OrderStatus, PaymentStatus
from orderflow.schemas.order import DeliverOrder, OrderCreate, OrderUpdate, ProcessOrder, VerifyPayment
from orderflow.services import workflow
from orderflow.utils.database import utcnow


async def _get_order(db, log, id: int, action: str = "") -> OrderModel:
    result = await db.execute(select(OrderModel).where(OrderModel.id == id))
    db_order = result.scalar_one_or_none()
    if db_order is None:
        await log.log_error("order", f"Order not found{action}", {"id": id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return db_order


async def _commit(db, log, db_order: OrderModel) -> None:
    """
    Commit, turning a lost optimistic-lock race or an invoice code clash into
    409. Any other constraint failure is bad input, 400.
    """
    ident = {"id": db_order.id, "invoice_code": db_order.invoice_code}
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        await log.log_warning("order", "Concurrent update rejected", ident)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Order was modified by someone else, reload and try again",
        )
    except IntegrityError as e:
        await db.rollback()
        if "invoice_code" in str(e.orig):
            await log.log_warning("order", "Duplicate invoice code", ident)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Invoice code already exists")
        await log.log_warning("order", f"Constraint violated: {e.orig}", ident)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid order data")


async def read_orders_service(
    request: Request, skip: int = 0, limit: int = 100, order_status: Optional[str] = None
) -> list[OrderModel]:
    """
    Orders newest first, each with its full history.
    """
    db = request.state.db
    log = request.app.state.log

    query = select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
    if order_status is not None:
        query = query.where(OrderModel.status == order_status)
    result = await db.execute(query.offset(skip).limit(limit))
    orders = result.scalars().all()

    await log.log_info("order", f"{len(orders)} orders loaded", {"status": order_status})
    return orders


async def read_order_service(id: int, request: Request) -> OrderModel:
    db = request.state.db
    log = request.app.state.log

    db_order = await _get_order(db, log, id)
    await log.log_info("order", "Order loaded", {"id": id})
    return db_order


async def read_order_by_invoice_service(invoice_code: str, request: Request) -> OrderModel:
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(select(OrderModel).where(OrderModel.invoice_code == invoice_code))
    db_order = result.scalar_one_or_none()
    if db_order is None:
        await log.log_error("order", "Order not found", {"invoice_code": invoice_code})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return db_order


async def create_order_service(order: OrderCreate, username: str, request: Request) -> OrderModel:
    """
    New order at pending_wallet with payment pending; only wallet marks it
    paid, against a proof. Duplicate invoice code -> 409, nothing written.
    """
    db = request.state.db
    log = request.app.state.log

    existing = await db.execute(select(OrderModel.id).where(OrderModel.invoice_code == order.invoice_code))
    if existing.scalar_one_or_none() is not None:
        await log.log_warning("order", "Duplicate invoice code", {"invoice_code": order.invoice_code})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Invoice code already exists")

    now = utcnow()
    db_order = OrderModel(
        invoice_code=order.invoice_code,
        client_name=order.client_name,
        delivery_method=order.delivery_method.value,
        payment_method=order.payment_method.value,
        total_amount=order.total_amount,
        payment_status=PaymentStatus.PENDING.value,
        billed_by=username,
        address=order.address,
        phone=order.phone,
        notes=order.notes,
        status=None,
    )
    # the creation itself is the first status change in the trail
    workflow.apply_changes(db_order, {"status": OrderStatus.PENDING_WALLET.value}, username, now)
    db.add(db_order)
    await _commit(db, log, db_order)

    await log.log_info("order", "Order created", {"id": db_order.id, "invoice_code": db_order.invoice_code})
    return db_order


async def update_order_service(id: int, order_update: OrderUpdate, username: str, request: Request) -> OrderModel:
    """
    Edits descriptive fields; each change is audited.
    """
    db = request.state.db
    log = request.app.state.log

    db_order = await _get_order(db, log, id, " for update")
    workflow.check_version(db_order, order_update.version)

    changes = order_update.model_dump(exclude_unset=True, exclude={"version"})
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")

    entries = workflow.apply_changes(db_order, changes, username, utcnow())
    await _commit(db, log, db_order)

    await log.log_info("order", "Order updated", {"id": id, "fields": [e.field for e in entries]})
    return db_order


async def delete_order_service(id: int, request: Request) -> None:
    """
    Deletes the order together with its history.
    """
    db = request.state.db
    log = request.app.state.log

    db_order = await _get_order(db, log, id, " for delete")
    await db.delete(db_order)
    await db.commit()
    await log.log_info("order", "Order deleted", {"id": id, "invoice_code": db_order.invoice_code})


# ────────────── Transitions ──────────────
async def _transition(id: int, version: Optional[int], username: str, request: Request, action: str, build) -> OrderModel:
    db = request.state.db
    log = request.app.state.log

    db_order = await _get_order(db, log, id, f" for {action}")
    workflow.check_version(db_order, version)

    now = utcnow()
    old_status = db_order.status
    try:
        changes = build(db_order, now)
    except HTTPException as e:
        await log.log_warning("order", f"{action} rejected: {e.detail}", {"id": id, "user": username})
        raise

    workflow.apply_changes(db_order, changes, username, now)
    await _commit(db, log, db_order)

    await log.log_info(
        "order", f"{action} done", {"id": id, "from": old_status, "to": db_order.status, "user": username}
    )
    return db_order


async def verify_payment_service(id: int, body: VerifyPayment, username: str, request: Request) -> OrderModel:
    return await _transition(
        id, body.version, username, request, "verify payment",
        lambda order, now: workflow.verify_payment_changes(
            order,
            payment_status=body.payment_status,
            payment_proof=body.payment_proof,
            credit_approved=body.credit_approved,
            notes=body.notes,
        ),
    )


async def process_order_service(id: int, body: ProcessOrder, username: str, request: Request) -> OrderModel:
    return await _transition(
        id, body.version, username, request, "process",
        lambda order, now: workflow.process_changes(
            order,
            user=username,
            now=now,
            local_carriers=settings.LOCAL_CARRIERS,
            national_carriers=settings.NATIONAL_CARRIERS,
            weight=body.weight,
            no_weight=body.no_weight,
            recipient=body.recipient,
            notes=body.notes,
        ),
    )


async def deliver_order_service(id: int, body: DeliverOrder, username: str, request: Request) -> OrderModel:
    return await _transition(
        id, body.version, username, request, "deliver",
        lambda order, now: workflow.deliver_changes(
            order,
            user=username,
            now=now,
            delivery_proof=body.delivery_proof,
            amount_collected=body.amount_collected,
            notes=body.notes,
        ),
    )


async def order_statistics_service(request: Request) -> dict:
    """
    Number of orders per status plus the total.
    """
    db = request.state.db

    result = await db.execute(select(OrderModel.status, func.count(OrderModel.id)).group_by(OrderModel.status))
    stats = {s.value: 0 for s in OrderStatus}
    for order_status, count in result.all():
        stats[order_status] = count
    stats["total"] = sum(stats.values())
    return stats
