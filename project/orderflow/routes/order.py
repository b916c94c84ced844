# orderflow/routes/order.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import List
from orderflow.models.order import OrderStatus
from orderflow.models.user import User as UserModel
from orderflow.schemas.common import Envelope
from orderflow.schemas.order import (
    DeliverOrder,
    Order,
    OrderCreate,
    OrderStatistics,
    OrderUpdate,
    ProcessOrder,
    VerifyPayment,
)
from orderflow.services.order import (
    create_order_service,
    delete_order_service,
    deliver_order_service,
    order_statistics_service,
    process_order_service,
    read_order_by_invoice_service,
    read_order_service,
    read_orders_service,
    update_order_service,
    verify_payment_service,
)
from orderflow.routes.auth import require_capability

router = APIRouter()

TRANSITION_RESPONSES = {
    200: {"description": "Order moved to the next status"},
    400: {"description": "A workflow precondition is not met"},
    401: {"description": "Token missing or invalid"},
    403: {"description": "Role not allowed to perform this step"},
    404: {"description": "Order not found"},
    409: {"description": "Order is not in the status this step starts from, or was modified concurrently"},
}

# ────────────── CREATE ──────────────
@router.post(
    "/",
    response_model=Envelope[Order],
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
    response_description="The new order, at pending_wallet",
    responses={
        201: {"description": "Order created"},
        400: {"description": "Invalid request data"},
        401: {"description": "Token missing or invalid"},
        403: {"description": "Only billing and admin create orders"},
        409: {"description": "Invoice code already exists"},
    },
)
async def create_order(
    request: Request,
    order: OrderCreate,
    current_user: UserModel = Depends(require_capability("orders:create")),
):
    try:
        db_order = await create_order_service(order, current_user.username, request)
        return {"success": True, "message": "Order created successfully", "data": db_order}
    except Exception as e:
        await request.app.state.log.log_error("order", f"Error creating order: {str(e)}", {"invoice_code": order.invoice_code})
        raise


# ────────────── READ ALL ──────────────
@router.get(
    "/",
    response_model=Envelope[List[Order]],
    summary="List orders",
    response_description="Orders newest first, each with its history",
    responses={401: {"description": "Token missing or invalid"}},
)
async def read_orders(
    request: Request,
    skip: int = 0,
    limit: int = 100,
    _: UserModel = Depends(require_capability("orders:read")),
):
    orders = await read_orders_service(request, skip, limit)
    return {"success": True, "data": orders}


# ────────────── STATISTICS ──────────────
@router.get(
    "/statistics",
    response_model=Envelope[OrderStatistics],
    summary="Order counts per status",
)
async def order_statistics(request: Request, _: UserModel = Depends(require_capability("orders:read"))):
    return {"success": True, "data": await order_statistics_service(request)}


# ────────────── BY STATUS ──────────────
@router.get(
    "/status/{order_status}",
    response_model=Envelope[List[Order]],
    summary="List orders in one status",
    responses={400: {"description": "Invalid status"}},
)
async def read_orders_by_status(
    order_status: str,
    request: Request,
    skip: int = 0,
    limit: int = 100,
    _: UserModel = Depends(require_capability("orders:read")),
):
    if order_status not in {s.value for s in OrderStatus}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")
    orders = await read_orders_service(request, skip, limit, order_status=order_status)
    return {"success": True, "data": orders}


# ────────────── BY INVOICE CODE ──────────────
@router.get(
    "/invoice/{invoice_code}",
    response_model=Envelope[Order],
    summary="Get an order by invoice code",
    responses={404: {"description": "Order not found"}},
)
async def read_order_by_invoice(
    invoice_code: str,
    request: Request,
    _: UserModel = Depends(require_capability("orders:read")),
):
    return {"success": True, "data": await read_order_by_invoice_service(invoice_code, request)}


# ────────────── READ ONE ──────────────
@router.get(
    "/{id}",
    response_model=Envelope[Order],
    summary="Get an order by ID",
    response_description="The order with its history in chronological order",
    responses={
        401: {"description": "Token missing or invalid"},
        404: {"description": "Order not found"},
    },
)
async def read_order(
    id: int,
    request: Request,
    _: UserModel = Depends(require_capability("orders:read")),
):
    return {"success": True, "data": await read_order_service(id, request)}


# ────────────── UPDATE ──────────────
@router.put(
    "/{id}",
    response_model=Envelope[Order],
    summary="Edit descriptive order fields",
    responses={
        400: {"description": "Unknown or workflow-controlled field sent"},
        401: {"description": "Token missing or invalid"},
        403: {"description": "Only billing and admin edit orders"},
        404: {"description": "Order not found"},
        409: {"description": "Order was modified concurrently"},
    },
)
async def update_order(
    id: int,
    order_update: OrderUpdate,
    request: Request,
    current_user: UserModel = Depends(require_capability("orders:edit")),
):
    try:
        db_order = await update_order_service(id, order_update, current_user.username, request)
        return {"success": True, "message": "Order updated successfully", "data": db_order}
    except Exception as e:
        await request.app.state.log.log_error("order", f"Error updating order: {str(e)}", {"id": id})
        raise


# ────────────── DELETE ──────────────
@router.delete(
    "/{id}",
    response_model=Envelope[None],
    summary="Delete an order and its history",
    responses={
        403: {"description": "Only admin deletes orders"},
        404: {"description": "Order not found"},
    },
)
async def delete_order(
    id: int,
    request: Request,
    _: UserModel = Depends(require_capability("orders:delete")),
):
    try:
        await delete_order_service(id, request)
        return {"success": True, "message": "Order deleted successfully"}
    except Exception as e:
        await request.app.state.log.log_error("order", f"Error deleting order: {str(e)}", {"id": id})
        raise


# ────────────── WORKFLOW ──────────────
@router.post(
    "/{id}/verify-payment",
    response_model=Envelope[Order],
    summary="Wallet: verify payment (pending_wallet -> pending_logistics)",
    responses=TRANSITION_RESPONSES,
)
async def verify_payment(
    id: int,
    body: VerifyPayment,
    request: Request,
    current_user: UserModel = Depends(require_capability("orders:verify_payment")),
):
    try:
        db_order = await verify_payment_service(id, body, current_user.username, request)
        return {"success": True, "message": "Payment verified", "data": db_order}
    except Exception as e:
        await request.app.state.log.log_error("order", f"Error verifying payment: {str(e)}", {"id": id})
        raise


@router.post(
    "/{id}/process",
    response_model=Envelope[Order],
    summary="Logistics: weigh and assign (pending_logistics -> pending, store pickup -> delivered)",
    responses=TRANSITION_RESPONSES,
)
async def process_order(
    id: int,
    body: ProcessOrder,
    request: Request,
    current_user: UserModel = Depends(require_capability("orders:process")),
):
    try:
        db_order = await process_order_service(id, body, current_user.username, request)
        return {"success": True, "message": "Order processed", "data": db_order}
    except Exception as e:
        await request.app.state.log.log_error("order", f"Error processing order: {str(e)}", {"id": id})
        raise


@router.post(
    "/{id}/deliver",
    response_model=Envelope[Order],
    summary="Courier: deliver (pending -> delivered)",
    responses=TRANSITION_RESPONSES,
)
async def deliver_order(
    id: int,
    body: DeliverOrder,
    request: Request,
    current_user: UserModel = Depends(require_capability("orders:deliver")),
):
    try:
        db_order = await deliver_order_service(id, body, current_user.username, request)
        return {"success": True, "message": "Order delivered", "data": db_order}
    except Exception as e:
        await request.app.state.log.log_error("order", f"Error delivering order: {str(e)}", {"id": id})
        raise
