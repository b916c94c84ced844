# orderflow/services/workflow.py

"""
Order workflow rules.

Every role action is turned into a plain dict of field changes by one of the
*_changes functions below; apply_changes() is the only place that writes
those changes onto an Order. It rejects any status move outside the forward
sequence and appends one OrderHistory row per tracked field that actually
changed. Nothing here touches the database session.
"""

import datetime
import decimal
import enum
from typing import Iterable, List, Optional, Tuple

from fastapi import HTTPException, status

from orderflow.models.order import (
    Order,
    OrderHistory,
    OrderStatus,
    DeliveryMethod,
    PaymentMethod,
    PaymentStatus,
    STATUS_SEQUENCE,
)

# fields audited in order_history; anything else (id, version, timestamps) is not
TRACKED_FIELDS = (
    "invoice_code",
    "client_name",
    "delivery_method",
    "payment_method",
    "total_amount",
    "status",
    "payment_status",
    "billed_by",
    "weight",
    "recipient",
    "address",
    "phone",
    "payment_proof",
    "delivery_proof",
    "amount_collected",
    "delivery_date",
    "delivered_by",
    "notes",
    "money_received_at",
    "money_received_by",
    "receipt_id",
)

SHIPMENT_METHODS = (DeliveryMethod.DOMESTIC_SHIPMENT.value, DeliveryMethod.INTERNATIONAL_SHIPMENT.value)


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


# ────────────── Values ──────────────
def render_value(value) -> Optional[str]:
    """String form of a field value as stored in order_history."""
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, decimal.Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return str(value)


def _storable(value):
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _comparable(value):
    value = _storable(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return decimal.Decimal(str(value))
    return value


# ────────────── Status guards ──────────────
def check_version(order: Order, version: Optional[int]) -> None:
    """Optimistic lock: the caller's copy must still be the current one."""
    if version is not None and version != order.version:
        raise _conflict(
            f"Order {order.invoice_code} was modified by someone else "
            f"(version {order.version}, got {version})"
        )


def require_status(order: Order, expected: OrderStatus) -> None:
    if order.status == OrderStatus.DELIVERED.value:
        raise _conflict(f"Order {order.invoice_code} is already delivered")
    if order.status != expected.value:
        raise _conflict(
            f"Order {order.invoice_code} is in status '{order.status}', expected '{expected.value}'"
        )


def check_transition(order: Order, new_status: str) -> None:
    """
    Allows only a single step forward in STATUS_SEQUENCE.
    Store pickup orders go from pending_logistics straight to delivered.
    """
    if order.status is None:
        # brand new order
        if new_status == OrderStatus.PENDING_WALLET.value:
            return
        raise _conflict("New orders start at pending_wallet")

    try:
        current = OrderStatus(order.status)
        target = OrderStatus(new_status)
    except ValueError:
        raise _bad_request(f"Unknown status '{new_status}'")

    if current == target:
        return
    if current == OrderStatus.DELIVERED:
        raise _conflict(f"Order {order.invoice_code} is already delivered")

    allowed = STATUS_SEQUENCE[STATUS_SEQUENCE.index(current) + 1]
    if target == allowed:
        return
    if (
        order.delivery_method == DeliveryMethod.STORE_PICKUP.value
        and current == OrderStatus.PENDING_LOGISTICS
        and target == OrderStatus.DELIVERED
    ):
        return
    raise _conflict(
        f"Order {order.invoice_code} cannot move from '{current.value}' to '{target.value}'"
    )


# ────────────── Role actions ──────────────
def verify_payment_changes(
    order: Order,
    payment_status: PaymentStatus,
    payment_proof: Optional[str] = None,
    credit_approved: bool = False,
    notes: Optional[str] = None,
) -> dict:
    """Wallet: pending_wallet -> pending_logistics."""
    require_status(order, OrderStatus.PENDING_WALLET)

    effective = PaymentStatus(payment_status)
    if credit_approved and effective != PaymentStatus.PAID:
        effective = PaymentStatus.CREDIT_APPROVED

    if effective == PaymentStatus.PAID and not payment_proof:
        raise _bad_request("A payment proof is required to mark the order as paid")

    if order.delivery_method == DeliveryMethod.STORE_PICKUP.value and effective != PaymentStatus.PAID:
        raise _bad_request("Store pickup orders must be paid before they leave wallet")

    if order.delivery_method in SHIPMENT_METHODS and effective not in (
        PaymentStatus.PAID,
        PaymentStatus.CREDIT_APPROVED,
    ):
        raise _bad_request("Shipments must be paid or have credit approved")

    changes = {
        "payment_status": effective.value,
        "status": OrderStatus.PENDING_LOGISTICS.value,
    }
    if payment_proof:
        changes["payment_proof"] = payment_proof
    if notes:
        changes["notes"] = notes
    return changes


def carriers_for(delivery_method: str, local_carriers: Iterable[str], national_carriers: Iterable[str]) -> List[str]:
    if delivery_method == DeliveryMethod.LOCAL_DELIVERY.value:
        return list(local_carriers)
    if delivery_method in SHIPMENT_METHODS:
        return list(national_carriers)
    return []


def process_changes(
    order: Order,
    user: str,
    now: datetime.datetime,
    local_carriers: Iterable[str],
    national_carriers: Iterable[str],
    weight: Optional[decimal.Decimal] = None,
    no_weight: bool = False,
    recipient: Optional[str] = None,
    notes: Optional[str] = None,
) -> dict:
    """
    Logistics: pending_logistics -> pending, or -> delivered for store pickup.
    Needs a weight or the explicit no_weight flag, and a carrier from the
    list matching the delivery method unless the client picks up in store.
    """
    require_status(order, OrderStatus.PENDING_LOGISTICS)

    if weight is None and not no_weight:
        raise _bad_request("Provide the package weight or mark it as having no weight")
    if weight is not None and no_weight:
        raise _bad_request("Weight and no_weight are mutually exclusive")

    changes = {"weight": None if no_weight else weight}
    if notes:
        changes["notes"] = notes

    if order.delivery_method == DeliveryMethod.STORE_PICKUP.value:
        changes.update({
            "recipient": None,
            "status": OrderStatus.DELIVERED.value,
            "delivered_by": user,
            "delivery_date": now,
        })
        return changes

    allowed = carriers_for(order.delivery_method, local_carriers, national_carriers)
    if not recipient:
        raise _bad_request("The order must be assigned to a courier or carrier")
    if recipient not in allowed:
        raise _bad_request(
            f"'{recipient}' is not a carrier for {order.delivery_method}; choose one of: {', '.join(allowed)}"
        )

    changes.update({
        "recipient": recipient,
        "status": OrderStatus.PENDING.value,
    })
    return changes


def deliver_changes(
    order: Order,
    user: str,
    now: datetime.datetime,
    delivery_proof: Optional[str] = None,
    amount_collected: Optional[decimal.Decimal] = None,
    notes: Optional[str] = None,
) -> dict:
    """Courier: pending -> delivered. Cash orders must report what was collected."""
    require_status(order, OrderStatus.PENDING)

    if not delivery_proof:
        raise _bad_request("A delivery proof is required")

    if order.payment_method == PaymentMethod.CASH.value:
        if amount_collected is None or amount_collected <= 0:
            raise _bad_request("Cash orders require the collected amount")

    changes = {
        "status": OrderStatus.DELIVERED.value,
        "delivery_proof": delivery_proof,
        "delivered_by": user,
        "delivery_date": now,
    }
    if amount_collected is not None:
        changes["amount_collected"] = amount_collected
    if notes:
        changes["notes"] = notes
    return changes


# ────────────── Applying changes ──────────────
def diff_tracked_fields(order: Order, changes: dict) -> List[Tuple[str, Optional[str], Optional[str]]]:
    """(field, old, new) for every tracked field whose value really changes."""
    diff = []
    for field in TRACKED_FIELDS:
        if field not in changes:
            continue
        old = getattr(order, field)
        new = changes[field]
        if _comparable(old) == _comparable(new):
            continue
        diff.append((field, render_value(old), render_value(new)))
    return diff


def apply_changes(order: Order, changes: dict, user: str, now: datetime.datetime) -> List[OrderHistory]:
    """
    Writes changes onto the order and appends the audit trail.
    Returns the new history rows (already attached to order.history).
    """
    unknown = set(changes) - set(TRACKED_FIELDS)
    if unknown:
        raise _bad_request(f"Fields cannot be changed: {', '.join(sorted(unknown))}")

    if "status" in changes:
        check_transition(order, changes["status"])

    entries = []
    for field, old, new in diff_tracked_fields(order, changes):
        setattr(order, field, _storable(changes[field]))
        entry = OrderHistory(field=field, old_value=old, new_value=new, changed_at=now, user=user)
        order.history.append(entry)
        entries.append(entry)
    return entries
