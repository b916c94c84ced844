# orderflow/schemas/order.py

from decimal import Decimal
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from orderflow.models.order import DeliveryMethod, PaymentMethod, PaymentStatus

# ────────────── Create ──────────────
class OrderCreate(BaseModel):
    """
    New order from billing. Status always starts at pending_wallet with
    payment pending, and the billing user is taken from the token, so none
    of them is read from the body.
    """
    invoice_code: str = Field(..., min_length=1, max_length=50)
    client_name: str = Field(..., min_length=1, max_length=255)
    delivery_method: DeliveryMethod
    payment_method: PaymentMethod
    total_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    address: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

# ────────────── Generic edit ──────────────
class OrderUpdate(BaseModel):
    """Descriptive fields only; workflow fields change through transitions."""
    model_config = ConfigDict(extra="forbid")

    client_name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    version: Optional[int] = None

    @field_validator("client_name")
    @classmethod
    def client_name_not_null(cls, value):
        # required column: omit to keep it
        if value is None:
            raise ValueError("client_name cannot be null")
        return value

# ────────────── Transitions ──────────────
class VerifyPayment(BaseModel):
    payment_status: PaymentStatus
    payment_proof: Optional[str] = None
    credit_approved: bool = False
    notes: Optional[str] = None
    version: Optional[int] = None

class ProcessOrder(BaseModel):
    weight: Optional[Decimal] = Field(None, gt=0, description="Package weight in grams")
    no_weight: bool = False
    recipient: Optional[str] = Field(None, description="Courier or carrier the order is assigned to")
    notes: Optional[str] = None
    version: Optional[int] = None

class DeliverOrder(BaseModel):
    delivery_proof: Optional[str] = None
    amount_collected: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    version: Optional[int] = None

# ────────────── Response ──────────────
class OrderHistoryEntry(BaseModel):
    id: int
    field: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_at: datetime
    user: str

    model_config = ConfigDict(from_attributes=True)

class Order(BaseModel):
    id: int
    invoice_code: str
    client_name: str
    delivery_method: str
    payment_method: str
    total_amount: Decimal
    status: str
    payment_status: str
    billed_by: str
    weight: Optional[Decimal] = None
    recipient: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    payment_proof: Optional[str] = None
    delivery_proof: Optional[str] = None
    amount_collected: Optional[Decimal] = None
    delivery_date: Optional[datetime] = None
    delivered_by: Optional[str] = None
    notes: Optional[str] = None
    money_received_at: Optional[datetime] = None
    money_received_by: Optional[str] = None
    receipt_id: Optional[int] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    history: List[OrderHistoryEntry] = []

    model_config = ConfigDict(from_attributes=True)

class OrderStatistics(BaseModel):
    total: int = 0
    pending_wallet: int = 0
    pending_logistics: int = 0
    pending: int = 0
    delivered: int = 0
