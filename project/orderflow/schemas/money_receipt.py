# orderflow/schemas/money_receipt.py

import json
from decimal import Decimal
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

class MoneyReceipt(BaseModel):
    id: int
    messenger_name: str
    total_amount: Decimal
    invoice_codes: List[str]
    receipt_photo: Optional[str] = None
    received_by: str
    received_at: datetime
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("invoice_codes", mode="before")
    @classmethod
    def parse_invoice_codes(cls, value):
        # stored as a JSON string in the table
        if isinstance(value, str):
            return json.loads(value)
        return value

class CourierBalance(BaseModel):
    """Cash a courier collected and has not handed over yet."""
    messenger_name: str
    delivery_count: int
    total_amount: Decimal

class OutstandingSummary(BaseModel):
    couriers: List[CourierBalance] = []
    messenger_count: int = 0
    delivery_count: int = 0
    total_amount: Decimal = Decimal("0")

class OutstandingInvoice(BaseModel):
    id: int
    invoice_code: str
    client_name: str
    amount_collected: Decimal
    delivery_date: Optional[datetime] = None
    version: int

    model_config = ConfigDict(from_attributes=True)

class ReceiptStatistics(BaseModel):
    total_receipts: int = 0
    total_amount: Decimal = Decimal("0")
    unique_messengers: int = 0
    receipt_date: date
