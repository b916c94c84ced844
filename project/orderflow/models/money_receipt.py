# orderflow/models/money_receipt.py

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime
from orderflow.utils.database import Base, utcnow

class MoneyReceipt(Base):
    __tablename__ = "money_receipts"

    id = Column(Integer, primary_key=True, index=True)
    messenger_name = Column(String(100), nullable=False, index=True)  # courier who handed the cash
    total_amount = Column(Numeric(12, 2), nullable=False)
    invoice_codes = Column(Text, nullable=False)                       # JSON list of invoice codes
    receipt_photo = Column(String(255), nullable=True)                 # file name under UPLOAD_DIR
    received_by = Column(String(100), nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
