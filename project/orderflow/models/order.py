# orderflow/models/order.py

import enum
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from orderflow.utils.database import Base, utcnow


class OrderStatus(str, enum.Enum):
    PENDING_WALLET = "pending_wallet"          # waiting for payment verification
    PENDING_LOGISTICS = "pending_logistics"    # waiting for weight / carrier
    PENDING = "pending"                        # out for delivery
    DELIVERED = "delivered"


# forward order of the workflow
STATUS_SEQUENCE = [
    OrderStatus.PENDING_WALLET,
    OrderStatus.PENDING_LOGISTICS,
    OrderStatus.PENDING,
    OrderStatus.DELIVERED,
]


class DeliveryMethod(str, enum.Enum):
    LOCAL_DELIVERY = "local-delivery"
    STORE_PICKUP = "store-pickup"
    DOMESTIC_SHIPMENT = "domestic-shipment"
    INTERNATIONAL_SHIPMENT = "international-shipment"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank-transfer"
    CREDIT_CARD = "credit-card"
    ELECTRONIC_PAYMENT = "electronic-payment"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CREDIT_APPROVED = "credit-approved"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    invoice_code = Column(String(50), unique=True, nullable=False, index=True)
    client_name = Column(String(255), nullable=False)

    delivery_method = Column(String(32), nullable=False)
    payment_method = Column(String(32), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING_WALLET.value, index=True)
    payment_status = Column(String(32), nullable=False, default=PaymentStatus.PENDING.value)
    billed_by = Column(String(100), nullable=False)

    # filled in as the order moves through the workflow
    weight = Column(Numeric(10, 2), nullable=True)           # grams
    recipient = Column(String(100), nullable=True)           # assigned carrier
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    payment_proof = Column(String(255), nullable=True)
    delivery_proof = Column(String(255), nullable=True)
    amount_collected = Column(Numeric(12, 2), nullable=True)
    delivery_date = Column(DateTime(timezone=True), nullable=True)
    delivered_by = Column(String(100), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    # cash handed back to the wallet department
    money_received_at = Column(DateTime(timezone=True), nullable=True)
    money_received_by = Column(String(100), nullable=True)
    receipt_id = Column(Integer, nullable=True)              # money_receipts.id, not enforced

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    history = relationship(
        "OrderHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=lambda: [OrderHistory.changed_at, OrderHistory.id],
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Order id={self.id} invoice_code={self.invoice_code!r} status={self.status}>"


class OrderHistory(Base):
    __tablename__ = "order_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    field = Column(String(50), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    user = Column(String(100), nullable=False)

    order = relationship("Order", back_populates="history")
