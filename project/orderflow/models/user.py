# orderflow/models/user.py

import enum
from sqlalchemy import Column, Integer, String, DateTime
from orderflow.utils.database import Base, utcnow


class Role(str, enum.Enum):
    ADMIN = "admin"
    BILLING = "billing"
    WALLET = "wallet"
    LOGISTICS = "logistics"
    COURIER = "courier"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)              # passlib hash
    name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=Role.COURIER.value)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
