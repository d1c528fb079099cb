from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from chainledger.core.types import utcnow
from chainledger.database import Base

class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("is_custodial OR encrypted_private_key IS NULL", name="ck_wallet_custodial_key"),
    )

    id = Column(Integer, primary_key=True)
    address = Column(String(42), unique=True, nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    wallet_type = Column(String(20), nullable=False, default="EOA")
    is_custodial = Column(Boolean, nullable=False, default=False)
    encrypted_private_key = Column(Text)
    public_key = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    last_used_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
