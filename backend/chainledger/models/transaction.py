import enum
from sqlalchemy import JSON, Column, Integer, BigInteger, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from chainledger.core.types import TokenAmount, utcnow
from chainledger.database import Base

class TransactionStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    failed = "failed"

class TransactionType(str, enum.Enum):
    transfer = "transfer"
    contract_call = "contract_call"
    contract_deploy = "contract_deploy"

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    hash = Column(String(66), unique=True, nullable=False)
    network_id = Column(Integer, ForeignKey("networks.id"), nullable=False, index=True)
    from_address = Column(String(42), nullable=False, index=True)
    to_address = Column(String(42), index=True)
    value = Column(TokenAmount, nullable=False, default=0)
    gas_price = Column(TokenAmount)
    gas_limit = Column(BigInteger)
    gas_used = Column(BigInteger)
    nonce = Column(BigInteger)
    block_number = Column(BigInteger)
    block_hash = Column(String(66))
    transaction_index = Column(Integer)
    status = Column(String(20), nullable=False, default=TransactionStatus.pending.value)
    transaction_type = Column(String(20), nullable=False)
    contract_address = Column(String(42))
    logs = Column(JSON)
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
