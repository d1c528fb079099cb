from sqlalchemy import JSON, Column, Integer, BigInteger, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from chainledger.core.types import utcnow
from chainledger.database import Base

class BlockchainEvent(Base):
    __tablename__ = "blockchain_events"
    __table_args__ = (
        Index("idx_events_contract_name", "contract_address", "event_name"),
    )

    id = Column(Integer, primary_key=True)
    transaction_hash = Column(String(66), nullable=False, index=True)
    contract_address = Column(String(42), nullable=False)
    event_name = Column(String(255), nullable=False)
    event_data = Column(JSON, nullable=False)
    block_number = Column(BigInteger, nullable=False, index=True)
    log_index = Column(Integer, nullable=False)
    network_id = Column(Integer, ForeignKey("networks.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
