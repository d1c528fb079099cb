from sqlalchemy import Column, Integer, BigInteger, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from chainledger.core.types import utcnow
from chainledger.database import Base

class Network(Base):
    __tablename__ = "networks"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    chain_id = Column(BigInteger, unique=True, nullable=False)
    rpc_url = Column(Text, nullable=False)
    explorer_url = Column(Text)
    native_currency = Column(String(10), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
