import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from chainledger.core.types import utcnow
from chainledger.database import Base

class ContractType(str, enum.Enum):
    ERC20 = "ERC20"
    ERC721 = "ERC721"
    ERC1155 = "ERC1155"
    CUSTOM = "CUSTOM"

class SmartContract(Base):
    __tablename__ = "smart_contracts"
    __table_args__ = (
        UniqueConstraint("address", "network_id", name="uq_contract_address_network"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    address = Column(String(42), nullable=False)
    network_id = Column(Integer, ForeignKey("networks.id"), nullable=False, index=True)
    abi = Column(Text, nullable=False)
    bytecode = Column(Text)
    version = Column(String(50), nullable=False, default="1.0.0")
    contract_type = Column(String(50), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    deployed_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    deployed_by = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
