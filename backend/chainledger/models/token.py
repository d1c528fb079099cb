import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from chainledger.core.types import TokenAmount, utcnow
from chainledger.database import Base

class TokenType(str, enum.Enum):
    ERC20 = "ERC20"
    ERC721 = "ERC721"
    ERC1155 = "ERC1155"

class Token(Base):
    __tablename__ = "tokens"
    __table_args__ = (
        UniqueConstraint("contract_id", "symbol", name="uq_token_contract_symbol"),
    )

    id = Column(Integer, primary_key=True)
    contract_id = Column(Integer, ForeignKey("smart_contracts.id"), nullable=False)
    symbol = Column(String(20), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    decimals = Column(Integer, nullable=False, default=18)
    total_supply = Column(TokenAmount, nullable=True)
    max_supply = Column(TokenAmount, nullable=True)
    token_type = Column(String(20), nullable=False)
    metadata_uri = Column(Text)
    is_mintable = Column(Boolean, nullable=False, default=True)
    is_burnable = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    contract = relationship("SmartContract", lazy="joined", innerjoin=True)

class TokenBalance(Base):
    __tablename__ = "token_balances"
    __table_args__ = (
        UniqueConstraint("wallet_id", "token_id", name="uq_balance_wallet_token"),
        CheckConstraint("balance >= 0", name="ck_balance_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    token_id = Column(Integer, ForeignKey("tokens.id"), nullable=False)
    balance = Column(TokenAmount, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
