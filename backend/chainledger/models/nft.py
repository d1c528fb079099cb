import enum
from sqlalchemy import JSON, Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from chainledger.core.types import TokenAmount, utcnow
from chainledger.database import Base

class ListingStatus(str, enum.Enum):
    active = "active"
    sold = "sold"
    cancelled = "cancelled"
    expired = "expired"

class NFTMetadata(Base):
    __tablename__ = "nft_metadata"
    __table_args__ = (
        UniqueConstraint("token_id", "token_number", name="uq_nft_token_number"),
    )

    id = Column(Integer, primary_key=True)
    token_id = Column(Integer, ForeignKey("tokens.id"), nullable=False)
    token_number = Column(TokenAmount, nullable=False)
    name = Column(String(255))
    description = Column(Text)
    image_url = Column(Text)
    animation_url = Column(Text)
    external_url = Column(Text)
    attributes = Column(JSON)
    owner_address = Column(String(42), index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

class MarketplaceListing(Base):
    __tablename__ = "marketplace_listings"

    id = Column(Integer, primary_key=True)
    token_id = Column(Integer, ForeignKey("tokens.id"), nullable=False, index=True)
    token_number = Column(TokenAmount, nullable=False)
    seller_address = Column(String(42), nullable=False, index=True)
    price = Column(TokenAmount, nullable=False)
    currency_token_id = Column(Integer, ForeignKey("tokens.id"), nullable=True)
    status = Column(String(20), nullable=False, default=ListingStatus.active.value, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    sold_at = Column(DateTime(timezone=True), nullable=True)
    buyer_address = Column(String(42), nullable=True)
