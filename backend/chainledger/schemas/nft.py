from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from chainledger.schemas.common import Amount

class NFTOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    token_id: int
    token_number: Amount
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    animation_url: Optional[str] = None
    external_url: Optional[str] = None
    attributes: list[Any] = []
    owner_address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("attributes", mode="before")
    @classmethod
    def attributes_as_list(cls, v):
        return v if isinstance(v, list) else []

class CreateNFTRequest(BaseModel):
    token_id: int
    token_number: str
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    animation_url: Optional[str] = None
    external_url: Optional[str] = None
    attributes: Optional[list[dict[str, Any]]] = None
    owner_address: str = Field(min_length=1, max_length=42)

class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    token_id: int
    token_number: Amount
    seller_address: str
    price: Amount
    currency_token_id: Optional[int] = None
    status: str
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    sold_at: Optional[datetime] = None
    buyer_address: Optional[str] = None
    nft_name: Optional[str] = None
    nft_image: Optional[str] = None

class CreateListingRequest(BaseModel):
    token_id: int
    token_number: str
    seller_address: str = Field(min_length=1, max_length=42)
    price: str
    currency_token_id: Optional[int] = None
    expires_at: Optional[datetime] = None

class BuyNFTRequest(BaseModel):
    listing_id: int
    buyer_address: str = Field(min_length=1, max_length=42)

class CancelListingRequest(BaseModel):
    listing_id: int
    seller_address: str = Field(min_length=1, max_length=42)
