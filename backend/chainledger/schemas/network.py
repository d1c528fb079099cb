from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, HttpUrl

class NetworkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: Optional[str] = None
    native_currency: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CreateNetworkRequest(BaseModel):
    name: str = Field(min_length=3, max_length=64)
    chain_id: int = Field(gt=0)
    rpc_url: HttpUrl
    explorer_url: Optional[HttpUrl] = None
    native_currency: str = Field(min_length=1, max_length=10)
    description: Optional[str] = None
