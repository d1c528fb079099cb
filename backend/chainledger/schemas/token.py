from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from chainledger.models.token import TokenType
from chainledger.schemas.common import Amount

class TokenOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contract_id: int
    symbol: str
    name: str
    decimals: int
    total_supply: Optional[Amount] = None
    max_supply: Optional[Amount] = None
    token_type: str
    metadata_uri: Optional[str] = None
    is_mintable: bool
    is_burnable: bool
    created_at: Optional[datetime] = None
    contract_address: Optional[str] = None
    network_id: Optional[int] = None

    @classmethod
    def from_token(cls, token) -> "TokenOut":
        out = cls.model_validate(token)
        if token.contract is not None:
            out.contract_address = token.contract.address
            out.network_id = token.contract.network_id
        return out

class CreateTokenRequest(BaseModel):
    contract_id: int
    symbol: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=255)
    decimals: int = Field(default=18, ge=0, le=77)
    total_supply: Optional[str] = None
    max_supply: Optional[str] = None
    token_type: TokenType
    metadata_uri: Optional[str] = None
    is_mintable: bool = True
    is_burnable: bool = True

class MintTokenRequest(BaseModel):
    token_id: int
    to_address: str = Field(min_length=1, max_length=42)
    amount: str

class BurnTokenRequest(BaseModel):
    token_id: int
    from_address: str = Field(min_length=1, max_length=42)
    amount: str

class TransferTokenRequest(BaseModel):
    token_id: int
    from_address: str = Field(min_length=1, max_length=42)
    to_address: str = Field(min_length=1, max_length=42)
    amount: str
