from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from chainledger.schemas.common import Amount

class WalletOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    address: str
    user_id: str
    wallet_type: str
    is_custodial: bool
    public_key: Optional[str] = None
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

class CreateWalletRequest(BaseModel):
    address: str = Field(min_length=1, max_length=42)
    user_id: str = Field(min_length=1, max_length=255)
    wallet_type: str = "EOA"
    is_custodial: bool = False
    encrypted_private_key: Optional[str] = None
    public_key: Optional[str] = None

class WalletBalanceItem(BaseModel):
    token_id: int
    token_symbol: str
    token_name: str
    balance: Amount
    decimals: int
    contract_address: str

class WalletBalanceResponse(BaseModel):
    address: str
    balances: list[WalletBalanceItem]
