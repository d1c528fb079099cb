from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from chainledger.models.transaction import TransactionStatus, TransactionType
from chainledger.schemas.common import Amount

class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    hash: str
    network_id: int
    from_address: str
    to_address: Optional[str] = None
    value: Amount
    gas_price: Optional[Amount] = None
    gas_limit: Optional[int] = None
    gas_used: Optional[int] = None
    nonce: Optional[int] = None
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    status: str
    transaction_type: str
    contract_address: Optional[str] = None
    logs: list[Any] = []
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None

    @field_validator("logs", mode="before")
    @classmethod
    def logs_as_list(cls, v):
        return v if isinstance(v, list) else []

class CreateTransactionRequest(BaseModel):
    hash: str = Field(min_length=1, max_length=66)
    network_id: int
    from_address: str = Field(min_length=1, max_length=42)
    to_address: Optional[str] = None
    value: str = "0"
    gas_price: Optional[str] = None
    gas_limit: Optional[int] = None
    nonce: Optional[int] = None
    transaction_type: TransactionType
    contract_address: Optional[str] = None

class UpdateTransactionRequest(BaseModel):
    hash: str
    status: TransactionStatus
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    gas_used: Optional[int] = None
    logs: Optional[list[Any]] = None
    error_message: Optional[str] = None

class ListTransactionsResponse(BaseModel):
    transactions: list[TransactionOut]
    total: int

class TransactionStats(BaseModel):
    total_transactions: int
    pending_transactions: int
    confirmed_transactions: int
    failed_transactions: int
    total_value: Amount
