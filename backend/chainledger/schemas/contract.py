from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from chainledger.models.contract import ContractType

class ContractOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    network_id: int
    abi: str
    bytecode: Optional[str] = None
    version: str
    contract_type: str
    is_verified: bool
    deployed_at: Optional[datetime] = None
    deployed_by: Optional[str] = None
    created_at: Optional[datetime] = None

class CreateContractRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1, max_length=42)
    network_id: int
    abi: str
    bytecode: Optional[str] = None
    version: str = "1.0.0"
    contract_type: ContractType
    deployed_by: Optional[str] = None

class UpdateContractRequest(BaseModel):
    name: Optional[str] = None
    abi: Optional[str] = None
    version: Optional[str] = None
    is_verified: Optional[bool] = None
