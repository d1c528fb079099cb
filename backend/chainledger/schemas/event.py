from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_hash: str
    contract_address: str
    event_name: str
    event_data: dict[str, Any] = {}
    block_number: int
    log_index: int
    network_id: int
    created_at: Optional[datetime] = None

    @field_validator("event_data", mode="before")
    @classmethod
    def event_data_as_dict(cls, v):
        return v if isinstance(v, dict) else {}

class CreateEventRequest(BaseModel):
    transaction_hash: str = Field(min_length=1, max_length=66)
    contract_address: str = Field(min_length=1, max_length=42)
    event_name: str = Field(min_length=1, max_length=255)
    event_data: dict[str, Any]
    block_number: int = Field(ge=0)
    log_index: int = Field(ge=0)
    network_id: int

class SimulateEventRequest(BaseModel):
    contract_address: str = Field(min_length=1, max_length=42)
    event_name: str = Field(min_length=1, max_length=255)
    event_data: dict[str, Any]
    network_id: int

class ListEventsResponse(BaseModel):
    events: list[EventOut]
    total: int
