from typing import Annotated, Optional
from pydantic import BaseModel, BeforeValidator


def _amount_to_str(v):
    if v is None or isinstance(v, str):
        return v
    return str(int(v))


# Arbitrary-precision integers travel as decimal strings
Amount = Annotated[str, BeforeValidator(_amount_to_str)]


class OperationResult(BaseModel):
    success: bool
    transaction_hash: Optional[str] = None
    message: str
