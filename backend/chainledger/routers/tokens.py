from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.deps import get_broadcaster, get_txid_generator
from chainledger.core.errors import Conflict, ContractNotFound, InvalidAmount, TokenNotFound
from chainledger.core.filters import paginate
from chainledger.core.types import parse_uint
from chainledger.database import get_db
from chainledger.models.contract import SmartContract
from chainledger.models.token import Token
from chainledger.schemas.common import OperationResult
from chainledger.schemas.token import (
    BurnTokenRequest, CreateTokenRequest, MintTokenRequest, TokenOut, TransferTokenRequest,
)
from chainledger.services import token_operations
from chainledger.services.ledger_store import get_token

router = APIRouter(prefix="/api/tokens", tags=["tokens"])


def _supply(value: Optional[str], field: str) -> Optional[int]:
    if value is None:
        return None
    parsed = parse_uint(value)
    if parsed is None:
        raise InvalidAmount(f"{field} must be a non-negative integer")
    return parsed


@router.get("", response_model=list[TokenOut])
async def list_tokens(
    contract_id: Optional[int] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    limit, offset = paginate(page, limit)
    stmt = select(Token)
    if contract_id is not None:
        stmt = stmt.where(Token.contract_id == contract_id)
    stmt = stmt.order_by(Token.created_at.desc(), Token.id.desc()).limit(limit).offset(offset)
    return [TokenOut.from_token(t) for t in await db.scalars(stmt)]


@router.get("/{token_id}", response_model=TokenOut)
async def get_token_by_id(token_id: int, db: AsyncSession = Depends(get_db)):
    token = await get_token(db, token_id)
    if not token:
        raise TokenNotFound()
    return TokenOut.from_token(token)


@router.post("", response_model=TokenOut, status_code=201)
async def create_token(body: CreateTokenRequest, db: AsyncSession = Depends(get_db)):
    total_supply = _supply(body.total_supply, "total_supply")
    max_supply = _supply(body.max_supply, "max_supply")
    if not await db.get(SmartContract, body.contract_id):
        raise ContractNotFound()
    existing = await db.scalar(select(Token.id).where(
        Token.contract_id == body.contract_id, Token.symbol == body.symbol,
    ))
    if existing:
        raise Conflict(f"Token {body.symbol} already exists on this contract")
    token = Token(
        contract_id=body.contract_id,
        symbol=body.symbol,
        name=body.name,
        decimals=body.decimals,
        total_supply=total_supply,
        max_supply=max_supply,
        token_type=body.token_type.value,
        metadata_uri=body.metadata_uri,
        is_mintable=body.is_mintable,
        is_burnable=body.is_burnable,
    )
    db.add(token)
    await db.commit()
    await db.refresh(token, ["contract"])
    return TokenOut.from_token(token)


@router.post("/mint", response_model=OperationResult)
async def mint_tokens(
    body: MintTokenRequest,
    db: AsyncSession = Depends(get_db),
    broadcaster=Depends(get_broadcaster),
    txids=Depends(get_txid_generator),
):
    return await token_operations.mint(db, broadcaster, txids, body.token_id, body.to_address, body.amount)


@router.post("/burn", response_model=OperationResult)
async def burn_tokens(
    body: BurnTokenRequest,
    db: AsyncSession = Depends(get_db),
    broadcaster=Depends(get_broadcaster),
    txids=Depends(get_txid_generator),
):
    return await token_operations.burn(db, broadcaster, txids, body.token_id, body.from_address, body.amount)


@router.post("/transfer", response_model=OperationResult)
async def transfer_tokens(
    body: TransferTokenRequest,
    db: AsyncSession = Depends(get_db),
    broadcaster=Depends(get_broadcaster),
    txids=Depends(get_txid_generator),
):
    return await token_operations.transfer(
        db, broadcaster, txids, body.token_id, body.from_address, body.to_address, body.amount,
    )
