from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.errors import Conflict, InvalidInput, WalletNotFound
from chainledger.core.filters import paginate
from chainledger.core.types import utcnow
from chainledger.database import get_db
from chainledger.models.contract import SmartContract
from chainledger.models.token import Token, TokenBalance
from chainledger.models.wallet import Wallet
from chainledger.schemas.common import OperationResult
from chainledger.schemas.wallet import CreateWalletRequest, WalletBalanceItem, WalletBalanceResponse, WalletOut
from chainledger.services.ledger_store import get_wallet_by_address

router = APIRouter(prefix="/api/wallets", tags=["wallets"])

MIN_PRIVATE_KEY_LENGTH = 32


async def _get_wallet(db: AsyncSession, address: str) -> Wallet:
    wallet = await get_wallet_by_address(db, address)
    if not wallet:
        raise WalletNotFound()
    return wallet


@router.get("", response_model=list[WalletOut])
async def list_wallets(
    user_id: str,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    limit, offset = paginate(page, limit)
    stmt = (
        select(Wallet)
        .where(Wallet.user_id == user_id)
        .order_by(Wallet.created_at.desc(), Wallet.id.desc())
    )
    return list(await db.scalars(stmt.limit(limit).offset(offset)))


@router.get("/{address}", response_model=WalletOut)
async def get_wallet(address: str, db: AsyncSession = Depends(get_db)):
    return await _get_wallet(db, address)


@router.post("", response_model=WalletOut, status_code=201)
async def create_wallet(body: CreateWalletRequest, db: AsyncSession = Depends(get_db)):
    if body.encrypted_private_key is not None:
        if not body.is_custodial:
            raise InvalidInput("Only custodial wallets may store a private key")
        if len(body.encrypted_private_key) < MIN_PRIVATE_KEY_LENGTH:
            raise InvalidInput("Encrypted private key is too short")
    if await get_wallet_by_address(db, body.address):
        raise Conflict("Wallet already exists")
    wallet = Wallet(**body.model_dump())
    db.add(wallet)
    await db.commit()
    return wallet


@router.get("/{address}/balances", response_model=WalletBalanceResponse)
async def get_balances(address: str, db: AsyncSession = Depends(get_db)):
    wallet = await _get_wallet(db, address)
    rows = await db.execute(
        select(Token, TokenBalance.balance, SmartContract.address)
        .join(TokenBalance, TokenBalance.token_id == Token.id)
        .join(SmartContract, Token.contract_id == SmartContract.id)
        .where(TokenBalance.wallet_id == wallet.id, TokenBalance.balance > 0)
        .order_by(Token.symbol)
    )
    balances = [
        WalletBalanceItem(
            token_id=token.id,
            token_symbol=token.symbol,
            token_name=token.name,
            balance=balance,
            decimals=token.decimals,
            contract_address=contract_address,
        )
        for token, balance, contract_address in rows
    ]
    return WalletBalanceResponse(address=wallet.address, balances=balances)


@router.post("/{address}/touch", response_model=OperationResult)
async def touch_wallet(address: str, db: AsyncSession = Depends(get_db)):
    wallet = await _get_wallet(db, address)
    wallet.last_used_at = utcnow()
    await db.commit()
    return OperationResult(success=True, message="Wallet last-used time updated")
