"""Row-level reads and writes shared by the ledger services.

Nothing here commits: every helper runs inside the caller's transaction.
"""
import logging
from typing import Optional
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.config import settings
from chainledger.models.wallet import Wallet
from chainledger.models.token import Token, TokenBalance
from chainledger.models.nft import NFTMetadata, MarketplaceListing

logger = logging.getLogger(__name__)


def _insert(db: AsyncSession, model):
    """Dialect-specific INSERT so ON CONFLICT DO NOTHING is available."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


async def insert_ignore(db: AsyncSession, model, values: dict, conflict_columns: list) -> None:
    stmt = _insert(db, model).values(**values).on_conflict_do_nothing(index_elements=conflict_columns)
    await db.execute(stmt)


async def get_wallet_by_address(db: AsyncSession, address: str) -> Optional[Wallet]:
    return await db.scalar(select(Wallet).where(Wallet.address == address))


async def get_or_create_wallet(db: AsyncSession, address: str) -> Wallet:
    """Resolve a wallet by address, creating a system-owned one if it is unknown.

    Two requests referencing the same new address race on the unique
    address key; ON CONFLICT DO NOTHING plus a re-read makes both converge
    on the same row.
    """
    wallet = await get_wallet_by_address(db, address)
    if wallet:
        return wallet
    await insert_ignore(
        db,
        Wallet,
        {
            "address": address,
            "user_id": settings.SYSTEM_WALLET_OWNER,
            "wallet_type": settings.DEFAULT_WALLET_TYPE,
            "is_custodial": False,
        },
        ["address"],
    )
    wallet = await get_wallet_by_address(db, address)
    logger.info("Wallet %s resolved implicitly (id=%s)", address, wallet.id)
    return wallet


async def get_token(db: AsyncSession, token_id: int) -> Optional[Token]:
    stmt = select(Token).where(Token.id == token_id)
    return await db.scalar(stmt.execution_options(populate_existing=True))


async def get_balance(db: AsyncSession, wallet_id: int, token_id: int, lock: bool = False) -> Optional[TokenBalance]:
    stmt = select(TokenBalance).where(TokenBalance.wallet_id == wallet_id, TokenBalance.token_id == token_id)
    if lock:
        stmt = stmt.with_for_update()
    # populate_existing: a locked read must not be served from the identity map
    return await db.scalar(stmt.execution_options(populate_existing=True))


async def get_balance_by_address(db: AsyncSession, address: str, token_id: int, lock: bool = False) -> Optional[TokenBalance]:
    stmt = (
        select(TokenBalance)
        .join(Wallet, TokenBalance.wallet_id == Wallet.id)
        .where(Wallet.address == address, TokenBalance.token_id == token_id)
    )
    if lock:
        stmt = stmt.with_for_update(of=TokenBalance)
    return await db.scalar(stmt.execution_options(populate_existing=True))


async def get_nft(db: AsyncSession, token_id: int, token_number: int, lock: bool = False) -> Optional[NFTMetadata]:
    stmt = select(NFTMetadata).where(NFTMetadata.token_id == token_id, NFTMetadata.token_number == token_number)
    if lock:
        stmt = stmt.with_for_update()
    return await db.scalar(stmt.execution_options(populate_existing=True))


async def get_listing(db: AsyncSession, listing_id: int) -> Optional[MarketplaceListing]:
    stmt = select(MarketplaceListing).where(MarketplaceListing.id == listing_id)
    return await db.scalar(stmt.execution_options(populate_existing=True))
