"""NFT marketplace listing lifecycle.

A listing moves one way: active -> sold | cancelled | expired. Every status
transition is a conditional UPDATE on ``status = 'active'`` whose affected row
count decides the outcome, so two concurrent buys (or a buy racing a cancel)
can never both succeed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.broadcast import EventBroadcaster
from chainledger.core.errors import (
    DuplicateActiveListing, InvalidInput, InvalidPrice, ListingExpired, ListingNotActive,
    ListingNotFound, NFTNotFound, NotOwner, TokenNotFound,
)
from chainledger.core.filters import QueryFilter
from chainledger.core.txid import TxIdGenerator
from chainledger.core.types import as_utc, parse_positive, parse_uint, utcnow
from chainledger.database import AsyncSessionLocal
from chainledger.models.nft import ListingStatus, MarketplaceListing, NFTMetadata
from chainledger.schemas.common import OperationResult
from chainledger.schemas.nft import ListingOut
from chainledger.services.event_recorder import publish_activity, record_activity
from chainledger.services.ledger_store import get_listing, get_nft, get_token

logger = logging.getLogger(__name__)

ACTIVE = ListingStatus.active.value


@dataclass
class ListingFilter(QueryFilter):
    model = MarketplaceListing

    seller_address: Optional[str] = None
    token_id: Optional[int] = None
    status: Optional[str] = None


def _is_expired(listing: MarketplaceListing, now: datetime) -> bool:
    return listing.expires_at is not None and as_utc(listing.expires_at) <= now


def _transition(listing_id: int, new_status: str, *extra_where, **values):
    return (
        update(MarketplaceListing)
        .where(MarketplaceListing.id == listing_id, MarketplaceListing.status == ACTIVE, *extra_where)
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )


def _parse_token_number(token_number) -> int:
    parsed = parse_uint(token_number)
    if parsed is None:
        raise InvalidInput(f"Invalid token number {token_number!r}")
    return parsed


async def _expire_stale(db: AsyncSession, now: datetime, *where) -> int:
    result = await db.execute(
        update(MarketplaceListing)
        .where(
            MarketplaceListing.status == ACTIVE,
            MarketplaceListing.expires_at.is_not(None),
            MarketplaceListing.expires_at <= now,
            *where,
        )
        .values(status=ListingStatus.expired.value)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def create_listing(
    db: AsyncSession,
    token_id: int,
    token_number,
    seller_address: str,
    price,
    currency_token_id: Optional[int] = None,
    expires_at: Optional[datetime] = None,
) -> MarketplaceListing:
    number = _parse_token_number(token_number)
    price_value = parse_positive(price)
    if price_value is None:
        raise InvalidPrice(f"Invalid price {price!r}: must be a positive integer")
    now = utcnow()
    expires_at = as_utc(expires_at)
    if expires_at is not None and expires_at <= now:
        raise InvalidInput("expires_at must be in the future")

    try:
        # The NFT row lock serializes concurrent listings of the same NFT
        nft = await get_nft(db, token_id, number, lock=True)
        if not nft:
            raise NFTNotFound(f"NFT {token_id}/{number} not found")
        if nft.owner_address != seller_address:
            raise NotOwner()
        if currency_token_id is not None and not await get_token(db, currency_token_id):
            raise TokenNotFound(f"Currency token {currency_token_id} not found")

        await _expire_stale(
            db, now,
            MarketplaceListing.token_id == token_id,
            MarketplaceListing.token_number == number,
        )
        existing = await db.scalar(
            select(MarketplaceListing.id).where(
                MarketplaceListing.token_id == token_id,
                MarketplaceListing.token_number == number,
                MarketplaceListing.status == ACTIVE,
            )
        )
        if existing is not None:
            raise DuplicateActiveListing(f"Listing {existing} is already active for NFT {token_id}/{number}")

        listing = MarketplaceListing(
            token_id=token_id,
            token_number=number,
            seller_address=seller_address,
            price=price_value,
            currency_token_id=currency_token_id,
            status=ACTIVE,
            expires_at=expires_at,
            created_at=now,
        )
        db.add(listing)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Listed NFT %s/%s by %s at %s (listing %s)", token_id, number, seller_address, price_value, listing.id)
    return listing


async def buy(
    db: AsyncSession,
    broadcaster: EventBroadcaster,
    txids: TxIdGenerator,
    listing_id: int,
    buyer_address: str,
) -> OperationResult:
    now = utcnow()
    try:
        listing = await get_listing(db, listing_id)
        if not listing or listing.status != ACTIVE:
            raise ListingNotFound()

        if _is_expired(listing, now):
            # Lazy expiry: persist the transition before reporting it
            expired = await db.execute(_transition(listing.id, ListingStatus.expired.value))
            if expired.rowcount != 1:
                raise ListingNotActive()
            await db.commit()
            logger.info("Listing %s expired on purchase attempt", listing.id)
            raise ListingExpired()

        result = await db.execute(_transition(
            listing.id, ListingStatus.sold.value,
            sold_at=now, buyer_address=buyer_address,
        ))
        if result.rowcount != 1:
            raise ListingNotActive()

        moved = await db.execute(
            update(NFTMetadata)
            .where(NFTMetadata.token_id == listing.token_id, NFTMetadata.token_number == listing.token_number)
            .values(owner_address=buyer_address, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if moved.rowcount != 1:
            raise NFTNotFound(f"NFT {listing.token_id}/{listing.token_number} not found")

        token = await get_token(db, listing.token_id)
        tx_hash = txids.new_tx_id()
        activity = await record_activity(
            db, txids,
            token=token,
            tx_hash=tx_hash,
            event_name="Sale",
            from_address=listing.seller_address,
            to_address=buyer_address,
            value=listing.price,
            event_data={
                "listing_id": listing.id,
                "token_id": listing.token_id,
                "token_number": str(listing.token_number),
                "seller": listing.seller_address,
                "buyer": buyer_address,
                "price": str(listing.price),
                "currency_token_id": listing.currency_token_id,
            },
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Listing %s sold to %s (tx %s)", listing_id, buyer_address, tx_hash)
    publish_activity(broadcaster, activity)
    return OperationResult(success=True, transaction_hash=tx_hash, message="NFT purchased successfully")


async def cancel(db: AsyncSession, listing_id: int, seller_address: str) -> OperationResult:
    """Matching on the seller in the WHERE clause both finds and authorizes the row."""
    try:
        result = await db.execute(_transition(
            listing_id, ListingStatus.cancelled.value,
            MarketplaceListing.seller_address == seller_address,
        ))
        if result.rowcount != 1:
            raise ListingNotFound("Listing not found or you're not the seller")
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Listing %s cancelled by %s", listing_id, seller_address)
    return OperationResult(success=True, message="Listing cancelled successfully")


async def expire_listings(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Move every active listing past its expiry to ``expired``; returns the count."""
    try:
        count = await _expire_stale(db, now or utcnow())
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    if count:
        logger.info("Expired %s marketplace listings", count)
    return count


async def get_listing_detail(db: AsyncSession, listing_id: int) -> ListingOut:
    row = (await db.execute(_with_nft(select(MarketplaceListing)).where(MarketplaceListing.id == listing_id))).first()
    if not row:
        raise ListingNotFound("Listing not found")
    return _listing_out(*row)


async def active_listings(db: AsyncSession) -> list:
    stmt = _with_nft(select(MarketplaceListing)).where(MarketplaceListing.status == ACTIVE)
    rows = await db.execute(stmt.order_by(MarketplaceListing.created_at.desc(), MarketplaceListing.id.desc()))
    return [_listing_out(*row) for row in rows]


async def find_listings(db: AsyncSession, listing_filter: ListingFilter) -> list:
    stmt = listing_filter.apply(_with_nft(select(MarketplaceListing)))
    rows = await db.execute(stmt.order_by(MarketplaceListing.created_at.desc(), MarketplaceListing.id.desc()))
    return [_listing_out(*row) for row in rows]


def _with_nft(stmt):
    return stmt.add_columns(NFTMetadata.name, NFTMetadata.image_url).outerjoin(
        NFTMetadata,
        and_(
            MarketplaceListing.token_id == NFTMetadata.token_id,
            MarketplaceListing.token_number == NFTMetadata.token_number,
        ),
    )


def _listing_out(listing: MarketplaceListing, nft_name: Optional[str], nft_image: Optional[str]) -> ListingOut:
    out = ListingOut.model_validate(listing)
    out.nft_name = nft_name
    out.nft_image = nft_image
    return out


async def expiry_sweep_job():
    """Scheduler entry point: runs ``expire_listings`` in its own session."""
    async with AsyncSessionLocal() as db:
        await expire_listings(db)
