from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.deps import get_broadcaster, get_txid_generator
from chainledger.core.errors import Conflict, InvalidInput, NFTNotFound, TokenNotFound
from chainledger.core.filters import paginate
from chainledger.core.types import parse_uint
from chainledger.database import get_db
from chainledger.models.nft import ListingStatus, NFTMetadata
from chainledger.models.token import Token
from chainledger.schemas.common import OperationResult
from chainledger.schemas.nft import (
    BuyNFTRequest, CancelListingRequest, CreateListingRequest, CreateNFTRequest, ListingOut, NFTOut,
)
from chainledger.services import marketplace
from chainledger.services.ledger_store import get_nft

router = APIRouter(prefix="/api/nft", tags=["nft"])


def _token_number(value) -> int:
    number = parse_uint(value)
    if number is None:
        raise InvalidInput(f"Invalid token number {value!r}")
    return number


# Marketplace routes are declared before /{nft_id} so they are matched first.

@router.get("/marketplace", response_model=list[ListingOut])
async def list_active_listings(db: AsyncSession = Depends(get_db)):
    return await marketplace.active_listings(db)


@router.get("/marketplace/listings", response_model=list[ListingOut])
async def find_listings(
    seller_address: Optional[str] = None,
    token_id: Optional[int] = None,
    status: Optional[ListingStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    return await marketplace.find_listings(db, marketplace.ListingFilter(
        seller_address=seller_address,
        token_id=token_id,
        status=status.value if status else None,
    ))


@router.get("/marketplace/{listing_id}", response_model=ListingOut)
async def get_listing(listing_id: int, db: AsyncSession = Depends(get_db)):
    return await marketplace.get_listing_detail(db, listing_id)


@router.post("/marketplace/list", response_model=ListingOut, status_code=201)
async def create_listing(body: CreateListingRequest, db: AsyncSession = Depends(get_db)):
    listing = await marketplace.create_listing(
        db,
        token_id=body.token_id,
        token_number=body.token_number,
        seller_address=body.seller_address,
        price=body.price,
        currency_token_id=body.currency_token_id,
        expires_at=body.expires_at,
    )
    return await marketplace.get_listing_detail(db, listing.id)


@router.post("/marketplace/buy", response_model=OperationResult)
async def buy_nft(
    body: BuyNFTRequest,
    db: AsyncSession = Depends(get_db),
    broadcaster=Depends(get_broadcaster),
    txids=Depends(get_txid_generator),
):
    return await marketplace.buy(db, broadcaster, txids, body.listing_id, body.buyer_address)


@router.post("/marketplace/cancel", response_model=OperationResult)
async def cancel_listing(body: CancelListingRequest, db: AsyncSession = Depends(get_db)):
    return await marketplace.cancel(db, body.listing_id, body.seller_address)


@router.get("", response_model=list[NFTOut])
async def list_nfts(
    token_id: Optional[int] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    limit, offset = paginate(page, limit)
    stmt = select(NFTMetadata)
    if token_id is not None:
        stmt = stmt.where(NFTMetadata.token_id == token_id)
    stmt = stmt.order_by(NFTMetadata.created_at.desc(), NFTMetadata.id.desc())
    return list(await db.scalars(stmt.limit(limit).offset(offset)))


@router.get("/owner/{address}", response_model=list[NFTOut])
async def list_owned_nfts(address: str, db: AsyncSession = Depends(get_db)):
    stmt = (
        select(NFTMetadata)
        .where(NFTMetadata.owner_address == address)
        .order_by(NFTMetadata.token_id, NFTMetadata.token_number)
    )
    return list(await db.scalars(stmt))


@router.get("/{token_id}/{token_number}", response_model=NFTOut)
async def get_nft_by_number(token_id: int, token_number: str, db: AsyncSession = Depends(get_db)):
    nft = await get_nft(db, token_id, _token_number(token_number))
    if not nft:
        raise NFTNotFound()
    return nft


@router.get("/{nft_id}", response_model=NFTOut)
async def get_nft_by_id(nft_id: int, db: AsyncSession = Depends(get_db)):
    nft = await db.get(NFTMetadata, nft_id)
    if not nft:
        raise NFTNotFound()
    return nft


@router.post("", response_model=NFTOut, status_code=201)
async def create_nft(body: CreateNFTRequest, db: AsyncSession = Depends(get_db)):
    number = _token_number(body.token_number)
    if not await db.get(Token, body.token_id):
        raise TokenNotFound()
    if await get_nft(db, body.token_id, number):
        raise Conflict("NFT with this token number already exists")
    nft = NFTMetadata(
        token_id=body.token_id,
        token_number=number,
        name=body.name,
        description=body.description,
        image_url=body.image_url,
        animation_url=body.animation_url,
        external_url=body.external_url,
        attributes=body.attributes or [],
        owner_address=body.owner_address,
    )
    db.add(nft)
    await db.commit()
    return nft
