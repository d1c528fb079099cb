import pytest
from datetime import timedelta
from unittest.mock import patch
from sqlalchemy import select, update
from chainledger.core.errors import (
    DuplicateActiveListing, InvalidInput, InvalidPrice, ListingExpired, ListingNotActive,
    ListingNotFound, NFTNotFound, NotOwner, TokenNotFound,
)
from chainledger.core.types import utcnow
from chainledger.models import BlockchainEvent, MarketplaceListing, NFTMetadata, Transaction
from chainledger.services import marketplace
from conftest import BUYER, SELLER

PRICE = "1000000000000000000"


async def _listing(db, listing_id):
    return await db.get(MarketplaceListing, listing_id, populate_existing=True)


async def _owner(db, token_id, token_number):
    return await db.scalar(select(NFTMetadata.owner_address).where(
        NFTMetadata.token_id == token_id, NFTMetadata.token_number == token_number,
    ))


async def _backdate(db, listing_id):
    await db.execute(
        update(MarketplaceListing)
        .where(MarketplaceListing.id == listing_id)
        .values(expires_at=utcnow() - timedelta(minutes=5))
    )
    await db.commit()


@pytest.mark.asyncio
async def test_create_listing_and_reject_duplicate(db, ledger):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id
    assert listing.status == "active"
    assert listing.price == 10 ** 18
    assert listing.token_number == 1

    with pytest.raises(DuplicateActiveListing):
        await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)

    active = list(await db.scalars(select(MarketplaceListing.id).where(MarketplaceListing.status == "active")))
    assert active == [listing_id]


@pytest.mark.asyncio
async def test_create_listing_preconditions(db, ledger):
    with pytest.raises(NFTNotFound):
        await marketplace.create_listing(db, ledger.art, "2", SELLER, PRICE)
    with pytest.raises(NotOwner):
        await marketplace.create_listing(db, ledger.art, "1", BUYER, PRICE)
    with pytest.raises(TokenNotFound):
        await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE, currency_token_id=9999)


@pytest.mark.asyncio
@pytest.mark.parametrize("price", ["0", "-1", "1.5", "", "1e18"])
async def test_create_listing_invalid_price(db, ledger, price):
    with pytest.raises(InvalidPrice):
        await marketplace.create_listing(db, ledger.art, "1", SELLER, price)


@pytest.mark.asyncio
async def test_create_listing_rejects_past_expiry(db, ledger):
    with pytest.raises(InvalidInput):
        await marketplace.create_listing(
            db, ledger.art, "1", SELLER, PRICE, expires_at=utcnow() - timedelta(seconds=1),
        )


@pytest.mark.asyncio
async def test_buy_transfers_ownership(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE, currency_token_id=ledger.gold)
    listing_id = listing.id

    result = await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)
    assert result.success is True
    assert result.transaction_hash

    sold = await _listing(db, listing_id)
    assert sold.status == "sold"
    assert sold.buyer_address == BUYER
    assert sold.sold_at is not None
    assert await _owner(db, ledger.art, 1) == BUYER

    tx = await db.scalar(select(Transaction).where(Transaction.hash == result.transaction_hash))
    assert tx.value == 10 ** 18
    assert tx.contract_address == ledger.erc721
    event = await db.scalar(select(BlockchainEvent).where(BlockchainEvent.transaction_hash == result.transaction_hash))
    assert event.event_name == "Sale"
    assert event.event_data["buyer"] == BUYER
    assert event.event_data["price"] == PRICE
    assert event.event_data["currency_token_id"] == ledger.gold


@pytest.mark.asyncio
async def test_second_buy_fails(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id
    await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)

    with pytest.raises(ListingNotFound):
        await marketplace.buy(db, broadcaster, txids, listing_id, SELLER)
    assert await _owner(db, ledger.art, 1) == BUYER


@pytest.mark.asyncio
async def test_losing_buy_sees_listing_not_active(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id
    stale = MarketplaceListing(
        id=listing_id, token_id=ledger.art, token_number=1, seller_address=SELLER,
        price=10 ** 18, status="active",
    )
    await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)

    # The loser read the listing while it was still active
    with patch("chainledger.services.marketplace.get_listing", return_value=stale):
        with pytest.raises(ListingNotActive):
            await marketplace.buy(db, broadcaster, txids, listing_id, SELLER)
    assert await _owner(db, ledger.art, 1) == BUYER
    assert (await _listing(db, listing_id)).buyer_address == BUYER


@pytest.mark.asyncio
async def test_buy_expired_listing_marks_it_expired(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(
        db, ledger.art, "1", SELLER, PRICE, expires_at=utcnow() + timedelta(hours=1),
    )
    listing_id = listing.id
    await _backdate(db, listing_id)

    with pytest.raises(ListingExpired):
        await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)
    assert (await _listing(db, listing_id)).status == "expired"
    assert await _owner(db, ledger.art, 1) == SELLER


@pytest.mark.asyncio
async def test_expired_read_of_sold_listing_sees_not_active(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id
    stale = MarketplaceListing(
        id=listing_id, token_id=ledger.art, token_number=1, seller_address=SELLER,
        price=10 ** 18, status="active", expires_at=utcnow() - timedelta(minutes=5),
    )
    await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)

    with patch("chainledger.services.marketplace.get_listing", return_value=stale):
        with pytest.raises(ListingNotActive):
            await marketplace.buy(db, broadcaster, txids, listing_id, SELLER)
    sold = await _listing(db, listing_id)
    assert sold.status == "sold"
    assert sold.buyer_address == BUYER


@pytest.mark.asyncio
async def test_buy_rolls_back_listing_and_owner_on_late_failure(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id
    sub = broadcaster.subscribe()

    # Listing and ownership updates have been issued when recording fails
    with patch("chainledger.services.marketplace.record_activity", side_effect=RuntimeError("store down")):
        with pytest.raises(RuntimeError):
            await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)

    unsold = await _listing(db, listing_id)
    assert unsold.status == "active"
    assert unsold.buyer_address is None
    assert unsold.sold_at is None
    assert await _owner(db, ledger.art, 1) == SELLER
    assert sub.queue.empty()

    result = await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)
    assert result.success is True
    assert await _owner(db, ledger.art, 1) == BUYER


@pytest.mark.asyncio
async def test_cancel_by_non_seller(db, ledger):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id

    with pytest.raises(ListingNotFound):
        await marketplace.cancel(db, listing_id, BUYER)
    assert (await _listing(db, listing_id)).status == "active"

    result = await marketplace.cancel(db, listing_id, SELLER)
    assert result.success is True
    assert (await _listing(db, listing_id)).status == "cancelled"


@pytest.mark.asyncio
async def test_cancel_sold_listing(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id
    await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)

    with pytest.raises(ListingNotFound):
        await marketplace.cancel(db, listing_id, SELLER)
    assert (await _listing(db, listing_id)).status == "sold"


@pytest.mark.asyncio
async def test_relist_after_cancel(db, ledger):
    first = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    first_id = first.id
    await marketplace.cancel(db, first_id, SELLER)

    second = await marketplace.create_listing(db, ledger.art, "1", SELLER, "5")
    assert second.id != first_id
    assert second.status == "active"


@pytest.mark.asyncio
async def test_stale_listing_does_not_block_relisting(db, ledger):
    first = await marketplace.create_listing(
        db, ledger.art, "1", SELLER, PRICE, expires_at=utcnow() + timedelta(hours=1),
    )
    first_id = first.id
    await _backdate(db, first_id)

    second = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    assert second.status == "active"
    assert (await _listing(db, first_id)).status == "expired"


@pytest.mark.asyncio
async def test_expire_listings_sweep(db, ledger):
    listing = await marketplace.create_listing(
        db, ledger.art, "1", SELLER, PRICE, expires_at=utcnow() + timedelta(hours=1),
    )
    listing_id = listing.id

    assert await marketplace.expire_listings(db) == 0
    assert await marketplace.expire_listings(db, now=utcnow() + timedelta(hours=2)) == 1
    assert (await _listing(db, listing_id)).status == "expired"
    assert await marketplace.expire_listings(db, now=utcnow() + timedelta(hours=3)) == 0


@pytest.mark.asyncio
async def test_listing_reads(db, ledger, broadcaster, txids):
    listing = await marketplace.create_listing(db, ledger.art, "1", SELLER, PRICE)
    listing_id = listing.id

    active = await marketplace.active_listings(db)
    assert [item.id for item in active] == [listing_id]
    assert active[0].nft_name == "Art #1"
    assert active[0].nft_image == "ipfs://art/1"
    assert active[0].price == PRICE

    detail = await marketplace.get_listing_detail(db, listing_id)
    assert detail.token_number == "1"

    await marketplace.buy(db, broadcaster, txids, listing_id, BUYER)
    assert await marketplace.active_listings(db) == []
    by_seller = await marketplace.find_listings(db, marketplace.ListingFilter(seller_address=SELLER, status="sold"))
    assert [item.id for item in by_seller] == [listing_id]
    assert await marketplace.find_listings(db, marketplace.ListingFilter(status="cancelled")) == []

    with pytest.raises(ListingNotFound):
        await marketplace.get_listing_detail(db, 9999)
