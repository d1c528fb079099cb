import pytest
from unittest.mock import patch
from sqlalchemy import select
from chainledger.core.errors import (
    InsufficientBalance, InvalidAmount, NotBurnable, NotMintable, TokenNotFound, WalletNotFound,
)
from chainledger.models import BlockchainEvent, Transaction, Wallet
from chainledger.services import token_operations
from chainledger.services.event_recorder import ZERO_ADDRESS
from conftest import ALICE, BOB


@pytest.mark.asyncio
async def test_mint_to_new_wallet(db, ledger, broadcaster, txids, balance_of):
    result = await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "1000")
    assert result.success is True
    assert result.transaction_hash.startswith("0x") and len(result.transaction_hash) == 66
    assert await balance_of(ALICE, ledger.gold) == 1000

    wallet = await db.scalar(select(Wallet).where(Wallet.address == ALICE))
    assert wallet.user_id == "system"
    assert wallet.wallet_type == "EOA"


@pytest.mark.asyncio
async def test_mint_records_transaction_and_event(db, ledger, broadcaster, txids):
    result = await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "1000")

    tx = await db.scalar(select(Transaction).where(Transaction.hash == result.transaction_hash))
    assert tx.status == "confirmed"
    assert tx.transaction_type == "contract_call"
    assert tx.value == 1000
    assert tx.from_address == ZERO_ADDRESS
    assert tx.contract_address == ledger.erc20
    assert tx.network_id == ledger.network

    event = await db.scalar(select(BlockchainEvent).where(BlockchainEvent.transaction_hash == result.transaction_hash))
    assert event.event_name == "Mint"
    assert event.log_index == 0
    assert list(event.event_data) == ["from", "to", "value", "token_id"]
    assert event.event_data["value"] == "1000"


@pytest.mark.asyncio
async def test_mint_publishes_after_commit(db, ledger, broadcaster, txids):
    sub = broadcaster.subscribe()
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "5")
    first = await sub.get()
    second = await sub.get()
    assert first["type"] == "transaction"
    assert second["type"] == "event"
    assert second["data"]["event_name"] == "Mint"


@pytest.mark.asyncio
async def test_mint_beyond_64_bits(db, ledger, broadcaster, txids, balance_of):
    huge = 2 ** 200
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, str(huge))
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "1")
    assert await balance_of(ALICE, ledger.gold) == huge + 1


@pytest.mark.asyncio
async def test_mint_unknown_token(db, ledger, broadcaster, txids):
    with pytest.raises(TokenNotFound):
        await token_operations.mint(db, broadcaster, txids, 9999, ALICE, "10")


@pytest.mark.asyncio
async def test_mint_not_mintable(db, ledger, broadcaster, txids, balance_of):
    with pytest.raises(NotMintable):
        await token_operations.mint(db, broadcaster, txids, ledger.fixed, ALICE, "10")
    assert await balance_of(ALICE, ledger.fixed) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-5", "1.5", "abc", "", 1.0, None])
async def test_mint_invalid_amount(db, ledger, broadcaster, txids, amount):
    with pytest.raises(InvalidAmount):
        await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, amount)


@pytest.mark.asyncio
async def test_burn_then_overdraw(db, ledger, broadcaster, txids, balance_of):
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "1000")

    result = await token_operations.burn(db, broadcaster, txids, ledger.gold, ALICE, "500")
    assert result.success is True
    assert await balance_of(ALICE, ledger.gold) == 500

    with pytest.raises(InsufficientBalance):
        await token_operations.burn(db, broadcaster, txids, ledger.gold, ALICE, "600")
    assert await balance_of(ALICE, ledger.gold) == 500


@pytest.mark.asyncio
async def test_burn_to_zero_keeps_row(db, ledger, broadcaster, txids, balance_of):
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "7")
    await token_operations.burn(db, broadcaster, txids, ledger.gold, ALICE, "7")
    assert await balance_of(ALICE, ledger.gold) == 0


@pytest.mark.asyncio
async def test_burn_without_balance_row(db, ledger, broadcaster, txids):
    with pytest.raises(WalletNotFound):
        await token_operations.burn(db, broadcaster, txids, ledger.gold, BOB, "1")


@pytest.mark.asyncio
async def test_burn_not_burnable(db, ledger, broadcaster, txids):
    with pytest.raises(NotBurnable):
        await token_operations.burn(db, broadcaster, txids, ledger.fixed, ALICE, "1")


@pytest.mark.asyncio
async def test_transfer_moves_exact_amount(db, ledger, broadcaster, txids, balance_of):
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "500")

    result = await token_operations.transfer(db, broadcaster, txids, ledger.gold, ALICE, BOB, "200")
    assert result.success is True
    assert await balance_of(ALICE, ledger.gold) == 300
    assert await balance_of(BOB, ledger.gold) == 200

    event = await db.scalar(select(BlockchainEvent).where(BlockchainEvent.transaction_hash == result.transaction_hash))
    assert event.event_name == "Transfer"
    assert event.event_data == {"from": ALICE, "to": BOB, "value": "200", "token_id": ledger.gold}


@pytest.mark.asyncio
async def test_transfer_insufficient_leaves_both_sides(db, ledger, broadcaster, txids, balance_of):
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "100")
    with pytest.raises(InsufficientBalance):
        await token_operations.transfer(db, broadcaster, txids, ledger.gold, ALICE, BOB, "101")
    assert await balance_of(ALICE, ledger.gold) == 100
    assert await balance_of(BOB, ledger.gold) is None
    assert await db.scalar(select(Wallet).where(Wallet.address == BOB)) is None


@pytest.mark.asyncio
async def test_transfer_rolls_back_debit_on_late_failure(db, ledger, broadcaster, txids, balance_of):
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "500")
    sub = broadcaster.subscribe()

    # Both balance writes have been issued when recording fails
    with patch("chainledger.services.token_operations.record_activity", side_effect=RuntimeError("store down")):
        with pytest.raises(RuntimeError):
            await token_operations.transfer(db, broadcaster, txids, ledger.gold, ALICE, BOB, "200")

    assert await balance_of(ALICE, ledger.gold) == 500
    assert await balance_of(BOB, ledger.gold) is None
    assert await db.scalar(select(Wallet).where(Wallet.address == BOB)) is None
    assert sub.queue.empty()


@pytest.mark.asyncio
async def test_transfer_from_unknown_sender(db, ledger, broadcaster, txids):
    with pytest.raises(InsufficientBalance):
        await token_operations.transfer(db, broadcaster, txids, ledger.gold, BOB, ALICE, "1")


@pytest.mark.asyncio
async def test_failed_transfer_publishes_nothing(db, ledger, broadcaster, txids):
    await token_operations.mint(db, broadcaster, txids, ledger.gold, ALICE, "1")
    sub = broadcaster.subscribe()
    with pytest.raises(InsufficientBalance):
        await token_operations.transfer(db, broadcaster, txids, ledger.gold, ALICE, BOB, "2")
    assert sub.queue.empty()
