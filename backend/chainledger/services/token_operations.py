"""Mint, burn and transfer of fungible token balances.

Each operation validates its input before touching the database, checks its
preconditions, then applies the balance changes and appends the
transaction/event records in a single database transaction. Any failure
after the first write rolls the whole transaction back. The broadcast of the
new records happens only after the commit.
"""
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.broadcast import EventBroadcaster
from chainledger.core.errors import (
    InsufficientBalance, InvalidAmount, NotBurnable, NotMintable, TokenNotFound, WalletNotFound,
)
from chainledger.core.txid import TxIdGenerator
from chainledger.core.types import parse_positive
from chainledger.schemas.common import OperationResult
from chainledger.services import balance_mutator
from chainledger.services.event_recorder import ZERO_ADDRESS, publish_activity, record_activity
from chainledger.services.ledger_store import get_balance_by_address, get_or_create_wallet, get_token

logger = logging.getLogger(__name__)


def _parse_amount(amount) -> int:
    parsed = parse_positive(amount)
    if parsed is None:
        raise InvalidAmount(f"Invalid amount {amount!r}: must be a positive integer")
    return parsed


async def mint(
    db: AsyncSession,
    broadcaster: EventBroadcaster,
    txids: TxIdGenerator,
    token_id: int,
    to_address: str,
    amount,
) -> OperationResult:
    value = _parse_amount(amount)
    try:
        token = await get_token(db, token_id)
        if not token:
            raise TokenNotFound(f"Token {token_id} not found")
        if not token.is_mintable:
            raise NotMintable(f"Token {token.symbol} is not mintable")

        wallet = await get_or_create_wallet(db, to_address)
        await balance_mutator.adjust(db, wallet.id, token.id, value)

        tx_hash = txids.new_tx_id()
        activity = await record_activity(
            db, txids,
            token=token,
            tx_hash=tx_hash,
            event_name="Mint",
            from_address=ZERO_ADDRESS,
            to_address=to_address,
            value=value,
            event_data={"from": ZERO_ADDRESS, "to": to_address, "value": str(value), "token_id": token.id},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Minted %s %s to %s (tx %s)", value, token.symbol, to_address, tx_hash)
    publish_activity(broadcaster, activity)
    return OperationResult(
        success=True,
        transaction_hash=tx_hash,
        message=f"Successfully minted {value} tokens to {to_address}",
    )


async def burn(
    db: AsyncSession,
    broadcaster: EventBroadcaster,
    txids: TxIdGenerator,
    token_id: int,
    from_address: str,
    amount,
) -> OperationResult:
    value = _parse_amount(amount)
    try:
        token = await get_token(db, token_id)
        if not token:
            raise TokenNotFound(f"Token {token_id} not found")
        if not token.is_burnable:
            raise NotBurnable(f"Token {token.symbol} is not burnable")

        # Lock before checking so a concurrent burn/transfer waits for this one
        balance = await get_balance_by_address(db, from_address, token.id, lock=True)
        if balance is None:
            raise WalletNotFound(f"Wallet {from_address} holds no {token.symbol}")
        if value > balance.balance:
            raise InsufficientBalance(
                f"Insufficient balance to burn: have {balance.balance}, need {value}"
            )

        await balance_mutator.adjust(db, balance.wallet_id, token.id, -value)

        tx_hash = txids.new_tx_id()
        activity = await record_activity(
            db, txids,
            token=token,
            tx_hash=tx_hash,
            event_name="Burn",
            from_address=from_address,
            to_address=ZERO_ADDRESS,
            value=value,
            event_data={"from": from_address, "to": ZERO_ADDRESS, "value": str(value), "token_id": token.id},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Burned %s %s from %s (tx %s)", value, token.symbol, from_address, tx_hash)
    publish_activity(broadcaster, activity)
    return OperationResult(
        success=True,
        transaction_hash=tx_hash,
        message=f"Successfully burned {value} tokens from {from_address}",
    )


async def transfer(
    db: AsyncSession,
    broadcaster: EventBroadcaster,
    txids: TxIdGenerator,
    token_id: int,
    from_address: str,
    to_address: str,
    amount,
) -> OperationResult:
    value = _parse_amount(amount)
    try:
        token = await get_token(db, token_id)
        if not token:
            raise TokenNotFound(f"Token {token_id} not found")

        sender = await get_balance_by_address(db, from_address, token.id, lock=True)
        if sender is None or value > sender.balance:
            have = sender.balance if sender is not None else 0
            raise InsufficientBalance(
                f"Insufficient balance to transfer: have {have}, need {value}"
            )

        receiver = await get_or_create_wallet(db, to_address)

        # Debit first, then credit; neither is visible until the commit below
        await balance_mutator.adjust(db, sender.wallet_id, token.id, -value)
        await balance_mutator.adjust(db, receiver.id, token.id, value)

        tx_hash = txids.new_tx_id()
        activity = await record_activity(
            db, txids,
            token=token,
            tx_hash=tx_hash,
            event_name="Transfer",
            from_address=from_address,
            to_address=to_address,
            value=value,
            event_data={"from": from_address, "to": to_address, "value": str(value), "token_id": token.id},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Transferred %s %s from %s to %s (tx %s)", value, token.symbol, from_address, to_address, tx_hash)
    publish_activity(broadcaster, activity)
    return OperationResult(
        success=True,
        transaction_hash=tx_hash,
        message=f"Successfully transferred {value} tokens from {from_address} to {to_address}",
    )
