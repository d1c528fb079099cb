"""Transaction records: creation, status updates, queries and aggregate stats."""
import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy import select, func, case, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.errors import Conflict, InvalidAmount, NetworkNotFound, TransactionNotFound
from chainledger.core.filters import QueryFilter, paginate
from chainledger.core.types import parse_uint, utcnow
from chainledger.models.network import Network
from chainledger.models.transaction import Transaction, TransactionStatus
from chainledger.schemas.transaction import CreateTransactionRequest, UpdateTransactionRequest

logger = logging.getLogger(__name__)


@dataclass
class TransactionFilter(QueryFilter):
    model = Transaction

    address: Optional[str] = None
    network_id: Optional[int] = None
    status: Optional[str] = None

    def _address_clause(self, value):
        return or_(Transaction.from_address == value, Transaction.to_address == value)


async def create_transaction(db: AsyncSession, req: CreateTransactionRequest) -> Transaction:
    value = parse_uint(req.value)
    if value is None:
        raise InvalidAmount("Transaction value must be a non-negative integer")
    gas_price = None
    if req.gas_price is not None:
        gas_price = parse_uint(req.gas_price)
        if gas_price is None:
            raise InvalidAmount("Gas price must be a non-negative integer")
    if not await db.get(Network, req.network_id):
        raise NetworkNotFound()

    tx = Transaction(
        hash=req.hash,
        network_id=req.network_id,
        from_address=req.from_address,
        to_address=req.to_address,
        value=value,
        gas_price=gas_price,
        gas_limit=req.gas_limit,
        nonce=req.nonce,
        status=TransactionStatus.pending.value,
        transaction_type=req.transaction_type.value,
        contract_address=req.contract_address,
    )
    db.add(tx)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(f"Transaction {req.hash} already recorded")
    return tx


async def get_transaction(db: AsyncSession, tx_hash: str) -> Transaction:
    tx = await db.scalar(select(Transaction).where(Transaction.hash == tx_hash))
    if not tx:
        raise TransactionNotFound()
    return tx


async def update_transaction(db: AsyncSession, req: UpdateTransactionRequest) -> Transaction:
    """Only status and confirmation fields change; the rest of the record is immutable."""
    tx = await db.scalar(select(Transaction).where(Transaction.hash == req.hash).with_for_update())
    if not tx:
        raise TransactionNotFound()

    tx.status = req.status.value
    for name in ("block_number", "block_hash", "transaction_index", "gas_used", "logs", "error_message"):
        value = getattr(req, name)
        if value is not None:
            setattr(tx, name, value)
    if req.status == TransactionStatus.confirmed:
        tx.confirmed_at = utcnow()
    await db.commit()
    logger.info("Transaction %s -> %s", tx.hash, tx.status)
    return tx


async def list_transactions(
    db: AsyncSession, tx_filter: TransactionFilter, page: Optional[int] = None, limit: Optional[int] = None,
) -> tuple[list, int]:
    limit, offset = paginate(page, limit)
    stmt = tx_filter.apply(select(Transaction)).order_by(Transaction.created_at.desc(), Transaction.id.desc())
    transactions = list(await db.scalars(stmt.limit(limit).offset(offset)))
    total = await db.scalar(tx_filter.apply(select(func.count()).select_from(Transaction)))
    return transactions, total or 0


async def transaction_stats(db: AsyncSession, network_id: Optional[int] = None) -> dict:
    tx_filter = TransactionFilter(network_id=network_id)
    counts = (await db.execute(tx_filter.apply(select(
        func.count(Transaction.id),
        func.count(case((Transaction.status == TransactionStatus.pending.value, 1))),
        func.count(case((Transaction.status == TransactionStatus.confirmed.value, 1))),
        func.count(case((Transaction.status == TransactionStatus.failed.value, 1))),
    )))).one()
    # TokenAmount is stored as text outside PostgreSQL, so sum in Python
    values = await db.scalars(tx_filter.apply(select(Transaction.value)))
    return {
        "total_transactions": counts[0],
        "pending_transactions": counts[1],
        "confirmed_transactions": counts[2],
        "failed_transactions": counts[3],
        "total_value": sum(values, 0),
    }
