"""Append-only transaction/event records and their realtime broadcast.

Ledger services call ``record_activity`` inside their own transaction, so the
records commit or roll back together with the balance/ownership change, and
call ``publish_activity`` only after the commit succeeded.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.broadcast import EventBroadcaster, make_envelope
from chainledger.core.errors import EventNotFound, NetworkNotFound
from chainledger.core.filters import QueryFilter, paginate
from chainledger.core.txid import TxIdGenerator
from chainledger.core.types import utcnow
from chainledger.models.event import BlockchainEvent
from chainledger.models.network import Network
from chainledger.models.token import Token
from chainledger.models.transaction import Transaction, TransactionStatus, TransactionType
from chainledger.schemas.event import CreateEventRequest, EventOut, SimulateEventRequest
from chainledger.schemas.transaction import TransactionOut

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


@dataclass
class EventFilter(QueryFilter):
    model = BlockchainEvent

    contract_address: Optional[str] = None
    event_name: Optional[str] = None
    network_id: Optional[int] = None
    block_number: Optional[int] = None
    since: Optional[datetime] = None

    def _since_clause(self, value):
        return BlockchainEvent.created_at >= value


@dataclass
class RecordedActivity:
    transaction: Transaction
    events: list = field(default_factory=list)


async def record_activity(
    db: AsyncSession,
    txids: TxIdGenerator,
    *,
    token: Token,
    tx_hash: str,
    event_name: str,
    from_address: str,
    to_address: str,
    value: int,
    event_data: dict,
) -> RecordedActivity:
    """Write the transaction row and its single log event for a ledger mutation."""
    contract = token.contract
    now = utcnow()
    block_number = txids.new_block_number()

    tx = Transaction(
        hash=tx_hash,
        network_id=contract.network_id,
        from_address=from_address,
        to_address=to_address,
        value=value,
        block_number=block_number,
        transaction_index=0,
        status=TransactionStatus.confirmed.value,
        transaction_type=TransactionType.contract_call.value,
        contract_address=contract.address,
        logs=[{"event": event_name, "log_index": 0}],
        created_at=now,
        confirmed_at=now,
    )
    event = BlockchainEvent(
        transaction_hash=tx_hash,
        contract_address=contract.address,
        event_name=event_name,
        event_data=event_data,
        block_number=block_number,
        log_index=0,
        network_id=contract.network_id,
        created_at=now,
    )
    db.add_all([tx, event])
    await db.flush()
    return RecordedActivity(transaction=tx, events=[event])


def event_envelope(event: BlockchainEvent) -> dict:
    return make_envelope("event", EventOut.model_validate(event).model_dump(mode="json"))


def publish_activity(broadcaster: EventBroadcaster, activity: RecordedActivity) -> None:
    """Best effort: a broadcast failure is logged and never reaches the caller."""
    try:
        broadcaster.publish(make_envelope(
            "transaction", TransactionOut.model_validate(activity.transaction).model_dump(mode="json"),
        ))
        for event in activity.events:
            broadcaster.publish(event_envelope(event))
    except Exception:
        logger.exception("Broadcast of transaction %s failed", activity.transaction.hash)


async def create_event(db: AsyncSession, broadcaster: EventBroadcaster, req: CreateEventRequest) -> BlockchainEvent:
    if not await db.get(Network, req.network_id):
        raise NetworkNotFound()
    event = BlockchainEvent(**req.model_dump())
    db.add(event)
    await db.commit()
    logger.info("Ingested event %s on %s (tx %s)", event.event_name, event.contract_address, event.transaction_hash)
    try:
        broadcaster.publish(event_envelope(event))
    except Exception:
        logger.exception("Broadcast of event %s failed", event.id)
    return event


async def simulate_event(
    db: AsyncSession, broadcaster: EventBroadcaster, txids: TxIdGenerator, req: SimulateEventRequest,
) -> BlockchainEvent:
    return await create_event(db, broadcaster, CreateEventRequest(
        transaction_hash=txids.new_tx_id(),
        contract_address=req.contract_address,
        event_name=req.event_name,
        event_data=req.event_data,
        block_number=txids.new_block_number(),
        log_index=0,
        network_id=req.network_id,
    ))


async def get_event(db: AsyncSession, event_id: int) -> BlockchainEvent:
    event = await db.get(BlockchainEvent, event_id)
    if not event:
        raise EventNotFound()
    return event


async def list_events(
    db: AsyncSession, event_filter: EventFilter, page: Optional[int] = None, limit: Optional[int] = None,
) -> tuple[list, int]:
    limit, offset = paginate(page, limit)
    stmt = event_filter.apply(select(BlockchainEvent)).order_by(
        BlockchainEvent.block_number.desc(), BlockchainEvent.log_index.desc(), BlockchainEvent.id.desc(),
    )
    events = list(await db.scalars(stmt.limit(limit).offset(offset)))
    total = await db.scalar(event_filter.apply(select(func.count()).select_from(BlockchainEvent)))
    return events, total or 0


async def events_by_transaction(db: AsyncSession, transaction_hash: str) -> list:
    return list(await db.scalars(
        select(BlockchainEvent)
        .where(BlockchainEvent.transaction_hash == transaction_hash)
        .order_by(BlockchainEvent.log_index.asc())
    ))


async def recent_events(db: AsyncSession, event_filter: EventFilter, limit: int) -> list:
    """Newest first, used to replay a backlog to a new stream subscriber."""
    stmt = event_filter.apply(select(BlockchainEvent)).order_by(BlockchainEvent.created_at.desc(), BlockchainEvent.id.desc())
    return list(await db.scalars(stmt.limit(limit)))
