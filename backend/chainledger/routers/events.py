import asyncio
import logging
from datetime import timedelta
from typing import Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.config import settings
from chainledger.core.broadcast import StreamFilter, Subscription
from chainledger.core.deps import EventBroadcaster, get_broadcaster, get_txid_generator
from chainledger.core.types import utcnow
from chainledger.database import get_db
from chainledger.schemas.event import CreateEventRequest, EventOut, ListEventsResponse, SimulateEventRequest
from chainledger.services import event_recorder
from chainledger.services.event_recorder import EventFilter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("", response_model=ListEventsResponse)
async def list_events(
    contract_address: Optional[str] = None,
    event_name: Optional[str] = None,
    network_id: Optional[int] = None,
    block_number: Optional[int] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    event_filter = EventFilter(
        contract_address=contract_address,
        event_name=event_name,
        network_id=network_id,
        block_number=block_number,
    )
    events, total = await event_recorder.list_events(db, event_filter, page, limit)
    return {"events": events, "total": total}


@router.get("/transaction/{transaction_hash}", response_model=list[EventOut])
async def events_by_transaction(transaction_hash: str, db: AsyncSession = Depends(get_db)):
    return await event_recorder.events_by_transaction(db, transaction_hash)


@router.get("/contract/{contract_address}", response_model=list[EventOut])
async def events_by_contract(
    contract_address: str,
    event_name: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    event_filter = EventFilter(contract_address=contract_address, event_name=event_name)
    events, _ = await event_recorder.list_events(db, event_filter, 1, limit)
    return events


@router.get("/{event_id}", response_model=EventOut)
async def get_event(event_id: int, db: AsyncSession = Depends(get_db)):
    return await event_recorder.get_event(db, event_id)


@router.post("", response_model=EventOut, status_code=201)
async def create_event(
    body: CreateEventRequest,
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    return await event_recorder.create_event(db, broadcaster, body)


@router.post("/simulate", response_model=EventOut, status_code=201)
async def simulate_event(
    body: SimulateEventRequest,
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    txids=Depends(get_txid_generator),
):
    return await event_recorder.simulate_event(db, broadcaster, txids, body)


async def _forward(websocket: WebSocket, sub: Subscription) -> bool:
    """Relay envelopes until the broadcaster drops the subscription; returns True then."""
    while True:
        envelope = await sub.get()
        if envelope is None:
            return True
        await websocket.send_json(envelope)


async def _drain(websocket: WebSocket):
    # Returns when the client disconnects; inbound messages are ignored.
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/stream")
async def event_stream(
    websocket: WebSocket,
    contract_address: Optional[str] = None,
    event_name: Optional[str] = None,
    network_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await websocket.accept()
    stream_filter = StreamFilter(contract_address=contract_address, event_name=event_name, network_id=network_id)
    # Subscribe before the backlog read so nothing committed in between is missed.
    sub = broadcaster.subscribe(stream_filter)
    logger.info("Event stream subscriber connected (%s active)", broadcaster.subscriber_count)
    try:
        backlog_filter = EventFilter(
            contract_address=contract_address,
            event_name=event_name,
            network_id=network_id,
            since=utcnow() - timedelta(minutes=settings.EVENT_STREAM_BACKLOG_MINUTES),
        )
        backlog = await event_recorder.recent_events(db, backlog_filter, settings.EVENT_STREAM_BACKLOG_LIMIT)
        await db.close()
        for event in reversed(backlog):
            await websocket.send_json(event_recorder.event_envelope(event))

        forward = asyncio.create_task(_forward(websocket, sub))
        drain = asyncio.create_task(_drain(websocket))
        done, pending = await asyncio.wait({forward, drain}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Event stream forwarding stopped: %s", exc)
        if forward in done and forward.exception() is None:
            logger.warning("Event stream subscriber fell behind, closing connection")
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unsubscribe(sub)
        logger.info("Event stream subscriber disconnected (%s active)", broadcaster.subscriber_count)
