from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.errors import Conflict, NetworkNotFound
from chainledger.core.filters import paginate
from chainledger.database import get_db
from chainledger.models.network import Network
from chainledger.schemas.network import CreateNetworkRequest, NetworkOut

router = APIRouter(prefix="/api/networks", tags=["networks"])


async def _get_network(db: AsyncSession, network_id: int) -> Network:
    network = await db.get(Network, network_id)
    if not network:
        raise NetworkNotFound()
    return network


@router.get("", response_model=list[NetworkOut])
async def list_networks(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    limit, offset = paginate(page, limit)
    return list(await db.scalars(select(Network).order_by(Network.id).limit(limit).offset(offset)))


@router.get("/{network_id}", response_model=NetworkOut)
async def get_network(network_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_network(db, network_id)


@router.post("", response_model=NetworkOut, status_code=201)
async def create_network(body: CreateNetworkRequest, db: AsyncSession = Depends(get_db)):
    existing = await db.scalar(
        select(Network).where(or_(Network.chain_id == body.chain_id, Network.name == body.name))
    )
    if existing:
        raise Conflict("Network with this chain ID or name already exists")
    network = Network(
        name=body.name,
        chain_id=body.chain_id,
        rpc_url=str(body.rpc_url),
        explorer_url=str(body.explorer_url) if body.explorer_url else None,
        native_currency=body.native_currency,
        description=body.description,
    )
    db.add(network)
    await db.commit()
    return network


@router.patch("/{network_id}/toggle", response_model=NetworkOut)
async def toggle_network(network_id: int, db: AsyncSession = Depends(get_db)):
    network = await _get_network(db, network_id)
    network.is_active = not network.is_active
    await db.commit()
    return network
