from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.database import get_db
from chainledger.services import analytics

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/overview")
async def get_overview(db: AsyncSession = Depends(get_db)):
    return await analytics.overview(db)


@router.get("/networks")
async def get_network_activity(db: AsyncSession = Depends(get_db)):
    return await analytics.network_activity(db)


@router.get("/tokens")
async def get_token_analytics(db: AsyncSession = Depends(get_db)):
    return await analytics.token_analytics(db)


@router.get("/daily")
async def get_daily_stats(days: int = Query(30, ge=1, le=365), db: AsyncSession = Depends(get_db)):
    return await analytics.daily_stats(db, days)


@router.get("/tokens/{token_id}/holders")
async def get_top_holders(token_id: int, limit: int = Query(10, ge=1, le=100), db: AsyncSession = Depends(get_db)):
    return await analytics.top_holders(db, token_id, limit)


@router.get("/health")
async def get_health(db: AsyncSession = Depends(get_db)):
    return await analytics.health_metrics(db)
