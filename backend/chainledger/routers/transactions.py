from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.database import get_db
from chainledger.models.transaction import TransactionStatus
from chainledger.schemas.transaction import (
    CreateTransactionRequest, ListTransactionsResponse, TransactionOut, TransactionStats,
    UpdateTransactionRequest,
)
from chainledger.services import transactions
from chainledger.services.transactions import TransactionFilter

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=ListTransactionsResponse)
async def list_transactions(
    address: Optional[str] = None,
    network_id: Optional[int] = None,
    status: Optional[TransactionStatus] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    tx_filter = TransactionFilter(
        address=address, network_id=network_id, status=status.value if status else None,
    )
    items, total = await transactions.list_transactions(db, tx_filter, page, limit)
    return {"transactions": items, "total": total}


@router.get("/stats", response_model=TransactionStats)
async def get_stats(network_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    return await transactions.transaction_stats(db, network_id)


@router.get("/address/{address}", response_model=ListTransactionsResponse)
async def list_by_address(
    address: str,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    items, total = await transactions.list_transactions(db, TransactionFilter(address=address), page, limit)
    return {"transactions": items, "total": total}


@router.get("/{tx_hash}", response_model=TransactionOut)
async def get_transaction(tx_hash: str, db: AsyncSession = Depends(get_db)):
    return await transactions.get_transaction(db, tx_hash)


@router.post("", response_model=TransactionOut, status_code=201)
async def create_transaction(body: CreateTransactionRequest, db: AsyncSession = Depends(get_db)):
    return await transactions.create_transaction(db, body)


@router.put("/status", response_model=TransactionOut)
async def update_transaction_status(body: UpdateTransactionRequest, db: AsyncSession = Depends(get_db)):
    return await transactions.update_transaction(db, body)
