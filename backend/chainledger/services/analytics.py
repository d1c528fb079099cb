"""Read-only aggregates over the ledger for dashboards.

Sums over amount columns are done in Python because TokenAmount is a text
column outside PostgreSQL.
"""
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.errors import TokenNotFound
from chainledger.core.types import as_utc, utcnow
from chainledger.models.contract import SmartContract
from chainledger.models.network import Network
from chainledger.models.nft import NFTMetadata
from chainledger.models.token import Token, TokenBalance
from chainledger.models.transaction import Transaction, TransactionStatus
from chainledger.models.wallet import Wallet

TOP_TOKENS = 20
DEGRADED_FAILURE_RATIO = 0.1
CONGESTED_PENDING = 100


async def _count(db: AsyncSession, model, *where) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*where)) or 0


async def overview(db: AsyncSession) -> dict:
    return {
        "total_networks": await _count(db, Network, Network.is_active.is_(True)),
        "total_contracts": await _count(db, SmartContract),
        "total_wallets": await _count(db, Wallet),
        "total_tokens": await _count(db, Token),
        "total_nfts": await _count(db, NFTMetadata),
        "total_transactions": await _count(db, Transaction),
        "pending_transactions": await _count(db, Transaction, Transaction.status == TransactionStatus.pending.value),
    }


async def network_activity(db: AsyncSession) -> list:
    networks = list(await db.scalars(select(Network).where(Network.is_active.is_(True))))
    contract_counts = dict((await db.execute(
        select(SmartContract.network_id, func.count()).group_by(SmartContract.network_id)
    )).all())

    tx_count = defaultdict(int)
    tx_value = defaultdict(int)
    last_activity = {}
    rows = await db.execute(select(Transaction.network_id, Transaction.value, Transaction.created_at))
    for network_id, value, created_at in rows:
        tx_count[network_id] += 1
        tx_value[network_id] += value or 0
        created_at = as_utc(created_at)
        if created_at and (network_id not in last_activity or created_at > last_activity[network_id]):
            last_activity[network_id] = created_at

    activities = [{
        "network_id": n.id,
        "network_name": n.name,
        "transaction_count": tx_count[n.id],
        "contract_count": contract_counts.get(n.id, 0),
        "total_value": str(tx_value[n.id]),
        "last_activity": last_activity.get(n.id, as_utc(n.created_at)),
    } for n in networks]
    activities.sort(key=lambda a: a["transaction_count"], reverse=True)
    return activities


async def token_analytics(db: AsyncSession) -> list:
    holders = dict((await db.execute(
        select(TokenBalance.token_id, func.count())
        .where(TokenBalance.balance > 0)
        .group_by(TokenBalance.token_id)
    )).all())
    tx_by_contract = dict((await db.execute(
        select(Transaction.contract_address, func.count())
        .where(Transaction.contract_address.is_not(None))
        .group_by(Transaction.contract_address)
    )).all())

    tokens = list(await db.scalars(select(Token).execution_options(populate_existing=True)))
    result = [{
        "token_id": t.id,
        "token_symbol": t.symbol,
        "token_name": t.name,
        "holder_count": holders.get(t.id, 0),
        "total_supply": str(t.total_supply or 0),
        "transaction_count": tx_by_contract.get(t.contract.address, 0),
    } for t in tokens]
    result.sort(key=lambda a: a["holder_count"], reverse=True)
    return result[:TOP_TOKENS]


async def daily_stats(db: AsyncSession, days: int = 30, today: Optional[date] = None) -> list:
    today = today or utcnow().date()
    first_day = today - timedelta(days=days - 1)
    window_start = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

    buckets = {first_day + timedelta(days=i): {
        "transaction_count": 0, "from": set(), "to": set(), "total_value": 0, "new_wallets": 0,
    } for i in range(days)}

    rows = await db.execute(
        select(Transaction.from_address, Transaction.to_address, Transaction.value, Transaction.created_at)
        .where(Transaction.created_at >= window_start)
    )
    for from_address, to_address, value, created_at in rows:
        bucket = buckets.get(as_utc(created_at).date())
        if bucket is None:
            continue
        bucket["transaction_count"] += 1
        bucket["from"].add(from_address)
        if to_address:
            bucket["to"].add(to_address)
        bucket["total_value"] += value or 0

    for created_at in await db.scalars(select(Wallet.created_at).where(Wallet.created_at >= window_start)):
        bucket = buckets.get(as_utc(created_at).date())
        if bucket is not None:
            bucket["new_wallets"] += 1

    return [{
        "date": day.isoformat(),
        "transaction_count": b["transaction_count"],
        # distinct senders plus distinct receivers
        "unique_users": len(b["from"]) + len(b["to"]),
        "total_value": str(b["total_value"]),
        "new_wallets": b["new_wallets"],
    } for day, b in sorted(buckets.items())]


def holder_percentage(balance: int, total_supply: int) -> float:
    """Share of supply with two decimals, computed on integers (basis points)."""
    if not total_supply:
        return 0.0
    return (balance * 10000 // total_supply) / 100


async def top_holders(db: AsyncSession, token_id: int, limit: int = 10) -> list:
    token = await db.get(Token, token_id)
    if not token:
        raise TokenNotFound()
    total_supply = token.total_supply or 0

    rows = await db.execute(
        select(Wallet.address, TokenBalance.balance)
        .join(Wallet, TokenBalance.wallet_id == Wallet.id)
        .where(TokenBalance.token_id == token_id, TokenBalance.balance > 0)
        .order_by(TokenBalance.balance.desc())
        .limit(limit)
    )
    return [{
        "address": address,
        "balance": str(balance),
        "percentage": holder_percentage(balance, total_supply),
    } for address, balance in rows]


async def health_metrics(db: AsyncSession) -> dict:
    since = utcnow() - timedelta(hours=1)
    txs = list(await db.scalars(select(Transaction).where(Transaction.created_at >= since)))

    confirm_times = [
        (as_utc(t.confirmed_at) - as_utc(t.created_at)).total_seconds()
        for t in txs if t.confirmed_at and t.created_at
    ]
    failed = sum(1 for t in txs if t.status == TransactionStatus.failed.value)
    pending = sum(1 for t in txs if t.status == TransactionStatus.pending.value)
    gas_prices = [t.gas_price for t in txs if t.gas_price is not None]

    if failed > len(txs) * DEGRADED_FAILURE_RATIO:
        status = "degraded"
    elif pending > CONGESTED_PENDING:
        status = "congested"
    else:
        status = "healthy"

    return {
        "avg_block_time": sum(confirm_times) / len(confirm_times) if confirm_times else 0.0,
        "network_status": status,
        "last_block_height": max((t.block_number or 0 for t in txs), default=0),
        "total_gas_used": str(sum(t.gas_used or 0 for t in txs)),
        "avg_gas_price": str(sum(gas_prices) // len(gas_prices)) if gas_prices else "0",
    }
