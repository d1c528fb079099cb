import logging
from sqlalchemy.ext.asyncio import AsyncSession
from chainledger.core.errors import InsufficientBalance, InvalidAmount
from chainledger.core.types import utcnow
from chainledger.models.token import TokenBalance
from chainledger.services.ledger_store import get_balance, insert_ignore

logger = logging.getLogger(__name__)


async def adjust(db: AsyncSession, wallet_id: int, token_id: int, delta: int) -> TokenBalance:
    """Add ``delta`` to the (wallet, token) balance inside the caller's transaction.

    The balance row is locked FOR UPDATE before it is read, so two concurrent
    debits of the same balance serialize and the second one sees the first's
    result. A credit creates the row on first use; a debit needs an existing
    row with enough balance or raises InsufficientBalance before writing.
    Rows that reach zero are kept. A zero delta is rejected.
    """
    delta = int(delta)
    if delta == 0:
        raise InvalidAmount("Balance adjustment must be non-zero")
    if delta > 0:
        await insert_ignore(
            db,
            TokenBalance,
            {"wallet_id": wallet_id, "token_id": token_id, "balance": 0},
            ["wallet_id", "token_id"],
        )

    row = await get_balance(db, wallet_id, token_id, lock=True)
    if row is None:
        raise InsufficientBalance(f"No balance for wallet {wallet_id} on token {token_id}")

    new_balance = row.balance + delta
    if new_balance < 0:
        raise InsufficientBalance(
            f"Insufficient balance: have {row.balance}, need {-delta}"
        )

    row.balance = new_balance
    row.updated_at = utcnow()
    await db.flush()
    return row
