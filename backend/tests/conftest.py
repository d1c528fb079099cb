import pytest
import pytest_asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from chainledger.core.broadcast import EventBroadcaster, get_broadcaster
from chainledger.core.deps import get_txid_generator
from chainledger.database import Base, get_db
from chainledger.main import app
from chainledger.models import Network, SmartContract, Token, TokenBalance, Wallet, NFTMetadata

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SELLER = "0x" + "5e" * 20
BUYER = "0x" + "b0" * 20
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20


@pytest.fixture(autouse=True)
def mock_background_tasks(monkeypatch):
    """Keep the expiry sweep and logging setup out of tests."""
    monkeypatch.setattr("chainledger.main.expiry_sweep_job", AsyncMock(return_value=None))
    monkeypatch.setattr("chainledger.main.setup_logging", lambda *args, **kwargs: None)


class SequentialTxIds:
    """Deterministic stand-in for the random transaction id generator."""

    def __init__(self):
        self.issued = 0
        self.block = 18_000_000

    def new_tx_id(self) -> str:
        self.issued += 1
        return "0x" + format(self.issued, "064x")

    def new_block_number(self) -> int:
        self.block += 1
        return self.block


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def broadcaster():
    return EventBroadcaster(queue_size=10)


@pytest.fixture
def txids():
    return SequentialTxIds()


@pytest_asyncio.fixture
async def ledger(db):
    """One network with a fungible token, a locked token and an NFT collection."""
    network = Network(
        name="Test Network", chain_id=31337, rpc_url="http://localhost:8545", native_currency="ETH",
    )
    db.add(network)
    await db.flush()

    erc20 = SmartContract(
        name="Gold", address="0x" + "c0" * 20, network_id=network.id, abi="[]", contract_type="ERC20",
    )
    erc721 = SmartContract(
        name="Art", address="0x" + "c1" * 20, network_id=network.id, abi="[]", contract_type="ERC721",
    )
    db.add_all([erc20, erc721])
    await db.flush()

    gold = Token(contract_id=erc20.id, symbol="GLD", name="Gold", token_type="ERC20", total_supply=10_000)
    fixed = Token(
        contract_id=erc20.id, symbol="FIX", name="Fixed", token_type="ERC20",
        is_mintable=False, is_burnable=False,
    )
    art = Token(contract_id=erc721.id, symbol="ART", name="Art", token_type="ERC721")
    db.add_all([gold, fixed, art])
    await db.flush()

    nft = NFTMetadata(
        token_id=art.id, token_number=1, name="Art #1", image_url="ipfs://art/1",
        attributes=[{"trait_type": "color", "value": "red"}], owner_address=SELLER,
    )
    db.add(nft)
    await db.commit()
    # ids only: ORM instances expire on rollback
    return SimpleNamespace(
        network=network.id, erc20=erc20.address, erc721=erc721.address,
        gold=gold.id, fixed=fixed.id, art=art.id, nft=nft.id,
    )


@pytest_asyncio.fixture
async def client(session_factory, broadcaster, txids):
    async def override_get_db():
        async with session_factory() as session:
            yield session
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    app.dependency_overrides[get_txid_generator] = lambda: txids
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def balance_of(db):
    """Current balance read straight from the table (None when there is no row)."""
    async def read(address: str, token_id: int):
        return await db.scalar(
            select(TokenBalance.balance)
            .join(Wallet, TokenBalance.wallet_id == Wallet.id)
            .where(Wallet.address == address, TokenBalance.token_id == token_id)
        )
    return read
