from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from chainledger.config import settings
from chainledger.core.deps import get_broadcaster
from chainledger.core.exception_handlers import register_exception_handlers
from chainledger.logging_config import setup_logging
from chainledger.routers import analytics, contracts, events, networks, nft, tokens, transactions, wallets
from chainledger.services.marketplace import expiry_sweep_job

scheduler = AsyncIOScheduler()

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    get_broadcaster()
    if settings.LISTING_EXPIRY_SWEEP_SECONDS > 0:
        scheduler.add_job(
            expiry_sweep_job, "interval",
            seconds=settings.LISTING_EXPIRY_SWEEP_SECONDS,
            id="expire_listings", replace_existing=True,
        )
        scheduler.start()
    yield
    if scheduler.running:
        scheduler.shutdown()

app = FastAPI(title="ChainLedger API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(networks.router)
app.include_router(contracts.router)
app.include_router(wallets.router)
app.include_router(tokens.router)
app.include_router(nft.router)
app.include_router(transactions.router)
app.include_router(events.router)
app.include_router(analytics.router)

@app.get("/health")
async def health():
    return {"status": "ok"}
