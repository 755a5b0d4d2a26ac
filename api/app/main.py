import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.db.database import async_session, init_db
from app.routes import balance, distribution, gifts, points, users, withdrawals
from app.services.distribution_service import SettlementGuard
from app.services.errors import LedgerError, NotFound, ValidationError
from app.worker.settlement_worker import DistributionScheduler

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources."""
    if settings.create_tables_on_startup:
        await init_db()

    # One guard for the scheduled run and the manual trigger
    guard = SettlementGuard()
    scheduler = DistributionScheduler(async_session, guard=guard)
    app.state.settlement_guard = guard
    app.state.scheduler = scheduler

    if settings.scheduler_enabled:
        scheduler.start()
    yield
    scheduler.stop()


app = FastAPI(
    title='Sets API',
    description='Points accrual, daily revenue distribution and creator balances',
    version='0.1.0',
    lifespan=lifespan,
)

# CORS for mobile app
app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(_: Request, exc: LedgerError) -> JSONResponse:
    """Map service errors to HTTP status codes."""
    status_code = 400
    if isinstance(exc, ValidationError):
        status_code = 422
    elif isinstance(exc, NotFound):
        status_code = 404
    return JSONResponse(status_code=status_code, content={'detail': str(exc)})


# Routes
app.include_router(users.router, prefix='/api/users', tags=['users'])
app.include_router(points.router, prefix='/api/points', tags=['points'])
app.include_router(balance.router, prefix='/api/balance', tags=['balance'])
app.include_router(withdrawals.router, prefix='/api/withdrawals', tags=['withdrawals'])
app.include_router(distribution.router, prefix='/api/distribution', tags=['distribution'])
app.include_router(gifts.router, prefix='/api/gifts', tags=['gifts'])
app.include_router(gifts.ads_router, prefix='/api/ads', tags=['ads'])


@app.get('/health')
async def health_check():
    """Health check endpoint."""
    return {'status': 'ok', 'service': 'sets-api'}
