import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from budget_engine.config import get_settings
from budget_engine.exceptions import (
    ClosingInProgressError,
    ClosingPreconditionError,
    DuplicateCodeError,
    EngineError,
    InsufficientCreditError,
    LockTimeoutError,
    NotFoundError,
    PeriodClosedError,
    PhaseOrderError,
    RevisionViolatesCommitmentsError,
    UnbalancedEntriesError,
    ValidationError,
)
from budget_engine.schemas.common import ErrorResponse

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# HTTP status per engine error; subclasses not listed fall back to their parent.
STATUS_BY_ERROR: dict[type[EngineError], int] = {
    ValidationError: 422,
    UnbalancedEntriesError: 422,
    NotFoundError: 404,
    DuplicateCodeError: 409,
    InsufficientCreditError: 409,
    PhaseOrderError: 409,
    ClosingPreconditionError: 409,
    PeriodClosedError: 409,
    ClosingInProgressError: 409,
    RevisionViolatesCommitmentsError: 409,
    LockTimeoutError: 503,
}


def status_for(exc: EngineError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


def _seed_chart_of_accounts() -> None:
    """Load the standard chart of accounts if the database lacks it."""
    from budget_engine.database import SessionLocal
    from budget_engine.services.account_service import seed_standard_accounts

    db = SessionLocal()
    try:
        created = seed_standard_accounts(db)
        logger.info("Startup: chart of accounts checked (%d created).", created)
    except SQLAlchemyError as exc:
        logger.warning("Could not seed chart of accounts on startup: %s", exc)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SEED_ACCOUNTS_ON_STARTUP:
        _seed_chart_of_accounts()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(
            error=exc.code, detail=exc.message, retryable=exc.retryable
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies get the same typed body as ``ValidationError``."""
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    logger.info("%s %s -> %s: %s", request.method, request.url.path, ValidationError.code, detail)
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(error=ValidationError.code, detail=detail).model_dump(),
    )


@app.get(f"{settings.API_PREFIX}/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

# Reference data
from budget_engine.routers import accounts, periods  # noqa: E402

app.include_router(accounts.router, prefix=f"{settings.API_PREFIX}/comptes", tags=["Comptes"])
app.include_router(periods.router, prefix=f"{settings.API_PREFIX}/exercices", tags=["Exercices"])

# Budget execution
from budget_engine.routers import budget, expenditures, revenues  # noqa: E402

app.include_router(budget.router, prefix=f"{settings.API_PREFIX}/budget", tags=["Budget"])
app.include_router(expenditures.router, prefix=f"{settings.API_PREFIX}/depenses", tags=["Dépenses"])
app.include_router(revenues.router, prefix=f"{settings.API_PREFIX}/recettes", tags=["Recettes"])

# Credit movements
from budget_engine.routers import revisions, transfers  # noqa: E402

app.include_router(transfers.router, prefix=f"{settings.API_PREFIX}/virements", tags=["Virements"])
app.include_router(revisions.router, prefix=f"{settings.API_PREFIX}/revisions", tags=["Révisions"])

# Accounting
from budget_engine.routers import adjustments, ledger, treasury  # noqa: E402

app.include_router(ledger.router, prefix=f"{settings.API_PREFIX}/comptabilite", tags=["Comptabilité"])
app.include_router(adjustments.router, prefix=f"{settings.API_PREFIX}/ajustements", tags=["Ajustements"])
app.include_router(treasury.router, prefix=f"{settings.API_PREFIX}/tresorerie", tags=["Trésorerie"])
