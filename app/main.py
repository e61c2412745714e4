import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root wherever uvicorn is started
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.admin import admin_router
from app.api.auth import router as auth_router
from app.api.orders import router as orders_router
from app.api.payments import router as payments_router
from app.api.products import router as products_router
from app.core.config import is_toss_configured, settings
from app.core.database import create_db_engine, init_db
from app.core.errors import CheckoutError
from app.core.rate_limit import client_ip, limiter
from app.logging import setup_logging
from app.models import ErrorLog, SecurityLog
from app.services.catalog import ProductCatalog
from app.services.toss import TossPaymentsClient

setup_logging(level=logging.INFO)
log = logging.getLogger("cruise")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Clients are built here and injected through app.state; nothing is created on first use
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    app.state.engine = engine
    app.state.catalog = ProductCatalog()
    app.state.payment_gateway = TossPaymentsClient.from_settings(settings)
    log.info("TOSS_SECRET_KEY loaded: %s", "yes" if is_toss_configured() else "NO (set TOSS_SECRET_KEY in .env)")
    try:
        yield
    finally:
        engine.dispose()


app = FastAPI(
    title="Cruise Booking API",
    description="Cruise checkout: TossPayments confirmation, orders, catalog",
    lifespan=lifespan,
    # Interactive docs are off in production
    docs_url=None if settings.environment == "production" else "/docs",
    redoc_url=None,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str, code: str | None = None) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if code:
        body["code"] = code
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    try:
        with Session(request.app.state.engine) as db:
            db.add(SecurityLog(event="rate_limit", ip=client_ip(request), endpoint=request.url.path, detail=str(exc.detail)))
            db.commit()
    except SQLAlchemyError as e:
        log.warning("SecurityLog rate_limit write failed: %s", e)
    return _error_response(request, 429, "요청이 너무 많습니다. 잠시 후 다시 시도해주세요.", "RATE_LIMITED")


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(CheckoutError)
def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.code)
    return _error_response(request, exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning("Request validation error (422): path=%s method=%s detail=%s", request.url.path, request.method, errs)
    rid = getattr(request.state, "request_id", None)
    body = {"error": "잘못된 요청입니다.", "status_code": 422, "detail": jsonable_errors(errs)}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


def jsonable_errors(errs) -> list[dict]:
    return [{"loc": list(e.get("loc") or []), "msg": e.get("msg"), "type": e.get("type")} for e in errs]


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc)
    try:
        with Session(request.app.state.engine) as db:
            db.add(
                ErrorLog(
                    endpoint=request.url.path,
                    method=request.method,
                    error_message=str(exc)[:2000],
                    stack_trace=traceback.format_exc()[:10000],
                )
            )
            db.commit()
    except SQLAlchemyError as e:
        log.warning("ErrorLog write failed: %s", e)
    return JSONResponse(status_code=500, content={"error": "서버 오류가 발생했습니다.", "status_code": 500})


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(payments_router)
app.include_router(orders_router)
app.include_router(products_router)
app.include_router(admin_router)


@app.get("/health")
def health(request: Request):
    database = "ok"
    try:
        with Session(request.app.state.engine) as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.warning("Health check database error: %s", e)
        database = "error"
    return {"status": "ok", "toss_configured": request.app.state.payment_gateway.configured, "database": database}
