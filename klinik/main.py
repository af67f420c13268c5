import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import Base, make_engine, make_session_factory
from .errors import RecordError
from .identity import IdentityProvider
from .policy import ADMIN, DOKTER, PASIEN
from .records import register_user
from .schemas import SignupIn
from .store import KeyValueStore
from .routers import auth as auth_router
from .routers import patients as patients_router
from .routers import transactions as transactions_router

# --- Logging dasar ---
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
log = logging.getLogger("klinik")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
SEED_DEMO_USERS = os.getenv("SEED_DEMO_USERS", "").lower() in ("1", "true", "yes")

DEMO_USERS = [
    {"email": "admin@klinik.local", "password": "admin123", "name": "Admin Apotek", "role": ADMIN},
    {"email": "dokter@klinik.local", "password": "dokter123", "name": "Dokter Demo", "role": DOKTER},
    {"email": "pasien@klinik.local", "password": "pasien123", "name": "Pasien Demo", "role": PASIEN},
]


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def seed_demo_users(identity: IdentityProvider, store: KeyValueStore) -> None:
    for u in DEMO_USERS:
        try:
            register_user(identity, store, SignupIn(**u))
        except RecordError:
            # sudah ada dari startup sebelumnya
            continue


def create_app(database_url: Optional[str] = None, secret_key: Optional[str] = None, seed: bool = SEED_DEMO_USERS) -> FastAPI:
    app = FastAPI(title="Klinik API")

    # Store & identity provider dibuat sekali per proses, dibagikan lewat app.state
    engine = make_engine(database_url)
    Base.metadata.create_all(bind=engine)
    session_factory = make_session_factory(engine)
    app.state.store = KeyValueStore(session_factory)
    app.state.identity = IdentityProvider(session_factory, secret_key=secret_key)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    # --- Exception Handlers ---

    @app.exception_handler(RecordError)
    async def record_error_handler(request: Request, exc: RecordError):
        if exc.status_code >= 500:
            log.error("Record error: %s", exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        # 404 route tidak dikenal, 405, dst
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # body JSON rusak / tipe field salah -> 400
        log.warning("Validation error: %s", exc.errors())
        return error_response(400, "Invalid request body")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        # Catch-all supaya tidak bocor stack trace ke user
        log.exception("Unhandled error: %s", exc)
        return error_response(500, "Internal server error")

    # --- Startup: seed user demo ---
    @app.on_event("startup")
    def on_startup():
        if seed:
            seed_demo_users(app.state.identity, app.state.store)
            log.info("Demo users seeded")

    @app.get("/health")
    def health():
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    # --- Routers ---
    app.include_router(auth_router.router)
    app.include_router(patients_router.router)
    app.include_router(transactions_router.router)
    return app


app = create_app()
