"""
FastAPI backend: identity reconciliation endpoint.
Run with uvicorn: uvicorn api.main:app --reload  (or: python -m api)
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel

from contactlink.application import (
    IdentityService,
    InvalidRequest,
    ReconciliationError,
)
from contactlink.infrastructure import (
    InMemoryContactStore,
    Neo4jContactStore,
    ensure_contact_schema,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
)
logger = logging.getLogger(__name__)

STORE_NEO4J = "neo4j"
STORE_MEMORY = "memory"
DEFAULT_STORE_TIMEOUT_SECONDS = 10.0


def _store_kind() -> str:
    return os.environ.get("CONTACT_STORE", STORE_NEO4J).strip().lower() or STORE_NEO4J


def _store_timeout() -> float:
    raw = os.environ.get("STORE_TIMEOUT_SECONDS", "").strip()
    return float(raw) if raw else DEFAULT_STORE_TIMEOUT_SECONDS


def _get_driver():
    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    return GraphDatabase.driver(uri, auth=(user, password))


def _build_service(app: FastAPI) -> IdentityService:
    kind = _store_kind()
    if kind == STORE_MEMORY:
        logger.warning("Using in-memory contact store; data is lost on restart")
        return IdentityService(InMemoryContactStore())
    if kind != STORE_NEO4J:
        raise RuntimeError(f"Unknown CONTACT_STORE {kind!r}; expected 'neo4j' or 'memory'")
    if getattr(app.state, "driver", None) is None:
        app.state.driver = _get_driver()
    store = Neo4jContactStore(
        app.state.driver,
        database=os.environ.get("NEO4J_DATABASE", "").strip() or None,
        timeout=_store_timeout(),
    )
    return IdentityService(store)


_service_lock = threading.Lock()


def get_service(app: FastAPI) -> IdentityService:
    with _service_lock:
        if getattr(app.state, "service", None) is None:
            app.state.service = _build_service(app)
        return app.state.service


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.driver = None
    app.state.service = None
    try:
        app.state.service = _build_service(app)
        if app.state.driver is not None:
            app.state.driver.verify_connectivity()
            logger.info("Database connected")
            ensure_contact_schema(app.state.driver)
        yield
    finally:
        if getattr(app.state, "driver", None) is not None:
            app.state.driver.close()


app = FastAPI(title="Contactlink API", lifespan=lifespan)


# --- Errors ---


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return _error(400, "Bad Request", str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error(400, "Bad Request", "Request body must be a JSON object")


@app.exception_handler(ReconciliationError)
async def reconciliation_error_handler(request: Request, exc: ReconciliationError):
    logger.error("Identify failed: %s: %s", type(exc).__name__, exc)
    return _error(500, "Internal Server Error", str(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal Server Error", str(exc))


# --- REST: health ---


@app.get("/")
def root():
    return {"status": "ok", "message": "Identity reconciliation service is running"}


@app.get("/health")
def health():
    return {"status": "ok"}


# --- REST: identify ---


class IdentifyBody(BaseModel):
    # Left untyped: the service rejects non-string identifiers itself.
    email: Any = None
    phoneNumber: Any = None


class ContactPayload(BaseModel):
    primaryContactId: int
    emails: list[str]
    phoneNumbers: list[str]
    secondaryContactIds: list[int]


class IdentifyResponse(BaseModel):
    contact: ContactPayload


@app.post("/identify", response_model=IdentifyResponse)
def identify(body: IdentifyBody, request: Request):
    service = get_service(request.app)
    result = service.identify(email=body.email, phone_number=body.phoneNumber)
    return result.as_payload()
