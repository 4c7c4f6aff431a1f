"""Stockroom FastAPI application.

Processes stock commands synchronously over HTTP. Every request runs inside
the stockroom domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the config overlay from stockroom/domain.toml:
#   - "test"       → in-memory providers
#   - "production" → PostgreSQL
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from stockroom.domain import stockroom  # noqa: E402
from stockroom.utils.logging import bind_request_context, clear_request_context

stockroom.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Stockroom API",
    description="Inventory & stock movement engine: lots, counts and replenishment",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the stockroom domain context and bind request log context."""
    bind_request_context(path=request.url.path, tenant_id=request.query_params.get("tenant_id"))
    try:
        with stockroom.domain_context():
            return await call_next(request)
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from stockroom.api import count_router, register_error_handlers, stock_router  # noqa: E402

app.include_router(stock_router)
app.include_router(count_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": stockroom.name})
