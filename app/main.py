"""
FastAPI Application - Token Aggregator API

Aggregates token listings from DexScreener and GeckoTerminal, keeps one merged
snapshot in memory and streams new tokens and price moves to WebSocket clients.

Features:
    - Filterable, sortable, paginated token snapshot (GET /tokens)
    - Real-time new token / price change events (WS /ws)
    - Health of the poll loop and of each source (GET /health)

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 3000

Docs:
    - Swagger: http://localhost:3000/docs
    - ReDoc: http://localhost:3000/redoc
"""

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
from contextlib import asynccontextmanager
import asyncio
import contextlib

from core.config import settings, validate_configuration
from core.logging import logger
from core.schemas import TokenPage, to_payload
from core.source_manager import SourceManager
from core.token_query import TokenQuery, query_tokens, DEFAULT_LIMIT, SORT_FIELDS
from services.event_bus import bus, INITIAL_DATA, TOKEN_TOPICS
from services.poll_scheduler import PollScheduler
from storage.snapshot_store import SnapshotStore


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await manager.initialize_all()
        await scheduler.start(settings.poll_interval_ms)
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await scheduler.stop()
        await manager.shutdown_all()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Token Aggregator API",
    description=(
        "Merged token snapshot from DexScreener and GeckoTerminal with real-time deltas.\n\n"
        "## REST Endpoints\n"
        "- `GET /tokens` - Current snapshot (filter, sort, paginate)\n"
        "- `GET /sources` - Registered sources\n"
        "- `GET /health` - Poll loop and source health\n\n"
        "## WebSocket\n"
        "- `ws://{host}/ws` - sends `initial_data` once, then `new_tokens` and `price_changes`\n\n"
        "Messages are JSON envelopes: `{\"event\": <name>, \"data\": [...]}`."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"]
)

store = SnapshotStore()
manager = SourceManager()
scheduler = PollScheduler(manager, store, bus)


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information."""
    return {
        "name": "Token Aggregator API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "sources": manager.list_sources(),
        "tokens": len(store)
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Snapshot, poll loop and per-source status from the latest cycle."""
    sources = {
        name: status.model_dump(mode="json")
        for name, status in manager.last_results.items()
    }
    healthy = scheduler.is_running and all(s["ok"] for s in sources.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "snapshot": store.stats(),
        "scheduler": {
            "running": scheduler.is_running,
            "interval_ms": scheduler.interval_ms,
            "cycle_in_flight": scheduler.cycle_in_flight,
            "cycles_completed": scheduler.cycles_completed,
            "cycles_failed": scheduler.cycles_failed,
            "ticks_skipped": scheduler.ticks_skipped,
            "last_cycle_at": scheduler.last_cycle_at.isoformat() if scheduler.last_cycle_at else None
        },
        "sources": sources
    }


@app.get("/sources", tags=["System"])
async def list_sources():
    """List registered sources and their attempt chains."""
    return {
        "sources": [
            {
                "name": name,
                "strategies": [
                    {"name": s.name, "kind": s.kind.value}
                    for s in manager.get_source(name).strategies()
                ]
            }
            for name in manager.list_sources()
        ]
    }


# ============================================
# Token Snapshot Endpoint
# ============================================

@app.get("/tokens", response_model=TokenPage, tags=["Tokens"])
async def get_tokens(
    sort: str = Query(default="volume_usd", description=f"One of: {', '.join(SORT_FIELDS)}"),
    order: str = Query(default="desc", description="asc or desc"),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, description="Page size (capped at 100)"),
    offset: int = Query(default=0, ge=0, description="Number of tokens to skip"),
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    min_volume: Optional[float] = Query(default=None, alias="minVolume"),
    min_liquidity: Optional[float] = Query(default=None, alias="minLiquidity"),
    search: Optional[str] = Query(default=None, description="Match name, ticker or address")
):
    """
    Current merged snapshot with filtering, sorting and pagination.

    Examples:
        GET /tokens?sort=price_usd&order=asc&limit=10
        GET /tokens?minVolume=100000&search=bonk
    """
    query = TokenQuery(
        sort=sort,
        order=order,
        limit=limit,
        offset=offset,
        min_price=min_price,
        max_price=max_price,
        min_volume=min_volume,
        min_liquidity=min_liquidity,
        search=search
    )
    return query_tokens(store.read(), query)


# ============================================
# WebSocket Endpoint
# ============================================

@app.websocket("/ws")
async def websocket_tokens(websocket: WebSocket):
    """
    Real-time token events.

    Flow:
        1. Server sends {"event": "initial_data", "data": [...full snapshot...]}
        2. Server forwards {"event": "new_tokens", ...} and {"event": "price_changes", ...}
           after every cycle that produced them
    """
    await websocket.accept()
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    logger.info(f"🔌 Client connected: {client}")

    async def forward_events(queue: asyncio.Queue):
        while True:
            message = await queue.get()
            await websocket.send_json(message)

    async def wait_for_disconnect():
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    # Subscribe before sending the snapshot so no cycle falls in between
    queue = await bus.subscribe(*TOKEN_TOPICS)
    tasks = []
    try:
        await websocket.send_json({"event": INITIAL_DATA, "data": to_payload(list(store.read()))})
        tasks = [
            asyncio.create_task(forward_events(queue), name=f"ws_forward_{client}"),
            asyncio.create_task(wait_for_disconnect(), name=f"ws_receive_{client}")
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()
        logger.info(f"🔌 Client disconnected: {client}")
    except WebSocketDisconnect:
        logger.info(f"🔌 Client disconnected: {client}")
    except Exception as e:
        logger.error(f"WS error for {client}: {e}")
        with contextlib.suppress(Exception):
            await websocket.close(code=1011, reason="Internal error")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await bus.unsubscribe(queue, *TOKEN_TOPICS)


# ============================================
# Error Handlers
# ============================================

@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors."""
    return JSONResponse(status_code=404, content={"detail": "Not found", "path": str(request.url)})


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 errors."""
    logger.error(f"Internal error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
