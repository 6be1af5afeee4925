"""FastAPI backend for the auction-sniper status dashboard.

Serves:
- Static dashboard page
- WebSocket for real-time sniper status
- REST endpoints for current snapshots and recent failures
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Deque, Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.staticfiles import StaticFiles
from fastapi.responses import HTMLResponse, FileResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from auction_sniper.models.types import SniperSnapshot

# Dashboard directory
DASHBOARD_DIR = Path(__file__).parent
STATIC_DIR = DASHBOARD_DIR / "static"

# Create FastAPI app
app = FastAPI(
    title="Auction Sniper Dashboard",
    description="Real-time status of running auction snipers",
    version="0.1.0",
)

# CORS for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)


# ============================================================================
# Models
# ============================================================================

class SniperRow(BaseModel):
    item_id: str
    last_price: int
    last_bid: int
    state: str
    status_text: str


class FailureRow(BaseModel):
    ts: int
    item_id: str
    error_type: str
    message: str


class DashboardState(BaseModel):
    timestamp: int
    snipers: List[SniperRow]
    recent_failures: List[FailureRow]


# ============================================================================
# WebSocket Manager
# ============================================================================

class ConnectionManager:
    """Manage WebSocket connections."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"Client connected. Total: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info(f"Client disconnected. Total: {len(self.active_connections)}")

    async def broadcast(self, data: dict):
        """Send data to all connected clients."""
        for connection in list(self.active_connections):
            try:
                await connection.send_json(data)
            except Exception as e:
                logger.warning(f"Failed to send to client: {e}")
                self.disconnect(connection)


# ============================================================================
# Status Board
# ============================================================================

def _now_ms() -> int:
    return int(datetime.now().timestamp() * 1000)


class StatusBoard:
    """Sniper listener that keeps the latest snapshot per item.

    Rows are replaced, never edited; receiving the same snapshot twice
    leaves the board unchanged. Changes are pushed to WebSocket clients
    when an event loop is running.
    """

    def __init__(self, connections: ConnectionManager, max_failures: int = 50):
        self.connections = connections
        self.snapshots: Dict[str, SniperSnapshot] = {}
        self.failures: Deque[FailureRow] = deque(maxlen=max_failures)
        self._pending: set = set()

    def sniper_state_changed(self, snapshot: SniperSnapshot) -> None:
        if self.snapshots.get(snapshot.item_id) == snapshot:
            return
        self.snapshots[snapshot.item_id] = snapshot
        self._publish()

    def sniper_failed(self, snapshot: SniperSnapshot, error: Exception) -> None:
        self.failures.append(FailureRow(
            ts=_now_ms(),
            item_id=snapshot.item_id,
            error_type=type(error).__name__,
            message=str(error),
        ))
        self._publish()

    def rows(self) -> List[SniperRow]:
        return [
            SniperRow(**snapshot.to_dict())
            for snapshot in sorted(self.snapshots.values(), key=lambda s: s.item_id)
        ]

    def state(self) -> DashboardState:
        return DashboardState(
            timestamp=_now_ms(),
            snipers=self.rows(),
            recent_failures=list(self.failures),
        )

    def reset(self) -> None:
        self.snapshots.clear()
        self.failures.clear()

    def _publish(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        # Fire-and-forget; keep a reference until the broadcast completes
        task = loop.create_task(self.connections.broadcast(self.state().model_dump()))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


manager = ConnectionManager()
board = StatusBoard(manager)


# ============================================================================
# Routes
# ============================================================================

@app.get("/", response_class=HTMLResponse)
async def dashboard():
    """Serve the main dashboard."""
    index_path = STATIC_DIR / "index.html"
    if index_path.exists():
        return FileResponse(index_path)
    return HTMLResponse("<h1>Dashboard not found</h1>", status_code=404)


@app.get("/api/state")
async def get_state():
    """Get current dashboard state."""
    return board.state()


@app.get("/api/snipers")
async def get_snipers():
    """Get the latest snapshot of every sniper."""
    return {"snipers": board.rows()}


@app.get("/api/snipers/{item_id}")
async def get_sniper(item_id: str):
    """Get the latest snapshot for one item."""
    snapshot = board.snapshots.get(item_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Unknown item {item_id}")
    return SniperRow(**snapshot.to_dict())


@app.get("/api/failures")
async def get_failures(limit: int = 50):
    """Get recent sniper failures."""
    return {"failures": list(board.failures)[-limit:]}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time updates."""
    await manager.connect(websocket)
    try:
        await websocket.send_json(board.state().model_dump())
        while True:
            # Updates are pushed by the board; incoming text is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        manager.disconnect(websocket)


# Mount static files
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


# ============================================================================
# Main
# ============================================================================

def create_server(host: str = "127.0.0.1", port: int = 8080, log_level: str = "info"):
    """Create a uvicorn server for embedding in a running event loop."""
    import uvicorn
    config = uvicorn.Config(app, host=host, port=port, log_level=log_level)
    return uvicorn.Server(config)
