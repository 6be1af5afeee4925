"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from websockets.asyncio.server import ServerConnection, serve

# Add the python package and the dashboard to the path
ROOT_DIR = Path(__file__).parent.parent
PACKAGE_DIR = ROOT_DIR / "python"
sys.path.insert(0, str(PACKAGE_DIR))
sys.path.insert(0, str(ROOT_DIR))

from auction_sniper.config import AuctionConfig, Config
from auction_sniper.models.types import (
    PriceReported,
    SniperSnapshot,
    SniperState,
)
from auction_sniper.services.auction import MockAuction, MockAuctionHouse


SNIPER_ID = "sniper"
ITEM_ID = "item-54321"
OTHER_ITEM_ID = "item-65432"


class RecordingListener:
    """Sniper listener that records everything it is told."""

    def __init__(self):
        self.snapshots: List[SniperSnapshot] = []
        self.failures: List[Tuple[SniperSnapshot, Exception]] = []

    def sniper_state_changed(self, snapshot: SniperSnapshot) -> None:
        self.snapshots.append(snapshot)

    def sniper_failed(self, snapshot: SniperSnapshot, error: Exception) -> None:
        self.failures.append((snapshot, error))

    def states_for(self, item_id: str) -> List[SniperState]:
        return [s.state for s in self.snapshots if s.item_id == item_id]


class RecordingEventListener:
    """Auction event listener that records translator output."""

    def __init__(self):
        self.events = []
        self.failures = []

    def auction_event(self, event) -> None:
        self.events.append(event)

    def translation_failed(self, raw_message, error) -> None:
        self.failures.append((raw_message, error))


class FakeAuctionServer:
    """Minimal auction server speaking the sniper protocol over WebSockets.

    Connections are tracked per item id, taken from the last path segment
    of the request. Calls without an item id use the most recent connection.
    """

    def __init__(self):
        self.received: asyncio.Queue = asyncio.Queue()
        self.paths: List[str] = []
        self.connection: Optional[ServerConnection] = None
        self.connections: Dict[str, ServerConnection] = {}
        self.connected = asyncio.Event()
        self.port: Optional[int] = None

        self._received_by_item: Dict[str, asyncio.Queue] = {}
        self._connected_by_item: Dict[str, asyncio.Event] = {}

    async def handler(self, connection: ServerConnection) -> None:
        path = connection.request.path
        item_id = path.split("?", 1)[0].rsplit("/", 1)[-1]
        self.paths.append(path)
        self.connection = connection
        self.connections[item_id] = connection
        self.connected.set()
        self._connected_for(item_id).set()
        async for message in connection:
            await self.received.put(message)
            await self._queue_for(item_id).put(message)

    def _queue_for(self, item_id: str) -> asyncio.Queue:
        return self._received_by_item.setdefault(item_id, asyncio.Queue())

    def _connected_for(self, item_id: str) -> asyncio.Event:
        return self._connected_by_item.setdefault(item_id, asyncio.Event())

    async def next_message(self, item_id: Optional[str] = None) -> str:
        queue = self.received if item_id is None else self._queue_for(item_id)
        return await asyncio.wait_for(queue.get(), timeout=2)

    async def send(self, message, item_id: Optional[str] = None) -> None:
        if item_id is None:
            await asyncio.wait_for(self.connected.wait(), timeout=2)
            await self.connection.send(message)
        else:
            await asyncio.wait_for(self._connected_for(item_id).wait(), timeout=2)
            await self.connections[item_id].send(message)

    async def close(self, item_id: str) -> None:
        """Close the connection for an item with a normal close frame."""
        self._connected_for(item_id).clear()
        await self.connections[item_id].close()

    def config(self) -> AuctionConfig:
        return AuctionConfig(
            url_template=f"ws://127.0.0.1:{self.port}/auctions/{{item_id}}?bidder={{sniper_id}}",
            open_timeout_seconds=2.0,
            reconnect_delay=0.05,
            max_reconnect_delay=0.1,
        )


@pytest_asyncio.fixture
async def server():
    """Local WebSocket auction server on a free port."""
    fake = FakeAuctionServer()
    async with serve(fake.handler, "127.0.0.1", 0) as ws_server:
        fake.port = ws_server.sockets[0].getsockname()[1]
        yield fake


@pytest.fixture
def sample_config() -> Config:
    """Create a sample configuration for testing."""
    return Config()


@pytest.fixture
def joining() -> SniperSnapshot:
    """Initial snapshot for the default item."""
    return SniperSnapshot.joining(ITEM_ID)


@pytest.fixture
def other_price() -> PriceReported:
    """A price reported by someone else."""
    return PriceReported(price=1000, increment=98, bidder="other bidder")


@pytest.fixture
def own_price() -> PriceReported:
    """A price reported for the sniper's own bid."""
    return PriceReported(price=1098, increment=97, bidder=SNIPER_ID)


@pytest.fixture
def auction() -> MockAuction:
    return MockAuction(ITEM_ID)


@pytest.fixture
def auction_house() -> MockAuctionHouse:
    return MockAuctionHouse()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def event_listener() -> RecordingEventListener:
    return RecordingEventListener()
