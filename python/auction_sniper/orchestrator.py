"""Main orchestrator for the auction-sniper system.

Coordinates:
- Auction channels (WebSocket)
- One sniper per auction item
- Status observers (log, dashboard)
- Shutdown once every auction has finished
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .config import Config
from .models.types import SniperSnapshot
from .services.auction import AuctionChannelError, AuctionHouse, WebSocketAuctionHouse
from .services.collector import DuplicateRegistration, SniperCollector
from .services.sniper import SniperListener
from .services.status import StatusLogger

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorState:
    """Current state of the orchestrator."""
    is_running: bool = False
    started_items: List[str] = field(default_factory=list)
    failed_items: List[str] = field(default_factory=list)


class Orchestrator:
    """Runs a set of snipers until all of their auctions have closed."""

    def __init__(
        self,
        config: Config,
        auction_house: Optional[AuctionHouse] = None,
        status_board: Optional[SniperListener] = None,
    ):
        self.config = config
        self.sniper_id = config.sniper.sniper_id

        if auction_house is None:
            auction_house = WebSocketAuctionHouse(config.auction, self.sniper_id)
        self.auction_house = auction_house

        self.collector = SniperCollector(
            auction_house, self.sniper_id, config.sniper.stop_price
        )
        self.collector.add_sniper_listener(StatusLogger())

        self.status_board = status_board
        if status_board is not None:
            self.collector.add_sniper_listener(status_board)

        self.state = OrchestratorState()
        self._dashboard_server = None
        self._dashboard_task: Optional[asyncio.Task] = None

    async def start(self, item_ids: Iterable[str]) -> None:
        """Start sniping each item; failures are logged and skipped."""
        logger.info(f"Starting sniper {self.sniper_id}")
        self.state.is_running = True

        for item_id in item_ids:
            try:
                await self.collector.start_bidding_in(item_id)
            except DuplicateRegistration as e:
                logger.error(str(e))
                self.state.failed_items.append(item_id)
            except AuctionChannelError as e:
                logger.error(f"Could not start sniping {item_id}: {e}")
                self.state.failed_items.append(item_id)
            else:
                self.state.started_items.append(item_id)

    async def run(self, item_ids: Iterable[str]) -> List[SniperSnapshot]:
        """Snipe the given items until every auction has finished.

        Returns:
            Final snapshots of the started snipers
        """
        if self.config.dashboard.enabled:
            await self._start_dashboard()

        try:
            await self.start(item_ids)
            await self.collector.wait_until_finished()
            return self.collector.snapshots()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the orchestrator."""
        logger.info("Stopping orchestrator")
        self.state.is_running = False

        await self.collector.stop()

        if self._dashboard_server is not None:
            self._dashboard_server.should_exit = True
            await self._dashboard_task
            self._dashboard_server = None
            self._dashboard_task = None

    async def _start_dashboard(self) -> None:
        from dashboard.api import board, create_server

        if self.status_board is None:
            board.reset()
            self.status_board = board
            self.collector.add_sniper_listener(board)

        self._dashboard_server = create_server(
            self.config.dashboard.host, self.config.dashboard.port
        )
        self._dashboard_task = asyncio.create_task(self._dashboard_server.serve())
        logger.info(
            f"Dashboard at http://{self.config.dashboard.host}:{self.config.dashboard.port}"
        )

    def get_stats(self) -> dict:
        """Get orchestrator statistics."""
        return {
            "sniper_id": self.sniper_id,
            "is_running": self.state.is_running,
            "started_items": list(self.state.started_items),
            "failed_items": list(self.state.failed_items),
            "all_finished": self.collector.all_finished,
            "snipers": self.collector.get_stats(),
        }
