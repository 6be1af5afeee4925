"""Sniper collector: the registry of snipers running in one process.

Each item id has at most one sniper. Snipers that reach WON or LOST stay
registered (so their final status can be inspected) until explicitly
removed. ``wait_until_finished`` resolves once every registered sniper
is terminal.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from ..models.types import SniperSnapshot
from .auction import AuctionChannelError, AuctionHouse
from .sniper import AuctionSniper, SniperAnnouncer, SniperListener

logger = logging.getLogger(__name__)


class DuplicateRegistration(Exception):
    """Raised when a sniper is already registered for an item."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Already sniping item {item_id}")


class SniperStillActive(Exception):
    """Raised when removing a sniper that has not finished."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Sniper for {item_id} has not finished")


class SniperCollector:
    """Owns the active snipers and fans out their status.

    Listeners added here receive the status of every sniper, including
    the initial JOINING snapshot when a sniper is registered.
    """

    def __init__(
        self,
        auction_house: AuctionHouse,
        sniper_id: str,
        stop_price: Optional[int] = None,
    ):
        self.auction_house = auction_house
        self.sniper_id = sniper_id
        self.stop_price = stop_price

        self._snipers: Dict[str, AuctionSniper] = {}
        self._lock = asyncio.Lock()
        self._finished = asyncio.Event()
        self._finished.set()
        self._listeners = SniperAnnouncer()

    def add_sniper_listener(self, listener: SniperListener) -> None:
        self._listeners.add_listener(listener)

    async def start_bidding_in(self, item_id: str) -> AuctionSniper:
        """Register a sniper for an item, join its auction and start bidding.

        Raises:
            DuplicateRegistration: if the item already has a sniper
            AuctionChannelError: if the auction cannot be opened or joined
        """
        async with self._lock:
            if item_id in self._snipers:
                raise DuplicateRegistration(item_id)

            auction = self.auction_house.auction_for(item_id)
            sniper = AuctionSniper(item_id, auction, self.sniper_id, self.stop_price)
            sniper.add_sniper_listener(self)
            self._snipers[item_id] = sniper
            self._finished.clear()

        logger.info(f"Sniping {item_id} as {self.sniper_id}")
        self._listeners.sniper_state_changed(sniper.snapshot)

        try:
            await auction.open()
        except AuctionChannelError as e:
            logger.error(f"Could not open auction {item_id}: {e}")
            self._listeners.sniper_failed(sniper.snapshot, e)
            await self._unregister(sniper)
            raise

        try:
            # Join failures are announced by the sniper itself
            await sniper.join()
        except AuctionChannelError:
            await self._unregister(sniper)
            raise

        sniper.start()
        return sniper

    async def _unregister(self, sniper: AuctionSniper) -> None:
        async with self._lock:
            self._snipers.pop(sniper.item_id, None)
            self._update_finished()
        await sniper.auction.close()

    async def remove(self, item_id: str) -> AuctionSniper:
        """Reap a finished sniper and close its auction channel."""
        async with self._lock:
            sniper = self._snipers[item_id]
            if not sniper.snapshot.is_terminal:
                raise SniperStillActive(item_id)
            del self._snipers[item_id]
            self._update_finished()

        await sniper.stop()
        await sniper.auction.close()
        logger.info(f"Removed sniper for {item_id}")
        return sniper

    async def stop(self) -> None:
        """Stop every sniper, letting queued events and in-flight sends finish."""
        async with self._lock:
            snipers = list(self._snipers.values())

        for sniper in snipers:
            await sniper.stop()
        for sniper in snipers:
            await sniper.auction.close()

    @property
    def all_finished(self) -> bool:
        """True when every registered sniper has reached WON or LOST."""
        return all(s.snapshot.is_terminal for s in self._snipers.values())

    async def wait_until_finished(self) -> None:
        await self._finished.wait()

    def get(self, item_id: str) -> AuctionSniper:
        return self._snipers[item_id]

    @property
    def item_ids(self) -> List[str]:
        return list(self._snipers.keys())

    def snapshots(self) -> List[SniperSnapshot]:
        return [s.snapshot for s in self._snipers.values()]

    def __len__(self) -> int:
        return len(self._snipers)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._snipers

    # Sniper listener

    def sniper_state_changed(self, snapshot: SniperSnapshot) -> None:
        self._listeners.sniper_state_changed(snapshot)
        if snapshot.is_terminal:
            self._update_finished()

    def sniper_failed(self, snapshot: SniperSnapshot, error: Exception) -> None:
        self._listeners.sniper_failed(snapshot, error)

    def _update_finished(self) -> None:
        if self.all_finished:
            self._finished.set()
        else:
            self._finished.clear()

    def get_stats(self) -> dict:
        """Get per-item status and counters."""
        return {
            item_id: {
                **sniper.snapshot.to_dict(),
                **sniper.get_stats_dict(),
            }
            for item_id, sniper in self._snipers.items()
        }
