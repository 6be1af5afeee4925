"""Sniper instance: one bidding state machine bound to one auction.

Events from the auction channel are queued and applied by a single
worker task, so they reach the state machine in delivery order. The
current snapshot is an immutable value replaced on each transition;
readers always see the last completed transition.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from ..models.types import AuctionEvent, Join, SniperSnapshot
from .auction import AuctionChannel, ChannelSendFailure
from .state_machine import on_event
from .translator import ProtocolParseError

logger = logging.getLogger(__name__)


class SniperListener(Protocol):
    """Observer of sniper status."""

    def sniper_state_changed(self, snapshot: SniperSnapshot) -> None: ...

    def sniper_failed(self, snapshot: SniperSnapshot, error: Exception) -> None: ...


class SniperAnnouncer:
    """Calls registered sniper listeners synchronously, in registration order."""

    def __init__(self):
        self._listeners: List[SniperListener] = []

    def add_listener(self, listener: SniperListener) -> None:
        self._listeners.append(listener)

    def sniper_state_changed(self, snapshot: SniperSnapshot) -> None:
        for listener in self._listeners:
            listener.sniper_state_changed(snapshot)

    def sniper_failed(self, snapshot: SniperSnapshot, error: Exception) -> None:
        for listener in self._listeners:
            listener.sniper_failed(snapshot, error)


@dataclass
class SniperStats:
    """Counters for one sniper."""
    events_processed: int = 0
    bids_sent: int = 0
    send_failures: int = 0
    parse_failures: int = 0
    errors: int = 0


_STOP = object()


class AuctionSniper:
    """Bids in one auction on behalf of ``sniper_id``.

    Usage:
        sniper = AuctionSniper("item-54321", auction, "sniper")
        sniper.add_sniper_listener(observer)
        await sniper.join()
        sniper.start()
    """

    def __init__(
        self,
        item_id: str,
        auction: AuctionChannel,
        sniper_id: str,
        stop_price: Optional[int] = None,
    ):
        self.item_id = item_id
        self.auction = auction
        self.sniper_id = sniper_id
        self.stop_price = stop_price

        self._snapshot = SniperSnapshot.joining(item_id)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._joined = False
        self._listeners = SniperAnnouncer()

        self.finished = asyncio.Event()
        self.stats = SniperStats()

        auction.add_event_listener(self)

    @property
    def snapshot(self) -> SniperSnapshot:
        """Latest published snapshot."""
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def add_sniper_listener(self, listener: SniperListener) -> None:
        self._listeners.add_listener(listener)

    async def join(self) -> None:
        """Send the join command. Must happen once, before bidding starts."""
        if self._joined:
            raise RuntimeError(f"Sniper for {self.item_id} has already joined")
        self._joined = True

        try:
            await self.auction.send(Join())
        except ChannelSendFailure as e:
            logger.error(f"Failed to join auction {self.item_id}: {e}")
            self.stats.send_failures += 1
            self._listeners.sniper_failed(self._snapshot, e)
            raise

        logger.info(f"Joined auction {self.item_id}")

    def start(self) -> None:
        """Start the worker that applies queued events."""
        if self._worker is not None:
            return
        self._worker = asyncio.create_task(self._run(), name=f"sniper-{self.item_id}")

    async def stop(self) -> None:
        """Apply events already queued, then stop the worker."""
        if self._worker is None:
            return
        if not self._worker.done():
            self._queue.put_nowait(_STOP)
        await self._worker

    # Auction event listener

    def auction_event(self, event: AuctionEvent) -> None:
        if self.finished.is_set():
            logger.debug(f"Ignoring {event!r} for finished auction {self.item_id}")
            return
        self._queue.put_nowait(event)

    def translation_failed(self, raw_message: str, error: ProtocolParseError) -> None:
        logger.warning(f"Auction {self.item_id} sent a malformed message: {error.reason}")
        self.stats.parse_failures += 1
        self._listeners.sniper_failed(self._snapshot, error)

    # Worker

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            if item is _STOP:
                self._queue.task_done()
                break

            try:
                await self._process(item)
            except Exception as e:
                logger.exception(f"Error processing {item!r} for {self.item_id}: {e}")
                self.stats.errors += 1
            finally:
                self._queue.task_done()

            if self._snapshot.is_terminal:
                logger.info(f"Auction {self.item_id} finished: {self._snapshot.state.display_text}")
                self.finished.set()
                break

    async def _process(self, event: AuctionEvent) -> None:
        current = self._snapshot
        next_snapshot, bid = on_event(current, event, self.sniper_id, self.stop_price)
        self.stats.events_processed += 1

        if bid is not None:
            try:
                await self.auction.send(bid)
            except ChannelSendFailure as e:
                # No retry: a late bid would use a stale price
                logger.warning(f"Bid of {bid.amount} on {self.item_id} not sent: {e}")
                self.stats.send_failures += 1
                self._listeners.sniper_failed(current, e)
                return
            self.stats.bids_sent += 1

        if next_snapshot != current:
            self._snapshot = next_snapshot
            self._listeners.sniper_state_changed(next_snapshot)

    def get_stats_dict(self) -> dict:
        """Get stats as dictionary."""
        return {
            "events_processed": self.stats.events_processed,
            "bids_sent": self.stats.bids_sent,
            "send_failures": self.stats.send_failures,
            "parse_failures": self.stats.parse_failures,
            "errors": self.stats.errors,
        }
