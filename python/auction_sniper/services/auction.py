"""Auction channels: one bidirectional session per auction item.

Sends typed commands (join, bid) and delivers translated events to
registered listeners. ``WebSocketAuction`` talks to a live auction server;
``MockAuction`` is an in-memory channel for tests and dry runs.

Usage:
    auction = WebSocketAuction("item-54321", "sniper", config.auction)
    auction.add_event_listener(listener)
    await auction.open()
    await auction.send(Join())
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config import AuctionConfig
from ..models.types import AuctionCommand, AuctionEvent
from .translator import (
    AuctionEventListener,
    AuctionMessageTranslator,
    ProtocolParseError,
    format_close_event,
    format_command,
    format_price_event,
)

logger = logging.getLogger(__name__)


class AuctionChannelError(Exception):
    """Raised when an auction channel cannot be used."""


class ChannelSendFailure(AuctionChannelError):
    """Raised when a command cannot be sent to the auction."""

    def __init__(self, item_id: str, command: AuctionCommand, reason: str):
        self.item_id = item_id
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to send {command!r} to {item_id}: {reason}")


class AuctionChannel(Protocol):
    """Contract the sniper depends on."""

    item_id: str

    def add_event_listener(self, listener: AuctionEventListener) -> None: ...

    async def open(self) -> None: ...

    async def send(self, command: AuctionCommand) -> None: ...

    async def close(self) -> None: ...


class AuctionHouse(Protocol):
    """Creates one channel per auction item."""

    def auction_for(self, item_id: str) -> AuctionChannel: ...


class AuctionEventAnnouncer:
    """Broadcasts translated events to listeners in registration order."""

    def __init__(self):
        self._listeners: List[AuctionEventListener] = []

    def add_listener(self, listener: AuctionEventListener) -> None:
        self._listeners.append(listener)

    def auction_event(self, event: AuctionEvent) -> None:
        for listener in self._listeners:
            listener.auction_event(event)

    def translation_failed(self, raw_message: str, error: ProtocolParseError) -> None:
        for listener in self._listeners:
            listener.translation_failed(raw_message, error)


@dataclass
class ChannelStats:
    """Statistics for an auction channel."""
    messages_received: int = 0
    commands_sent: int = 0
    reconnections: int = 0
    errors: int = 0


class WebSocketAuction:
    """Auction channel over a WebSocket connection.

    A reader task streams text frames through the message translator.
    Lost connections are re-established with exponential backoff; commands
    sent while disconnected fail with ChannelSendFailure.
    """

    def __init__(self, item_id: str, sniper_id: str, config: AuctionConfig):
        self.item_id = item_id
        self.sniper_id = sniper_id
        self.config = config
        self.url = config.url_for(item_id, sniper_id)

        self._listeners = AuctionEventAnnouncer()
        self._translator = AuctionMessageTranslator(self._listeners)

        # Connection state
        self._ws: Optional[ClientConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._connected = asyncio.Event()
        self._running = False
        self._reconnect_delay = config.reconnect_delay

        self.stats = ChannelStats()

    def add_event_listener(self, listener: AuctionEventListener) -> None:
        self._listeners.add_listener(listener)

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._connected.is_set()

    async def open(self) -> None:
        """Start the connection loop and wait for the first connection."""
        self._running = True
        self._task = asyncio.create_task(self.run(), name=f"auction-{self.item_id}")
        try:
            await asyncio.wait_for(
                self._connected.wait(), timeout=self.config.open_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            await self.close()
            raise AuctionChannelError(f"Could not connect to {self.url}") from e

    async def run(self) -> None:
        """Run the connection loop until closed."""
        logger.info(f"Starting auction channel for {self.item_id}")

        while self._running:
            try:
                await self._connect_and_stream()
                if self._running:
                    logger.warning(f"Auction {self.item_id} closed the connection")
                    self.stats.reconnections += 1
            except ConnectionClosed as e:
                logger.warning(f"Auction {self.item_id} connection closed: {e}")
                self.stats.reconnections += 1
            except (OSError, WebSocketException, asyncio.TimeoutError) as e:
                logger.error(f"Auction {self.item_id} channel error: {e}")
                self.stats.errors += 1
            finally:
                self._ws = None
                self._connected.clear()

            if self._running:
                logger.info(f"Reconnecting to {self.item_id} in {self._reconnect_delay}s...")
                await asyncio.sleep(self._reconnect_delay)
                # Exponential backoff
                self._reconnect_delay = min(
                    self._reconnect_delay * 2,
                    self.config.max_reconnect_delay,
                )

    async def close(self) -> None:
        """Close the connection and stop reconnecting."""
        self._running = False
        if self._ws:
            await self._ws.close()
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    async def send(self, command: AuctionCommand) -> None:
        ws = self._ws
        if ws is None:
            raise ChannelSendFailure(self.item_id, command, "not connected")

        try:
            await ws.send(format_command(command))
        except (ConnectionClosed, OSError) as e:
            self.stats.errors += 1
            raise ChannelSendFailure(self.item_id, command, str(e)) from e

        self.stats.commands_sent += 1
        logger.debug(f"Sent {command!r} to {self.item_id}")

    async def _connect_and_stream(self) -> None:
        """Connect to the auction and stream its messages."""
        async with websockets.connect(
            self.url,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
        ) as ws:
            self._ws = ws
            self._connected.set()
            logger.info(f"Connected to {self.url}")

            # Reset reconnect delay on successful connection
            self._reconnect_delay = self.config.reconnect_delay

            async for message in ws:
                self._handle_message(message)

    def _handle_message(self, message) -> None:
        self.stats.messages_received += 1
        if isinstance(message, bytes):
            try:
                message = message.decode("utf-8")
            except UnicodeDecodeError:
                raw = message.decode("utf-8", errors="replace")
                self._listeners.translation_failed(
                    raw, ProtocolParseError(raw, "Message is not valid UTF-8")
                )
                return
        self._translator.translate(message)

    def get_stats_dict(self) -> dict:
        """Get stats as dictionary."""
        return {
            "messages_received": self.stats.messages_received,
            "commands_sent": self.stats.commands_sent,
            "reconnections": self.stats.reconnections,
            "errors": self.stats.errors,
        }


class WebSocketAuctionHouse:
    """Opens WebSocket auction channels for a sniper identity."""

    def __init__(self, config: AuctionConfig, sniper_id: str):
        self.config = config
        self.sniper_id = sniper_id

    def auction_for(self, item_id: str) -> WebSocketAuction:
        return WebSocketAuction(item_id, self.sniper_id, self.config)


class MockAuction:
    """In-memory auction channel.

    Records every command sent and lets the caller feed raw protocol
    messages through the real translator.
    """

    def __init__(self, item_id: str):
        self.item_id = item_id
        self.sent: List[AuctionCommand] = []
        self.fail_sends = False
        self.is_open = False
        self.stats = ChannelStats()

        self._listeners = AuctionEventAnnouncer()
        self._translator = AuctionMessageTranslator(self._listeners)

    def add_event_listener(self, listener: AuctionEventListener) -> None:
        self._listeners.add_listener(listener)

    async def open(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def send(self, command: AuctionCommand) -> None:
        if self.fail_sends:
            self.stats.errors += 1
            raise ChannelSendFailure(self.item_id, command, "sending disabled")
        self.sent.append(command)
        self.stats.commands_sent += 1

    def deliver(self, raw_message: str) -> None:
        """Feed a raw protocol message to the listeners."""
        self.stats.messages_received += 1
        self._translator.translate(raw_message)

    def report_price(self, price: int, increment: int, bidder: str) -> None:
        self.deliver(format_price_event(price, increment, bidder))

    def announce_closed(self) -> None:
        self.deliver(format_close_event())


class MockAuctionHouse:
    """Creates MockAuction channels and keeps them for inspection."""

    def __init__(self):
        self.auctions: Dict[str, MockAuction] = {}

    def auction_for(self, item_id: str) -> MockAuction:
        auction = MockAuction(item_id)
        self.auctions[item_id] = auction
        return auction
