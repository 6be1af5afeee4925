"""Services for the auction-sniper system."""

from .translator import AuctionMessageTranslator, ProtocolParseError, parse_message
from .state_machine import on_event
from .auction import (
    AuctionChannelError,
    ChannelSendFailure,
    WebSocketAuction,
    WebSocketAuctionHouse,
    MockAuction,
    MockAuctionHouse,
)
from .sniper import AuctionSniper, SniperListener, SniperAnnouncer
from .collector import SniperCollector, DuplicateRegistration, SniperStillActive
from .status import StatusLogger

__all__ = [
    "AuctionMessageTranslator",
    "ProtocolParseError",
    "parse_message",
    "on_event",
    "AuctionChannelError",
    "ChannelSendFailure",
    "WebSocketAuction",
    "WebSocketAuctionHouse",
    "MockAuction",
    "MockAuctionHouse",
    "AuctionSniper",
    "SniperListener",
    "SniperAnnouncer",
    "SniperCollector",
    "DuplicateRegistration",
    "SniperStillActive",
    "StatusLogger",
]
