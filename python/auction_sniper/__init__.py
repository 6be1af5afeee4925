"""
Auction Sniper - automated bidding in live auctions

Joins auctions over an asynchronous messaging channel, outbids other
bidders by the announced increment, and tracks whether each item ends
up won or lost.
"""

__version__ = "0.1.0"
__author__ = "auction-sniper"

from .config import Config, load_config
from .models.types import (
    AuctionEvent,
    AuctionCommand,
    PriceReported,
    Closed,
    Join,
    Bid,
    PriceSource,
    SniperState,
    SniperSnapshot,
)
from .orchestrator import Orchestrator
from .services import (
    AuctionMessageTranslator,
    ProtocolParseError,
    on_event,
    AuctionChannelError,
    ChannelSendFailure,
    WebSocketAuction,
    WebSocketAuctionHouse,
    MockAuction,
    MockAuctionHouse,
    AuctionSniper,
    SniperCollector,
    DuplicateRegistration,
    SniperStillActive,
    StatusLogger,
)

__all__ = [
    # Config
    "Config",
    "load_config",
    # Types
    "AuctionEvent",
    "AuctionCommand",
    "PriceReported",
    "Closed",
    "Join",
    "Bid",
    "PriceSource",
    "SniperState",
    "SniperSnapshot",
    # Orchestrator
    "Orchestrator",
    # Services
    "AuctionMessageTranslator",
    "ProtocolParseError",
    "on_event",
    "AuctionChannelError",
    "ChannelSendFailure",
    "WebSocketAuction",
    "WebSocketAuctionHouse",
    "MockAuction",
    "MockAuctionHouse",
    "AuctionSniper",
    "SniperCollector",
    "DuplicateRegistration",
    "SniperStillActive",
    "StatusLogger",
]
