"""Data models for the auction-sniper system."""

from .types import (
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

__all__ = [
    "AuctionEvent",
    "AuctionCommand",
    "PriceReported",
    "Closed",
    "Join",
    "Bid",
    "PriceSource",
    "SniperState",
    "SniperSnapshot",
]
