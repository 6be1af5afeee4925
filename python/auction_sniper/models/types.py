"""Core data types for the auction-sniper system."""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Union


class PriceSource(Enum):
    """Who placed the bid behind a reported price."""
    FROM_SNIPER = auto()
    FROM_OTHER_BIDDER = auto()


class SniperState(Enum):
    """Sniper status for one auction item."""
    JOINING = auto()
    BIDDING = auto()
    WINNING = auto()
    LOSING = auto()
    LOST = auto()
    WON = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (SniperState.LOST, SniperState.WON)

    @property
    def display_text(self) -> str:
        """Human readable status shown by observers."""
        return _STATUS_TEXT[self]

    def when_auction_closed(self) -> "SniperState":
        """State reached when the auction announces it has closed.

        Only a sniper that is currently winning wins; every other
        non-terminal state loses. Terminal states stay where they are.
        """
        if self.is_terminal:
            return self
        return SniperState.WON if self == SniperState.WINNING else SniperState.LOST


_STATUS_TEXT = {
    SniperState.JOINING: "Joining",
    SniperState.BIDDING: "Bidding",
    SniperState.WINNING: "Winning",
    SniperState.LOSING: "Losing",
    SniperState.LOST: "Lost",
    SniperState.WON: "Won",
}


@dataclass(frozen=True)
class PriceReported:
    """The auction reports a new current price."""
    price: int
    increment: int
    bidder: str

    def source_for(self, own_identity: str) -> PriceSource:
        """Classify the price by exact identity match with the sniper."""
        if self.bidder == own_identity:
            return PriceSource.FROM_SNIPER
        return PriceSource.FROM_OTHER_BIDDER


@dataclass(frozen=True)
class Closed:
    """The auction has closed."""


AuctionEvent = Union[PriceReported, Closed]


@dataclass(frozen=True)
class Join:
    """Command: join the auction."""


@dataclass(frozen=True)
class Bid:
    """Command: bid the given amount."""
    amount: int

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Bid amount must be non-negative, got {self.amount}")


AuctionCommand = Union[Join, Bid]


@dataclass(frozen=True)
class SniperSnapshot:
    """Immutable view of one sniper's bidding status.

    A new snapshot is produced for every transition; observers replace
    the value they hold, they never edit it.
    """
    item_id: str
    last_price: int
    last_bid: int
    state: SniperState

    @staticmethod
    def joining(item_id: str) -> "SniperSnapshot":
        """Initial snapshot before any auction event."""
        return SniperSnapshot(
            item_id=item_id,
            last_price=0,
            last_bid=0,
            state=SniperState.JOINING,
        )

    def bidding(self, price: int, bid: int) -> "SniperSnapshot":
        return replace(self, last_price=price, last_bid=bid, state=SniperState.BIDDING)

    def winning(self, price: int) -> "SniperSnapshot":
        return replace(self, last_price=price, last_bid=price, state=SniperState.WINNING)

    def losing(self, price: int) -> "SniperSnapshot":
        return replace(self, last_price=price, state=SniperState.LOSING)

    def closed(self) -> "SniperSnapshot":
        return replace(self, state=self.state.when_auction_closed())

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def is_for_same_item_as(self, other: "SniperSnapshot") -> bool:
        return self.item_id == other.item_id

    def to_dict(self) -> dict:
        """Convert snapshot to a JSON friendly dictionary."""
        return {
            "item_id": self.item_id,
            "last_price": self.last_price,
            "last_bid": self.last_bid,
            "state": self.state.name,
            "status_text": self.state.display_text,
        }
