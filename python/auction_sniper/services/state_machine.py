"""Bidding policy for a single auction.

``on_event`` is a pure function of the current snapshot, the incoming
event and the sniper's identity. It returns the next snapshot and the bid
to place, if any. All amounts are integers in the smallest currency unit.

Policy:
- Price from the sniper itself: WINNING, no bid.
- Price from another bidder: bid price + increment and go to BIDDING.
  With a stop price configured, a bid above it is not placed and the
  sniper goes to LOSING instead.
- Auction closed: WON if WINNING, otherwise LOST.
- WON and LOST absorb every event.
"""

from typing import Optional, Tuple

from ..models.types import (
    AuctionEvent,
    Bid,
    Closed,
    PriceReported,
    PriceSource,
    SniperSnapshot,
)


Transition = Tuple[SniperSnapshot, Optional[Bid]]


def on_event(
    current: SniperSnapshot,
    event: AuctionEvent,
    own_identity: str,
    stop_price: Optional[int] = None,
) -> Transition:
    """Apply one auction event to a snapshot.

    Args:
        current: Snapshot before the event
        event: PriceReported or Closed
        own_identity: Bidder identity of this sniper
        stop_price: Highest bid the sniper may place (None = unlimited)

    Returns:
        (next snapshot, bid command or None)
    """
    if current.is_terminal:
        return current, None

    if isinstance(event, Closed):
        return current.closed(), None

    if isinstance(event, PriceReported):
        return _on_price(current, event, own_identity, stop_price)

    raise TypeError(f"Unknown auction event: {event!r}")


def _on_price(
    current: SniperSnapshot,
    event: PriceReported,
    own_identity: str,
    stop_price: Optional[int],
) -> Transition:
    if event.source_for(own_identity) == PriceSource.FROM_SNIPER:
        return current.winning(event.price), None

    bid = event.price + event.increment
    if stop_price is not None and bid > stop_price:
        return current.losing(event.price), None

    return current.bidding(event.price, bid), Bid(bid)
