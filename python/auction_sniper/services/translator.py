"""Translation between Sniper-Auction Protocol text and typed events.

Messages are a single line of ``Key: value;`` tokens:

    SOLVersion: 1.1; Event: PRICE; CurrentPrice: 1000; Increment: 98; Bidder: other;
    SOLVersion: 1.1; Event: CLOSE;

Commands going the other way use the same encoding with a ``Command`` key.
"""

import logging
import re
from typing import Dict, Protocol

from ..models.types import (
    AuctionCommand,
    AuctionEvent,
    Bid,
    Closed,
    Join,
    PriceReported,
)

logger = logging.getLogger(__name__)


PROTOCOL_VERSION = "1.1"

EVENT_KEY = "event"
PRICE_KEY = "currentprice"
INCREMENT_KEY = "increment"
BIDDER_KEY = "bidder"

EVENT_PRICE = "PRICE"
EVENT_CLOSE = "CLOSE"

_TOKEN_SEPARATOR = ";"
_KEY_VALUE = re.compile(r"^([^:=]*)[:=](.*)$", re.DOTALL)
_NON_NEGATIVE_INT = re.compile(r"[0-9]+")


class ProtocolParseError(Exception):
    """Raised when a raw auction message does not follow the protocol."""

    def __init__(self, raw_message: str, reason: str):
        self.raw_message = raw_message
        self.reason = reason
        super().__init__(f"{reason}: {raw_message[:100]!r}")


class AuctionEventListener(Protocol):
    """Receives translated events for one auction."""

    def auction_event(self, event: AuctionEvent) -> None: ...

    def translation_failed(self, raw_message: str, error: ProtocolParseError) -> None: ...


def _fields(raw_message: str) -> Dict[str, str]:
    if "\n" in raw_message or "\r" in raw_message:
        raise ProtocolParseError(raw_message, "Message spans more than one line")

    fields: Dict[str, str] = {}
    for token in raw_message.split(_TOKEN_SEPARATOR):
        token = token.strip()
        if not token:
            continue
        match = _KEY_VALUE.match(token)
        if match is None:
            raise ProtocolParseError(raw_message, f"Token without separator {token!r}")
        key = match.group(1).strip().lower()
        if not key:
            raise ProtocolParseError(raw_message, f"Token with empty key {token!r}")
        # Duplicate keys: last one wins
        fields[key] = match.group(2).strip()
    return fields


def _required(fields: Dict[str, str], key: str, raw_message: str) -> str:
    value = fields.get(key)
    if not value:
        raise ProtocolParseError(raw_message, f"Missing field {key!r}")
    return value


def _integer(fields: Dict[str, str], key: str, raw_message: str) -> int:
    value = _required(fields, key, raw_message)
    if not _NON_NEGATIVE_INT.fullmatch(value):
        raise ProtocolParseError(raw_message, f"Field {key!r} is not a non-negative integer")
    return int(value)


def parse_message(raw_message: str) -> AuctionEvent:
    """Parse one raw message into an AuctionEvent.

    Raises:
        ProtocolParseError: if the message is malformed.
    """
    fields = _fields(raw_message)
    event_type = _required(fields, EVENT_KEY, raw_message).upper()

    if event_type == EVENT_CLOSE:
        return Closed()

    if event_type == EVENT_PRICE:
        return PriceReported(
            price=_integer(fields, PRICE_KEY, raw_message),
            increment=_integer(fields, INCREMENT_KEY, raw_message),
            bidder=_required(fields, BIDDER_KEY, raw_message),
        )

    raise ProtocolParseError(raw_message, f"Unknown event type {event_type!r}")


class AuctionMessageTranslator:
    """Turns raw protocol messages into calls on a listener.

    Every call to ``translate`` results in exactly one listener call:
    ``auction_event`` for a well-formed message, ``translation_failed``
    otherwise. Parse errors never propagate to the transport.
    """

    def __init__(self, listener: AuctionEventListener):
        self.listener = listener

    def translate(self, raw_message: str) -> None:
        try:
            event = parse_message(raw_message)
        except ProtocolParseError as e:
            logger.warning(f"Failed to parse auction message: {e}")
            self.listener.translation_failed(raw_message, e)
            return

        self.listener.auction_event(event)


def format_command(command: AuctionCommand) -> str:
    """Encode an outbound command."""
    if isinstance(command, Join):
        return f"SOLVersion: {PROTOCOL_VERSION}; Command: JOIN;"
    if isinstance(command, Bid):
        return f"SOLVersion: {PROTOCOL_VERSION}; Command: BID; Price: {command.amount};"
    raise TypeError(f"Unknown auction command: {command!r}")


def format_price_event(price: int, increment: int, bidder: str) -> str:
    return (
        f"SOLVersion: {PROTOCOL_VERSION}; Event: PRICE; "
        f"CurrentPrice: {price}; Increment: {increment}; Bidder: {bidder};"
    )


def format_close_event() -> str:
    return f"SOLVersion: {PROTOCOL_VERSION}; Event: CLOSE;"
