"""Logging status observer."""

import logging

from ..models.types import SniperSnapshot

logger = logging.getLogger(__name__)


class StatusLogger:
    """Writes every sniper transition and failure to the log."""

    def sniper_state_changed(self, snapshot: SniperSnapshot) -> None:
        logger.info(
            f"{snapshot.item_id}: {snapshot.state.display_text} "
            f"(last price {snapshot.last_price}, last bid {snapshot.last_bid})"
        )

    def sniper_failed(self, snapshot: SniperSnapshot, error: Exception) -> None:
        logger.warning(
            f"{snapshot.item_id}: {type(error).__name__} while "
            f"{snapshot.state.display_text.lower()}: {error}"
        )
