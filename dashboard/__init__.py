"""Auction Sniper Dashboard.

A real-time sniper status dashboard with WebSocket updates.
"""

from .api import app, board, StatusBoard, create_server

__all__ = ["app", "board", "StatusBoard", "create_server"]
