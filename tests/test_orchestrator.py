"""Tests for the Orchestrator."""

import asyncio

import pytest
from auction_sniper.config import Config
from auction_sniper.models.types import Bid, Join, SniperSnapshot, SniperState
from auction_sniper.orchestrator import Orchestrator
from auction_sniper.services.auction import WebSocketAuctionHouse
from auction_sniper.services.translator import (
    format_close_event,
    format_command,
    format_price_event,
)
from dashboard.api import ConnectionManager, StatusBoard


async def wait_for(predicate, timeout: float = 2.0) -> None:
    async def poll():
        while not predicate():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(poll(), timeout=timeout)


class TestOrchestratorBasic:
    """Construction and stats."""

    def test_default_auction_house(self, sample_config):
        orchestrator = Orchestrator(sample_config)
        assert isinstance(orchestrator.auction_house, WebSocketAuctionHouse)
        assert orchestrator.sniper_id == "sniper"

    def test_stop_price_from_config(self, auction_house):
        config = Config()
        config.sniper.stop_price = 2000
        orchestrator = Orchestrator(config, auction_house=auction_house)
        assert orchestrator.collector.stop_price == 2000

    def test_initial_stats(self, sample_config, auction_house):
        orchestrator = Orchestrator(sample_config, auction_house=auction_house)
        stats = orchestrator.get_stats()
        assert stats["is_running"] is False
        assert stats["started_items"] == []
        assert stats["all_finished"] is True


class TestOrchestratorRun:
    """Running against in-memory auctions."""

    @pytest.mark.asyncio
    async def test_run_until_all_finished(self, sample_config, auction_house):
        orchestrator = Orchestrator(sample_config, auction_house=auction_house)
        task = asyncio.create_task(orchestrator.run(["item-54321", "item-65432"]))

        await wait_for(lambda: len(orchestrator.state.started_items) == 2)
        first = auction_house.auctions["item-54321"]
        second = auction_house.auctions["item-65432"]

        first.report_price(1000, 98, "other bidder")
        first.report_price(1098, 97, "sniper")
        first.announce_closed()
        second.report_price(500, 21, "other bidder")
        second.announce_closed()

        snapshots = await asyncio.wait_for(task, timeout=2)
        by_item = {s.item_id: s for s in snapshots}
        assert by_item["item-54321"] == SniperSnapshot("item-54321", 1098, 1098, SniperState.WON)
        assert by_item["item-65432"] == SniperSnapshot("item-65432", 500, 521, SniperState.LOST)
        assert not first.is_open
        assert orchestrator.state.is_running is False

    @pytest.mark.asyncio
    async def test_duplicate_items_are_skipped(self, sample_config, auction_house):
        orchestrator = Orchestrator(sample_config, auction_house=auction_house)
        await orchestrator.start(["item-54321", "item-54321"])
        assert orchestrator.state.started_items == ["item-54321"]
        assert orchestrator.state.failed_items == ["item-54321"]
        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_status_board_receives_updates(self, sample_config, auction_house):
        board = StatusBoard(ConnectionManager())
        orchestrator = Orchestrator(sample_config, auction_house=auction_house, status_board=board)
        await orchestrator.start(["item-54321"])
        auction_house.auctions["item-54321"].report_price(1000, 98, "other bidder")
        await orchestrator.stop()
        assert board.snapshots["item-54321"].state == SniperState.BIDDING

    @pytest.mark.asyncio
    async def test_run_with_no_items(self, sample_config, auction_house):
        orchestrator = Orchestrator(sample_config, auction_house=auction_house)
        snapshots = await asyncio.wait_for(orchestrator.run([]), timeout=1)
        assert snapshots == []


class TestEndToEnd:
    """Sniper against a WebSocket auction server."""

    @pytest.mark.asyncio
    async def test_sniper_wins_by_bidding_higher(self, server):
        config = Config()
        config.auction = server.config()
        orchestrator = Orchestrator(config)
        task = asyncio.create_task(orchestrator.run(["item-54321"]))

        assert await server.next_message() == "SOLVersion: 1.1; Command: JOIN;"
        await server.send("SOLVersion: 1.1; Event: PRICE; CurrentPrice: 1000; Increment: 98; Bidder: other bidder;")
        assert await server.next_message() == "SOLVersion: 1.1; Command: BID; Price: 1098;"
        await server.send("SOLVersion: 1.1; Event: PRICE; CurrentPrice: 1098; Increment: 97; Bidder: sniper;")
        await server.send("SOLVersion: 1.1; Event: CLOSE;")

        snapshots = await asyncio.wait_for(task, timeout=3)
        assert snapshots == [SniperSnapshot("item-54321", 1098, 1098, SniperState.WON)]

    @pytest.mark.asyncio
    async def test_sniper_joins_until_auction_closes(self, server):
        config = Config()
        config.auction = server.config()
        orchestrator = Orchestrator(config)
        task = asyncio.create_task(orchestrator.run(["item-54321"]))

        assert await server.next_message() == "SOLVersion: 1.1; Command: JOIN;"
        await server.send("SOLVersion: 1.1; Event: CLOSE;")

        snapshots = await asyncio.wait_for(task, timeout=3)
        assert snapshots[0].state == SniperState.LOST

    @pytest.mark.asyncio
    async def test_sniper_bids_for_multiple_items(self, server):
        config = Config()
        config.auction = server.config()
        orchestrator = Orchestrator(config)
        task = asyncio.create_task(orchestrator.run(["item-54321", "item-65432"]))

        for item_id in ("item-54321", "item-65432"):
            assert await server.next_message(item_id) == format_command(Join())

        await server.send(format_price_event(1000, 98, "other bidder"), "item-54321")
        await server.send(format_price_event(500, 21, "other bidder"), "item-65432")
        assert await server.next_message("item-54321") == format_command(Bid(1098))
        assert await server.next_message("item-65432") == format_command(Bid(521))

        await server.send(format_price_event(1098, 97, "sniper"), "item-54321")
        await server.send(format_price_event(521, 22, "sniper"), "item-65432")
        await server.send(format_close_event(), "item-54321")
        await server.send(format_close_event(), "item-65432")

        snapshots = await asyncio.wait_for(task, timeout=3)
        by_item = {s.item_id: s for s in snapshots}
        assert by_item == {
            "item-54321": SniperSnapshot("item-54321", 1098, 1098, SniperState.WON),
            "item-65432": SniperSnapshot("item-65432", 521, 521, SniperState.WON),
        }
        assert sorted(server.connections) == ["item-54321", "item-65432"]

    @pytest.mark.asyncio
    async def test_sniper_makes_a_higher_bid_but_loses(self, server):
        config = Config()
        config.auction = server.config()
        orchestrator = Orchestrator(config)
        task = asyncio.create_task(orchestrator.run(["item-54321"]))

        assert await server.next_message("item-54321") == format_command(Join())
        await server.send(format_price_event(1000, 98, "other bidder"), "item-54321")
        assert await server.next_message("item-54321") == format_command(Bid(1098))
        await server.send(format_close_event(), "item-54321")

        snapshots = await asyncio.wait_for(task, timeout=3)
        assert snapshots == [SniperSnapshot("item-54321", 1000, 1098, SniperState.LOST)]

    @pytest.mark.asyncio
    async def test_unreachable_auction_is_recorded(self):
        config = Config()
        config.auction.url_template = "ws://127.0.0.1:1/auctions/{item_id}"
        config.auction.open_timeout_seconds = 0.2
        config.auction.reconnect_delay = 0.05
        orchestrator = Orchestrator(config)
        snapshots = await asyncio.wait_for(orchestrator.run(["item-54321"]), timeout=2)
        assert snapshots == []
        assert orchestrator.state.failed_items == ["item-54321"]
