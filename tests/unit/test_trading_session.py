"""End-to-end session wiring with scripted channel and in-process authority."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import FastAPI
from fastapi import Request
import httpx
import pytest

from roundclient.channel import protocol
from roundclient.channel.connection import ConnectionStatus
from roundclient.core.credentials import StaticCredentialProvider
from roundclient.errors import AuthRejectedError
from roundclient.errors import StaleRoundError
from roundclient.rounds.models import RoundStatus
from roundclient.session import TradingSession
from tests.channel_testkit import FakeNetwork
from tests.channel_testkit import RecordingNotifier
from tests.channel_testkit import make_settings
from tests.channel_testkit import round_payload
from tests.channel_testkit import wait_until


def _authority(orders: list[dict[str, Any]]) -> FastAPI:
    app = FastAPI()

    @app.post("/api/trading/place-trades-batch")
    async def place_trades_batch(request: Request) -> dict[str, Any]:
        body = await request.json()
        orders.extend(body["trades"])
        return {"success": True, "message": "Trades placed", "data": {"count": len(body["trades"])}}

    @app.get("/api/wallet/balance")
    async def wallet_balance() -> dict[str, Any]:
        return {"success": True, "data": {"balance": 500, "formattedBalance": "500.00"}}

    return app


def _session(
    network: FakeNetwork,
    orders: list[dict[str, Any]],
    notifier: RecordingNotifier,
) -> tuple[TradingSession, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=_authority(orders)),
        base_url="http://authority",
    )
    session = TradingSession(
        make_settings(roundclient_api_base_url="http://authority/api"),
        credentials=StaticCredentialProvider("tok-1"),
        notifier=notifier,
        transport_factories=network.factories("websocket"),
        http_client=http_client,
    )
    return session, http_client


def test_round_lifecycle_from_join_to_submission(network: FakeNetwork) -> None:
    """Input: join, stage, submit, close, settle -> Output: one batch, notifications in order."""
    orders: list[dict[str, Any]] = []
    notifier = RecordingNotifier()

    async def scenario() -> None:
        session, http_client = _session(network, orders, notifier)
        async with http_client:
            await session.start(["color"])
            transport = network.latest
            assert transport.sent_types() == [protocol.JOIN_TRADING]

            transport.push(protocol.ROUND_CREATED, round_payload(round_id="c1", seq=8, status="open"))
            await wait_until(lambda: session.projection.is_open("c1"))

            session.cart.add_item("color", "c1", ["Green"], 40)
            receipt = await session.submit_cart()
            assert receipt.totals.grand_total == 45
            assert len(session.cart) == 0

            transport.push(protocol.ROUND_CLOSED, round_payload(round_id="c1", seq=8, status="closed"))
            transport.push(
                protocol.ROUND_FINALIZED,
                round_payload(round_id="c1", seq=8, status="settled", winning="Green"),
            )
            await wait_until(lambda: session.projection.status_of("c1") is RoundStatus.SETTLED)
            await session.close()

    asyncio.run(scenario())

    assert orders == [
        {
            "clientItemId": orders[0]["clientItemId"],
            "roundId": "c1",
            "tradeType": "colour",
            "selection": "Green",
            "selections": ["Green"],
            "amount": 40,
        }
    ]
    assert [title for _, title, _ in notifier.messages] == ["Orders placed", "Trading Closed!", "Result Declared!"]


def test_closed_round_blocks_submission(network: FakeNetwork) -> None:
    """Input: item staged, round then closed -> Output: StaleRoundError, cart kept, no order sent."""
    orders: list[dict[str, Any]] = []
    notifier = RecordingNotifier()

    async def scenario() -> None:
        session, http_client = _session(network, orders, notifier)
        async with http_client:
            await session.start(["color"])
            network.latest.push(protocol.ROUND_CREATED, round_payload(round_id="c1", status="open"))
            await wait_until(lambda: session.projection.is_open("c1"))
            session.cart.add_item("color", "c1", ["Red"], 10)

            network.latest.push(protocol.ROUND_CLOSED, round_payload(round_id="c1", status="closed"))
            await wait_until(lambda: not session.projection.is_open("c1"))
            with pytest.raises(StaleRoundError):
                await session.submit_cart()
            assert len(session.cart) == 1
            await session.close()

    asyncio.run(scenario())

    assert orders == []


def test_auth_failure_is_surfaced_to_user() -> None:
    """Input: handshake refused -> Output: FAILED status and a sign-in notification."""
    network = FakeNetwork([AuthRejectedError("token refused")])
    notifier = RecordingNotifier()

    async def scenario() -> None:
        session, http_client = _session(network, [], notifier)
        async with http_client:
            with pytest.raises(AuthRejectedError):
                await session.start(["number"])
            assert session.connection.status is ConnectionStatus.FAILED
            await session.close()

    asyncio.run(scenario())

    assert notifier.messages == [("error", "Session expired", "Please sign in again.")]


def test_sessions_do_not_share_state() -> None:
    """Input: two sessions -> Output: distinct connection, dispatcher and cart."""
    first = TradingSession(make_settings(), credentials=StaticCredentialProvider("a"))
    second = TradingSession(make_settings(), credentials=StaticCredentialProvider("b"))

    assert first.connection is not second.connection
    assert first.dispatcher is not second.dispatcher
    assert first.cart is not second.cart
    asyncio.run(first.close())
    asyncio.run(second.close())
