"""Realtime connections subscribed to game sessions, and delivery of messages to them."""

import asyncio
from typing import Any, Callable, Protocol

import structlog

from tictactoe.api.models import ServerMessage
from tictactoe.core.shared_types import MessageType
from tictactoe.game.session import GameSession
from tictactoe.services.metrics import GameMetrics

logger = structlog.get_logger()

MessageBuilder = Callable[[GameSession, MessageType], ServerMessage]


class Connection(Protocol):
    """What we need from a realtime transport (FastAPI's WebSocket fits)."""

    async def send_json(self, data: Any) -> None: ...


class ChannelManager:
    """
    Connection membership and fan-out for sessions.
    ----

    Connections are stored on the session itself, so membership changes are serialized by `session.lock`.
    `deliver` expects the caller to hold that lock already: messages then reach every connection
    in the same order as the state changes that produced them.
    """

    def __init__(
        self,
        metrics: GameMetrics,
        build_message: MessageBuilder,
        send_timeout: float = 5.0,
    ) -> None:
        self.metrics = metrics
        self.build_message = build_message
        self.send_timeout = send_timeout

    async def subscribe(self, session: GameSession, connection: Connection) -> None:
        """Add the connection and immediately send it the current state."""
        async with session.lock:
            session.connections.add(connection)
            message = self.build_message(session, MessageType.GAME_STATE)
            await self._send(session, connection, message.to_wire())
        self.metrics.ws_messages_total.labels(type=message.type, direction="out").inc()
        logger.info(
            "connection subscribed",
            game_id=session.id,
            connections=len(session.connections),
        )

    async def unsubscribe(self, session: GameSession, connection: Connection) -> None:
        async with session.lock:
            session.connections.discard(connection)
        logger.info(
            "connection unsubscribed",
            game_id=session.id,
            connections=len(session.connections),
        )

    async def broadcast(self, session: GameSession, message: ServerMessage) -> None:
        """Lock-taking variant of `deliver`, for callers that do not already hold `session.lock`."""
        async with session.lock:
            await self.deliver(session, message)

    async def deliver(self, session: GameSession, message: ServerMessage) -> None:
        """Send to every subscribed connection. Caller holds `session.lock`."""
        connections = list(session.connections)
        if not connections:
            return
        data = message.to_wire()
        await asyncio.gather(
            *(self._send(session, connection, data) for connection in connections)
        )
        self.metrics.ws_messages_total.labels(type=message.type, direction="out").inc(
            len(connections)
        )

    async def _send(
        self, session: GameSession, connection: Connection, data: dict[str, Any]
    ) -> None:
        """A failed or stalled send only affects this connection. Its own read loop will clean it up."""
        try:
            await asyncio.wait_for(connection.send_json(data), timeout=self.send_timeout)
        except Exception as exc:
            logger.debug(
                "send failed",
                game_id=session.id,
                error=repr(exc),
            )
