"""Orchestration of communication from the API layer to the game sessions, the realtime channels and the reporting collaborators."""

from typing import Optional
from uuid import uuid4

import structlog
from pydantic import ValidationError

from tictactoe.api.models import (
    CreateGameRequest,
    CreateGameResponse,
    Envelope,
    GameResultRequest,
    GameSnapshot,
    JoinGameRequest,
    MovePayload,
    RecordedResponse,
    ServerMessage,
    decode_payload,
)
from tictactoe.core.exceptions import (
    GameError,
    ProtocolError,
    SessionNotFoundError,
)
from tictactoe.core.models import ResultRecord
from tictactoe.core.shared_types import MessageType, Status
from tictactoe.game.registry import SessionRegistry
from tictactoe.game.session import GameSession
from tictactoe.services.channel_manager import ChannelManager
from tictactoe.services.metrics import GameMetrics
from tictactoe.services.result_reporter import ResultReporter

logger = structlog.get_logger()

KNOWN_MESSAGE_TYPES = frozenset(str(message_type) for message_type in MessageType)


def create_snapshot(session: GameSession) -> GameSnapshot:
    """Convert the session's GameModel to the JSON shape clients see."""
    model = session.to_model()
    return GameSnapshot(
        id=model.id,
        board=model.board,
        turn=model.turn,
        first_player=model.first_player,
        player1=model.player1,
        player2=model.player2,
        status=model.status,
        winner=model.winner,
        pattern=model.pattern,
    )


def state_message(session: GameSession, message_type: MessageType) -> ServerMessage:
    return ServerMessage(type=message_type, payload=create_snapshot(session))


class GameService:
    """Orchestration of layers for online and local tic-tac-toe games."""

    def __init__(
        self,
        registry: SessionRegistry,
        channels: ChannelManager,
        reporter: ResultReporter,
        metrics: GameMetrics,
    ) -> None:
        self.registry = registry
        self.channels = channels
        self.reporter = reporter
        self.metrics = metrics

    # -- API routes logic ---
    async def create_game(self, request: CreateGameRequest) -> CreateGameResponse:
        """First player requested to create a new online game."""
        session = await self.registry.create(request.player1)
        self.metrics.online_games_created.inc()
        self.metrics.online_games_active.inc()
        logger.info(
            "game created",
            game_id=session.id,
            player1=session.player1,
            first_player=str(session.first_player),
            sessions=len(self.registry),
        )
        return CreateGameResponse(
            game_id=session.id, first_player=str(session.first_player)
        )

    async def join_game(self, request: JoinGameRequest) -> GameSnapshot:
        """Second player requested to join. Everyone already connected is told the game started."""
        session = await self.fetch_session(request.game_id)
        async with session.lock:
            session.register_player(request.player2)
            await self.channels.deliver(
                session, state_message(session, MessageType.GAME_START)
            )
            snapshot = create_snapshot(session)
        logger.info("game joined", game_id=session.id, player2=session.player2)
        return snapshot

    async def get_game_state(self, game_id: str) -> GameSnapshot:
        session = await self.fetch_session(game_id)
        async with session.lock:
            return create_snapshot(session)

    def record_local_game(self, request: GameResultRequest) -> RecordedResponse:
        """A game played in one browser, reported once it is over."""
        record = ResultRecord(
            player1=request.player1,
            player2=request.player2,
            winner=request.winner,
            pattern=request.pattern,
            is_tie=request.is_tie,
            mode=request.mode,
            game_id=str(uuid4()),
        )
        self.reporter.report(record)
        self.reporter.record_metrics(record)
        return RecordedResponse()

    # -- realtime channel logic ---
    async def handle_message(self, session: GameSession, raw: str) -> bool:
        """
        Process one inbound realtime frame. Returns whether it changed the game.
        ----

        A frame that is not an envelope at all raises ProtocolError, which ends the connection.
        Anything else that is wrong (unknown type, bad payload, not your turn, taken cell) is dropped silently.
        """
        try:
            envelope = Envelope.model_validate_json(raw)
        except ValidationError as exc:
            raise ProtocolError(f"Cannot decode realtime frame: {exc.error_count()} error(s)") from exc

        label = envelope.type if envelope.type in KNOWN_MESSAGE_TYPES else "unknown"
        self.metrics.ws_messages_total.labels(type=label, direction="in").inc()
        try:
            payload = decode_payload(envelope)
        except ValidationError:
            logger.debug("invalid payload ignored", game_id=session.id, type=envelope.type)
            return False

        if isinstance(payload, MovePayload):
            return await self.make_move(session, payload)
        logger.debug("message type ignored", game_id=session.id, type=envelope.type)
        return False

    async def make_move(self, session: GameSession, move: MovePayload) -> bool:
        """Apply a move and broadcast the result. Reporting happens after the session lock is released."""
        finished: Optional[ResultRecord] = None
        async with session.lock:
            try:
                session.make_move(move.index, move.player)
            except GameError as exc:
                logger.debug(
                    "move rejected",
                    game_id=session.id,
                    index=move.index,
                    player=move.player,
                    reason=str(exc),
                )
                return False
            await self.channels.deliver(
                session, state_message(session, MessageType.GAME_STATE)
            )
            if session.status == Status.FINISHED:
                finished = session.to_result()

        if finished is not None:
            self._finish(finished)
        return True

    # -- Internal helpers --
    def _finish(self, record: ResultRecord) -> None:
        logger.info(
            "game finished",
            game_id=record.game_id,
            winner=record.winner,
            pattern=record.pattern,
            is_tie=record.is_tie,
        )
        self.reporter.report(record)
        self.reporter.record_metrics(record)
        self.metrics.online_games_active.dec()

    async def fetch_session(self, game_id: str) -> GameSession:
        """Attempt to find the session in the registry and raise error if it fails."""
        session = await self.registry.get(game_id)
        if session is None:
            raise SessionNotFoundError(f"Game with {game_id=} not found.")
        return session
