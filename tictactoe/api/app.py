"""FastAPI application: HTTP routes, the realtime endpoint, and the wiring of all layers."""

import random
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

import structlog
from fastapi import (
    Depends,
    FastAPI,
    Query,
    Request,
    Response,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CollectorRegistry

from tictactoe.api.models import (
    CreateGameRequest,
    CreateGameResponse,
    GameReplay,
    GameResultRequest,
    GameSnapshot,
    JoinGameRequest,
    LeaderboardResponse,
    PlayerStats,
    RecentGame,
    RecordedResponse,
    StatsResponse,
)
from tictactoe.core.config import Settings
from tictactoe.core.exceptions import (
    GameError,
    GameStateError,
    InvalidRequestError,
    PersistenceUnavailableError,
    ProtocolError,
    SessionNotFoundError,
)
from tictactoe.db.repository import GameResultRepository
from tictactoe.game.registry import SessionRegistry
from tictactoe.services.channel_manager import ChannelManager
from tictactoe.services.game_service import GameService, state_message
from tictactoe.services.metrics import GameMetrics
from tictactoe.services.result_reporter import ResultReporter
from tictactoe.services.stats_service import StatsService

logger = structlog.get_logger()

ERROR_STATUS_CODES: dict[type[GameError], int] = {
    SessionNotFoundError: 404,
    GameStateError: 400,
    InvalidRequestError: 400,
    PersistenceUnavailableError: 503,
}


def status_code_for(exc: GameError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


async def deny(websocket: WebSocket, status_code: int, detail: str) -> None:
    """Refuse the upgrade with a plain HTTP response, or a policy close if the server cannot send one."""
    if "websocket.http.response" in websocket.scope.get("extensions", {}):
        await websocket.send_denial_response(
            PlainTextResponse(detail, status_code=status_code)
        )
    else:
        await websocket.close(code=1008, reason=detail)


# --- DEPENDENCIES ---
def get_game_service(request: Request) -> GameService:
    return request.app.state.game_service


def get_stats_service(request: Request) -> StatsService:
    return request.app.state.stats_service


def get_metrics(request: Request) -> GameMetrics:
    return request.app.state.metrics


def create_app(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[GameResultRepository] = None,
    registry: Optional[SessionRegistry] = None,
    metrics_registry: Optional[CollectorRegistry] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """
    Build the application and every collaborator it needs.
    ----
    Nothing is shared between two apps: each gets its own session registry, metrics and reporter.
    """
    settings = settings or Settings()
    metrics = GameMetrics(metrics_registry)
    reporter = ResultReporter(metrics, repository)
    channels = ChannelManager(
        metrics, build_message=state_message, send_timeout=settings.ws_send_timeout
    )
    game_service = GameService(
        registry or SessionRegistry(rng=rng), channels, reporter, metrics
    )
    stats_service = StatsService(repository, current_streak=reporter.win_streak)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await reporter.start()
        logger.info(
            "backend started",
            port=settings.port,
            persistence_enabled=repository is not None,
        )
        try:
            yield
        finally:
            await reporter.stop()
            logger.info("backend stopped")

    app = FastAPI(title="tictactoe", lifespan=lifespan)
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.reporter = reporter
    app.state.channels = channels
    app.state.game_service = game_service
    app.state.stats_service = stats_service

    # Only real preflights (Origin plus Access-Control-Request-Method) are answered here.
    # A bare OPTIONS falls through to the router and gets 405.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def record_http_metrics(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)
        start = time.perf_counter()
        metrics.http_requests_in_flight.inc()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            metrics.http_requests_in_flight.dec()
            route = request.scope.get("route")
            endpoint = getattr(route, "path", "unmatched")
            metrics.http_requests_total.labels(
                method=request.method, endpoint=endpoint, status=str(status_code)
            ).inc()
            metrics.http_request_duration.labels(
                method=request.method, endpoint=endpoint
            ).observe(time.perf_counter() - start)

    @app.exception_handler(GameError)
    async def handle_game_error(request: Request, exc: GameError) -> JSONResponse:
        return JSONResponse(status_code=status_code_for(exc), content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Bad input is a 400, whether the JSON is malformed or a field is missing.
        return JSONResponse(status_code=400, content={"detail": "invalid request"})

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    # --- ONLINE GAMES ---
    @app.post("/api/game/create", response_model=CreateGameResponse)
    async def create_game(
        request: CreateGameRequest, service: GameService = Depends(get_game_service)
    ) -> CreateGameResponse:
        return await service.create_game(request)

    @app.post("/api/game/join", response_model=GameSnapshot)
    async def join_game(
        request: JoinGameRequest, service: GameService = Depends(get_game_service)
    ) -> GameSnapshot:
        return await service.join_game(request)

    @app.get("/api/game/get", response_model=GameSnapshot)
    async def get_game(
        game_id: str = Query("", alias="id"),
        service: GameService = Depends(get_game_service),
    ) -> GameSnapshot:
        return await service.get_game_state(game_id)

    @app.websocket("/api/game/ws")
    async def game_channel(websocket: WebSocket, game_id: str = Query("", alias="id")) -> None:
        service: GameService = websocket.app.state.game_service
        metrics: GameMetrics = websocket.app.state.metrics

        session = await service.registry.get(game_id)
        if session is None:
            await deny(websocket, status_code=404, detail="Game not found")
            return

        await websocket.accept()
        metrics.ws_connections_active.inc()
        logger.info("connection opened", game_id=session.id)
        await service.channels.subscribe(session, websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text") or message.get("bytes") or ""
                await service.handle_message(session, raw)
        except WebSocketDisconnect:
            pass
        except ProtocolError as exc:
            logger.debug("closing connection", game_id=session.id, reason=str(exc))
            await websocket.close()
        finally:
            await service.channels.unsubscribe(session, websocket)
            metrics.ws_connections_active.dec()
            logger.info("connection closed", game_id=session.id)

    # --- LOCAL GAMES ---
    @app.post("/api/game", response_model=RecordedResponse)
    async def record_game(
        request: GameResultRequest, service: GameService = Depends(get_game_service)
    ) -> RecordedResponse:
        return service.record_local_game(request)

    # --- ANALYTICS ---
    @app.get("/api/leaderboard", response_model=LeaderboardResponse)
    def leaderboard(stats: StatsService = Depends(get_stats_service)) -> LeaderboardResponse:
        return stats.leaderboard()

    @app.get("/api/stats", response_model=StatsResponse)
    def game_stats(stats: StatsService = Depends(get_stats_service)) -> StatsResponse:
        return stats.stats()

    @app.get("/api/recent", response_model=list[RecentGame])
    def recent_games(stats: StatsService = Depends(get_stats_service)) -> list[RecentGame]:
        return stats.recent_games()

    @app.get("/api/player", response_model=PlayerStats)
    def player_stats(
        player: str = Query(..., min_length=1),
        stats: StatsService = Depends(get_stats_service),
    ) -> PlayerStats:
        return stats.player_stats(player)

    @app.get("/api/player/games", response_model=list[RecentGame])
    def player_games(
        player: str = Query(..., min_length=1),
        stats: StatsService = Depends(get_stats_service),
    ) -> list[RecentGame]:
        return stats.player_games(player)

    @app.get("/api/replay", response_model=GameReplay)
    def replay(
        game_id: str = Query(..., alias="id", min_length=1),
        stats: StatsService = Depends(get_stats_service),
    ) -> GameReplay:
        return stats.replay(game_id)

    # --- OPS ---
    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz() -> str:
        return "ok"

    @app.get("/metrics")
    async def prometheus_metrics(metrics: GameMetrics = Depends(get_metrics)) -> Response:
        body, content_type = metrics.render()
        return Response(content=body, media_type=content_type)
