"""Process entry point: read configuration, wire persistence, serve with uvicorn."""

from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from tictactoe.api.app import create_app
from tictactoe.core.config import Settings
from tictactoe.core.log_config import configure_logging
from tictactoe.db.database import create_session_factory
from tictactoe.db.repository import GameResultRepository
from tictactoe.db.sql_repository import SQLGameResultRepository

logger = structlog.get_logger()


def build_repository(settings: Settings) -> Optional[GameResultRepository]:
    """No DATABASE_URL, or a database we cannot reach: the game still works, results are just not stored."""
    if not settings.persistence_enabled:
        logger.info("DATABASE_URL not set, game persistence disabled")
        return None
    try:
        session_factory = create_session_factory(settings.database_url)
    except SQLAlchemyError:
        logger.exception("failed to initialise result store, game persistence disabled")
        return None
    logger.info("result store initialised")
    return SQLGameResultRepository(session_factory)


def build_app(settings: Settings) -> FastAPI:
    return create_app(settings, repository=build_repository(settings))


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level, json_output=settings.log_json)
    app = build_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
