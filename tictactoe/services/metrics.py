"""Prometheus metrics. One GameMetrics per application, each with its own CollectorRegistry."""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

HTTP_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0)


class GameMetrics:
    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        # --- business metrics ---
        self.games_total = Counter(
            "tictactoe_games_total",
            "Total games played",
            ["result", "mode"],
            registry=self.registry,
        )
        self.wins_total = Counter(
            "tictactoe_wins_total",
            "Wins by player and pattern",
            ["player", "pattern", "mode"],
            registry=self.registry,
        )
        self.player_games_total = Counter(
            "tictactoe_player_games_total",
            "Games per player",
            ["player", "mode"],
            registry=self.registry,
        )
        self.ties_total = Counter(
            "tictactoe_ties_total",
            "Total tied games",
            ["mode"],
            registry=self.registry,
        )
        self.win_streak = Gauge(
            "tictactoe_current_win_streak",
            "Current win streak",
            ["player"],
            registry=self.registry,
        )
        self.db_operations = Counter(
            "tictactoe_db_operations_total",
            "Result store operations",
            ["operation", "status"],
            registry=self.registry,
        )
        self.online_games_active = Gauge(
            "tictactoe_online_games_active",
            "Active online games",
            registry=self.registry,
        )
        self.online_games_created = Counter(
            "tictactoe_online_games_created_total",
            "Online games created",
            registry=self.registry,
        )
        self.ws_connections_active = Gauge(
            "tictactoe_websocket_connections_active",
            "Active WebSocket connections",
            registry=self.registry,
        )
        self.ws_messages_total = Counter(
            "tictactoe_websocket_messages_total",
            "WebSocket messages",
            ["type", "direction"],
            registry=self.registry,
        )

        # --- ops metrics ---
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration",
            ["method", "endpoint"],
            buckets=HTTP_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.http_requests_in_flight = Gauge(
            "http_requests_in_flight",
            "Current in-flight requests",
            registry=self.registry,
        )

    def render(self) -> tuple[bytes, str]:
        """Text exposition format, with its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
