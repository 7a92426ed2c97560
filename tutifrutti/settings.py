# tutifrutti/settings.py
from __future__ import annotations

from pydantic import BaseModel
import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "tutifrutti-server"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Dev
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000,null"
    # Dev helper: allow any private LAN IP on the dev port
    WS_ALLOW_LAN_ORIGINS: bool = True
    WS_DEV_PORT: int = 3000
    WS_MAX_MESSAGE_BYTES: int = 8192

    # Room defaults
    DEFAULT_MAX_PLAYERS: int = 5
    DEFAULT_ROUNDS: int = 5
    TIME_LIMIT_SEC: int = 60
    REVIEW_DURATION_SEC: int = 20

    # Lifecycle
    GRACE_PERIOD_SEC: float = 15
    ROOM_RETENTION_SEC: float = 300
    REVIEW_PACING_SEC: float = 1.5
    RESULTS_DELAY_SEC: float = 3

    # Round policy
    SCORING_FLOW: str = "review"          # "review" | "classic"
    TIE_DEFAULT_VALID: bool = True
    GATE_EXCLUDES_DISCONNECTED: bool = True

    # Rate limiting: "<count>/<seconds>"
    RATE_LIMIT_CREATE_ROOM: str = "2/60"
    RATE_LIMIT_JOIN_ROOM: str = "5/60"
    RATE_LIMIT_SUBMIT_WORDS: str = "3/20"
    RATE_LIMIT_DEFAULT: str = "30/10"


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "tutifrutti-server"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        LOG_JSON=_flag("LOG_JSON", "false"),

        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,null",
        ),
        WS_ALLOW_LAN_ORIGINS=_flag("WS_ALLOW_LAN_ORIGINS", "true"),
        WS_DEV_PORT=int(os.getenv("WS_DEV_PORT", "3000")),
        WS_MAX_MESSAGE_BYTES=int(os.getenv("WS_MAX_MESSAGE_BYTES", "8192")),

        DEFAULT_MAX_PLAYERS=int(os.getenv("DEFAULT_MAX_PLAYERS", "5")),
        DEFAULT_ROUNDS=int(os.getenv("DEFAULT_ROUNDS", "5")),
        TIME_LIMIT_SEC=int(os.getenv("TIME_LIMIT_SEC", "60")),
        REVIEW_DURATION_SEC=int(os.getenv("REVIEW_DURATION_SEC", "20")),

        GRACE_PERIOD_SEC=float(os.getenv("GRACE_PERIOD_SEC", "15")),
        ROOM_RETENTION_SEC=float(os.getenv("ROOM_RETENTION_SEC", "300")),
        REVIEW_PACING_SEC=float(os.getenv("REVIEW_PACING_SEC", "1.5")),
        RESULTS_DELAY_SEC=float(os.getenv("RESULTS_DELAY_SEC", "3")),

        SCORING_FLOW=os.getenv("SCORING_FLOW", "review"),
        TIE_DEFAULT_VALID=_flag("TIE_DEFAULT_VALID", "true"),
        GATE_EXCLUDES_DISCONNECTED=_flag("GATE_EXCLUDES_DISCONNECTED", "true"),

        RATE_LIMIT_CREATE_ROOM=os.getenv("RATE_LIMIT_CREATE_ROOM", "2/60"),
        RATE_LIMIT_JOIN_ROOM=os.getenv("RATE_LIMIT_JOIN_ROOM", "5/60"),
        RATE_LIMIT_SUBMIT_WORDS=os.getenv("RATE_LIMIT_SUBMIT_WORDS", "3/20"),
        RATE_LIMIT_DEFAULT=os.getenv("RATE_LIMIT_DEFAULT", "30/10"),
    )
