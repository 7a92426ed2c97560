# tutifrutti/store/models.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from tutifrutti.domain.common.types import ScoringFlow


DEFAULT_CATEGORIES = [
    "NOMBRE", "ANIMAL", "COSA", "FRUTA", "PAIS", "COLOR",
    "COMIDA", "CIUDAD", "PROFESION", "MARCA", "DEPORTE", "PELICULA",
]


def _clamp(value: Any, lo: int, hi: int, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(lo, min(hi, int(value)))


class PlayerStore(BaseModel):
    sid: str
    name: str
    is_creator: bool = False
    score: int = 0
    ready: bool = False
    connected: bool = True
    disconnected_at: Optional[int] = None
    joined_at: int

    # pending grace-period removal, owned by this record
    _grace: Any = PrivateAttr(default=None)

    @property
    def grace_pending(self) -> bool:
        return self._grace is not None

    def public(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "isCreator": self.is_creator,
            "score": self.score,
            "ready": self.ready,
            "connected": self.connected,
        }


class RoomConfig(BaseModel):
    """
    Per-room options, clamped at creation time.
    A room keeps its own copy so later settings changes never touch running games.
    """
    room_name: str
    creator: str
    max_players: int = 5
    is_private: bool = False
    password: Optional[str] = None
    max_rounds: int = 5
    categories: List[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    time_limit: int = 60
    review_duration: int = 20

    scoring_flow: ScoringFlow = "review"
    tie_default_valid: bool = True
    gate_excludes_disconnected: bool = True
    grace_period_sec: float = 15
    review_pacing_sec: float = 1.5
    results_delay_sec: float = 3

    @classmethod
    def from_request(
        cls,
        *,
        creator: str,
        settings,
        room_name: Optional[str] = None,
        max_players: Any = None,
        is_private: bool = False,
        password: Optional[str] = None,
        rounds: Any = None,
        categories_count: Any = None,
        time_limit: Any = None,
        review_time: Any = None,
    ) -> "RoomConfig":
        cat_count = _clamp(categories_count, 4, len(DEFAULT_CATEGORIES), len(DEFAULT_CATEGORIES))
        return cls(
            room_name=(room_name or "").strip()[:40] or f"Sala de {creator}",
            creator=creator,
            max_players=_clamp(max_players, 2, 20, settings.DEFAULT_MAX_PLAYERS),
            is_private=bool(is_private),
            password=password or None,
            max_rounds=_clamp(rounds, 1, 20, settings.DEFAULT_ROUNDS),
            categories=DEFAULT_CATEGORIES[:cat_count],
            time_limit=_clamp(time_limit, 20, 180, settings.TIME_LIMIT_SEC),
            review_duration=_clamp(review_time, 15, 180, settings.REVIEW_DURATION_SEC),
            scoring_flow="classic" if settings.SCORING_FLOW == "classic" else "review",
            tie_default_valid=settings.TIE_DEFAULT_VALID,
            gate_excludes_disconnected=settings.GATE_EXCLUDES_DISCONNECTED,
            grace_period_sec=settings.GRACE_PERIOD_SEC,
            review_pacing_sec=settings.REVIEW_PACING_SEC,
            results_delay_sec=settings.RESULTS_DELAY_SEC,
        )


class RoomListing(BaseModel):
    """Directory entry as served to clients (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    room_id: str
    room_name: str
    creator: Optional[str] = None
    current_players: int
    max_players: int
    is_private: bool
    is_playing: bool = False
    created_at: str
