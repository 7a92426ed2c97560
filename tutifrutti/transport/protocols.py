# tutifrutti/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from tutifrutti.domain.common.types import Decision, Phase


class WireModel(BaseModel):
    # snake_case in Python, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(WireModel):
    type: str


# ---- Lifecycle ----

class InCreateRoom(InBase):
    type: Literal["createRoom"] = "createRoom"
    player_name: Optional[str] = None
    room_name: Optional[str] = Field(default=None, max_length=80)
    max_players: Optional[int] = None
    is_private: bool = False
    password: Optional[str] = Field(default=None, max_length=64)
    rounds: Optional[int] = None
    categories_count: Optional[int] = None
    time_limit: Optional[int] = None
    review_time: Optional[int] = None


class InJoinRoom(InBase):
    type: Literal["joinRoom"] = "joinRoom"
    room_id: str = Field(min_length=1, max_length=32)
    player_name: Optional[str] = None
    password: Optional[str] = Field(default=None, max_length=64)


class InGetRooms(InBase):
    type: Literal["getRooms"] = "getRooms"


class InGetRoomState(InBase):
    type: Literal["getRoomState"] = "getRoomState"
    room_id: str = Field(min_length=1, max_length=32)


class InReconnectPlayer(InBase):
    type: Literal["reconnectPlayer"] = "reconnectPlayer"
    room_id: str = Field(min_length=1, max_length=32)
    player_name: Optional[str] = None


class InLeaveRoom(InBase):
    type: Literal["leaveRoom"] = "leaveRoom"


# ---- Round ----
# room_id / player_name are optional echoes; the session binding is authoritative.

class InStartGame(InBase):
    type: Literal["startGame"] = "startGame"
    room_id: Optional[str] = None


class InSubmitWords(InBase):
    type: Literal["submitWords"] = "submitWords"
    room_id: Optional[str] = None
    player_name: Optional[str] = None
    words: Dict[str, Any] = Field(default_factory=dict)


class InForceEndRound(InBase):
    type: Literal["forceEndRound"] = "forceEndRound"
    room_id: Optional[str] = None
    player_name: Optional[str] = None


class InCastVote(InBase):
    """
    decision: "approve" | "reject".
    Older clients send isValid: bool instead.
    """
    type: Literal["castVote"] = "castVote"
    room_id: Optional[str] = None
    voter_name: Optional[str] = None
    target_player: str = Field(min_length=1, max_length=40)
    category: str = Field(min_length=1, max_length=40)
    decision: Optional[Decision] = None
    is_valid: Optional[bool] = None

    @model_validator(mode="after")
    def _decision_required(self) -> "InCastVote":
        if self.decision is None:
            if self.is_valid is None:
                raise ValueError("decision or isValid is required")
            self.decision = "approve" if self.is_valid else "reject"
        return self


class InConfirmReview(InBase):
    type: Literal["confirmReview"] = "confirmReview"
    room_id: Optional[str] = None


class InNextRound(InBase):
    type: Literal["nextRound"] = "nextRound"
    room_id: Optional[str] = None
    # "player:category" -> bool | "valid" | "invalid"
    resolutions: Dict[str, Any] = Field(default_factory=dict)


class InFinishReview(InBase):
    type: Literal["finishReview"] = "finishReview"
    room_id: Optional[str] = None
    resolutions: Dict[str, Any] = Field(default_factory=dict)


IncomingMessage = Union[
    InCreateRoom,
    InJoinRoom,
    InGetRooms,
    InGetRoomState,
    InReconnectPlayer,
    InLeaveRoom,
    InStartGame,
    InSubmitWords,
    InForceEndRound,
    InCastVote,
    InConfirmReview,
    InNextRound,
    InFinishReview,
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(WireModel):
    type: str

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutRoomCreated(OutBase):
    type: Literal["roomCreated"] = "roomCreated"
    room: Dict[str, Any]


class OutActiveRooms(OutBase):
    type: Literal["activeRooms"] = "activeRooms"
    rooms: List[Dict[str, Any]]


class OutJoinedRoom(OutBase):
    type: Literal["joinedRoom"] = "joinedRoom"
    room_id: str
    room_name: str
    player_name: str
    is_creator: bool
    categories: List[str]
    players: List[Dict[str, Any]]
    max_players: int
    max_rounds: int
    time_limit: int
    review_duration: int


class OutPlayerJoined(OutBase):
    type: Literal["playerJoined"] = "playerJoined"
    player_name: str
    players: List[Dict[str, Any]]


class OutRoomState(OutBase):
    type: Literal["roomState"] = "roomState"
    room_id: str
    room_name: str
    creator: Optional[str] = None
    players: List[Dict[str, Any]]
    is_playing: bool
    phase: Phase
    current_round: int
    max_rounds: int
    current_letter: str = ""
    time_remaining: Optional[int] = None
    categories: List[str]
    server_time: int
    timer_ends_at: Optional[int] = None


class OutRoundStart(OutBase):
    type: Literal["roundStart"] = "roundStart"
    round: int
    letter: str
    time_limit: int
    categories: List[str]
    letter_history: List[str] = Field(default_factory=list)
    is_rare: bool = False
    is_medium: bool = False


class OutTimerUpdate(OutBase):
    type: Literal["timerUpdate"] = "timerUpdate"
    time_remaining: int
    server_time: int
    ends_at: int
    phase: Phase


class OutStartReview(OutBase):
    type: Literal["startReview"] = "startReview"
    round: int
    letter: str
    review_duration: int
    categories: List[str]
    words: Dict[str, Dict[str, str]]
    valid_words: Dict[str, Dict[str, bool]]
    votes: Dict[str, Dict[str, Dict[str, int]]] = Field(default_factory=dict)


class OutVoteUpdate(OutBase):
    type: Literal["voteUpdate"] = "voteUpdate"
    target_player: str
    category: str
    valid_count: int
    invalid_count: int


class OutVotingProgress(OutBase):
    type: Literal["votingProgress"] = "votingProgress"
    players_ready: int
    total_players: int


class OutReviewEnded(OutBase):
    type: Literal["reviewEnded"] = "reviewEnded"
    round: int
    letter: str
    valid_words: Dict[str, Dict[str, bool]]
    automatic: bool = False


class OutRoundEnded(OutBase):
    type: Literal["roundEnded"] = "roundEnded"
    round: int
    letter: str
    scores: Dict[str, Dict[str, int]]
    words: Dict[str, Dict[str, str]]
    valid_words: Dict[str, Dict[str, bool]]
    player_scores: Dict[str, int]
    is_last_round: bool = False


class OutGameEnded(OutBase):
    type: Literal["gameEnded"] = "gameEnded"
    results: List[Dict[str, Any]]
    total_rounds: int


class OutPlayerDisconnected(OutBase):
    type: Literal["playerDisconnected"] = "playerDisconnected"
    player_name: str
    players: List[Dict[str, Any]]


class OutPlayerReconnected(OutBase):
    type: Literal["playerReconnected"] = "playerReconnected"
    player_name: str
    players: List[Dict[str, Any]]


class OutPlayerLeft(OutBase):
    type: Literal["playerLeft"] = "playerLeft"
    player_name: str
    players: List[Dict[str, Any]]
    new_creator: Optional[str] = None


class OutCreatorChanged(OutBase):
    type: Literal["creatorChanged"] = "creatorChanged"
    creator: str
    players: List[Dict[str, Any]]


class OutYouAreCreator(OutBase):
    """Delivered only to the sids in `targets`."""
    type: Literal["youAreCreator"] = "youAreCreator"
    targets: List[str]


OutgoingEvent = Union[
    OutError,
    OutRoomCreated,
    OutActiveRooms,
    OutJoinedRoom,
    OutPlayerJoined,
    OutRoomState,
    OutRoundStart,
    OutTimerUpdate,
    OutStartReview,
    OutVoteUpdate,
    OutVotingProgress,
    OutReviewEnded,
    OutRoundEnded,
    OutGameEnded,
    OutPlayerDisconnected,
    OutPlayerReconnected,
    OutPlayerLeft,
    OutCreatorChanged,
    OutYouAreCreator,
]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "createRoom": InCreateRoom,
    "joinRoom": InJoinRoom,
    "getRooms": InGetRooms,
    "getRoomState": InGetRoomState,
    "reconnectPlayer": InReconnectPlayer,
    "leaveRoom": InLeaveRoom,
    "startGame": InStartGame,
    "submitWords": InSubmitWords,
    "forceEndRound": InForceEndRound,
    "castVote": InCastVote,
    "confirmReview": InConfirmReview,
    "nextRound": InNextRound,
    "finishReview": InFinishReview,
}

# Intents that never mutate state (not rate limited).
READ_ONLY_TYPES = frozenset({"getRooms", "getRoomState"})


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValueError (pydantic ValidationError included) if invalid.
    """
    t = payload.get("type")
    if not isinstance(t, str):
        raise ValueError("Missing/invalid type")

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)
