# tutifrutti/domain/room/engine.py
from __future__ import annotations

import random
from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog

from tutifrutti.domain.common.errors import (
    AuthorizationError,
    BadPhase,
    ConflictError,
    DuplicateName,
    GameAlreadyStarted,
    PlayerNotFound,
    RoomFull,
    ValidationError,
    WrongPassword,
)
from tutifrutti.domain.common.fsm import can_transition_phase
from tutifrutti.domain.common.types import PLAYING_PHASES, Decision, Phase
from tutifrutti.domain.common.validation import (
    normalize_word,
    require_name,
    same_name,
    starts_with_letter,
)
from tutifrutti.domain.helpers.letters import letter_info, pick_letter
from tutifrutti.domain.helpers.scoring import score_round
from tutifrutti.domain.helpers.timer import TimerAuthority
from tutifrutti.domain.helpers.voting import VoteTally
from tutifrutti.domain.players.registry import PlayerRegistry
from tutifrutti.store.models import PlayerStore, RoomConfig, RoomListing
from tutifrutti.transport.protocols import (
    OutBase,
    OutCreatorChanged,
    OutGameEnded,
    OutJoinedRoom,
    OutPlayerDisconnected,
    OutPlayerJoined,
    OutPlayerLeft,
    OutPlayerReconnected,
    OutReviewEnded,
    OutRoomState,
    OutRoundEnded,
    OutRoundStart,
    OutStartReview,
    OutTimerUpdate,
    OutVoteUpdate,
    OutVotingProgress,
    OutYouAreCreator,
)
from tutifrutti.util.scheduler import Handle, Scheduler
from tutifrutti.util.timeutil import iso_from_ms

logger = structlog.get_logger()

# publish(room_id, events): room-wide broadcast, in mutation order
Publish = Callable[[str, List[OutBase]], None]
RoomNotify = Callable[[str], None]


class RoomEngine:
    """
    One room's state machine:
        lobby -> roundStart -> writing -> review -> results -> (roundStart | ended)

    Intents validate first and mutate after, raising GameError subclasses
    when rejected. Broadcasts go through `publish`; direct replies are
    returned to the caller. Timer and grace callbacks run on the same
    event loop, so nothing here needs locking.
    """

    def __init__(
        self,
        room_id: str,
        config: RoomConfig,
        *,
        scheduler: Scheduler,
        timers: TimerAuthority,
        publish: Publish,
        on_idle: Optional[RoomNotify] = None,
        on_empty: Optional[RoomNotify] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.room_id = room_id
        self.config = config
        self.created_at = scheduler.now_ms()

        self._scheduler = scheduler
        self._timers = timers
        self._publish = publish
        self._on_idle = on_idle
        self._on_empty = on_empty
        self._rng = rng

        self.players = PlayerRegistry(scheduler, grace_period_sec=config.grace_period_sec)
        self.tally = VoteTally()

        self.phase: Phase = "lobby"
        self.current_round = 0
        self.current_letter = ""
        self.letter_history: List[str] = []
        # {player: {category: word}} and the prefix (later final) validity
        self.words: Dict[str, Dict[str, str]] = {}
        self.valid_words: Dict[str, Dict[str, bool]] = {}

        # review pacing / results -> next round delay
        self._pending: Optional[Handle] = None
        self.closed = False

    # ---------------------------------------------------------------
    # Read side
    # ---------------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self.phase in PLAYING_PHASES

    @property
    def is_idle(self) -> bool:
        return not self.players.connected_players() and not self.is_playing

    def creator_name(self) -> Optional[str]:
        c = self.players.creator()
        return c.name if c is not None else None

    def players_public(self) -> List[Dict[str, Any]]:
        return [p.public() for p in self.players]

    def listing(self) -> RoomListing:
        return RoomListing(
            room_id=self.room_id,
            room_name=self.config.room_name,
            creator=self.creator_name(),
            current_players=len(self.players.connected_players()),
            max_players=self.config.max_players,
            is_private=self.config.is_private,
            is_playing=self.is_playing,
            created_at=iso_from_ms(self.created_at),
        )

    def room_state(self) -> OutRoomState:
        return OutRoomState(
            room_id=self.room_id,
            room_name=self.config.room_name,
            creator=self.creator_name(),
            players=self.players_public(),
            is_playing=self.is_playing,
            phase=self.phase,
            current_round=self.current_round,
            max_rounds=self.config.max_rounds,
            current_letter=self.current_letter,
            time_remaining=self._timers.remaining(self.room_id),
            categories=list(self.config.categories),
            server_time=self._scheduler.now_ms(),
            timer_ends_at=self._timers.deadline(self.room_id),
        )

    # ---------------------------------------------------------------
    # Membership
    # ---------------------------------------------------------------

    def add_creator(self, name: str, sid: str) -> OutJoinedRoom:
        p = self.players.add_player(name, True, sid)
        logger.info("room_created", room_id=self.room_id, player=p.name)
        return self._joined(p)

    def join(self, name: Any, sid: str, password: Optional[str] = None) -> OutJoinedRoom:
        clean = require_name(name)
        if self.players.by_sid(sid) is not None:
            raise ConflictError("You already have a seat in this room", code="ALREADY_SEATED")
        # seats held by disconnected players still count
        if len(self.players) >= self.config.max_players:
            raise RoomFull("Room is full")
        if self.players.by_name(clean) is not None:
            raise DuplicateName("Name already taken in this room")
        if self.config.is_private and self.config.password and password != self.config.password:
            raise WrongPassword("Wrong room password")
        if self.phase != "lobby":
            raise GameAlreadyStarted("Game already started")

        p = self.players.add_player(clean, False, sid)
        if self.players.creator() is None:
            self.players.promote_next_creator()
        logger.info("player_joined", room_id=self.room_id, player=p.name)
        self._emit(OutPlayerJoined(player_name=p.name, players=self.players_public()))
        return self._joined(p)

    def reconnect(self, name: Any, sid: str) -> List[OutBase]:
        clean = require_name(name)
        seated = self.players.by_sid(sid)
        if seated is not None and not same_name(seated.name, clean):
            raise ConflictError("You already have a seat in this room", code="ALREADY_SEATED")
        p = self.players.reconnect(clean, sid)
        logger.info("player_reconnected", room_id=self.room_id, player=p.name, phase=self.phase)
        self._emit(OutPlayerReconnected(player_name=p.name, players=self.players_public()))
        replies: List[OutBase] = [self.room_state()]
        if self.phase == "review":
            replies.append(self._start_review_event())
        return replies

    def disconnect(self, sid: str) -> None:
        p = self.players.mark_disconnected(sid, self._on_grace_expired)
        if p is None:
            return
        logger.info("player_disconnected", room_id=self.room_id, player=p.name, phase=self.phase)
        self._emit(OutPlayerDisconnected(player_name=p.name, players=self.players_public()))

        # a missing player must not stall the round for everyone else
        if self.phase == "writing":
            self._check_all_submitted()
        elif self.phase == "review":
            self._check_all_confirmed()
        self._notify_if_idle()

    def leave(self, sid: str) -> None:
        p = self._require_player(sid)
        logger.info("player_left", room_id=self.room_id, player=p.name, phase=self.phase)
        self._remove_player(p, explicit=True)

    # ---------------------------------------------------------------
    # Round intents
    # ---------------------------------------------------------------

    def start_game(self, sid: str) -> None:
        self._require_creator(sid)
        if self.phase != "lobby":
            raise BadPhase("Game already started")
        logger.info(
            "game_started",
            room_id=self.room_id,
            players=len(self.players),
            rounds=self.config.max_rounds,
        )
        self._begin_round()

    def submit_words(self, sid: str, words: Mapping[str, Any], player_name: Optional[str] = None) -> None:
        p = self._require_player(sid, claimed=player_name)
        if self.phase != "writing":
            raise BadPhase("Not accepting words right now")

        clean: Dict[str, str] = {}
        valid: Dict[str, bool] = {}
        for category in self.config.categories:
            w = normalize_word((words or {}).get(category))
            clean[category] = w
            valid[category] = bool(w) and starts_with_letter(w, self.current_letter)

        # resubmitting overwrites
        self.words[p.name] = clean
        self.valid_words[p.name] = valid
        logger.info("words_submitted", room_id=self.room_id, player=p.name, round=self.current_round)
        self._check_all_submitted()

    def force_end_round(self, sid: str, player_name: Optional[str] = None) -> None:
        """BASTA: a player who already submitted cuts the writing phase short."""
        p = self._require_player(sid, claimed=player_name)
        if self.phase != "writing":
            raise BadPhase("Round is not in the writing phase")
        if p.name not in self.words:
            raise ConflictError("Submit your words before calling BASTA", code="NOT_SUBMITTED")
        logger.info("basta", room_id=self.room_id, player=p.name, round=self.current_round)
        self._end_writing()

    def cast_vote(
        self,
        sid: str,
        target: str,
        category: str,
        decision: Decision,
        voter_name: Optional[str] = None,
    ) -> bool:
        """
        Returns False when the ballot is ignored (outside review, or a self-vote).
        """
        voter = self._require_player(sid, claimed=voter_name)
        if self.phase != "review":
            return False
        if category not in self.config.categories:
            raise ValidationError(f"Unknown category: {category}")
        target_name = self._submitter_name(target)
        if target_name is None:
            raise PlayerNotFound("No words from that player this round")

        if not self.tally.cast(voter.name, target_name, category, decision):
            return False

        c = self.tally.counts(target_name, category)
        self._emit(OutVoteUpdate(
            target_player=target_name,
            category=category,
            valid_count=c.approve,
            invalid_count=c.reject,
        ))
        return True

    def confirm_review(self, sid: str) -> None:
        p = self._require_player(sid)
        if self.phase != "review":
            raise BadPhase("Not in review")
        p.ready = True
        self._check_all_confirmed()

    def next_round(self, sid: str, resolutions: Optional[Mapping[str, Any]] = None) -> None:
        """Creator closes the review, applying tie resolutions."""
        p = self._require_creator(sid)
        if self.phase != "review":
            raise BadPhase("Not in review")
        logger.info("review_closed_by_creator", room_id=self.room_id, player=p.name, round=self.current_round)
        self._finish_review(resolutions or {})

    # ---------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------

    def close(self) -> None:
        """Cancel every pending callback owned by this room."""
        self.closed = True
        self._timers.cancel(self.room_id)
        self._cancel_pending()
        self.players.close()

    # ---------------------------------------------------------------
    # Transitions
    # ---------------------------------------------------------------

    def _set_phase(self, target: Phase) -> None:
        if not can_transition_phase(self.phase, target):
            raise BadPhase(f"Illegal transition {self.phase} -> {target}")
        self.phase = target

    def _begin_round(self) -> None:
        self._cancel_pending()
        self.current_round += 1
        self.words = {}
        self.valid_words = {}
        self.tally.clear()
        self.players.reset_ready()

        self._set_phase("roundStart")
        # exactly one letter per round
        letter = pick_letter(self.letter_history, rng=self._rng)
        self.current_letter = letter
        info = letter_info(letter, self.letter_history)
        self._emit(OutRoundStart(
            round=self.current_round,
            letter=letter,
            time_limit=self.config.time_limit,
            categories=list(self.config.categories),
            letter_history=info["letterHistory"],
            is_rare=info["isRare"],
            is_medium=info["isMedium"],
        ))
        logger.info("round_started", room_id=self.room_id, round=self.current_round, letter=letter)

        self._set_phase("writing")
        self._timers.start(self.room_id, self.config.time_limit, self._on_tick, self._on_writing_expired)

    def _on_tick(self, remaining: int, deadline: int) -> None:
        self._emit(OutTimerUpdate(
            time_remaining=remaining,
            server_time=self._scheduler.now_ms(),
            ends_at=deadline,
            phase=self.phase,
        ))

    def _on_writing_expired(self) -> None:
        if self.phase == "writing":
            logger.info("writing_time_up", room_id=self.room_id, round=self.current_round)
            self._end_writing()

    def _gate_players(self) -> List[PlayerStore]:
        if self.config.gate_excludes_disconnected:
            return self.players.connected_players()
        return self.players.all()

    def _check_all_submitted(self) -> None:
        if self.phase != "writing":
            return
        gate = self._gate_players()
        if gate and all(p.name in self.words for p in gate):
            self._end_writing()

    def _end_writing(self) -> None:
        self._timers.cancel(self.room_id)
        if self.config.scoring_flow == "classic":
            self._finish_classic()
            return

        self._set_phase("review")
        self._emit(self._start_review_event())
        logger.info("review_started", room_id=self.room_id, round=self.current_round)
        self._timers.start(
            self.room_id,
            self.config.review_duration,
            self._on_tick,
            self._on_review_expired,
        )

    def _start_review_event(self) -> OutStartReview:
        return OutStartReview(
            round=self.current_round,
            letter=self.current_letter,
            review_duration=self.config.review_duration,
            categories=list(self.config.categories),
            words={k: dict(v) for k, v in self.words.items()},
            valid_words={k: dict(v) for k, v in self.valid_words.items()},
            votes=self.tally.snapshot(),
        )

    def _on_review_expired(self) -> None:
        if self.phase == "review":
            self._finish_review({}, automatic=True)

    def _check_all_confirmed(self) -> None:
        if self.phase != "review":
            return
        connected = self.players.connected_players()
        ready = [p for p in connected if p.ready]
        self._emit(OutVotingProgress(players_ready=len(ready), total_players=len(connected)))
        if connected and len(ready) >= len(connected) and self._pending is None:
            # short pause so clients can show the last votes
            self._pending = self._scheduler.call_later(self.config.review_pacing_sec, self._paced_finish)

    def _paced_finish(self) -> None:
        self._pending = None
        if self.phase == "review":
            self._finish_review({})

    def _finish_review(self, resolutions: Mapping[str, Any], *, automatic: bool = False) -> None:
        """Vote-based terminal transition of a round."""
        self._cancel_pending()
        self._timers.cancel(self.room_id)

        final: Dict[str, Dict[str, bool]] = {}
        for player, by_cat in self.words.items():
            final[player] = {
                category: self.tally.resolve(
                    player,
                    category,
                    self.current_letter,
                    by_cat.get(category, ""),
                    resolutions,
                    tie_default_valid=self.config.tie_default_valid,
                )
                for category in self.config.categories
            }
        self.valid_words = final

        self._emit(OutReviewEnded(
            round=self.current_round,
            letter=self.current_letter,
            valid_words={k: dict(v) for k, v in final.items()},
            automatic=automatic,
        ))
        self._apply_scores()

    def _finish_classic(self) -> None:
        """Prefix-only terminal transition, straight from writing."""
        self._timers.cancel(self.room_id)
        self._apply_scores()

    def _apply_scores(self) -> None:
        self._set_phase("results")
        breakdowns = score_round(self.words, self.valid_words, self.config.categories)
        for name, b in breakdowns.items():
            p = self.players.by_name(name)
            if p is not None:
                p.score += b.total

        is_last = self.current_round >= self.config.max_rounds
        self._emit(OutRoundEnded(
            round=self.current_round,
            letter=self.current_letter,
            scores={name: b.public() for name, b in breakdowns.items()},
            words={k: dict(v) for k, v in self.words.items()},
            valid_words={k: dict(v) for k, v in self.valid_words.items()},
            player_scores={p.name: p.score for p in self.players},
            is_last_round=is_last,
        ))
        logger.info("round_ended", room_id=self.room_id, round=self.current_round)

        if is_last:
            self._end_game()
        elif self.config.results_delay_sec <= 0:
            self._begin_round()
        else:
            self._pending = self._scheduler.call_later(self.config.results_delay_sec, self._next_round_due)

    def _next_round_due(self) -> None:
        self._pending = None
        if self.phase == "results":
            self._begin_round()

    def _end_game(self) -> None:
        self._timers.cancel(self.room_id)
        self._cancel_pending()
        self._set_phase("ended")

        standings = sorted(self.players, key=lambda p: p.score, reverse=True)
        self._emit(OutGameEnded(
            results=[{"name": p.name, "score": p.score, "isCreator": p.is_creator} for p in standings],
            total_rounds=self.current_round,
        ))
        logger.info("game_ended", room_id=self.room_id, rounds=self.current_round)

        # seats kept through the game for players whose grace already ran out
        for p in self.players:
            if not p.connected and not p.grace_pending:
                self._remove_player(p)
        self._notify_if_idle()

    # ---------------------------------------------------------------
    # Departures
    # ---------------------------------------------------------------

    def _on_grace_expired(self, p: PlayerStore) -> None:
        if self.is_playing:
            # seat and score survive mid-game; only the creator role moves on
            if p.is_creator:
                self._hand_over_creator(p)
            return
        logger.info("grace_expired", room_id=self.room_id, player=p.name)
        self._remove_player(p)

    def _hand_over_creator(self, old: PlayerStore) -> Optional[PlayerStore]:
        old.is_creator = False
        new = self.players.promote_next_creator()
        if new is None:
            old.is_creator = True
            return None
        logger.info("creator_reassigned", room_id=self.room_id, old=old.name, new=new.name)
        self._emit(
            OutCreatorChanged(creator=new.name, players=self.players_public()),
            OutYouAreCreator(targets=[new.sid]),
        )
        return new

    def _remove_player(self, p: PlayerStore, *, explicit: bool = False) -> None:
        was_creator = p.is_creator
        self.players.remove(p.name)
        self.tally.drop_voter(p.name)

        new_creator = None
        if was_creator:
            new_creator = self.players.promote_next_creator()
        self._emit(OutPlayerLeft(
            player_name=p.name,
            players=self.players_public(),
            new_creator=new_creator.name if new_creator else None,
        ))
        if new_creator is not None:
            self._emit(OutYouAreCreator(targets=[new_creator.sid]))

        if explicit and not len(self.players) and not self.is_playing:
            # last one out of a room that is not mid-game
            if self._on_empty is not None:
                self._on_empty(self.room_id)
            return

        if self.phase == "writing":
            self._check_all_submitted()
        elif self.phase == "review":
            self._check_all_confirmed()
        self._notify_if_idle()

    # ---------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------

    def _emit(self, *events: OutBase) -> None:
        if self.closed:
            return
        self._publish(self.room_id, list(events))

    def _notify_if_idle(self) -> None:
        if self.is_idle and self._on_idle is not None:
            self._on_idle(self.room_id)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _joined(self, p: PlayerStore) -> OutJoinedRoom:
        return OutJoinedRoom(
            room_id=self.room_id,
            room_name=self.config.room_name,
            player_name=p.name,
            is_creator=p.is_creator,
            categories=list(self.config.categories),
            players=self.players_public(),
            max_players=self.config.max_players,
            max_rounds=self.config.max_rounds,
            time_limit=self.config.time_limit,
            review_duration=self.config.review_duration,
        )

    def _submitter_name(self, name: str) -> Optional[str]:
        for submitted in self.words:
            if same_name(submitted, name):
                return submitted
        return None

    def _require_player(self, sid: str, *, claimed: Optional[str] = None) -> PlayerStore:
        p = self.players.by_sid(sid)
        if p is None:
            raise PlayerNotFound("You are not in this room")
        if claimed and not same_name(claimed, p.name):
            raise AuthorizationError("You can only act as yourself", code="NOT_YOU")
        return p

    def _require_creator(self, sid: str) -> PlayerStore:
        p = self._require_player(sid)
        if not p.is_creator:
            raise AuthorizationError("Only the room creator can do that")
        return p
