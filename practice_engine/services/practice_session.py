from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional

from practice_engine.errors import CorruptedStateError, PracticeError
from practice_engine.models.collection import PracticeMode
from practice_engine.models.session import (
    PracticeSession,
    PracticeSettings,
    PracticeVariant,
    SessionRecord,
    SessionState,
)
from practice_engine.services import clock
from practice_engine.services.item_sources import ItemSource
from practice_engine.services.persistence import Persister
from practice_engine.services.round_sampler import DrawResult, RoundSampler
from practice_engine.services.statistics import StatisticsAggregator

log = logging.getLogger(__name__)

MIN_ROUND_SIZE = 3
CORRECT_TRANSITION_SEC = 0.75
SKIP_TRANSITION_SEC = 0.5


def settings_key(variant: str) -> str:
    return f"practice:{variant}:settings"


class InteractionMode(str, Enum):
    # every choice in the round is matched to its picture
    MATCHING = "matching"
    # one externally judged answer per round (say or spell aloud)
    SINGLE = "single"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    previous: SessionState
    state: SessionState
    reason: str


Listener = Callable[[SessionEvent], None]


class PracticeSessionMachine:
    """Life cycle of one practice session.

    ``Idle -> Active -> (RoundTransitioning <-> Active) -> Ended -> Idle``.
    Conditions that stop the learner (nothing assigned, too few items) are
    reported through ``error`` and boolean returns, never raised. Every state
    change is pushed to subscribed listeners.

    Timed transitions need a running event loop; without one they complete
    immediately.
    """

    def __init__(
        self,
        variant: PracticeVariant | str,
        source: ItemSource,
        statistics: StatisticsAggregator,
        persister: Persister,
        *,
        interaction: InteractionMode = InteractionMode.MATCHING,
        sampler: Optional[RoundSampler] = None,
        settings: Optional[PracticeSettings] = None,
        min_round_size: int = MIN_ROUND_SIZE,
        correct_delay: float = CORRECT_TRANSITION_SEC,
        skip_delay: float = SKIP_TRANSITION_SEC,
    ) -> None:
        self.variant = PracticeVariant(variant)
        self.source = source
        self.statistics = statistics
        self.interaction = interaction
        self.sampler = sampler or RoundSampler()
        self.settings = settings or PracticeSettings()
        self.min_round_size = max(1, min_round_size)
        self.correct_delay = correct_delay
        self.skip_delay = skip_delay

        self._persister = persister
        self._settings_key = settings_key(self.variant.value)
        self._timer: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Listener] = []

        self.session = PracticeSession()
        self.state = SessionState.IDLE

    def __repr__(self) -> str:
        return f"<PracticeSessionMachine {self.variant.value} state={self.state.value}>"

    # settings

    async def load(self) -> None:
        raw = await self._persister.store.load(self._settings_key)
        if raw is None:
            return
        try:
            self.settings = PracticeSettings.from_dict(raw)
        except (AttributeError, TypeError, ValueError) as e:
            raise CorruptedStateError(self._settings_key, str(e)) from e

    def update_settings(self, **fields) -> PracticeSettings:
        for name, value in fields.items():
            if not hasattr(self.settings, name):
                raise TypeError(f"unknown practice setting: {name}")
            if name == "practice_mode":
                value = PracticeMode(value)
            elif name == "number_of_items":
                value = max(1, int(value))
            setattr(self.settings, name, value)
        self._persister.schedule(self._settings_key, self.settings.to_dict)
        return self.settings

    def set_practice_mode(self, mode: PracticeMode | str) -> None:
        self.update_settings(practice_mode=mode)

    @property
    def round_size(self) -> int:
        if self.interaction is InteractionMode.SINGLE:
            return 1
        return max(1, self.settings.number_of_items)

    # notifications

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: SessionState, reason: str) -> None:
        previous = self.state
        self.state = state
        self.session.is_transitioning = state is SessionState.ROUND_TRANSITIONING
        log.debug("%s: %s -> %s (%s)", self.variant.value, previous.value, state.value, reason)
        event = SessionEvent(previous=previous, state=state, reason=reason)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                log.exception("session listener failed on %s", state.value)

    # errors

    @property
    def error(self) -> Optional[PracticeError]:
        return self.session.error

    def clear_error(self) -> None:
        self.session.error = None

    def _fail(self, error: PracticeError) -> bool:
        log.info("%s: cannot start: %s", self.variant.value, error.value)
        self.session.error = error
        return False

    # rounds

    def _draw(
        self, pool: List[str], collection_ids: List[str], drawn_since_refill: int = 0
    ) -> DrawResult:
        return self.sampler.draw(
            pool,
            self.round_size,
            self.source.eligible(collection_ids),
            self.settings.practice_mode,
            self.source.success_rate,
            drawn_since_refill,
        )

    def _apply_round(self, result: DrawResult) -> None:
        session = self.session
        session.pool = result.pool
        session.drawn_since_refill = result.drawn_since_refill
        session.round_item_ids = result.item_ids
        if self.interaction is InteractionMode.MATCHING:
            session.choices = self.sampler.build_choices(
                [(item_id, self.source.label(item_id)) for item_id in result.item_ids]
            )
        else:
            session.choices = []
        session.current_round += 1

    def _advance(self, reason: str) -> bool:
        session = self.session
        result = self._draw(
            session.pool, session.assigned_collection_ids, session.drawn_since_refill
        )
        if not result.ok:
            self.session.error = result.error
            self.end_session(reason="pool_exhausted")
            return False
        self._apply_round(result)
        self._set_state(SessionState.ACTIVE, reason)
        return True

    # transitions

    def start(self, collection_ids: Iterable[str] = ()) -> bool:
        if self.state is not SessionState.IDLE:
            self.end_session(reason="restart")

        ids = list(dict.fromkeys(collection_ids))
        if self.source.requires_assignment and not ids:
            return self._fail(PracticeError.NO_COLLECTIONS_ASSIGNED)

        eligible = self.source.eligible(ids)
        if len(eligible) < self.min_round_size:
            return self._fail(PracticeError.INSUFFICIENT_POOL)

        first = self._draw([], ids)
        if not first.ok:
            return self._fail(first.error)

        session = self.session
        session.clear()
        session.error = None
        session.is_active = True
        session.assigned_collection_ids = ids
        session.started_at = clock.now_ms()
        self.statistics.note_session_started()

        self._apply_round(first)
        log.info(
            "%s: session started with %d eligible items", self.variant.value, len(eligible)
        )
        self._set_state(SessionState.ACTIVE, "start")
        return True

    def record_match(self, choice_id: str, target_id: str) -> bool:
        """Learner placed choice ``choice_id`` on the picture of ``target_id``.

        Returns True for a correct match. Attempts on matched choices, unknown
        ids, or outside an active round change nothing and return False.
        """
        if self.interaction is not InteractionMode.MATCHING:
            return False
        if self.state is not SessionState.ACTIVE:
            return False
        session = self.session
        choice = session.find_choice(choice_id)
        if choice is None or target_id not in session.round_item_ids:
            return False
        if choice.is_matched:
            log.debug("%s: %s", PracticeError.ALREADY_MATCHED.value, choice_id)
            return False

        # compare source items, not labels; two items may share a name
        is_correct = choice.id == target_id
        session.total_attempts += 1
        session.tally(choice.id, is_correct)

        if is_correct:
            self.source.record_attempt(choice.id, True)
            choice.is_matched = True
            choice.matched_to_id = target_id
            choice.was_correct_match = True
            session.correct_answers += 1
            if session.is_round_complete:
                self._begin_transition(self.correct_delay, "round_complete")
        return is_correct

    def record_answer(self, was_correct: bool) -> bool:
        """Single-target modes: fold an externally judged answer and move on."""
        if self.interaction is not InteractionMode.SINGLE:
            return False
        if self.state is not SessionState.ACTIVE:
            return False
        session = self.session
        session.total_attempts += 1
        if was_correct:
            session.correct_answers += 1
        for item_id in session.round_item_ids:
            session.tally(item_id, was_correct)
            self.source.record_attempt(item_id, was_correct)
        self._advance("answer")
        return True

    def skip_round(self) -> bool:
        if self.state is not SessionState.ACTIVE:
            return False
        self._begin_transition(self.skip_delay, "skip")
        return True

    def _begin_transition(self, delay: float, reason: str) -> None:
        self._cancel_transition()
        self._set_state(SessionState.ROUND_TRANSITIONING, reason)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._complete_transition()
            return
        self._timer = loop.call_later(delay, self._complete_transition)

    def _cancel_transition(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _complete_transition(self) -> None:
        self._timer = None
        if self.state is not SessionState.ROUND_TRANSITIONING:
            return
        self._advance("next_round")

    @property
    def transition_pending(self) -> bool:
        return self._timer is not None

    def advance_now(self) -> bool:
        """Finish a pending transition without waiting for its timer."""
        if self.state is not SessionState.ROUND_TRANSITIONING:
            return False
        self._cancel_transition()
        return self._advance("next_round")

    def end_session(self, reason: str = "end") -> Optional[SessionRecord]:
        if self.state is SessionState.IDLE:
            return None
        # a late timer must not touch the next session
        self._cancel_transition()
        self._set_state(SessionState.ENDED, reason)
        record = self.statistics.record_session(self.session)
        self.session.clear()
        self._set_state(SessionState.IDLE, reason)
        return record

    # announcements; synthesis itself happens outside the engine

    def choices_to_announce(self) -> List[str]:
        if not self.settings.announce_choices:
            return []
        if self.session.choices:
            return [c.label for c in self.session.choices]
        return [self.source.label(i) for i in self.session.round_item_ids]

    def correctness_announcement(self, was_correct: bool) -> Optional[str]:
        if not self.settings.announce_correctness:
            return None
        return "Correct!" if was_correct else "Try again"
