from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from practice_engine.errors import PracticeError
from practice_engine.models.collection import PracticeMode
from practice_engine.models.session import WordChoice

log = logging.getLogger(__name__)

# None means the item has never been attempted
RateLookup = Callable[[str], Optional[float]]


@dataclass(slots=True)
class DrawResult:
    item_ids: List[str] = field(default_factory=list)
    pool: List[str] = field(default_factory=list)
    refilled: bool = False
    # ids at the back of ``pool`` already drawn in the current cycle
    drawn_since_refill: int = 0
    error: Optional[PracticeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RoundSampler:
    """Draws rounds from a rotating pool.

    Drawn ids move from the front of the pool to the back, so an item only
    comes up again after every other pool member has been drawn once. When
    fewer than ``k`` undrawn ids are left the pool is rebuilt from the
    eligible set, so each cycle gets a new order.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.SystemRandom()

    def shuffle(self, ids: Sequence[str]) -> List[str]:
        out = list(ids)
        self._rng.shuffle(out)
        return out

    def refill(
        self,
        eligible: Sequence[str],
        mode: PracticeMode = PracticeMode.RANDOM,
        rate_of: Optional[RateLookup] = None,
    ) -> List[str]:
        ids = list(dict.fromkeys(eligible))
        if mode is PracticeMode.SEQUENTIAL:
            return ids
        shuffled = self.shuffle(ids)
        if mode is PracticeMode.ADAPTIVE and rate_of is not None:

            def weakest_first(item_id: str):
                rate = rate_of(item_id)
                return (rate is not None, rate or 0.0)

            # stable sort keeps the shuffle as tie-break
            shuffled.sort(key=weakest_first)
        return shuffled

    def draw(
        self,
        pool: Sequence[str],
        k: int,
        eligible: Sequence[str],
        mode: PracticeMode = PracticeMode.RANDOM,
        rate_of: Optional[RateLookup] = None,
        drawn_since_refill: int = 0,
    ) -> DrawResult:
        """Draw the next ``k`` ids.

        The last ``drawn_since_refill`` ids of ``pool`` were already drawn in
        the current cycle. Once fewer than ``k`` undrawn ids remain the pool is
        refilled from ``eligible`` in ``mode`` order, keeping the previous
        round out of the new first round.
        """
        eligible_ids = list(dict.fromkeys(eligible))
        allowed = set(eligible_ids)

        if len(eligible_ids) < k:
            log.debug("insufficient pool: %d eligible, need %d", len(eligible_ids), k)
            return DrawResult(
                pool=list(pool),
                drawn_since_refill=drawn_since_refill,
                error=PracticeError.INSUFFICIENT_POOL,
            )

        split = max(0, len(pool) - drawn_since_refill)
        fresh = [i for i in pool[:split] if i in allowed]
        spent = [i for i in pool[split:] if i in allowed]
        known = set(pool)
        # ids that became eligible mid-cycle join the undrawn part
        fresh.extend(i for i in eligible_ids if i not in known)

        refilled = len(pool) < k or len(fresh) < k
        if refilled:
            order = self.refill(eligible_ids, mode, rate_of)
            previous = set(spent[-k:])
            head = [i for i in order if i not in previous][:k]
            taken = set(head)
            fresh = head + [i for i in order if i not in taken]
            spent = []

        drawn = fresh[:k]
        rotated = fresh[k:] + spent + drawn
        log.debug("round drawn: %s (refilled=%s)", drawn, refilled)
        return DrawResult(
            item_ids=drawn,
            pool=rotated,
            refilled=refilled,
            drawn_since_refill=len(spent) + k,
        )

    def build_choices(self, labelled: Sequence[tuple[str, str]]) -> List[WordChoice]:
        """One choice per ``(item_id, label)``, shuffled apart from item order."""
        choices = [WordChoice(id=item_id, label=label) for item_id, label in labelled]
        self._rng.shuffle(choices)
        return choices
