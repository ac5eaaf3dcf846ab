"""
studyflash.scheduler
---------

This module defines the Scheduler class as well as the various constants used in its calculations.

Classes:
    Scheduler: The FSRS spaced-repetition scheduler.

Functions:
    review_card: Reviews a card with the default Scheduler.
"""

from __future__ import annotations
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone, timedelta
import json
import logging
import math
from typing import TypedDict
from typing_extensions import Self
from studyflash.state import State
from studyflash.card import DEFAULT_DIFFICULTY, SchedulingState
from studyflash.rating import Rating, validate_rating
from studyflash.review_log import ReviewLogEntry

logger = logging.getLogger(__name__)

# standard FSRS v4 weights w0..w16
DEFAULT_PARAMETERS = (
    0.4,
    0.6,
    2.4,
    5.8,
    4.93,
    0.94,
    0.86,
    0.01,
    1.49,
    0.14,
    0.94,
    2.18,
    0.05,
    0.34,
    1.26,
    0.29,
    2.61,
)

DEFAULT_DECAY = -1.0
DEFAULT_REQUEST_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500

STABILITY_MIN = 0.1
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

FALLBACK_INTERVAL = 1
ONE_DAY = timedelta(days=1)


class SchedulerDict(TypedDict):
    """
    JSON-serializable dictionary representation of a Scheduler object.
    """

    parameters: list[float]
    request_retention: float
    maximum_interval: int
    decay: float


@dataclass(init=False)
class Scheduler:
    """
    The FSRS scheduler.

    Enables the reviewing and future scheduling of cards according to the FSRS algorithm.
    A Scheduler holds no per-card state, so a single instance can be shared freely between threads.

    Attributes:
        parameters: The 17 model weights of the FSRS scheduler.
        request_retention: The desired probability of recall when a card comes due.
        maximum_interval: The maximum number of days a card can be scheduled into the future.
        decay: Exponent of the forgetting curve.
    """

    parameters: tuple[float, ...]
    request_retention: float
    maximum_interval: int
    decay: float

    def __init__(
        self,
        parameters: Sequence[float] = DEFAULT_PARAMETERS,
        request_retention: float = DEFAULT_REQUEST_RETENTION,
        maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL,
        decay: float = DEFAULT_DECAY,
    ) -> None:
        self._validate_configuration(
            parameters=parameters,
            request_retention=request_retention,
            maximum_interval=maximum_interval,
        )

        self.parameters = tuple(parameters)
        self.request_retention = request_retention
        self.maximum_interval = maximum_interval
        self.decay = decay

        self._DECAY = decay
        self._FACTOR = self._curve_factor(decay=decay)

    def _validate_configuration(
        self,
        *,
        parameters: Sequence[float],
        request_retention: float,
        maximum_interval: int,
    ) -> None:
        if len(parameters) != len(DEFAULT_PARAMETERS):
            raise ValueError(
                f"Expected {len(DEFAULT_PARAMETERS)} parameters, got {len(parameters)}."
            )

        error_messages = []
        if not 0 < request_retention <= 1:
            error_messages.append(
                f"request_retention = {request_retention} is out of bounds: (0, 1]"
            )
        if maximum_interval < 1:
            error_messages.append(
                f"maximum_interval = {maximum_interval} must be at least 1 day"
            )

        if len(error_messages) > 0:
            raise ValueError(
                "Invalid scheduler configuration:\n" + "\n".join(error_messages)
            )

    @staticmethod
    def _curve_factor(*, decay: float) -> float:
        # chosen so that retrievability is exactly 0.9 after `stability` days
        if decay >= 0:
            logger.warning(
                "Forgetting curve decay %r is not negative, intervals will fall back to %d day",
                decay,
                FALLBACK_INTERVAL,
            )
            return 0.0

        try:
            return 0.9 ** (1 / decay) - 1
        except OverflowError:
            logger.warning(
                "Forgetting curve decay %r overflows, intervals will fall back to %d day",
                decay,
                FALLBACK_INTERVAL,
            )
            return 0.0

    def get_card_retrievability(
        self, state: SchedulingState, current_datetime: datetime | None = None
    ) -> float:
        """
        Calculates a card's current retrievability for a given date and time.

        The retrievability of a card is the predicted probability that the card is correctly recalled at the provided datetime.
        A card that was never reviewed has nothing to forget yet and is reported as fully retrievable.

        Args:
            state: The scheduling record of the card whose retrievability is to be calculated.
            current_datetime: The current date and time.

        Returns:
            float: The retrievability of the card.
        """

        if state.last_review is None or not state.stability > 0:
            return 1.0 if state.state == State.New else 0.0

        if current_datetime is None:
            current_datetime = datetime.now(timezone.utc)

        elapsed_days = self._elapsed_days(
            last_review=state.last_review, review_datetime=current_datetime
        )

        return self._retrievability(elapsed_days=elapsed_days, stability=state.stability)

    def review_card(
        self,
        state: SchedulingState,
        rating: Rating | int,
        review_datetime: datetime | None = None,
    ) -> tuple[SchedulingState, ReviewLogEntry]:
        """
        Reviews a card with a given rating at a given time.

        The given record is left untouched; the updated record is returned alongside its review log entry.
        Callers persisting the result must not review the same card concurrently.

        Args:
            state: The scheduling record of the card being reviewed.
            rating: The chosen rating for the card being reviewed.
            review_datetime: The date and time of the review. Defaults to the current UTC time.

        Returns:
            tuple[SchedulingState,ReviewLogEntry]: A tuple containing the updated scheduling record and its corresponding review log entry.

        Raises:
            InvalidRatingError: If the rating is not one of 1, 2, 3 or 4.
        """

        rating = validate_rating(rating)

        if review_datetime is None:
            review_datetime = datetime.now(timezone.utc)

        match state.state:
            case State.New:
                stability = self._initial_stability(rating=rating)
                difficulty = self._initial_difficulty(rating=rating)
                elapsed_days = 0.0
                reps = 1

                if rating == Rating.Again:
                    next_state = State.Relearning
                    lapses = 1
                else:
                    next_state = State.Learning
                    lapses = state.lapses

            case State.Learning | State.Review | State.Relearning:
                elapsed_days = self._elapsed_days(
                    last_review=state.last_review, review_datetime=review_datetime
                )

                stability = state.stability
                if not (stability > 0 and math.isfinite(stability)):
                    logger.warning(
                        "Card %s has invalid stability %r, using 1.0 for retrievability",
                        state.card_id,
                        stability,
                    )
                    # negative stability enters the update formulas as 0
                    stability = 1.0 if not math.isfinite(stability) else max(stability, 0.0)

                difficulty = self._next_difficulty(
                    difficulty=state.difficulty, rating=rating
                )
                stability = self._next_stability(
                    difficulty=difficulty,
                    stability=stability,
                    elapsed_days=elapsed_days,
                    rating=rating,
                    state=state.state,
                )

                if rating == Rating.Again:
                    next_state = State.Relearning
                    lapses = state.lapses + 1
                else:
                    next_state = State.Review
                    lapses = state.lapses

                reps = state.reps + 1

        scheduled_days = self.next_interval(stability=stability)
        due = review_datetime + timedelta(days=scheduled_days)

        reviewed_state = replace(
            state,
            stability=stability,
            difficulty=difficulty,
            elapsed_days=elapsed_days,
            scheduled_days=scheduled_days,
            reps=reps,
            lapses=lapses,
            state=next_state,
            last_review=review_datetime,
            due=due,
        )

        review_log = ReviewLogEntry(
            card_id=state.card_id,
            rating=rating,
            state=next_state,
            due=due,
            stability=stability,
            difficulty=difficulty,
            elapsed_days=elapsed_days,
            scheduled_days=scheduled_days,
            review_datetime=review_datetime,
        )

        return reviewed_state, review_log

    def reschedule_card(
        self, state: SchedulingState, review_logs: Iterable[ReviewLogEntry]
    ) -> SchedulingState:
        """
        Reschedules/updates the given card with the current scheduler provided that card's review logs.

        If the card was previously scheduled with a different scheduler, you may want to reschedule/update
        it as if it had always been scheduled with this current scheduler.

        Args:
            state: The scheduling record of the card to be rescheduled/updated.
            review_logs: That card's review log entries (order doesn't matter).

        Returns:
            SchedulingState: A new record that has been rescheduled/updated with this current scheduler.

        Raises:
            ValueError: If any of the review logs are for a card other than the one specified.
        """

        review_logs = list(review_logs)
        for review_log in review_logs:
            if review_log.card_id != state.card_id:
                raise ValueError(
                    f"ReviewLogEntry card_id {review_log.card_id} does not match SchedulingState card_id {state.card_id}"
                )

        review_logs.sort(key=lambda log: log.review_datetime)

        rescheduled_state = SchedulingState(card_id=state.card_id, due=state.due)

        for review_log in review_logs:
            rescheduled_state, _ = self.review_card(
                state=rescheduled_state,
                rating=review_log.rating,
                review_datetime=review_log.review_datetime,
            )

        return rescheduled_state

    def next_interval(self, stability: float) -> int:
        """
        Derives the number of days until a card with the given stability should be shown again.

        Degenerate configurations or stabilities fall back to a 1-day interval instead of failing.

        Args:
            stability: The card's stability in days.

        Returns:
            int: The next interval, between 1 and maximum_interval days.
        """

        if self._DECAY >= 0 or self._FACTOR <= 0:
            logger.warning(
                "Invalid decay %r or factor %r for interval calculation, using fallback %d-day interval",
                self._DECAY,
                self._FACTOR,
                FALLBACK_INTERVAL,
            )
            return FALLBACK_INTERVAL

        try:
            next_interval = (stability / self._FACTOR) * (
                (self.request_retention ** (1 / self._DECAY)) - 1
            )
        except (OverflowError, ZeroDivisionError):
            next_interval = math.nan

        if not math.isfinite(next_interval) or next_interval < 0:
            logger.warning(
                "Computed invalid interval %r for stability %r, using fallback %d-day interval",
                next_interval,
                stability,
                FALLBACK_INTERVAL,
            )
            return FALLBACK_INTERVAL

        next_interval = round(next_interval)  # intervals are full days

        # must be at least 1 day long
        next_interval = max(next_interval, 1)

        # can not be longer than the maximum interval
        next_interval = min(next_interval, self.maximum_interval)

        return next_interval

    def to_dict(
        self,
    ) -> SchedulerDict:
        """
        Returns a dictionary representation of the Scheduler object.

        Returns:
            SchedulerDict: A dictionary representation of the Scheduler object.
        """

        return {
            "parameters": list(self.parameters),
            "request_retention": self.request_retention,
            "maximum_interval": self.maximum_interval,
            "decay": self.decay,
        }

    @classmethod
    def from_dict(cls, source_dict: SchedulerDict) -> Self:
        """
        Creates a Scheduler object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing Scheduler object.

        Returns:
            Self: A Scheduler object created from the provided dictionary.
        """

        return cls(
            parameters=source_dict["parameters"],
            request_retention=source_dict["request_retention"],
            maximum_interval=source_dict["maximum_interval"],
            decay=source_dict.get("decay", DEFAULT_DECAY),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the Scheduler object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the Scheduler object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a Scheduler object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing Scheduler object.

        Returns:
            Self: A Scheduler object created from the JSON string.
        """

        source_dict: SchedulerDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)

    def _elapsed_days(
        self, *, last_review: datetime | None, review_datetime: datetime
    ) -> float:
        if last_review is None:
            return 0.0

        return max(0.0, (review_datetime - last_review) / ONE_DAY)

    def _retrievability(self, *, elapsed_days: float, stability: float) -> float:
        return (1 + self._FACTOR * elapsed_days / stability) ** self._DECAY

    def _clamp_difficulty(self, *, difficulty: float) -> float:
        if math.isnan(difficulty):
            logger.warning(
                "Difficulty is NaN, resetting to %s", DEFAULT_DIFFICULTY
            )
            return DEFAULT_DIFFICULTY

        return min(max(difficulty, MIN_DIFFICULTY), MAX_DIFFICULTY)

    def _clamp_stability(self, *, stability: float) -> float:
        if not math.isfinite(stability):
            logger.warning(
                "Stability %r is not finite, clamping to %s", stability, STABILITY_MIN
            )
            return STABILITY_MIN

        return max(stability, STABILITY_MIN)

    def _initial_stability(self, *, rating: Rating) -> float:
        initial_stability = self.parameters[rating - 1]

        initial_stability = self._clamp_stability(stability=initial_stability)

        return initial_stability

    def _initial_difficulty(self, *, rating: Rating) -> float:
        initial_difficulty = self.parameters[4] - self.parameters[5] * (rating - 3)

        initial_difficulty = self._clamp_difficulty(difficulty=initial_difficulty)

        return initial_difficulty

    def _next_difficulty(self, *, difficulty: float, rating: Rating) -> float:
        def _mean_reversion(*, init: float, current: float) -> float:
            return self.parameters[7] * init + (1 - self.parameters[7]) * current

        delta_difficulty = -(self.parameters[6] * (rating - 3))

        next_difficulty = _mean_reversion(
            init=self._initial_difficulty(rating=Rating.Good),
            current=difficulty + delta_difficulty,
        )

        next_difficulty = self._clamp_difficulty(difficulty=next_difficulty)

        return next_difficulty

    def _next_stability(
        self,
        *,
        difficulty: float,
        stability: float,
        elapsed_days: float,
        rating: Rating,
        state: State,
    ) -> float:
        retrievability = self._retrievability(
            elapsed_days=elapsed_days, stability=stability if stability > 0 else 1.0
        )

        try:
            # a card still relearning is treated as a lapse whatever the rating
            if state == State.Relearning or rating == Rating.Again:
                next_stability = self._next_forget_stability(
                    difficulty=difficulty,
                    stability=stability,
                    retrievability=retrievability,
                )
            else:
                next_stability = self._next_recall_stability(
                    difficulty=difficulty,
                    stability=stability,
                    retrievability=retrievability,
                    rating=rating,
                )
        except (OverflowError, ZeroDivisionError) as error:
            logger.warning(
                "Stability update failed (%s), keeping stability %r", error, stability
            )
            next_stability = stability

        next_stability = self._clamp_stability(stability=next_stability)

        return next_stability

    def _next_forget_stability(
        self, *, difficulty: float, stability: float, retrievability: float
    ) -> float:
        return (
            self.parameters[11]
            * (difficulty ** -self.parameters[12])
            * (((stability + 1) ** (self.parameters[13])) - 1)
            * (math.e ** ((1 - retrievability) * self.parameters[14]))
        )

    def _next_recall_stability(
        self,
        *,
        difficulty: float,
        stability: float,
        retrievability: float,
        rating: Rating,
    ) -> float:
        hard_penalty = self.parameters[15] if rating == Rating.Hard else 1
        easy_bonus = self.parameters[16] if rating == Rating.Easy else 1

        return stability * (
            1
            + (math.e ** (self.parameters[8]))
            * (11 - difficulty)
            * (stability ** -self.parameters[9])
            * ((math.e ** ((1 - retrievability) * self.parameters[10])) - 1)
            * hard_penalty
            * easy_bonus
        )


DEFAULT_SCHEDULER = Scheduler()


def review_card(
    state: SchedulingState,
    rating: Rating | int,
    now: datetime | None = None,
    scheduler: Scheduler | None = None,
) -> tuple[SchedulingState, ReviewLogEntry]:
    """
    Reviews a card with the given Scheduler, or with the default one.

    See Scheduler.review_card.
    """

    if scheduler is None:
        scheduler = DEFAULT_SCHEDULER

    return scheduler.review_card(state=state, rating=rating, review_datetime=now)


__all__ = ["Scheduler", "DEFAULT_SCHEDULER", "review_card"]
