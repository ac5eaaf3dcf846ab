"""
studyflash.metrics
---------

Deck analytics computed from scheduling records.

All functions are pure and return 0 for empty input.
"""

from __future__ import annotations
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone, timedelta
from statistics import mean, median
from studyflash.card import SchedulingState
from studyflash.queries import cards_by_state
from studyflash.scheduler import DEFAULT_SCHEDULER, Scheduler
from studyflash.state import State

EASY_DIFFICULTY_MAX = 3.5
MEDIUM_DIFFICULTY_MAX = 6.5
AT_RISK_WINDOW = timedelta(days=3)
MASTERY_STABILITY = 40.0
MASTERY_RETRIEVABILITY = 0.9


@dataclass(frozen=True)
class StabilityStats:
    """
    Spread of stability across a deck, in days. All zero for an empty deck.
    """

    min: float
    max: float
    average: float
    median: float


@dataclass(frozen=True)
class RecallForecast:
    """
    Expected share of the deck recalled at several horizons.
    """

    today: float
    tomorrow: float
    next_week: float
    next_month: float
    overall: float


@dataclass(frozen=True)
class DailyRetention:
    """
    Forecast retention for one day, `day` days after the forecast start.
    """

    day: int
    retention: float
    date: datetime


@dataclass(frozen=True)
class StreakMetrics:
    """
    Consecutive-day study streaks, derived from each card's last review date.

    Attributes:
        current_streak: Consecutive study days ending today or yesterday, else 0.
        longest_streak: Longest run of consecutive study days.
        total_days_studied: Number of distinct study days.
        last_study_date: The most recent study day, or None without reviews.
    """

    current_streak: int
    longest_streak: int
    total_days_studied: int
    last_study_date: date | None


@dataclass(frozen=True)
class SessionMetrics:
    """
    Summary of a single study session.

    Attributes:
        cards_studied: Number of cards rated during the session.
        average_rating: Mean rating given.
        time_spent: Session length in minutes.
        mastery_gain: Change in average stability over the session.
        difficult_cards: Number of cards rated Again.
    """

    cards_studied: int
    average_rating: float
    time_spent: float
    mastery_gain: float
    difficult_cards: int


def _now(now: datetime | None) -> datetime:
    return datetime.now(timezone.utc) if now is None else now


def retention_rate(
    cards: Iterable[SchedulingState],
    now: datetime | None = None,
    scheduler: Scheduler | None = None,
) -> float:
    """
    Mean retrievability of the cards at the given time.
    """

    if scheduler is None:
        scheduler = DEFAULT_SCHEDULER
    now = _now(now)

    retrievabilities = [
        scheduler.get_card_retrievability(card, current_datetime=now) for card in cards
    ]
    if len(retrievabilities) == 0:
        return 0.0

    return mean(retrievabilities)


def retention_rate_by_state(
    cards: Iterable[SchedulingState],
    now: datetime | None = None,
    scheduler: Scheduler | None = None,
) -> dict[State, float]:
    return {
        state: retention_rate(bucket, now=now, scheduler=scheduler)
        for state, bucket in cards_by_state(cards).items()
    }


def average_stability(cards: Iterable[SchedulingState]) -> float:
    stabilities = [card.stability for card in cards]
    return mean(stabilities) if stabilities else 0.0


def average_difficulty(cards: Iterable[SchedulingState]) -> float:
    difficulties = [card.difficulty for card in cards]
    return mean(difficulties) if difficulties else 0.0


def stability_stats(cards: Iterable[SchedulingState]) -> StabilityStats:
    stabilities = [card.stability for card in cards]
    if len(stabilities) == 0:
        return StabilityStats(min=0.0, max=0.0, average=0.0, median=0.0)

    return StabilityStats(
        min=min(stabilities),
        max=max(stabilities),
        average=mean(stabilities),
        median=median(stabilities),
    )


def recall_forecast(
    cards: Iterable[SchedulingState],
    now: datetime | None = None,
    scheduler: Scheduler | None = None,
) -> RecallForecast:
    """
    Forecasts the deck's retention today, tomorrow, in a week and in a month.

    Args:
        cards: The scheduling records of the deck.
        now: The current date and time.
        scheduler: The scheduler whose forgetting curve is used.

    Returns:
        RecallForecast: The forecast retention at each horizon. `overall` is the
            retention at `now`.
    """

    cards = list(cards)
    now = _now(now)

    def _at(days: int) -> float:
        return retention_rate(cards, now=now + timedelta(days=days), scheduler=scheduler)

    today = _at(0)

    return RecallForecast(
        today=today,
        tomorrow=_at(1),
        next_week=_at(7),
        next_month=_at(30),
        overall=today,
    )


def forecast_7d(
    cards: Iterable[SchedulingState],
    now: datetime | None = None,
    scheduler: Scheduler | None = None,
) -> list[DailyRetention]:
    cards = list(cards)
    now = _now(now)

    forecast = []
    for day in range(7):
        forecast_datetime = now + timedelta(days=day)
        forecast.append(
            DailyRetention(
                day=day,
                retention=retention_rate(
                    cards, now=forecast_datetime, scheduler=scheduler
                ),
                date=forecast_datetime,
            )
        )

    return forecast


def cards_by_difficulty_range(
    cards: Iterable[SchedulingState],
) -> dict[str, list[SchedulingState]]:
    ranges: dict[str, list[SchedulingState]] = {"easy": [], "medium": [], "hard": []}
    for card in cards:
        if card.difficulty <= EASY_DIFFICULTY_MAX:
            ranges["easy"].append(card)
        elif card.difficulty <= MEDIUM_DIFFICULTY_MAX:
            ranges["medium"].append(card)
        else:
            ranges["hard"].append(card)

    return ranges


def success_rate(cards: Iterable[SchedulingState]) -> float:
    """
    Share of reviews that were not lapses, over cards reviewed at least once.
    """

    reviewed_cards = [card for card in cards if card.reps > 0]

    total_reps = sum(card.reps for card in reviewed_cards)
    if total_reps == 0:
        return 0.0

    total_lapses = sum(card.lapses for card in reviewed_cards)

    return (total_reps - total_lapses) / total_reps


def lapse_rate(cards: Iterable[SchedulingState]) -> float:
    return 1 - success_rate(cards)


def cards_at_risk(
    cards: Iterable[SchedulingState],
    threshold: float = 0.7,
    now: datetime | None = None,
    scheduler: Scheduler | None = None,
) -> list[SchedulingState]:
    """
    Cards likely to be forgotten: retrievability below the threshold and due within three days.

    Args:
        cards: The scheduling records to check.
        threshold: Retrievability under which a card counts as at risk.
        now: The current date and time.
        scheduler: The scheduler whose forgetting curve is used.

    Returns:
        list[SchedulingState]: The cards at risk, in their original order.
    """

    if scheduler is None:
        scheduler = DEFAULT_SCHEDULER
    now = _now(now)

    at_risk = []
    for card in cards:
        if card.due is None or card.due - now >= AT_RISK_WINDOW:
            continue

        if scheduler.get_card_retrievability(card, current_datetime=now) < threshold:
            at_risk.append(card)

    return at_risk


def mastered_cards(
    cards: Iterable[SchedulingState],
    now: datetime | None = None,
    scheduler: Scheduler | None = None,
) -> list[SchedulingState]:
    """
    Review-state cards with stability of at least 40 days and retrievability of at least 0.9.
    """

    if scheduler is None:
        scheduler = DEFAULT_SCHEDULER
    now = _now(now)

    return [
        card
        for card in cards
        if card.state == State.Review
        and card.stability >= MASTERY_STABILITY
        and scheduler.get_card_retrievability(card, current_datetime=now)
        >= MASTERY_RETRIEVABILITY
    ]


def needs_review_cards(
    cards: Iterable[SchedulingState], now: datetime | None = None
) -> list[SchedulingState]:
    """
    Cards that are due or relearning. A card without a due date only counts while relearning.
    """

    now = _now(now)

    return [
        card
        for card in cards
        if card.state == State.Relearning or (card.due is not None and card.due <= now)
    ]


def streak_metrics(
    cards: Iterable[SchedulingState], now: datetime | None = None
) -> StreakMetrics:
    """
    Computes study streaks from the calendar dates of the cards' last reviews.

    Args:
        cards: The scheduling records of the deck.
        now: The current date and time, which decides whether the latest streak is still running.

    Returns:
        StreakMetrics: The current and longest streaks.
    """

    study_days = sorted(
        {card.last_review.date() for card in cards if card.last_review is not None}
    )
    if len(study_days) == 0:
        return StreakMetrics(
            current_streak=0,
            longest_streak=0,
            total_days_studied=0,
            last_study_date=None,
        )

    today = _now(now).date()
    one_day = timedelta(days=1)

    current_streak = 0
    if (today - study_days[-1]).days <= 1:
        current_streak = 1
        for index in range(len(study_days) - 1, 0, -1):
            if study_days[index] - study_days[index - 1] != one_day:
                break
            current_streak += 1

    longest_streak = 1
    run = 1
    for earlier, later in zip(study_days, study_days[1:]):
        run = run + 1 if later - earlier == one_day else 1
        longest_streak = max(longest_streak, run)

    return StreakMetrics(
        current_streak=current_streak,
        longest_streak=longest_streak,
        total_days_studied=len(study_days),
        last_study_date=study_days[-1],
    )


def mastery_score(card: SchedulingState) -> float:
    """
    Scores how well a card is known, from 0 to 100.

    Stability carries the score, scaled down for hard cards and for lapses.
    Review-state cards get a 10% bonus and new cards are halved.
    """

    score = min(100.0, card.stability)

    score *= 1 - (card.difficulty - 1) / 18

    if card.reps > 0:
        score *= (card.reps - card.lapses) / card.reps

    if card.state == State.Review:
        score *= 1.1
    elif card.state == State.New:
        score *= 0.5

    return max(0.0, min(100.0, score))


def session_metrics(
    before: Iterable[SchedulingState],
    after: Iterable[SchedulingState],
    ratings: Mapping[str, int],
    duration_minutes: float,
) -> SessionMetrics:
    """
    Summarizes a study session.

    Args:
        before: The scheduling records before the session.
        after: The scheduling records after the session.
        ratings: The rating given to each studied card, keyed by card id.
        duration_minutes: How long the session lasted.

    Returns:
        SessionMetrics: The session summary.
    """

    given_ratings = [int(rating) for rating in ratings.values()]

    return SessionMetrics(
        cards_studied=len(given_ratings),
        average_rating=mean(given_ratings) if given_ratings else 0.0,
        time_spent=duration_minutes,
        mastery_gain=average_stability(after) - average_stability(before),
        difficult_cards=sum(1 for rating in given_ratings if rating == 1),
    )


__all__ = [
    "StabilityStats",
    "RecallForecast",
    "DailyRetention",
    "StreakMetrics",
    "SessionMetrics",
    "retention_rate",
    "retention_rate_by_state",
    "average_stability",
    "average_difficulty",
    "stability_stats",
    "recall_forecast",
    "forecast_7d",
    "cards_by_difficulty_range",
    "success_rate",
    "lapse_rate",
    "cards_at_risk",
    "mastered_cards",
    "needs_review_cards",
    "streak_metrics",
    "mastery_score",
    "session_metrics",
]
