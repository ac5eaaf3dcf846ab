from studyflash.card import SchedulingState, create_initial_state
from studyflash.metrics import (
    StabilityStats,
    average_difficulty,
    average_stability,
    cards_at_risk,
    cards_by_difficulty_range,
    forecast_7d,
    lapse_rate,
    mastered_cards,
    mastery_score,
    needs_review_cards,
    recall_forecast,
    retention_rate,
    retention_rate_by_state,
    session_metrics,
    stability_stats,
    streak_metrics,
    success_rate,
)
from studyflash.rating import Rating
from studyflash.scheduler import Scheduler, review_card
from studyflash.state import State

from dataclasses import replace
from datetime import datetime, timedelta, timezone
import pytest

NOW = datetime(2022, 11, 29, 12, 30, 0, 0, timezone.utc)


def reviewed_card(card_id, stability, difficulty=5.0, days_ago=0.0, **kwargs):
    kwargs.setdefault("state", State.Review)
    kwargs.setdefault("reps", 1)
    return SchedulingState(
        card_id=card_id,
        stability=stability,
        difficulty=difficulty,
        last_review=NOW - timedelta(days=days_ago),
        due=NOW - timedelta(days=days_ago) + timedelta(days=round(stability)),
        **kwargs,
    )


class TestMetrics:
    def test_empty_deck(self):
        assert retention_rate([], NOW) == 0
        assert average_stability([]) == 0
        assert average_difficulty([]) == 0
        assert stability_stats([]) == StabilityStats(0.0, 0.0, 0.0, 0.0)
        assert success_rate([]) == 0
        assert cards_at_risk([], now=NOW) == []
        assert recall_forecast([], NOW).next_month == 0

    def test_retention_rate(self):
        fresh = reviewed_card("fresh", stability=9.0)
        # one stability-length ago: retrievability 0.9
        aged = reviewed_card("aged", stability=9.0, days_ago=9.0)

        assert retention_rate([fresh], NOW) == pytest.approx(1.0)
        assert retention_rate([aged], NOW) == pytest.approx(0.9)
        assert retention_rate([fresh, aged], NOW) == pytest.approx(0.95)

    def test_retention_rate_by_state(self):
        new = create_initial_state("new", now=NOW)
        aged = reviewed_card("aged", stability=9.0, days_ago=9.0)

        rates = retention_rate_by_state([new, aged], NOW)

        assert rates[State.New] == 1.0
        assert rates[State.Review] == pytest.approx(0.9)
        assert rates[State.Learning] == 0
        assert rates[State.Relearning] == 0

    def test_recall_forecast_decreases(self):
        cards = [
            reviewed_card("a", stability=2.0),
            reviewed_card("b", stability=20.0),
        ]

        forecast = recall_forecast(cards, NOW)

        assert forecast.today == pytest.approx(1.0)
        assert forecast.today > forecast.tomorrow > forecast.next_week > forecast.next_month

    def test_forecast_7d(self):
        cards = [reviewed_card("a", stability=5.0)]

        forecast = forecast_7d(cards, NOW, scheduler=Scheduler())

        assert [daily.day for daily in forecast] == list(range(7))
        assert forecast[3].date == NOW + timedelta(days=3)
        retentions = [daily.retention for daily in forecast]
        assert retentions == sorted(retentions, reverse=True)

    def test_stability_stats(self):
        cards = [reviewed_card(str(i), stability=s) for i, s in enumerate([4.0, 1.0, 3.0, 2.0])]

        stats = stability_stats(cards)

        assert stats == StabilityStats(min=1.0, max=4.0, average=2.5, median=2.5)
        assert average_stability(cards) == 2.5

    def test_cards_by_difficulty_range(self):
        easy = reviewed_card("easy", stability=1.0, difficulty=3.5)
        medium = reviewed_card("medium", stability=1.0, difficulty=6.5)
        hard = reviewed_card("hard", stability=1.0, difficulty=6.6)

        ranges = cards_by_difficulty_range([hard, medium, easy])

        assert ranges == {"easy": [easy], "medium": [medium], "hard": [hard]}
        assert average_difficulty([easy, medium]) == 5.0

    def test_success_and_lapse_rate(self):
        cards = [
            reviewed_card("a", stability=1.0, reps=4, lapses=1),
            reviewed_card("b", stability=1.0, reps=6, lapses=0),
            create_initial_state("never-reviewed", now=NOW),
        ]

        assert success_rate(cards) == pytest.approx(0.9)
        assert lapse_rate(cards) == pytest.approx(0.1)

    def test_cards_at_risk(self):
        forgotten = reviewed_card("forgotten", stability=2.0, days_ago=10.0)
        fresh = reviewed_card("fresh", stability=2.0)
        distant = SchedulingState(
            card_id="distant",
            stability=2.0,
            state=State.Review,
            last_review=NOW - timedelta(days=10),
            due=NOW + timedelta(days=10),
        )

        assert cards_at_risk([forgotten, fresh, distant], now=NOW) == [forgotten]
        assert cards_at_risk([forgotten], threshold=0.1, now=NOW) == []

    def test_mastery_score(self):
        new = create_initial_state("new", now=NOW)
        assert mastery_score(new) == 0

        solid = reviewed_card("solid", stability=50.0, difficulty=1.0, reps=5)
        assert mastery_score(solid) == pytest.approx(55.0)

        shaky = reviewed_card("shaky", stability=50.0, difficulty=1.0, reps=5, lapses=1)
        assert mastery_score(shaky) < mastery_score(solid)

        capped = reviewed_card("capped", stability=500.0, difficulty=1.0, reps=5)
        assert mastery_score(capped) == 100

    def test_session_metrics(self):
        before = [create_initial_state(card_id, now=NOW) for card_id in ("a", "b")]
        ratings = {"a": Rating.Good, "b": Rating.Again}
        after = [review_card(card, ratings[card.card_id], NOW)[0] for card in before]

        metrics = session_metrics(before, after, ratings, duration_minutes=12)

        assert metrics.cards_studied == 2
        assert metrics.average_rating == 2
        assert metrics.time_spent == 12
        assert metrics.difficult_cards == 1
        assert metrics.mastery_gain == pytest.approx(1.4)

    def test_recall_forecast_overall_is_retention_now(self):
        cards = [
            reviewed_card("a", stability=2.0, days_ago=3.0),
            reviewed_card("b", stability=20.0, days_ago=1.0),
        ]

        forecast = recall_forecast(cards, NOW)

        assert forecast.overall == forecast.today
        assert forecast.overall == pytest.approx(retention_rate(cards, NOW))
        assert recall_forecast([], NOW).overall == 0

    def test_default_scheduler_is_shared(self, monkeypatch):
        def fail_init(self, *args, **kwargs):
            raise AssertionError("metrics built a new Scheduler")

        monkeypatch.setattr(Scheduler, "__init__", fail_init)
        cards = [reviewed_card("aged", stability=45.0, days_ago=9.0)]

        assert retention_rate(cards, NOW) > 0.9
        assert cards_at_risk(cards, now=NOW) == []
        assert mastered_cards(cards, now=NOW) == cards

    def test_mastered_cards(self):
        fresh = reviewed_card("fresh", stability=45.0)
        settled = reviewed_card("settled", stability=40.0, days_ago=10.0)
        faded = reviewed_card("faded", stability=45.0, days_ago=100.0)
        young = reviewed_card("young", stability=30.0)
        relearning = reviewed_card("relearning", stability=50.0, state=State.Relearning)

        cards = [fresh, settled, faded, young, relearning]

        assert mastered_cards(cards, now=NOW) == [fresh, settled]
        assert mastered_cards([], now=NOW) == []

    def test_needs_review_cards(self):
        overdue = reviewed_card("overdue", stability=2.0, days_ago=5.0)
        due_now = replace(reviewed_card("due_now", stability=2.0), due=NOW)
        upcoming = reviewed_card("upcoming", stability=10.0)
        relearning = reviewed_card("relearning", stability=10.0, state=State.Relearning)
        undated_relearning = replace(relearning, card_id="undated_relearning", due=None)
        undated_review = replace(upcoming, card_id="undated_review", due=None)

        cards = [overdue, due_now, upcoming, relearning, undated_relearning, undated_review]

        assert needs_review_cards(cards, now=NOW) == [
            overdue,
            due_now,
            relearning,
            undated_relearning,
        ]

    def test_streak_metrics(self):
        days_ago = [0, 0.2, 1, 2, 5, 6, 7, 8]
        cards = [
            reviewed_card(f"card-{index}", stability=5.0, days_ago=days)
            for index, days in enumerate(days_ago)
        ]
        cards.append(create_initial_state("unreviewed", now=NOW))

        streaks = streak_metrics(cards, now=NOW)

        assert streaks.current_streak == 3
        assert streaks.longest_streak == 4
        assert streaks.total_days_studied == 7
        assert streaks.last_study_date == NOW.date()

    def test_streak_metrics_lapsed(self):
        cards = [
            reviewed_card("yesterday", stability=5.0, days_ago=1.0),
            reviewed_card("before", stability=5.0, days_ago=2.0),
        ]
        assert streak_metrics(cards, now=NOW).current_streak == 2

        stale = streak_metrics(cards, now=NOW + timedelta(days=3))
        assert stale.current_streak == 0
        assert stale.longest_streak == 2
        assert stale.last_study_date == (NOW - timedelta(days=1)).date()

    def test_streak_metrics_empty(self):
        streaks = streak_metrics([create_initial_state("new", now=NOW)], now=NOW)

        assert streaks.current_streak == 0
        assert streaks.longest_streak == 0
        assert streaks.total_days_studied == 0
        assert streaks.last_study_date is None
