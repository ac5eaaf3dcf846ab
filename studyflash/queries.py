"""
studyflash.queries
---------

Stateless queries over collections of scheduling records.

Functions:
    due_cards: Selects the cards that should be shown now.
    cards_by_state: Groups cards by their learning state.
"""

from __future__ import annotations
from collections.abc import Iterable
from datetime import datetime, timezone
from studyflash.card import SchedulingState, create_initial_state
from studyflash.state import State


def due_cards(
    cards: Iterable[SchedulingState], now: datetime | None = None
) -> list[SchedulingState]:
    """
    Returns the cards that are due at the given time, in their original order.

    Cards without a due date are always due.

    Args:
        cards: The scheduling records to filter.
        now: The current date and time. Defaults to the current UTC time.

    Returns:
        list[SchedulingState]: The due cards.
    """

    if now is None:
        now = datetime.now(timezone.utc)

    return [card for card in cards if card.due is None or card.due <= now]


def cards_by_state(
    cards: Iterable[SchedulingState],
) -> dict[State, list[SchedulingState]]:
    """
    Partitions the cards into one bucket per learning state.

    Every State is present as a key, even when its bucket is empty.

    Args:
        cards: The scheduling records to partition.

    Returns:
        dict[State, list[SchedulingState]]: The cards of each state, in their original order.
    """

    buckets: dict[State, list[SchedulingState]] = {state: [] for state in State}
    for card in cards:
        buckets[card.state].append(card)

    return buckets


__all__ = ["due_cards", "cards_by_state", "create_initial_state"]
