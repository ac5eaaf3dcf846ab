"""
studyflash.card
---------

This module defines the SchedulingState class, the per-card record the scheduler consumes and produces.

Classes:
    SchedulingState: The spaced-repetition memory state of a single flashcard.

Functions:
    create_initial_state: Builds the record of a card that has never been reviewed.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import TypedDict
from typing_extensions import Self
from studyflash.state import State

DEFAULT_DIFFICULTY = 5.0


class SchedulingStateDict(TypedDict):
    """
    JSON-serializable dictionary representation of a SchedulingState object.
    """

    card_id: str
    stability: float
    difficulty: float
    elapsed_days: float
    scheduled_days: int
    reps: int
    lapses: int
    state: int
    last_review: str | None
    due: str | None


@dataclass(frozen=True)
class SchedulingState:
    """
    Represents the scheduling record of a flashcard.

    Instances are never changed in place: reviewing a card produces a new SchedulingState.

    Attributes:
        card_id: The opaque id of the card.
        stability: Modeled memory half-life of the card in days.
        difficulty: Intrinsic hardness of the card, between 1 (easiest) and 10 (hardest).
        elapsed_days: Days between the two most recent reviews.
        scheduled_days: The most recently computed interval in days.
        reps: Number of times the card has been reviewed.
        lapses: Number of times the card has been rated Again.
        state: The card's current learning state.
        last_review: The date and time of the card's last review or None if it was never reviewed.
        due: The date and time when the card is due next or None if it is always due.
    """

    card_id: str
    stability: float = 0.0
    difficulty: float = DEFAULT_DIFFICULTY
    elapsed_days: float = 0.0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: State = State.New
    last_review: datetime | None = None
    due: datetime | None = None

    def to_dict(self) -> SchedulingStateDict:
        """
        Returns a JSON-serializable dictionary representation of the SchedulingState object.

        This method is specifically useful for storing SchedulingState objects in a database.

        Returns:
            A dictionary representation of the SchedulingState object.
        """

        return {
            "card_id": self.card_id,
            "stability": self.stability,
            "difficulty": self.difficulty,
            "elapsed_days": self.elapsed_days,
            "scheduled_days": self.scheduled_days,
            "reps": self.reps,
            "lapses": self.lapses,
            "state": self.state.value,
            "last_review": self.last_review.isoformat() if self.last_review else None,
            "due": self.due.isoformat() if self.due else None,
        }

    @classmethod
    def from_dict(cls, source_dict: SchedulingStateDict) -> Self:
        """
        Creates a SchedulingState object from an existing dictionary.

        The state may be given either as its integer value or as its lowercase name ("new", "review", ...).

        Args:
            source_dict: A dictionary representing an existing SchedulingState object.

        Returns:
            A SchedulingState object created from the provided dictionary.
        """

        return cls(
            card_id=str(source_dict["card_id"]),
            stability=float(source_dict["stability"]),
            difficulty=float(source_dict["difficulty"]),
            elapsed_days=float(source_dict["elapsed_days"]),
            scheduled_days=int(source_dict["scheduled_days"]),
            reps=int(source_dict["reps"]),
            lapses=int(source_dict["lapses"]),
            state=_parse_state(source_dict["state"]),
            last_review=(
                datetime.fromisoformat(source_dict["last_review"])
                if source_dict["last_review"]
                else None
            ),
            due=(
                datetime.fromisoformat(source_dict["due"])
                if source_dict["due"]
                else None
            ),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the SchedulingState object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the SchedulingState object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a SchedulingState object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing SchedulingState object.

        Returns:
            Self: A SchedulingState object created from the JSON string.
        """

        source_dict: SchedulingStateDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


def _parse_state(value: int | str) -> State:
    if isinstance(value, str) and not value.isdigit():
        return State[value.capitalize()]
    return State(int(value))


def create_initial_state(card_id: str, now: datetime | None = None) -> SchedulingState:
    """
    Creates the scheduling record of a card that has never been reviewed.

    Args:
        card_id: The id of the card.
        now: The creation time, which is also when the card first becomes due. Defaults to the current UTC time.

    Returns:
        SchedulingState: A New-state record due immediately.
    """

    if now is None:
        now = datetime.now(timezone.utc)

    return SchedulingState(card_id=card_id, due=now)


__all__ = ["SchedulingState", "create_initial_state"]
