"""
studyflash.review_log
---------

This module defines the ReviewLogEntry class.

Classes:
    ReviewLogEntry: Snapshot of a card's scheduling record taken right after a review.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import TypedDict
import json
from typing_extensions import Self
from studyflash.rating import Rating
from studyflash.state import State


class ReviewLogEntryDict(TypedDict):
    """
    JSON-serializable dictionary representation of a ReviewLogEntry object.
    """

    card_id: str
    rating: int
    state: int
    due: str
    stability: float
    difficulty: float
    elapsed_days: float
    scheduled_days: int
    review_datetime: str


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    Represents the audit log entry of a card that has been reviewed.

    Attributes:
        card_id: The id of the card being reviewed.
        rating: The rating given to the card during the review.
        state: The card's learning state after the review.
        due: The date and time when the card is due next.
        stability: The card's stability after the review.
        difficulty: The card's difficulty after the review.
        elapsed_days: Days since the card's previous review.
        scheduled_days: The interval the card was scheduled with.
        review_datetime: The date and time of the review.
    """

    card_id: str
    rating: Rating
    state: State
    due: datetime
    stability: float
    difficulty: float
    elapsed_days: float
    scheduled_days: int
    review_datetime: datetime

    def to_dict(
        self,
    ) -> ReviewLogEntryDict:
        """
        Returns a dictionary representation of the ReviewLogEntry object.

        Returns:
            A dictionary representation of the ReviewLogEntry object.
        """

        return {
            "card_id": self.card_id,
            "rating": int(self.rating),
            "state": int(self.state),
            "due": self.due.isoformat(),
            "stability": self.stability,
            "difficulty": self.difficulty,
            "elapsed_days": self.elapsed_days,
            "scheduled_days": self.scheduled_days,
            "review_datetime": self.review_datetime.isoformat(),
        }

    @classmethod
    def from_dict(
        cls,
        source_dict: ReviewLogEntryDict,
    ) -> Self:
        """
        Creates a ReviewLogEntry object from an existing dictionary.

        Args:
            source_dict: A dictionary representing an existing ReviewLogEntry object.

        Returns:
            A ReviewLogEntry object created from the provided dictionary.
        """

        return cls(
            card_id=str(source_dict["card_id"]),
            rating=Rating(int(source_dict["rating"])),
            state=State(int(source_dict["state"])),
            due=datetime.fromisoformat(source_dict["due"]),
            stability=float(source_dict["stability"]),
            difficulty=float(source_dict["difficulty"]),
            elapsed_days=float(source_dict["elapsed_days"]),
            scheduled_days=int(source_dict["scheduled_days"]),
            review_datetime=datetime.fromisoformat(source_dict["review_datetime"]),
        )

    def to_json(self, indent: int | str | None = None) -> str:
        """
        Returns a JSON-serialized string of the ReviewLogEntry object.

        Args:
            indent: Equivalent argument to the indent in json.dumps()

        Returns:
            str: A JSON-serialized string of the ReviewLogEntry object.
        """

        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, source_json: str) -> Self:
        """
        Creates a ReviewLogEntry object from a JSON-serialized string.

        Args:
            source_json: A JSON-serialized string of an existing ReviewLogEntry object.

        Returns:
            Self: A ReviewLogEntry object created from the JSON string.
        """

        source_dict: ReviewLogEntryDict = json.loads(source_json)
        return cls.from_dict(source_dict=source_dict)


__all__ = ["ReviewLogEntry"]
