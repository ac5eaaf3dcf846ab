"""
studyflash.rating
---------

This module defines the Rating enum and the error raised for malformed ratings.

Classes:
    Rating: Enum representing the four possible ratings when reviewing a card.
    InvalidRatingError: Raised when a review is given a rating outside of 1-4.
"""

from __future__ import annotations
from enum import IntEnum
from typing import Any


class Rating(IntEnum):
    """
    Enum representing the four possible ratings when reviewing a card.
    """

    Again = 1
    Hard = 2
    Good = 3
    Easy = 4


class InvalidRatingError(ValueError):
    """
    Raised when a card is reviewed with a rating that is not one of 1 (Again), 2 (Hard), 3 (Good) or 4 (Easy).

    Attributes:
        rating: The offending value.
    """

    def __init__(self, rating: Any) -> None:
        self.rating = rating
        super().__init__(
            f"Invalid rating {rating!r}: expected 1 (Again), 2 (Hard), 3 (Good) or 4 (Easy)"
        )


def validate_rating(rating: Any) -> Rating:
    """
    Converts a plain int or Rating into a Rating.

    Args:
        rating: The value to validate.

    Returns:
        Rating: The matching Rating member.

    Raises:
        InvalidRatingError: If the value is not an int in the range 1-4.
    """

    # bool is an int subclass, True would otherwise pass as Again
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)

    try:
        return Rating(rating)
    except ValueError:
        raise InvalidRatingError(rating) from None


__all__ = ["Rating", "InvalidRatingError", "validate_rating"]
