"""
studyflash
-------

The spaced-repetition engine of StudyFlash. It implements the FSRS scheduler algorithm and the
queries and deck analytics built on top of it.
"""

from studyflash.scheduler import Scheduler, review_card
from studyflash.state import State
from studyflash.card import SchedulingState, create_initial_state
from studyflash.rating import Rating, InvalidRatingError
from studyflash.review_log import ReviewLogEntry
from studyflash.queries import due_cards, cards_by_state

__all__ = [
    "Scheduler",
    "SchedulingState",
    "Rating",
    "ReviewLogEntry",
    "State",
    "InvalidRatingError",
    "review_card",
    "create_initial_state",
    "due_cards",
    "cards_by_state",
]
