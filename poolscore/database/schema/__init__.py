from .base import Base, metadata
from .reference import League, ListItem, ResultTypeRef, Season, User
from .bets import Answer, Bet, Question, Solution
from .standings import BetTally, Classification

__all__ = [
    "Base",
    "metadata",
    "Season",
    "League",
    "User",
    "ResultTypeRef",
    "ListItem",
    "Bet",
    "Question",
    "Solution",
    "Answer",
    "BetTally",
    "Classification",
]
