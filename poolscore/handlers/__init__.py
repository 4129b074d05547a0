from .answers import AnswersHandler
from .pipeline import BetLockRegistry, ScoringPipeline
from .solutions import SolutionsHandler, parse_result_type
from .tally import TallyHandler, assign_seeds, format_insertion

__all__ = [
    "AnswersHandler",
    "BetLockRegistry",
    "ScoringPipeline",
    "SolutionsHandler",
    "parse_result_type",
    "TallyHandler",
    "assign_seeds",
    "format_insertion",
]
