"""Season and league standings: ranking, movement and enrichment."""

from .cache import LookupCache, lookup_key
from .lookups import LookupService, parse_expand, user_display_name
from .movement import apply_movement_against_baseline, movement_between
from .repository import PageOptions, StandingsRepository
from .service import StandingsService

__all__ = [
    "LookupCache",
    "lookup_key",
    "LookupService",
    "parse_expand",
    "user_display_name",
    "apply_movement_against_baseline",
    "movement_between",
    "PageOptions",
    "StandingsRepository",
    "StandingsService",
]
