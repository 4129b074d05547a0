from .settings import (
    DatabaseSettings,
    LoggingSettings,
    Settings,
    StandingsSettings,
    load_settings,
)
from .scoring_params import ScoringParams, get_scoring_params

__all__ = [
    "DatabaseSettings",
    "LoggingSettings",
    "Settings",
    "StandingsSettings",
    "load_settings",
    "ScoringParams",
    "get_scoring_params",
]
