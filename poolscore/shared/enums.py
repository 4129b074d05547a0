from __future__ import annotations

from enum import Enum


class ResultType(str, Enum):
    LIST = "list"
    TIME = "time"
    DECIMAL = "decimal"
    MCM = "mcm"
    OPEN = "open"
    FOOTBALL = "football"
    HOCKEY = "hockey"

    @classmethod
    def from_label(cls, label: str | None) -> "ResultType":
        """Map a stored resulttype label; unknown labels score as open."""
        value = (label or "").strip().lower()
        if value == "number":
            return cls.DECIMAL
        if value == "score":
            return cls.FOOTBALL
        try:
            return cls(value)
        except ValueError:
            return cls.OPEN

    @property
    def supports_margin(self) -> bool:
        return self in (ResultType.TIME, ResultType.DECIMAL, ResultType.MCM)


class DrawTag(str, Enum):
    # t = home, u = away; wnv = wins after extra time, wns = wins after shootout
    HOME_EXTRA_TIME = "twnv"
    AWAY_EXTRA_TIME = "uwnv"
    HOME_SHOOTOUT = "twns"
    AWAY_SHOOTOUT = "uwns"


class Dataset(str, Enum):
    REAL = "real"
    VIRTUAL = "virtual"

    @classmethod
    def from_flag(cls, flag: object) -> "Dataset":
        """Read the tri-state column: NULL, '' and '0' are real, '1' is virtual."""
        if flag is None:
            return cls.REAL
        if isinstance(flag, bool):
            return cls.VIRTUAL if flag else cls.REAL
        value = str(flag).strip().lower()
        if value in ("1", "virtual", "true"):
            return cls.VIRTUAL
        return cls.REAL

    @property
    def is_virtual(self) -> bool:
        return self is Dataset.VIRTUAL

    @property
    def flag(self) -> str:
        return "1" if self is Dataset.VIRTUAL else "0"


__all__ = ["ResultType", "DrawTag", "Dataset"]
