"""
Persistence for pool scoring.

The scoring and standings code only talks to the store through ``DBM``
with ``text()`` statements; the ORM schema exists for migrations and for
seeding fixtures.
"""
from .init import initialize
from .dbm import DBM

__all__ = ["initialize", "DBM"]
