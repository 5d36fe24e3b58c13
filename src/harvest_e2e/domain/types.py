"""Domain types — NewType aliases for type-safe identifiers."""

from typing import NewType

JobId = NewType("JobId", str)
