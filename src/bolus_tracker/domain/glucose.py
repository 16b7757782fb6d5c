"""Glucose monitor readings."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class GlucoseReading:
    """Latest sensor glucose value."""

    mgdl: int
    trend: str | None
    read_at: datetime
