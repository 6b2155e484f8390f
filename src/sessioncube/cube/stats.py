"""
Rollup statistics over any set of cells (the whole cube or a view).
"""

from dataclasses import dataclass
from typing import Dict, Any, Iterable

import numpy as np

from sessioncube.cube.engine import Cell

MINUTES_PER_HOUR = 60


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, not 2)."""
    return int(np.floor(value + 0.5))


@dataclass(frozen=True)
class GlobalStats:
    """
    Aggregate statistics of a visible cell set.

    Attributes:
        user_count: Distinct entity ids among the cells
        total_hours: Sum of session minutes in hours, rounded
        avg_min: Session minutes per distinct entity, rounded (0 without entities)
        total_binge: Sum of binge counts
    """
    user_count: int = 0
    total_hours: int = 0
    avg_min: int = 0
    total_binge: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userCount": self.user_count,
            "totalHours": self.total_hours,
            "avgMin": self.avg_min,
            "totalBinge": self.total_binge,
        }


def compute_stats(cells: Iterable[Cell],
                  duration_metric: str = "session_minutes",
                  binge_metric: str = "binge_count") -> GlobalStats:
    """
    Compute rollup statistics over cells.

    Defined for the empty list, which gives all zeros.
    """
    cells = list(cells)
    if not cells:
        return GlobalStats()

    minutes = np.array([c.metric(duration_metric) for c in cells], dtype=float)
    binges = np.array([c.metric(binge_metric) for c in cells], dtype=float)
    users = {c.entity_id for c in cells}

    total_minutes = float(minutes.sum())
    return GlobalStats(
        user_count=len(users),
        total_hours=round_half_up(total_minutes / MINUTES_PER_HOUR),
        avg_min=round_half_up(total_minutes / len(users)),
        total_binge=int(binges.sum()),
    )
