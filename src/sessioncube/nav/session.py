"""
Explorer session: the single owner of filter text and selection.

The cube is built once per dataset and never modified. Everything the UI
shows (visible cells, stats, selection) is derived from it on demand and
memoized on the last input, so unrelated re-renders cost nothing.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any, Tuple, Union
import uuid

from sessioncube.cube.schema import CubeConfig
from sessioncube.cube.records import parse_records
from sessioncube.cube.engine import Cube, Cell, CubeBuilder
from sessioncube.cube.view import EntityFilter, filter_cube
from sessioncube.cube.stats import GlobalStats, compute_stats
from sessioncube.nav.cursor import CursorState, advance, select

logger = logging.getLogger(__name__)


@dataclass
class ExplorerState:
    """
    One entry of the explorer history.

    Attributes:
        action: What produced this state ('load', 'filter', 'select', 'next', ...)
        filter_text: Filter text in effect
        selected_id: Id of the selected cell, None if nothing is selected
        visible_cells: Number of cells in the view
        timestamp: When this state was recorded
    """
    action: str
    filter_text: str
    selected_id: Optional[str]
    visible_cells: int
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "filter_text": self.filter_text,
            "selected_id": self.selected_id,
            "visible_cells": self.visible_cells,
            "timestamp": self.timestamp.isoformat(),
        }


class CubeExplorer:
    """
    Drives filtering, stats and navigation over one cube.

    Tracks the sequence of states, enabling:
    - memoized views and stats keyed on the filter text
    - previous/next user navigation within the view
    - history export for debugging a session
    """

    def __init__(self, cube: Cube, config: Optional[CubeConfig] = None):
        self.config = config or CubeConfig()
        self.session_id = str(uuid.uuid4())[:8]
        self.history: List[ExplorerState] = []
        self._filter = EntityFilter()
        self._cursor = CursorState()
        self._view_cache: Optional[Tuple[Cube, str, Cube]] = None
        self._stats_cache: Optional[Tuple[Cube, str, GlobalStats]] = None
        self._cube = cube
        self._record("load")

    @classmethod
    def from_text(cls, raw_text: str, config: Optional[CubeConfig] = None) -> "CubeExplorer":
        """Parse and build a cube, then explore it."""
        config = config or CubeConfig()
        cube = CubeBuilder(config).build(parse_records(raw_text, config))
        return cls(cube, config)

    @classmethod
    def from_file(cls, filepath: Union[str, Path],
                  config: Optional[CubeConfig] = None) -> "CubeExplorer":
        return cls.from_text(Path(filepath).read_text(encoding="utf-8"), config)

    def load(self, raw_text: str):
        """Replace the dataset. Filter text is kept; the selection is dropped."""
        self._cube = CubeBuilder(self.config).build(parse_records(raw_text, self.config))
        self._cursor = CursorState()
        self.clear_cache()
        self._record("load")

    # Derived views

    @property
    def cube(self) -> Cube:
        """The base cube; only load() replaces it."""
        return self._cube

    @property
    def filter_text(self) -> str:
        return self._filter.text

    def _is_current(self, cached: Optional[Tuple[Any, Any, Any]]) -> bool:
        return (cached is not None
                and cached[0] is self._cube
                and cached[1] == self._filter.needle)

    @property
    def visible(self) -> Cube:
        """The cube restricted by the current filter text."""
        if not self._is_current(self._view_cache):
            needle = self._filter.needle
            self._view_cache = (self._cube, needle, filter_cube(self._cube, needle))
        return self._view_cache[2]

    @property
    def stats(self) -> GlobalStats:
        """Rollup statistics of the visible cells."""
        if not self._is_current(self._stats_cache):
            self._stats_cache = (self._cube, self._filter.needle, compute_stats(
                self.visible.cells,
                duration_metric=self.config.primary_metric,
            ))
        return self._stats_cache[2]

    def clear_cache(self):
        """Forget memoized views and stats."""
        self._view_cache = None
        self._stats_cache = None

    # Filter and selection

    def set_filter(self, text: str) -> Cube:
        """Change the filter text and return the new view."""
        self._filter = EntityFilter(text or "")
        self._record("filter")
        return self.visible

    @property
    def selected(self) -> Optional[Cell]:
        return self._cursor.selected

    def select(self, cell_id: Optional[str]) -> Optional[Cell]:
        """
        Select a cell of the base cube by id (None clears the selection).

        Unknown ids leave the selection unchanged.
        """
        if cell_id is None:
            return self.clear_selection()
        cell = self.cube.get_cell(cell_id)
        if cell is None:
            logger.debug(f"No cell '{cell_id}' to select")
            return self.selected
        self._cursor = select(self._cursor, cell)
        self._record("select")
        return cell

    def clear_selection(self) -> None:
        self._cursor = CursorState()
        self._record("clear")
        return None

    def advance(self, direction: int) -> Optional[Cell]:
        """Move to the previous (negative) or next user of the view."""
        self._cursor = advance(
            self._cursor, self.visible.cells, direction,
            preferred_category=self.config.preferred_category,
        )
        self._record("previous" if direction < 0 else "next")
        return self.selected

    def next_user(self) -> Optional[Cell]:
        return self.advance(1)

    def previous_user(self) -> Optional[Cell]:
        return self.advance(-1)

    # History

    def _record(self, action: str):
        self.history.append(ExplorerState(
            action=action,
            filter_text=self.filter_text,
            selected_id=self.selected.id if self.selected else None,
            visible_cells=len(self.visible.cells),
        ))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the explorer state and history."""
        return {
            "session_id": self.session_id,
            "filter": self._filter.to_dict(),
            "selected_id": self.selected.id if self.selected else None,
            "stats": self.stats.to_dict(),
            "history": [s.to_dict() for s in self.history],
        }
