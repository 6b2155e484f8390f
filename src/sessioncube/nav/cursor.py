"""
Navigation cursor: previous/next user over the visible cells.

Navigation walks the distinct entity ids of the current view in natural
order and wraps around at both ends. The cursor only ever replaces its
selection; it never touches the cells it points at.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Any, Iterable, List, Optional, Sequence

from sessioncube.cube.engine import Cell
from sessioncube.cube.ordering import sort_entities

logger = logging.getLogger(__name__)


class Direction(IntEnum):
    """Step direction for advance()."""
    NEXT = 1
    PREVIOUS = -1


@dataclass(frozen=True)
class CursorState:
    """Current selection (None when nothing is selected)."""
    selected: Optional[Cell] = None

    @property
    def entity_id(self) -> Optional[str]:
        return self.selected.entity_id if self.selected else None

    def to_dict(self) -> Dict[str, Any]:
        return {"selected_id": self.selected.id if self.selected else None}


def visible_entities(cells: Iterable[Cell]) -> List[str]:
    """Sorted distinct entity ids present in cells."""
    return sort_entities(c.entity_id for c in cells)


def target_cell(cells: Sequence[Cell], entity_id: str,
                preferred_category: Optional[str] = None) -> Optional[Cell]:
    """
    Cell to land on for an entity: its preferred-category cell when it has
    one, else its first cell in list order.
    """
    first = None
    for cell in cells:
        if cell.entity_id != entity_id:
            continue
        if preferred_category is not None and cell.category == preferred_category:
            return cell
        if first is None:
            first = cell
    return first


def select(state: CursorState, cell: Optional[Cell]) -> CursorState:
    """Explicit selection, e.g. from a click on a cell."""
    return CursorState(selected=cell)


def advance(state: CursorState, visible_cells: Sequence[Cell], direction: int,
            preferred_category: Optional[str] = "video") -> CursorState:
    """
    Move the selection to the previous or next visible entity.

    Args:
        state: Current cursor state
        visible_cells: Cells of the active view
        direction: Negative for previous, anything else for next
        preferred_category: Category to land on within the target entity

    Returns:
        The new state. With no visible entities the state is returned
        unchanged; a selection outside the view resets to the first entity.
    """
    entities = visible_entities(visible_cells)
    if not entities:
        return state

    step = Direction.PREVIOUS if direction < 0 else Direction.NEXT
    current = state.entity_id
    if current is None or current not in entities:
        index = 0
    else:
        index = (entities.index(current) + step) % len(entities)

    cell = target_cell(visible_cells, entities[index], preferred_category)
    if cell is None:
        return state
    logger.debug(f"Cursor {step.name.lower()}: {current} -> {cell.id}")
    return CursorState(selected=cell)


class NavigationCursor:
    """
    Stateful wrapper owning one CursorState.

    The selection is the only mutable field; all computation goes through
    advance() and select().
    """

    def __init__(self, preferred_category: Optional[str] = "video"):
        self.preferred_category = preferred_category
        self.state = CursorState()

    @property
    def selected(self) -> Optional[Cell]:
        return self.state.selected

    def advance(self, visible_cells: Sequence[Cell], direction: int) -> Optional[Cell]:
        self.state = advance(self.state, visible_cells, direction, self.preferred_category)
        return self.state.selected

    def select(self, cell: Optional[Cell]) -> Optional[Cell]:
        self.state = select(self.state, cell)
        return self.state.selected

    def clear(self):
        self.state = CursorState()
