"""
Cube views: read-only restrictions of a built cube.

A view keeps the axes, entity list and normalization bounds of its source
cube and only narrows the cell list. Nothing is re-aggregated, so a cell's
weight in a view is the weight it had in the full cube.
"""

from dataclasses import dataclass
from typing import Dict, Any, Iterable, List

from sessioncube.cube.engine import Cell, Cube


@dataclass(frozen=True)
class EntityFilter:
    """Case-insensitive substring predicate on entity ids."""
    text: str = ""

    @property
    def needle(self) -> str:
        return self.text.strip().lower()

    @property
    def is_empty(self) -> bool:
        return not self.needle

    def matches(self, entity_id: str) -> bool:
        return self.needle in entity_id.lower()

    def apply(self, cells: Iterable[Cell]) -> List[Cell]:
        """Cells whose entity id matches, in their original order."""
        return [c for c in cells if self.matches(c.entity_id)]

    def describe(self) -> str:
        if self.is_empty:
            return "All entities"
        return f"Entity id contains '{self.needle}'"

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntityFilter":
        return cls(**data)


def filter_cube(cube: Cube, predicate_text: str = "") -> Cube:
    """
    Restrict a cube to the cells whose entity id contains predicate_text.

    An empty (or whitespace-only) predicate keeps every cell. The result is a
    new Cube sharing the source's cell objects; the source is left untouched.
    """
    return cube.with_cells(EntityFilter(predicate_text or "").apply(cube.cells))
