"""
Cube configuration for session cubes.

A session cube is laid out on three axes:
- category: fixed, externally ordered content types (first axis)
- entity: user ids in natural order, wrapped into rows of one page (second axis)
- page: fixed-size buckets of consecutive entities (third axis)

Cells aggregate the configured measures over every record sharing a
(category, entity) pair.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Tuple
from enum import Enum


DEFAULT_CATEGORIES = ("music", "news", "search", "podcast", "video")
DEFAULT_PAGE_SIZE = 8


class AggregateFunction(Enum):
    """Supported aggregate functions for measures."""
    SUM = "SUM"
    COUNT = "COUNT"


@dataclass
class Measure:
    """
    A numerical measure aggregated into every cell.

    Attributes:
        name: Metric name in the cell's metrics mapping (e.g., 'binge_count')
        column: Record field the measure reads
        default_agg: Aggregation function
        match: For COUNT measures, the text value a record's field must equal
            to be counted (e.g., '1' or 'yes'). None counts every record.
    """
    name: str
    column: str
    default_agg: AggregateFunction = AggregateFunction.SUM
    match: Optional[str] = None

    def __hash__(self):
        return hash(self.name)


@dataclass
class CubeConfig:
    """
    Everything the parser and builder need to know about a dataset.

    Attributes:
        categories: Category labels in axis order
        page_size: Entities per page (rows per slice)
        entity_field: Record field holding the entity id
        category_field: Record field holding the category
        duration_field: Primary duration field, always coerced to a number
        text_fields: Fields kept as text even when numeric-looking
        primary_metric: Measure used for normalization
        preferred_category: Category the navigation cursor lands on when the
            target entity has a cell in it
        measures: Measures aggregated into every cell
    """
    categories: Tuple[str, ...] = DEFAULT_CATEGORIES
    page_size: int = DEFAULT_PAGE_SIZE
    entity_field: str = "user_id"
    category_field: str = "content_type"
    duration_field: str = "session_minutes"
    text_fields: Tuple[str, ...] = ("user_id", "hour")
    primary_metric: str = "session_minutes"
    preferred_category: Optional[str] = "video"
    measures: List[Measure] = field(default_factory=lambda: default_measures())

    def __post_init__(self):
        self.categories = tuple(self.categories)
        self.text_fields = tuple(self.text_fields)
        if not self.categories:
            raise ValueError("Category order must not be empty")
        if len(set(self.categories)) != len(self.categories):
            raise ValueError(f"Duplicate categories in {list(self.categories)}")
        if isinstance(self.page_size, bool) or int(self.page_size) != self.page_size:
            raise ValueError(f"Page size must be a whole number, got {self.page_size!r}")
        if self.page_size < 1:
            raise ValueError(f"Page size must be at least 1, got {self.page_size}")
        self.page_size = int(self.page_size)
        if self.get_measure(self.primary_metric) is None:
            raise ValueError(
                f"Primary metric '{self.primary_metric}' is not one of {self.measure_names}"
            )

    def get_measure(self, name: str) -> Optional[Measure]:
        """Get measure by name."""
        for m in self.measures:
            if m.name == name:
                return m
        return None

    @property
    def measure_names(self) -> List[str]:
        """Return list of measure names."""
        return [m.name for m in self.measures]

    def category_index(self, category: str) -> Optional[int]:
        """Position of a category on the first axis, None if not configured."""
        try:
            return self.categories.index(category)
        except ValueError:
            return None

    def replace(self, **changes) -> "CubeConfig":
        """Copy of this config with some fields changed (validated again)."""
        changes.setdefault("measures", list(self.measures))
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "categories": list(self.categories),
            "page_size": self.page_size,
            "entity_field": self.entity_field,
            "category_field": self.category_field,
            "duration_field": self.duration_field,
            "text_fields": list(self.text_fields),
            "primary_metric": self.primary_metric,
            "preferred_category": self.preferred_category,
            "measures": [
                {"name": m.name, "column": m.column,
                 "default_agg": m.default_agg.value, "match": m.match}
                for m in self.measures
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CubeConfig":
        """Deserialize config from dictionary."""
        kwargs = {k: v for k, v in data.items() if k != "measures"}
        if "measures" in data:
            kwargs["measures"] = [
                Measure(m["name"], m["column"],
                        AggregateFunction(m.get("default_agg", "SUM")),
                        m.get("match"))
                for m in data["measures"]
            ]
        return cls(**kwargs)


def default_measures() -> List[Measure]:
    """Session duration plus the three flag counters."""
    return [
        Measure("session_minutes", "session_minutes", AggregateFunction.SUM),
        Measure("completed_count", "completed", AggregateFunction.COUNT, match="1"),
        Measure("binge_count", "is_binge", AggregateFunction.COUNT, match="1"),
        Measure("is_recommended_count", "recommended", AggregateFunction.COUNT, match="yes"),
    ]


def create_session_cube_config(categories=None, page_size: Optional[int] = None) -> CubeConfig:
    """
    Default session cube: five content types, eight users per page.

    Args:
        categories: Optional category order overriding the default
        page_size: Optional page size overriding the default
    """
    return CubeConfig(
        categories=tuple(categories) if categories is not None else DEFAULT_CATEGORIES,
        page_size=page_size if page_size is not None else DEFAULT_PAGE_SIZE,
    )
