"""
Cube Engine: aggregates parsed records into a sparse 3-axis cube.

This module handles all numerical computations of a build:
- grouping records by (category, entity) and aggregating the measures
- grid coordinates (categoryIndex, rowInPage, pageIndex)
- min-max normalization of the primary metric across every cell
- page and row labels
"""

import logging
import math
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, List, Optional, Any, Tuple, Mapping, Sequence, Iterable

import numpy as np
import pandas as pd

from sessioncube.cube.schema import CubeConfig, AggregateFunction, Measure
from sessioncube.cube.records import Record, parse_records, plain_number, value_text
from sessioncube.cube.ordering import sort_entities

logger = logging.getLogger(__name__)

DEGENERATE_WEIGHT = 0.5

_ENTITY = "_entity"
_CATEGORY = "_category"
_POSITION = "_position"


@dataclass(frozen=True)
class Cell:
    """
    One (category, entity) aggregation unit.

    Attributes:
        id: Composite key '{category}-{entity_id}'
        category: Category label (first axis)
        entity_id: Entity id (second axis)
        page_label: Name of the page the entity falls on ('Group 1', ...)
        grid: (categoryIndex, rowInPage, pageIndex)
        metrics: Aggregated measure values
        normalized: Primary metric rescaled to [0, 1] over the whole cube
        details: Contributing records in input order
    """
    id: str
    category: str
    entity_id: str
    page_label: str
    grid: Tuple[int, int, int]
    metrics: Mapping[str, float]
    normalized: float
    details: Tuple[Record, ...] = ()

    def __hash__(self):
        return hash(self.id)

    @property
    def category_index(self) -> int:
        return self.grid[0]

    @property
    def row(self) -> int:
        return self.grid[1]

    @property
    def page(self) -> int:
        return self.grid[2]

    def metric(self, name: str, default: float = 0) -> float:
        return self.metrics.get(name, default)

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        """Plain-data form for the rendering layer."""
        data = {
            "id": self.id,
            "category": self.category,
            "entity_id": self.entity_id,
            "page_label": self.page_label,
            "grid": list(self.grid),
            "metrics": dict(self.metrics),
            "normalized": self.normalized,
        }
        if include_details:
            data["details"] = [dict(r) for r in self.details]
        return data


@dataclass(frozen=True)
class Cube:
    """
    Result of one build: axis labels plus the sparse cell list.

    Filtered views share this type; they keep the axes, entities and
    normalization bounds of the cube they came from.
    """
    categories: Tuple[str, ...]
    row_labels: Tuple[str, ...]
    page_labels: Tuple[str, ...]
    cells: Tuple[Cell, ...]
    primary_metric: str
    entities: Tuple[str, ...]
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.cells

    @property
    def entity_count(self) -> int:
        return len(self.entities)

    @property
    def page_count(self) -> int:
        return len(self.page_labels)

    def get_cell(self, cell_id: str) -> Optional[Cell]:
        """Get cell by id."""
        for cell in self.cells:
            if cell.id == cell_id:
                return cell
        return None

    def cells_for_entity(self, entity_id: str) -> List[Cell]:
        """All cells of one entity, in cell-list order."""
        return [c for c in self.cells if c.entity_id == entity_id]

    def with_cells(self, cells: Iterable[Cell]) -> "Cube":
        """Same axes and bounds, different cell list."""
        return replace(self, cells=tuple(cells))

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        return {
            "categories": list(self.categories),
            "row_labels": list(self.row_labels),
            "page_labels": list(self.page_labels),
            "primary_metric": self.primary_metric,
            "entities": list(self.entities),
            "min_value": self.min_value,
            "max_value": self.max_value,
            "cells": [c.to_dict(include_details) for c in self.cells],
        }


def grid_position(category_index: int, entity_index: int,
                  page_size: int) -> Tuple[int, int, int]:
    """Grid coordinates of a cell: entities wrap into pages of page_size rows."""
    return (category_index, entity_index % page_size, entity_index // page_size)


def normalize(values: Sequence[float]) -> np.ndarray:
    """
    Min-max rescale values to [0, 1].

    A degenerate range (all values equal) maps every value to 0.5.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr
    lo, hi = arr.min(), arr.max()
    if hi == lo:
        return np.full(arr.shape, DEGENERATE_WEIGHT)
    return (arr - lo) / (hi - lo)


def page_labels(entities: Sequence[str], page_size: int) -> List[str]:
    """'{first} - {last}' entity span of every page."""
    labels = []
    for page in range(math.ceil(len(entities) / page_size)):
        start = page * page_size
        end = min(start + page_size, len(entities)) - 1
        labels.append(f"{entities[start]} - {entities[end]}")
    return labels


@dataclass
class _CellDraft:
    """Cell before its normalized weight is known."""
    category: str
    entity_id: str
    grid: Tuple[int, int, int]
    metrics: Dict[str, float]
    details: Tuple[Record, ...]


class CubeBuilder:
    """
    Builds a Cube from parsed records using pandas.

    Every call to build() works on fresh frames; builders hold nothing but
    their configuration.
    """

    def __init__(self, config: Optional[CubeConfig] = None):
        self.config = config or CubeConfig()

    def build(self, records: Sequence[Record]) -> Cube:
        """
        Aggregate records into cells.

        Args:
            records: Parsed records (see records.parse_records)

        Returns:
            The cube; empty input gives a cube with no cells and no labels
        """
        config = self.config
        if not records:
            logger.info("No records to aggregate, returning empty cube")
            return self._empty_cube()

        frame = self._build_frame(records)
        entities = sort_entities(frame[_ENTITY])

        in_axis = frame[_CATEGORY].isin(config.categories)
        skipped = int((~in_axis).sum())
        if skipped:
            logger.info(
                f"{skipped} records have a category outside {list(config.categories)} "
                f"and produce no cells"
            )

        totals, members = self._aggregate(frame[in_axis])

        # First pass: aggregated cells in entity order, then category order
        drafts: List[_CellDraft] = []
        for entity_idx, entity in enumerate(entities):
            for category_idx, category in enumerate(config.categories):
                key = (entity, category)
                if key not in members:
                    continue
                drafts.append(_CellDraft(
                    category=category,
                    entity_id=entity,
                    grid=grid_position(category_idx, entity_idx, config.page_size),
                    metrics={name: plain_number(v) for name, v in totals[key].items()},
                    details=tuple(records[pos] for pos in members[key]),
                ))

        # Second pass: weights need the final min/max over every cell
        values = [d.metrics[config.primary_metric] for d in drafts]
        weights = normalize(values)
        cells = tuple(
            Cell(
                id=f"{d.category}-{d.entity_id}",
                category=d.category,
                entity_id=d.entity_id,
                page_label=f"Group {d.grid[2] + 1}",
                grid=d.grid,
                metrics=MappingProxyType(d.metrics),
                normalized=float(w),
                details=d.details,
            )
            for d, w in zip(drafts, weights)
        )

        cube = Cube(
            categories=tuple(config.categories),
            row_labels=tuple(entities[:config.page_size]),
            page_labels=tuple(page_labels(entities, config.page_size)),
            cells=cells,
            primary_metric=config.primary_metric,
            entities=tuple(entities),
            min_value=float(min(values)) if values else None,
            max_value=float(max(values)) if values else None,
        )
        logger.info(
            f"Built cube: {len(records)} records, {len(cells)} cells, "
            f"{cube.entity_count} entities, {cube.page_count} pages"
        )
        return cube

    def _empty_cube(self) -> Cube:
        return Cube(
            categories=tuple(self.config.categories),
            row_labels=(),
            page_labels=(),
            cells=(),
            primary_metric=self.config.primary_metric,
            entities=(),
        )

    def _build_frame(self, records: Sequence[Record]) -> pd.DataFrame:
        """Denormalized frame: one row per record plus key and measure columns."""
        config = self.config
        raw = pd.DataFrame.from_records([dict(r) for r in records])

        frame = pd.DataFrame({
            _ENTITY: self._text_column(raw, config.entity_field),
            _CATEGORY: self._text_column(raw, config.category_field),
            _POSITION: np.arange(len(raw)),
        })
        for measure in config.measures:
            frame[measure.name] = self._measure_column(raw, measure)
        return frame

    @staticmethod
    def _text_column(raw: pd.DataFrame, column: str) -> pd.Series:
        if column not in raw.columns:
            return pd.Series([""] * len(raw), index=raw.index)
        return raw[column].map(lambda v: "" if pd.isna(v) else value_text(v))

    @staticmethod
    def _measure_column(raw: pd.DataFrame, measure: Measure) -> pd.Series:
        """Per-record contribution of a measure; summing it gives the aggregate."""
        if measure.default_agg == AggregateFunction.COUNT:
            if measure.match is None:
                return pd.Series(1, index=raw.index)
            if measure.column not in raw.columns:
                return pd.Series(0, index=raw.index)
            texts = raw[measure.column].map(lambda v: "" if pd.isna(v) else value_text(v))
            return (texts == measure.match).astype(int)

        if measure.column not in raw.columns:
            return pd.Series(0, index=raw.index)
        return pd.to_numeric(raw[measure.column], errors="coerce").fillna(0)

    def _aggregate(self, frame: pd.DataFrame) -> Tuple[Dict[Tuple[str, str], Dict[str, Any]],
                                                       Dict[Tuple[str, str], List[int]]]:
        """
        Group by (entity, category).

        Returns:
            (totals, members): measure sums and contributing record positions
            (input order) per key
        """
        if frame.empty:
            return {}, {}
        grouped = frame.groupby([_ENTITY, _CATEGORY], sort=False)
        totals = grouped[self.config.measure_names].sum().to_dict("index")
        members = grouped[_POSITION].apply(list).to_dict()
        return totals, members


def build_cube(raw_text: str,
               category_order: Optional[Sequence[str]] = None,
               page_size: Optional[int] = None,
               config: Optional[CubeConfig] = None) -> Cube:
    """
    One-shot ingestion: parse raw text and build its cube.

    Args:
        raw_text: Header-first comma-delimited text
        category_order: Overrides the configured category order
        page_size: Overrides the configured page size
        config: Base configuration (defaults to the session cube config)
    """
    config = config or CubeConfig()
    if category_order is not None:
        config = config.replace(categories=tuple(category_order))
    if page_size is not None:
        config = config.replace(page_size=page_size)
    return CubeBuilder(config).build(parse_records(raw_text, config))
