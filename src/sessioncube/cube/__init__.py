"""
Cube module: parsing, aggregation, views and statistics for session cubes.
"""

from sessioncube.cube.schema import (
    CubeConfig, Measure, AggregateFunction, create_session_cube_config
)
from sessioncube.cube.records import Record, parse_records, load_records
from sessioncube.cube.ordering import natural_key, sort_entities
from sessioncube.cube.engine import Cell, Cube, CubeBuilder, build_cube, normalize
from sessioncube.cube.view import EntityFilter, filter_cube
from sessioncube.cube.stats import GlobalStats, compute_stats

__all__ = [
    "CubeConfig", "Measure", "AggregateFunction", "create_session_cube_config",
    "Record", "parse_records", "load_records",
    "natural_key", "sort_entities",
    "Cell", "Cube", "CubeBuilder", "build_cube", "normalize",
    "EntityFilter", "filter_cube",
    "GlobalStats", "compute_stats",
]
