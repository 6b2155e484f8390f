"""
SessionCube: sparse 3-axis aggregation of per-session event records.

Builds a (category x user x page) cube from tabular session rows and
exposes filtered views, rollup statistics and previous/next user
navigation for an interactive cube explorer.
"""

__version__ = "0.1.0"

from sessioncube.cube.schema import CubeConfig, Measure, AggregateFunction
from sessioncube.cube.engine import Cube, Cell, CubeBuilder, build_cube
from sessioncube.cube.view import EntityFilter, filter_cube
from sessioncube.cube.stats import GlobalStats, compute_stats
from sessioncube.nav.cursor import CursorState, Direction, advance
from sessioncube.nav.session import CubeExplorer

__all__ = [
    "CubeConfig",
    "Measure",
    "AggregateFunction",
    "Cube",
    "Cell",
    "CubeBuilder",
    "build_cube",
    "EntityFilter",
    "filter_cube",
    "GlobalStats",
    "compute_stats",
    "CursorState",
    "Direction",
    "advance",
    "CubeExplorer",
]
