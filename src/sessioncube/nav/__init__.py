"""
Navigation module: cursor over visible users and the explorer session.
"""

from sessioncube.nav.cursor import (
    CursorState, Direction, NavigationCursor, advance, select, visible_entities
)
from sessioncube.nav.session import CubeExplorer, ExplorerState

__all__ = [
    "CursorState", "Direction", "NavigationCursor", "advance", "select", "visible_entities",
    "CubeExplorer", "ExplorerState",
]
