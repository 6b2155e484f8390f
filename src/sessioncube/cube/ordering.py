"""
Natural ordering of entity ids.

Every place that needs entity order (grid coordinates, page labels,
navigation) goes through sort_entities so they can never disagree.
"""

import re
from typing import Iterable, List, Tuple

_CHUNK_RE = re.compile(r"(\d+)")


def natural_key(value: str) -> Tuple:
    """
    Sort key comparing digit runs numerically and text case-insensitively.

    'U2' < 'U10', 'u1' and 'U1' sort together; the raw string breaks ties so
    the order stays total.
    """
    parts = []
    # re.split with a capture group puts digit runs at odd positions
    for i, chunk in enumerate(_CHUNK_RE.split(value)):
        if not chunk:
            continue
        if i % 2:
            parts.append((0, int(chunk), chunk))
        else:
            parts.append((1, 0, chunk.casefold()))
    return (tuple(parts), value)


def sort_entities(entity_ids: Iterable[str]) -> List[str]:
    """Distinct entity ids in natural order."""
    return sorted({str(e) for e in entity_ids}, key=natural_key)
