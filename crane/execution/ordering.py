"""
Tile Ordering

Turns a blueprint's tile list into execution order. Tiles form a singly linked
list through their connections; the chain starting at the entry point (the
tile without a predecessor) is what runs. Both the runner and the code
generator order tiles through `sort_tiles`, so they always agree.
"""

import logging
from typing import Dict, List, Sequence

from ..domain.models import Tile

logger = logging.getLogger(__name__)


def sort_tiles(tiles: Sequence[Tile]) -> List[Tile]:
    """
    Returns the tiles reachable from the entry point, in chain order.

    - No entry point: the list is returned unchanged (ambiguous input, not an error).
    - Several entry points: the first one in list order is used.
    - Tiles not reachable from the entry point are dropped.
    - The walk stops at a missing successor or at an already visited tile.
    """
    entries = [tile for tile in tiles if tile.connections.input is None]
    if not entries:
        return list(tiles)

    if len(entries) > 1:
        logger.warning(
            f"{len(entries)} tiles have no predecessor; using '{entries[0].id}' as entry point"
        )

    # Adjacency index. On duplicate IDs the first tile wins.
    index: Dict[str, Tile] = {}
    for tile in tiles:
        index.setdefault(tile.id, tile)

    ordered: List[Tile] = []
    visited = set()
    current = entries[0]

    while current is not None and current.id not in visited:
        ordered.append(current)
        visited.add(current.id)
        next_id = current.connections.output
        if not next_id:
            break
        current = index.get(next_id)

    dropped = len(tiles) - len(ordered)
    if dropped:
        logger.debug(f"{dropped} tile(s) not reachable from entry point '{entries[0].id}'")

    return ordered
