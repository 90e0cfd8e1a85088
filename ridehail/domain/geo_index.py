"""
Pickup-location cell index
==========================

1. **Spatial Binning** -- every ride stores the H3 cell of its pickup point
   (resolution 7 by default, ~1.4 km average edge).
2. **Covering Disk** -- a nearby search turns ``(point, radius)`` into the
   set of cells within grid distance *k* of the query cell, so the store
   can answer with an indexed ``IN`` look-up.
3. **Exact Refinement** -- candidates are filtered by Haversine distance
   and ranked (see ``ridehail.services.dispatch``).

Choosing *k*
------------
Consecutive rings of a hexagon grid advance at least ``1.5 x edge`` in
the worst direction; real cell edges deviate from the resolution average
by well under that factor.  ``ceil(radius / avg_edge) + 3`` therefore
covers the query point's own offset inside its cell, the candidate's
offset inside its cell and the size variation, so no ride within the
radius is ever missed; false positives are removed by the refinement.

Complexity
----------
* Cell lookup:  O(1)
* Covering:     O(k^2) cells -- 3k(k+1)+1
"""

from __future__ import annotations

import math

import h3

from .entities import GeoPoint


def pickup_cell(point: GeoPoint, resolution: int = 7) -> str:
    """Map a geo-point to an H3 hexagonal cell index.  O(1)."""
    return h3.latlng_to_cell(point.latitude, point.longitude, resolution)


def disk_radius(radius_m: float, resolution: int = 7) -> int:
    """Grid distance *k* whose disk covers every point within *radius_m*."""
    edge_m = h3.average_hexagon_edge_length(resolution, unit="m")
    return math.ceil(radius_m / edge_m) + 3


def covering_cells(
    point: GeoPoint, radius_m: float, resolution: int = 7
) -> list[str]:
    """All cells that may contain a pickup within *radius_m* of *point*."""
    origin = pickup_cell(point, resolution)
    return list(h3.grid_disk(origin, disk_radius(radius_m, resolution)))
