"""
CubeGrid Grid Module

Tiling grids addressed by cell URIs, and the factory building them from
their parameters.
"""

import logging
from enum import Enum
from typing import Mapping, Optional, Sequence

from cubegrid.core.exceptions import InvalidGridConfigError, UnsupportedGridError
from cubegrid.geometry.proj import CRSCache
from cubegrid.grid.base import AOI, Cell, Grid, StreamedURI, cells_to_json, new_cell
from cubegrid.grid.parameters import parse_grid_parameters
from cubegrid.grid.regular_grid import RegularGrid
from cubegrid.grid.single_cell_grid import SingleCellGrid

logger = logging.getLogger(__name__)


class GridType(Enum):
    """Supported grid types, by their "grid" parameter"""

    REGULAR = "regular"
    SINGLECELL = "singlecell"


def new_grid(
    flags: Sequence[str],
    parameters: Mapping[str, str],
    crs_cache: Optional[CRSCache] = None,
) -> Grid:
    """
    Create a grid from its flags and parameters

    Args:
        flags: Grid flags (currently unused)
        parameters: String parameters, "grid" naming the type of grid
        crs_cache: Optional cache of parsed CRS

    Returns:
        Grid instance

    Raises:
        InvalidGridConfigError: If "grid" is missing or a parameter is invalid
        UnsupportedGridError: If the type of grid is unknown

    Examples:
        >>> grid = new_grid([], {"grid": "singlecell", "crs": "32631", "resolution": "10"})
        >>> flags, params = parse_grid_parameters("+grid=regular +crs=3857 +cell_size=256 +resolution=10")
        >>> grid = new_grid(flags, params)
    """
    grid_name = parameters.get("grid")
    if grid_name is None:
        raise InvalidGridConfigError("Grid parameters: missing 'grid'")

    try:
        grid_type = GridType(grid_name.lower())
    except ValueError:
        raise UnsupportedGridError(grid_name) from None

    if flags:
        logger.debug("Ignoring grid flags: %s", ", ".join(flags))

    if grid_type == GridType.REGULAR:
        return RegularGrid.from_parameters(parameters, crs_cache)
    return SingleCellGrid.from_parameters(parameters, crs_cache)


__all__ = [
    "AOI",
    "Cell",
    "Grid",
    "GridType",
    "RegularGrid",
    "SingleCellGrid",
    "StreamedURI",
    "cells_to_json",
    "new_cell",
    "new_grid",
    "parse_grid_parameters",
]
