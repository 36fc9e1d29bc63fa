"""
Cells CLI command

Prints the lon/lat footprint of cells as a GeoJSON MultiPolygon.
"""

import argparse
import sys

from cubegrid.core.exceptions import CubeGridError
from cubegrid.grid import cells_to_json, new_grid, parse_grid_parameters


def run_cells(args: argparse.Namespace) -> None:
    """Run the cells command"""
    try:
        flags, parameters = parse_grid_parameters(args.grid)
        grid = new_grid(flags, parameters)
        print(cells_to_json(grid, args.uris))
    except CubeGridError as e:
        print(f"Error: {e}")
        sys.exit(1)
