"""
Covers CLI command

Lists the URIs of the cells of a grid covering a GeoJSON area of interest.
"""

import argparse
import logging
import sys
from pathlib import Path

from cubegrid.core.exceptions import CubeGridError
from cubegrid.geometry.proj import CRSCache
from cubegrid.grid import cells_to_json, new_grid, parse_grid_parameters

logger = logging.getLogger(__name__)


def run_covers(args: argparse.Namespace) -> None:
    """Run the covers command"""
    aoi_path = Path(args.aoi)

    if not aoi_path.exists():
        print(f"Error: AOI file not found: {aoi_path}")
        sys.exit(1)

    uris = []
    with CRSCache() as crs_cache:
        try:
            flags, parameters = parse_grid_parameters(args.grid)
            grid = new_grid(flags, parameters, crs_cache)
            logger.debug("Grid: %r", grid)

            for streamed in grid.covers(aoi_path):
                if streamed.error is not None:
                    raise streamed.error
                if args.geojson:
                    uris.append(streamed.uri)
                else:
                    print(streamed.uri)

            if args.geojson:
                print(cells_to_json(grid, uris))
        except (CubeGridError, ValueError) as e:
            print(f"Error: {e}")
            sys.exit(1)

    logger.debug("Covering done")
