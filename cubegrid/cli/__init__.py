"""
CubeGrid CLI Entry Points

Provides command-line interface for:
- covers: List the cells of a grid covering an area of interest
- cells: Export the footprint of cells as GeoJSON
"""

import argparse
import logging
import sys
from typing import Optional, Sequence


def main(argv: Optional[Sequence[str]] = None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="CubeGrid - Addressable tiling grids",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cubegrid covers "+grid=regular +crs=32631 +cell_size=4096 +resolution=10" aoi.geojson
  cubegrid covers "+grid=singlecell +crs=32631 +resolution=10" aoi.geojson --geojson
  cubegrid cells "+grid=regular +crs=32631 +cell_size=4096 +resolution=10" 12/-130 12/-129
        """,
    )

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Covers command
    covers_parser = subparsers.add_parser("covers", help="List the cells covering an area of interest")
    covers_parser.add_argument("grid", help="Grid definition (+grid=... +crs=... ...)")
    covers_parser.add_argument("aoi", help="GeoJSON file of the area of interest (lon/lat)")
    covers_parser.add_argument(
        "--geojson", action="store_true", help="Print the footprint of the cells instead of their URIs"
    )

    # Cells command
    cells_parser = subparsers.add_parser("cells", help="Export the footprint of cells as GeoJSON")
    cells_parser.add_argument("grid", help="Grid definition (+grid=... +crs=... ...)")
    cells_parser.add_argument("uris", nargs="+", help="Cell URIs")

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(message)s" if not args.verbose else "%(levelname)s: %(message)s"
    )

    if args.command == "covers":
        from cubegrid.cli.covers import run_covers

        run_covers(args)
    elif args.command == "cells":
        from cubegrid.cli.cells import run_cells

        run_cells(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
