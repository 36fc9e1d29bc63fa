"""
Tests for the command-line interface
"""

import json

import pytest

from cubegrid.cli import main

SINGLECELL = "+grid=singlecell +crs=32631 +resolution=10"
DEGREES = "+grid=regular +crs=4326 +cell_size=1 +resolution=1"


class TestCoversCommand:
    """Test the covers command"""

    def test_covers(self, alps_geojson_file, capsys):
        """Test URIs are printed one per line"""
        main(["covers", SINGLECELL, str(alps_geojson_file)])
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert lines[0].endswith("/6590/6914")

    def test_covers_regular(self, alps_geojson_file, capsys):
        """Test the cells of a degree grid covering the AOI"""
        main(["covers", DEGREES, str(alps_geojson_file)])
        lines = capsys.readouterr().out.splitlines()
        assert lines == ["5/-46", "6/-46", "5/-45", "6/-45"]

    def test_covers_geojson(self, alps_geojson_file, capsys):
        """Test --geojson prints the footprint of the cells"""
        main(["covers", DEGREES, str(alps_geojson_file), "--geojson"])
        data = json.loads(capsys.readouterr().out)
        assert data["type"] == "MultiPolygon"
        assert len(data["coordinates"]) == 4

    def test_missing_aoi(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["covers", SINGLECELL, str(tmp_path / "missing.geojson")])
        assert exc_info.value.code == 1
        assert "AOI file not found" in capsys.readouterr().out

    def test_invalid_grid(self, alps_geojson_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["covers", "+grid=hexagonal +crs=4326", str(alps_geojson_file)])
        assert exc_info.value.code == 1
        assert "unsupported grid type: hexagonal" in capsys.readouterr().out


    def test_point_aoi(self, tmp_path, capsys):
        """Test a non polygonal AOI is reported as an error"""
        path = tmp_path / "point.geojson"
        path.write_text(json.dumps({"type": "Point", "coordinates": [6.0, 45.0]}))
        with pytest.raises(SystemExit) as exc_info:
            main(["covers", SINGLECELL, str(path)])
        assert exc_info.value.code == 1
        assert "Error: Unsupported AOI type: Point" in capsys.readouterr().out


class TestCellsCommand:
    """Test the cells command"""

    def test_cells(self, capsys):
        main(["cells", DEGREES, "0/0", "1/0"])
        data = json.loads(capsys.readouterr().out)
        assert len(data["coordinates"]) == 2

    def test_invalid_uri(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["cells", DEGREES, "0/0/0"])
        assert exc_info.value.code == 1
        assert "unable to retrieve the cell '0/0/0'" in capsys.readouterr().out


class TestMain:
    """Test the entry point"""

    def test_no_command(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_verbose(self, capsys):
        main(["--verbose", "cells", DEGREES, "0/0"])
        assert "MultiPolygon" in capsys.readouterr().out
