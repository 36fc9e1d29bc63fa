"""
Tests for exceptions
"""

import pytest

from cubegrid.core.exceptions import (
    CancelledError,
    CubeGridError,
    EmptyAOIError,
    EmptyBoundsError,
    InvalidAOIError,
    InvalidCellURIError,
    InvalidCRSError,
    InvalidGridConfigError,
    MemoryLimitExceededError,
    NonInvertibleTransformError,
    RasterizeError,
    TransformError,
    UnsupportedGridError,
)


class TestExceptions:
    """Test exception hierarchy"""

    def test_base_exception(self):
        """Test CubeGridError"""
        with pytest.raises(CubeGridError):
            raise CubeGridError("Test error")

    @pytest.mark.parametrize(
        "exc_class",
        [
            InvalidGridConfigError,
            InvalidCellURIError,
            InvalidAOIError,
            TransformError,
            RasterizeError,
            CancelledError,
        ],
    )
    def test_inherits_from_base(self, exc_class):
        """Test every error inherits from CubeGridError"""
        with pytest.raises(CubeGridError):
            raise exc_class("failed")

    def test_invalid_crs_is_config_error(self):
        """Test InvalidCRSError inherits from InvalidGridConfigError"""
        with pytest.raises(InvalidGridConfigError):
            raise InvalidCRSError("bad crs")

    def test_empty_aoi_errors(self):
        """Test EmptyAOIError and EmptyBoundsError are InvalidAOIError"""
        with pytest.raises(InvalidAOIError):
            raise EmptyAOIError("empty")

        with pytest.raises(InvalidAOIError):
            raise EmptyBoundsError("empty bounds")

    def test_unsupported_grid(self):
        """Test UnsupportedGridError keeps the grid name"""
        err = UnsupportedGridError("hexagonal")
        assert err.grid_name == "hexagonal"
        assert str(err) == "unsupported grid type: hexagonal"

    def test_non_invertible_transform(self):
        """Test NonInvertibleTransformError is both a CubeGridError and a ValueError"""
        with pytest.raises(CubeGridError):
            raise NonInvertibleTransformError("degenerate")

        with pytest.raises(ValueError):
            raise NonInvertibleTransformError("degenerate")

    def test_memory_limit_exceeded(self):
        """Test MemoryLimitExceededError message"""
        err = MemoryLimitExceededError(1000, 10)
        assert err.needed == 1000
        assert err.provided == 10
        assert str(err) == "not enough memory (needed:1000, provided:10)"

    def test_exception_chaining(self):
        """Test exception chaining with 'from'"""
        original = ValueError("original error")

        with pytest.raises(TransformError) as exc_info:
            try:
                raise original
            except ValueError as e:
                raise TransformError("transform failed") from e

        assert exc_info.value.__cause__ is original
