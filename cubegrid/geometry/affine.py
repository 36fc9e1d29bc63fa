"""
Affine Transform

2D affine transformations following the GDAL geotransform convention:

    x' = a + b * x + c * y
    y' = d + e * x + f * y

Composition and point transformation are evaluated exactly (rational
arithmetic) and rounded to float only once, so that chaining transforms at
large pixel offsets does not accumulate rounding drift between neighbouring
cells.
"""

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Tuple

from affine import Affine as _RasterioAffine

from cubegrid.core.exceptions import NonInvertibleTransformError


def _high_precision_transform(sx: float, x: float, sy: float, y: float, o: float) -> float:
    """
    Compute o + sx*x + sy*y with a single final rounding

    Satisfies f(sx, x+1, sy, y+1, o) == f(sx, x, sy, y, o) + f(sx, 1, sy, 1, 0)
    up to that final rounding.
    """
    if not all(math.isfinite(v) for v in (sx, x, sy, y, o)):
        return o + sx * x + sy * y
    exact = Fraction(o) + Fraction(sx) * Fraction(x) + Fraction(sy) * Fraction(y)
    return float(exact)


@dataclass(frozen=True)
class Affine:
    """
    Immutable affine transform with GDAL coefficient order

    Attributes:
        a: X offset
        b: X scale (pixel width)
        c: X shear
        d: Y offset
        e: Y shear
        f: Y scale (pixel height, usually negative for north-up rasters)

    Examples:
        >>> pix_to_crs = Affine.translation(453120, 5338560) * Affine.scale(10, -10)
        >>> pix_to_crs.transform(4640, 416)
        (499520.0, 5334400.0)
    """

    a: float
    b: float
    c: float
    d: float
    e: float
    f: float

    @classmethod
    def translation(cls, offx: float, offy: float) -> "Affine":
        """Translation by (offx, offy)"""
        return cls(float(offx), 1.0, 0.0, float(offy), 0.0, 1.0)

    @classmethod
    def scale(cls, scalex: float, scaley: float) -> "Affine":
        """Scale by (scalex, scaley)"""
        return cls(0.0, float(scalex), 0.0, 0.0, 0.0, float(scaley))

    @classmethod
    def identity(cls) -> "Affine":
        return cls(0.0, 1.0, 0.0, 0.0, 0.0, 1.0)

    @classmethod
    def from_gdal(cls, a: float, b: float, c: float, d: float, e: float, f: float) -> "Affine":
        """Create from a GDAL geotransform tuple"""
        return cls(float(a), float(b), float(c), float(d), float(e), float(f))

    @property
    def rx(self) -> float:
        """X resolution (signed)"""
        return self.b

    @property
    def ry(self) -> float:
        """Y resolution (signed)"""
        return self.f

    @property
    def is_invertible(self) -> bool:
        return self.b * self.f != self.c * self.e

    def transform(self, x: float, y: float) -> Tuple[float, float]:
        """Apply the transform to the point (x, y)"""
        return (
            _high_precision_transform(self.b, x, self.c, y, self.a),
            _high_precision_transform(self.e, x, self.f, y, self.d),
        )

    def multiply(self, other: "Affine") -> "Affine":
        """
        Compose two transforms: self o other (other is applied first)

        Args:
            other: Transform applied before self

        Returns:
            The composed transform
        """
        return Affine(
            _high_precision_transform(self.b, other.a, self.c, other.d, self.a),
            _high_precision_transform(self.b, other.b, self.c, other.e, 0.0),
            _high_precision_transform(self.b, other.c, self.c, other.f, 0.0),
            _high_precision_transform(self.e, other.a, self.f, other.d, self.d),
            _high_precision_transform(self.e, other.b, self.f, other.e, 0.0),
            _high_precision_transform(self.e, other.c, self.f, other.f, 0.0),
        )

    def __mul__(self, other: "Affine") -> "Affine":
        if not isinstance(other, Affine):
            return NotImplemented
        return self.multiply(other)

    def inverse(self) -> "Affine":
        """
        Inverse transform

        Raises:
            NonInvertibleTransformError: If b*f == c*e
        """
        if not self.is_invertible:
            raise NonInvertibleTransformError(f"affine transform is not invertible: {self.to_gdal()}")
        idet = 1.0 / (self.b * self.f - self.c * self.e)
        linear = Affine(0.0, self.f * idet, -self.c * idet, 0.0, -self.e * idet, self.b * idet)
        ox, oy = linear.transform(-self.a, -self.d)
        return Affine(ox, linear.b, linear.c, oy, linear.e, linear.f)

    def to_gdal(self) -> Tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)

    def to_affine(self) -> _RasterioAffine:
        """Convert to the `affine.Affine` convention used by rasterio"""
        return _RasterioAffine.from_gdal(*self.to_gdal())
