"""
Grid parameters

Grids are configured by a list of flags and a mapping of string parameters,
either given directly or parsed from a proj4-like definition:

    +grid=regular +crs=32631 +cell_size=4096 +resolution=10 +ox=0 +oy=0
"""

import shlex
from typing import Dict, List, Mapping, Optional, Tuple

from rasterio.crs import CRS

from cubegrid.core.exceptions import InvalidCRSError, InvalidGridConfigError
from cubegrid.geometry.proj import CRSCache, crs_from_user_input


def parse_grid_parameters(definition: str) -> Tuple[List[str], Dict[str, str]]:
    """
    Split a proj4-like grid definition into flags and parameters

    "+key=value" tokens become parameters, bare "+flag" tokens become flags.
    Values containing spaces must be quoted.

    Examples:
        >>> parse_grid_parameters('+grid=singlecell +crs=32631 +resolution=10 +verbose')
        (['verbose'], {'grid': 'singlecell', 'crs': '32631', 'resolution': '10'})
        >>> parse_grid_parameters('+grid=regular +crs="+proj=utm +zone=31 +datum=WGS84"')
        ([], {'grid': 'regular', 'crs': '+proj=utm +zone=31 +datum=WGS84'})
    """
    try:
        tokens = shlex.split(definition)
    except ValueError as e:
        raise InvalidGridConfigError(f"invalid grid definition '{definition}': {e}") from e

    flags: List[str] = []
    parameters: Dict[str, str] = {}
    for token in tokens:
        if not token.startswith("+") or len(token) == 1:
            raise InvalidGridConfigError(f"invalid grid definition token '{token}': must start with '+'")
        key, sep, value = token[1:].partition("=")
        if not key:
            raise InvalidGridConfigError(f"invalid grid definition token '{token}'")
        if sep:
            parameters[key] = value
        else:
            flags.append(key)
    return flags, parameters


def get_crs(parameters: Mapping[str, str], crs_cache: Optional[CRSCache] = None) -> Tuple[CRS, int]:
    """
    CRS of the "crs" parameter and its SRID

    Raises:
        InvalidGridConfigError: If the CRS is missing, invalid or has no SRID
    """
    user_input = parameters.get("crs")
    try:
        if crs_cache is not None:
            crs, srid = crs_cache.get(user_input)
        else:
            crs, srid = crs_from_user_input(user_input)
    except InvalidCRSError as e:
        raise InvalidCRSError(f"CRS parameters [\"crs\"={user_input}]: {e}") from e
    if srid == 0:
        raise InvalidCRSError("CRS parameters: unable to retrieve SRID from input")
    return crs, srid


def get_int(parameters: Mapping[str, str], key: str, default: Optional[int] = None) -> Optional[int]:
    """Integer parameter, or default if missing"""
    value = parameters.get(key)
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise InvalidGridConfigError(f"{key} invalid parameter: {value}") from e


def get_float(parameters: Mapping[str, str], key: str, default: Optional[float] = None) -> Optional[float]:
    """Float parameter, or default if missing"""
    value = parameters.get(key)
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except ValueError as e:
        raise InvalidGridConfigError(f"{key} invalid parameter: {value}") from e
