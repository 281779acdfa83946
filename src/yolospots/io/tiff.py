"""TIFF reading, calibration extraction and frame writing via tifffile."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import tifffile

from yolospots.core.models import ImageRegion

# tifffile axis codes that map onto our axes.
_AXIS_ALIASES = {"S": "C", "I": "T", "Q": "T"}


def write_tiff(path: Path, data: np.ndarray, rgb: bool = False) -> None:
    """Write an array to a TIFF file.

    Args:
        path: Destination path.
        data: Pixel data. With ``rgb``, the last axis must hold 3 samples.
        rgb: Whether to tag the file as RGB.
    """
    if rgb:
        tifffile.imwrite(str(path), data, photometric="rgb")
    else:
        tifffile.imwrite(str(path), data)


def read_image_region(path: Path) -> ImageRegion:
    """Read a TIFF stack and its calibration as an ImageRegion.

    Axis labels come from the first tifffile series. Samples (``S``) are
    treated as channels; generic page axes (``I``, ``Q``) as time.

    Args:
        path: Path to the TIFF file.

    Returns:
        ImageRegion spanning the whole image.

    Raises:
        ValueError: If the axes cannot be mapped onto T, C, Z, Y, X.
    """
    with tifffile.TiffFile(str(path)) as tif:
        series = tif.series[0]
        data = series.asarray()
        axes = "".join(_AXIS_ALIASES.get(a, a) for a in series.axes)
        calibration = read_calibration(tif)

    # Two page axes (e.g. I and Q) both map onto T.
    if len(set(axes)) != len(axes):
        raise ValueError(f"Unsupported axis layout {series.axes!r} in {path}")
    return ImageRegion(data=data, axes=axes, calibration=calibration)


def read_calibration(tif: tifffile.TiffFile) -> tuple[float, float, float]:
    """Physical pixel size along (x, y, z), 1.0 where unknown."""
    pixel_size = _extract_pixel_size(tif)
    xy = pixel_size if pixel_size is not None else 1.0
    z = _extract_z_spacing(tif)
    return (xy, xy, z if z is not None else 1.0)


def _extract_pixel_size(tif: tifffile.TiffFile) -> float | None:
    """Try to extract pixel size in micrometers from TIFF metadata.

    Checks in order: OME-XML, ImageJ metadata, resolution tags.
    """
    # 1. OME-XML
    pixels = _ome_pixels(tif)
    if pixels is not None:
        ps_x = pixels.get("PhysicalSizeX")
        if ps_x is not None:
            try:
                return _to_um(float(ps_x), pixels.get("PhysicalSizeXUnit", "µm"))
            except ValueError:
                pass

    # 2. ImageJ files store pixel size as resolution tags with a unit in
    # the ImageJ description; fall through to the tags below.

    # 3. TIFF resolution tags
    page = tif.pages[0]
    tags = page.tags
    if "XResolution" in tags and "ResolutionUnit" in tags:
        try:
            x_res = tags["XResolution"].value
            res_unit = tags["ResolutionUnit"].value
            # x_res is a tuple (numerator, denominator)
            if isinstance(x_res, tuple) and len(x_res) == 2:
                pixels_per_unit = x_res[0] / x_res[1]
            else:
                pixels_per_unit = float(x_res)

            if pixels_per_unit > 0:
                ij = tif.imagej_metadata or {}
                ij_unit = ij.get("unit")
                if ij_unit in ("micron", "um", "µm", "\\u00B5m"):
                    return 1.0 / pixels_per_unit
                # ResolutionUnit: 1=no unit, 2=inch, 3=centimeter
                if res_unit == 3:  # centimeter
                    return 10000.0 / pixels_per_unit  # cm -> µm
                if res_unit == 2:  # inch
                    return 25400.0 / pixels_per_unit  # inch -> µm
        except (ValueError, TypeError, ZeroDivisionError):
            pass

    return None


def _extract_z_spacing(tif: tifffile.TiffFile) -> float | None:
    """Z step from OME-XML or the ImageJ ``spacing`` entry."""
    pixels = _ome_pixels(tif)
    if pixels is not None:
        ps_z = pixels.get("PhysicalSizeZ")
        if ps_z is not None:
            try:
                return _to_um(float(ps_z), pixels.get("PhysicalSizeZUnit", "µm"))
            except ValueError:
                pass

    ij = tif.imagej_metadata
    if ij and "spacing" in ij:
        try:
            return float(ij["spacing"])
        except (TypeError, ValueError):
            return None
    return None


def _ome_pixels(tif: tifffile.TiffFile):  # type: ignore[no-untyped-def]
    """Return the OME ``Pixels`` element, or None if absent or unparsable."""
    if not tif.ome_metadata:
        return None
    from defusedxml import DefusedXmlException
    from defusedxml.ElementTree import ParseError, fromstring

    try:
        root = fromstring(tif.ome_metadata)
    except (DefusedXmlException, ParseError):
        return None
    ns = {"ome": "http://www.openmicroscopy.org/Schemas/OME/2016-06"}
    pixels = root.find(".//ome:Pixels", ns)
    if pixels is None:
        # Try without namespace
        pixels = root.find(".//{*}Pixels")
    return pixels


def _to_um(value: float, unit: str) -> float:
    if unit in ("µm", "um", "micron"):
        return value
    if unit == "nm":
        return value / 1000.0
    if unit in ("mm", "millimeter"):
        return value * 1000.0
    return value  # assume µm
