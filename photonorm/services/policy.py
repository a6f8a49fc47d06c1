from __future__ import annotations

from enum import Enum
from typing import Optional


class Route(str, Enum):
	JPEG = "jpeg"
	RASTER = "raster"
	RAW = "raw"


class JpegVariant(str, Enum):
	FULL = "full"
	QUARTER = "quarter"


class Reduction(str, Enum):
	NONE = "none"
	# applied by the decoder itself (JPEG DCT scaling, LibRaw half_size)
	DECODE_TIME_HALF = "decode_time_half"
	# post-decode nearest-neighbor: dst(x, y) = src(2x, 2y)
	NEAREST_HALF = "nearest_half"


RAW_QUALITY = 75
JPEG_QUARTER_QUALITY = 75
JPEG_FULL_QUALITY = 90
RASTER_QUALITY = 90

RAW_MAX_OUTPUT_BYTES = 2 * 1024 * 1024


def quality_for(route: Route, variant: JpegVariant = JpegVariant.FULL) -> int:
	if route is Route.RAW:
		return RAW_QUALITY
	if route is Route.JPEG:
		return JPEG_QUARTER_QUALITY if variant is JpegVariant.QUARTER else JPEG_FULL_QUALITY
	return RASTER_QUALITY


def reduction_for(route: Route, variant: JpegVariant = JpegVariant.FULL) -> Reduction:
	if route is Route.RAW:
		return Reduction.DECODE_TIME_HALF
	if route is Route.JPEG:
		return Reduction.DECODE_TIME_HALF if variant is JpegVariant.QUARTER else Reduction.NONE
	return Reduction.NEAREST_HALF


def max_output_bytes_for(route: Route) -> Optional[int]:
	return RAW_MAX_OUTPUT_BYTES if route is Route.RAW else None
