from __future__ import annotations

from typing import Optional

import numpy as np

from photonorm.services.policy import Reduction
from photonorm.services.raster import RasterBuffer

# EXIF orientation -> counter-clockwise quarter turns for np.rot90
_ORIENTATION_TURNS = {
	3: 2,   # 180
	6: -1,  # 90 clockwise
	8: 1,   # 90 counter-clockwise
}


def rotation_for(orientation: Optional[int]) -> int:
	if orientation is None:
		return 0
	try:
		o = int(orientation)
	except (TypeError, ValueError):
		return 0
	return _ORIENTATION_TURNS.get(o, 0)


def rotate_quarter_turns(buf: RasterBuffer, turns: int) -> RasterBuffer:
	"""Remap into a fresh buffer; the source buffer is released."""
	out = RasterBuffer(np.ascontiguousarray(np.rot90(buf.pixels, k=turns)))
	buf.release()
	return out


def apply_exif_orientation(buf: RasterBuffer, orientation: Optional[int]) -> RasterBuffer:
	turns = rotation_for(orientation)
	if turns == 0:
		return buf
	return rotate_quarter_turns(buf, turns)


def downscale_nearest_half(buf: RasterBuffer) -> RasterBuffer:
	w = max(1, buf.width // 2)
	h = max(1, buf.height // 2)
	out = RasterBuffer(buf.pixels[0:2 * h:2, 0:2 * w:2].copy())
	buf.release()
	return out


def normalize_geometry(
	buf: RasterBuffer,
	orientation: Optional[int],
	reduction: Reduction,
	correct_orientation: bool = True,
) -> RasterBuffer:
	"""Orientation fix then the route's reduction. Returns the single live buffer."""
	if correct_orientation:
		buf = apply_exif_orientation(buf, orientation)
	if reduction is Reduction.NEAREST_HALF:
		buf = downscale_nearest_half(buf)
	# NONE and DECODE_TIME_HALF leave the decoded size as is
	return buf
