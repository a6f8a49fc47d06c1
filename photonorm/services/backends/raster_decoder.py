from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np


@dataclass
class RasterDecodeOutput:
	pixels: np.ndarray
	width: int
	height: int
	channels: int


_TO_RGB = {
	1: cv2.COLOR_GRAY2RGB,
	3: cv2.COLOR_BGR2RGB,
	4: cv2.COLOR_BGRA2RGB,
}


class RasterDecoder:
	"""Generic raster decoding through OpenCV.

	Mirrors the null-return contract of the underlying codec: ``decode`` gives
	back None on failure and the reason is kept on this instance.
	"""

	def __init__(self) -> None:
		self._failure_reason = ""

	def last_failure_reason(self) -> str:
		return self._failure_reason

	def _fail(self, reason: str) -> None:
		self._failure_reason = reason
		return None

	def decode(self, data: bytes, force_channels: int = 3) -> Optional[RasterDecodeOutput]:
		if force_channels != 3:
			return self._fail(f"unsupported forced channel count {force_channels}")
		buf = np.frombuffer(data, dtype=np.uint8)
		try:
			img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
		except cv2.error as e:
			return self._fail(f"OpenCV error: {e}")
		if img is None:
			return self._fail("unknown or corrupt image format")

		channels = 1 if img.ndim == 2 else int(img.shape[2])
		if channels not in _TO_RGB:
			return self._fail(f"unsupported channel count {channels}")
		if img.dtype == np.uint16:
			img = (img >> 8).astype(np.uint8)
		elif img.dtype in (np.float32, np.float64):
			img = (np.clip(img, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
		elif img.dtype != np.uint8:
			return self._fail(f"unsupported sample type {img.dtype}")

		rgb = cv2.cvtColor(img, _TO_RGB[channels])
		h, w = rgb.shape[:2]
		self._failure_reason = ""
		return RasterDecodeOutput(pixels=np.ascontiguousarray(rgb), width=w, height=h, channels=channels)
