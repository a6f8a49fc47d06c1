from __future__ import annotations

from typing import Optional

import numpy as np


class RasterBuffer:
	"""Owned, contiguous RGB pixel buffer (uint8, row-major, 3 bytes/pixel).

	Only one stage holds a buffer at a time. ``release`` drops the pixel memory
	exactly once; touching the pixels afterwards is a bug and raises.
	"""

	__slots__ = ("_pixels", "width", "height")

	def __init__(self, pixels: np.ndarray) -> None:
		if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] != 3:
			raise ValueError(f"expected HxWx3 uint8 pixels, got {pixels.dtype} {pixels.shape}")
		self._pixels: Optional[np.ndarray] = np.ascontiguousarray(pixels)
		self.height = int(pixels.shape[0])
		self.width = int(pixels.shape[1])

	@classmethod
	def allocate(cls, width: int, height: int) -> "RasterBuffer":
		return cls(np.zeros((height, width, 3), dtype=np.uint8))

	@property
	def pixels(self) -> np.ndarray:
		if self._pixels is None:
			raise RuntimeError("raster buffer used after release")
		return self._pixels

	@property
	def released(self) -> bool:
		return self._pixels is None

	@property
	def nbytes(self) -> int:
		return self.width * self.height * 3

	def release(self) -> None:
		if self._pixels is None:
			raise RuntimeError("raster buffer released twice")
		self._pixels = None

	def __repr__(self) -> str:
		state = "released" if self.released else "live"
		return f"RasterBuffer({self.width}x{self.height}, {state})"
