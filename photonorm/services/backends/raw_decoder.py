from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Optional

import numpy as np
import rawpy

from photonorm.services.backends import exif_parser


@dataclass(frozen=True)
class RawDecodeParams:
	output_bps: int = 8
	use_camera_wb: bool = True
	no_auto_bright: bool = True
	half_size: bool = True
	output_color: str = "sRGB"

	def as_rawpy_kwargs(self) -> Dict[str, Any]:
		return {
			"output_bps": self.output_bps,
			"use_camera_wb": self.use_camera_wb,
			"no_auto_bright": self.no_auto_bright,
			"half_size": self.half_size,
			"output_color": getattr(rawpy.ColorSpace, self.output_color),
		}


@dataclass
class RawCaptureInfo:
	make: str = ""
	model: str = ""
	software: str = ""
	date_taken: str = ""
	lens: str = ""
	artist: str = ""
	description: str = ""
	iso: int = 0
	shutter: float = 0.0
	aperture: float = 0.0
	focal_length: float = 0.0
	focal_length_35mm: int = 0
	max_aperture: float = 0.0
	raw_width: int = 0
	raw_height: int = 0
	colors: int = 3
	color_filter: int = 0
	cam_mul: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])


def pattern_id(raw_pattern: Optional[np.ndarray]) -> int:
	"""Pack a CFA pattern (color index per cell, row-major) into an int, 2 bits per cell."""
	if raw_pattern is None:
		return 0
	value = 0
	for idx in np.asarray(raw_pattern).ravel():
		value = (value << 2) | (int(idx) & 0x3)
	return value


class RawDecoder:
	"""One LibRaw instance driven step by step: open, unpack, process, materialize.

	``capture_info`` is only readable once ``process`` succeeded. The handle is
	closed by ``close`` or by leaving the ``with`` block.
	"""

	def __init__(self, params: Optional[RawDecodeParams] = None) -> None:
		self.params = params or RawDecodeParams()
		self._raw = None
		self._source: bytes = b""
		self._processed = False

	def __enter__(self) -> "RawDecoder":
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	def _handle(self):
		if self._raw is None:
			raise RuntimeError("RAW decoder is not open")
		return self._raw

	def open(self, data: bytes) -> None:
		self._source = bytes(data)
		self._raw = rawpy.imread(BytesIO(self._source))

	def unpack(self) -> None:
		self._handle().unpack()

	def process(self) -> None:
		self._handle().dcraw_process(**self.params.as_rawpy_kwargs())
		self._processed = True

	def materialize_image(self) -> np.ndarray:
		return self._handle().dcraw_make_mem_image()

	def capture_info(self) -> RawCaptureInfo:
		if not self._processed:
			raise RuntimeError("capture info is only available after process()")
		raw = self._handle()
		info = RawCaptureInfo()
		sizes = raw.sizes
		info.raw_width = int(sizes.raw_width)
		info.raw_height = int(sizes.raw_height)
		info.colors = int(raw.num_colors)
		info.color_filter = pattern_id(raw.raw_pattern)
		info.cam_mul = [float(v) for v in list(raw.camera_whitebalance)[:4]]

		# LibRaw's string fields are not surfaced by rawpy; TIFF-based RAW
		# containers carry the same values in their EXIF IFDs. Values are
		# copied into plain str so nothing refers back to the decoder.
		ex = exif_parser.parse(self._source)
		if ex.ok:
			info.make = str(ex.make)
			info.model = str(ex.model)
			info.software = str(ex.software)
			info.date_taken = str(ex.date_taken)
			info.lens = str(ex.lens)
			info.artist = str(ex.artist)
			info.description = str(ex.description)
			info.iso = ex.iso
			info.shutter = ex.exposure_time
			info.aperture = ex.f_number
			info.focal_length = ex.focal_length
			info.focal_length_35mm = ex.focal_length_35mm
			info.max_aperture = ex.max_aperture
		return info

	def close(self) -> None:
		if self._raw is not None:
			self._raw.close()
			self._raw = None
		self._source = b""
		self._processed = False
