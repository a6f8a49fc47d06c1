from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

CAMERA_TEXT_MAX = 63
UNKNOWN = "Unknown"


def clip_camera_text(value: str) -> str:
	return value[:CAMERA_TEXT_MAX]


@dataclass
class ImageMetadata:
	camera_make: str = UNKNOWN
	camera_model: str = UNKNOWN
	software: str = ""
	iso_speed: int = 0
	shutter: float = 0.0
	aperture: float = 0.0
	focal_length: float = 0.0
	raw_width: int = 0
	raw_height: int = 0
	output_width: int = 0
	output_height: int = 0
	colors: int = 0
	color_filter: int = 0
	cam_mul: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
	date_taken: str = ""
	lens: str = ""
	max_aperture: float = 0.0
	focal_length_35mm: int = 0
	description: str = ""
	artist: str = ""
	orientation: int = 1
	metadata_source: str = "synthetic"

	@classmethod
	def with_label(cls, model_label: str) -> "ImageMetadata":
		return cls(camera_make=UNKNOWN, camera_model=model_label)

	def set_raw_dimensions(self, width: int, height: int) -> None:
		# first decode wins
		if self.raw_width == 0 and self.raw_height == 0:
			self.raw_width = int(width)
			self.raw_height = int(height)

	def finalize(self, output_width: int, output_height: int, color_filter: int = 0, default_model: str = UNKNOWN) -> None:
		"""Force geometry/color fields to the delivered raster and apply neutral defaults."""
		self.output_width = int(output_width)
		self.output_height = int(output_height)
		self.colors = 3
		self.color_filter = int(color_filter)
		self.camera_make = clip_camera_text(self.camera_make.strip() or UNKNOWN)
		self.camera_model = clip_camera_text(self.camera_model.strip() or default_model)
		self.iso_speed = max(0, int(self.iso_speed))
		mul = [float(v) for v in list(self.cam_mul)[:4]]
		mul += [0.0] * (4 - len(mul))
		self.cam_mul = [v if v != 0.0 else 1.0 for v in mul]

	def frozen_copy(self) -> "ImageMetadata":
		return copy.deepcopy(self)

	def has_camera_info(self) -> bool:
		return (
			bool(self.camera_make)
			and bool(self.camera_model)
			and self.camera_make != UNKNOWN
			and self.metadata_source != "synthetic"
		)

	def has_exposure_info(self) -> bool:
		return self.iso_speed > 0 or self.aperture > 0.0 or self.shutter > 0.0

	def formatted_shutter_speed(self) -> str:
		if self.shutter <= 0.0:
			return UNKNOWN
		if self.shutter >= 1.0:
			return f"{self.shutter:.1f}s"
		return f"1/{1.0 / self.shutter:.0f}s"

	def formatted_aperture(self) -> str:
		if self.aperture <= 0.0:
			return UNKNOWN
		return f"f/{self.aperture:.1f}"

	def formatted_dimensions(self) -> str:
		if self.raw_width > 0 and self.raw_height > 0:
			return f"{self.output_width}x{self.output_height} (RAW: {self.raw_width}x{self.raw_height})"
		if self.output_width > 0 and self.output_height > 0:
			return f"{self.output_width}x{self.output_height}"
		return UNKNOWN

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)
