from __future__ import annotations

from enum import Enum

from photonorm.services.policy import Route


JPEG_MAGIC = b"\xff\xd8"
PNG_MAGIC = b"\x89PNG"
SNIFF_BYTES = 8


class ImageFormat(str, Enum):
	JPEG = "jpeg"
	PNG = "png"
	OTHER_RASTER = "other_raster"


def sniff_format(data: bytes) -> ImageFormat:
	"""Classify ``data`` from its leading bytes. Unknown magic is OTHER_RASTER, never an error."""
	head = bytes(data[:SNIFF_BYTES])
	if head.startswith(JPEG_MAGIC):
		return ImageFormat.JPEG
	if head.startswith(PNG_MAGIC):
		return ImageFormat.PNG
	return ImageFormat.OTHER_RASTER


def route_for(fmt: ImageFormat) -> Route:
	return Route.JPEG if fmt is ImageFormat.JPEG else Route.RASTER
