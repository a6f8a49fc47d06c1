from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from photonorm.services.backends import jpeg_codec
from photonorm.services.backends.jpeg_codec import JpegHeader
from photonorm.services.backends.raster_decoder import RasterDecoder
from photonorm.services.backends.raw_decoder import RawCaptureInfo, RawDecoder, RawDecodeParams
from photonorm.services.errors import (
	DecodeFailure,
	OpenFailure,
	UnpackFailure,
	UnsupportedFormat,
	guarded_call,
)
from photonorm.services.policy import JpegVariant, Route
from photonorm.services.raster import RasterBuffer

logger = logging.getLogger(__name__)


@dataclass
class DecodedImage:
	buffer: RasterBuffer
	source_width: int
	source_height: int
	source_channels: int = 3
	jpeg_header: Optional[JpegHeader] = None
	raw_info: Optional[RawCaptureInfo] = None

	@property
	def width(self) -> int:
		return self.buffer.width

	@property
	def height(self) -> int:
		return self.buffer.height


def decode_jpeg(data: bytes, variant: JpegVariant = JpegVariant.FULL) -> DecodedImage:
	header = guarded_call(DecodeFailure, "Failed to read JPEG header", jpeg_codec.read_header, data)
	quarter = variant is JpegVariant.QUARTER
	pixels = guarded_call(DecodeFailure, "Failed to decompress JPEG", jpeg_codec.decompress, data, scale_half=quarter)
	buf = RasterBuffer(pixels)
	logger.debug(
		"JPEG %dx%d (subsampling=%s, colorspace=%s) decoded to %dx%d",
		header.width, header.height, header.subsampling, header.colorspace, buf.width, buf.height,
	)
	return DecodedImage(buffer=buf, source_width=header.width, source_height=header.height, jpeg_header=header)


def decode_raster(data: bytes) -> DecodedImage:
	decoder = RasterDecoder()
	out = decoder.decode(data, force_channels=3)
	if out is None:
		raise DecodeFailure(f"Failed to decode image: {decoder.last_failure_reason()}")
	buf = RasterBuffer(out.pixels)
	logger.debug("Raster decoded: %dx%d with %d channels", out.width, out.height, out.channels)
	return DecodedImage(buffer=buf, source_width=out.width, source_height=out.height, source_channels=out.channels)


def _check_raw_image(img: np.ndarray) -> None:
	if img.ndim != 3 or img.shape[2] != 3:
		raise UnsupportedFormat(f"Unsupported image format: {img.shape[2] if img.ndim == 3 else 1} colors")
	if img.dtype != np.uint8:
		raise UnsupportedFormat(f"Unsupported image format: {img.dtype.itemsize * 8} bits")


def decode_raw(data: bytes, params: Optional[RawDecodeParams] = None) -> DecodedImage:
	start = time.perf_counter()
	with RawDecoder(params) as decoder:
		guarded_call(OpenFailure, "Failed to open file", decoder.open, data, allow_none=True)
		guarded_call(UnpackFailure, "Failed to unpack RAW data", decoder.unpack, allow_none=True)
		guarded_call(DecodeFailure, "Failed to process image", decoder.process, allow_none=True)
		logger.debug("LibRaw processing time: %.3f seconds", time.perf_counter() - start)
		info = guarded_call(DecodeFailure, "Failed to read capture info", decoder.capture_info)
		img = guarded_call(DecodeFailure, "Failed to materialize image", decoder.materialize_image)
		_check_raw_image(img)
		buf = RasterBuffer(img)
	return DecodedImage(
		buffer=buf,
		source_width=info.raw_width or buf.width,
		source_height=info.raw_height or buf.height,
		raw_info=info,
	)


def decode(data: bytes, route: Route, variant: JpegVariant = JpegVariant.FULL) -> DecodedImage:
	if route is Route.JPEG:
		return decode_jpeg(data, variant)
	if route is Route.RAW:
		return decode_raw(data)
	return decode_raster(data)
