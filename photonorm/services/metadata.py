from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from photonorm.services.backends.exif_parser import ExifParseResult
from photonorm.services.backends.raw_decoder import RawCaptureInfo
from photonorm.services.format_sniffer import ImageFormat
from photonorm.services.metadata_record import ImageMetadata, clip_camera_text

logger = logging.getLogger(__name__)

JPEG_LABEL = "JPEG Image"
RAW_LABEL = "RAW Image"
RASTER_LABELS = {
	ImageFormat.PNG: "PNG->JPEG Conversion",
	ImageFormat.OTHER_RASTER: "Image->JPEG Conversion",
}


def label_for(fmt: ImageFormat) -> str:
	if fmt is ImageFormat.JPEG:
		return JPEG_LABEL
	return RASTER_LABELS[fmt]


def apply_exif(record: ImageMetadata, parsed: ExifParseResult, source: str) -> bool:
	"""Overlay every value ``parsed`` actually carries onto ``record``."""
	if not parsed.ok:
		return False
	if parsed.make:
		record.camera_make = clip_camera_text(parsed.make)
	if parsed.model:
		record.camera_model = clip_camera_text(parsed.model)
	for attr, value in (
		("software", parsed.software),
		("date_taken", parsed.date_taken),
		("lens", parsed.lens),
		("artist", parsed.artist),
		("description", parsed.description),
		("iso_speed", parsed.iso),
		("shutter", parsed.exposure_time),
		("aperture", parsed.f_number),
		("focal_length", parsed.focal_length),
		("focal_length_35mm", parsed.focal_length_35mm),
		("max_aperture", parsed.max_aperture),
	):
		if value:
			setattr(record, attr, value)
	record.metadata_source = source
	return True


def extract_source_metadata(record: ImageMetadata, parsed: ExifParseResult) -> None:
	if apply_exif(record, parsed, "exif:source"):
		record.orientation = parsed.orientation
		logger.debug("Source EXIF: make=%r model=%r iso=%d", record.camera_make, record.camera_model, record.iso_speed)
	else:
		logger.info("No EXIF metadata found in JPEG (%s)", parsed.reason)


def reconcile_output_metadata(record: ImageMetadata, parsed: ExifParseResult) -> None:
	"""Second pass against the encoded JPEG; what it carries takes precedence."""
	if not apply_exif(record, parsed, "exif:output"):
		logger.debug("Output JPEG carries no EXIF (%s), keeping %s metadata", parsed.reason, record.metadata_source)


def apply_raw_capture(record: ImageMetadata, info: RawCaptureInfo) -> None:
	if info.make:
		record.camera_make = clip_camera_text(info.make)
	if info.model:
		record.camera_model = clip_camera_text(info.model)
	record.software = info.software
	record.date_taken = info.date_taken
	record.lens = info.lens
	record.artist = info.artist
	record.description = info.description
	record.iso_speed = info.iso
	record.shutter = info.shutter
	record.aperture = info.aperture
	record.focal_length = info.focal_length
	record.focal_length_35mm = info.focal_length_35mm
	record.max_aperture = info.max_aperture
	record.cam_mul = list(info.cam_mul)
	record.set_raw_dimensions(info.raw_width, info.raw_height)
	record.metadata_source = "raw"


def write_metadata_json(metadata: Dict[str, Any], out_path: Path) -> str:
	out_path.parent.mkdir(parents=True, exist_ok=True)
	with out_path.open("w", encoding="utf-8") as f:
		json.dump(metadata, f, indent=2)
	return str(out_path)
