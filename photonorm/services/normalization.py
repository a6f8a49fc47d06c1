from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from photonorm.services.backends import exif_parser
from photonorm.services.decode import decode
from photonorm.services.encoding import encode_jpeg, validate_output_size, write_output
from photonorm.services.errors import (
	ErrorCode,
	OpenFailure,
	PipelineError,
	Stage,
	UnknownFailure,
	UnpackFailure,
	UnsupportedFormat,
)
from photonorm.services.file_types import is_image_file, is_raw_file
from photonorm.services.format_sniffer import route_for, sniff_format
from photonorm.services.image_utils import normalize_geometry
from photonorm.services.metadata import (
	RAW_LABEL,
	apply_raw_capture,
	extract_source_metadata,
	label_for,
	reconcile_output_metadata,
)
from photonorm.services.metadata_record import ImageMetadata
from photonorm.services.policy import (
	JpegVariant,
	Route,
	max_output_bytes_for,
	quality_for,
	reduction_for,
)
from photonorm.services.raster import RasterBuffer

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray, memoryview]
Destination = Union[str, Path, bytearray, None]

_STAGE_ORDER: List[Stage] = list(Stage)


@dataclass
class NormalizeResult:
	code: ErrorCode
	metadata: ImageMetadata
	jpeg: bytes = b""
	message: str = ""
	stage: Optional[Stage] = None

	@property
	def ok(self) -> bool:
		return self.code is ErrorCode.SUCCESS

	def to_dict(self) -> Dict[str, Any]:
		return {
			"code": int(self.code),
			"error": self.code.name,
			"message": self.message,
			"stage": self.stage.value if self.stage else None,
			"metadata": self.metadata.to_dict(),
		}


@dataclass
class PipelineRun:
	"""Forward-only state tracker for one image."""

	stage: Stage = Stage.START
	history: List[Stage] = field(default_factory=lambda: [Stage.START])

	def advance(self, stage: Stage) -> None:
		if _STAGE_ORDER.index(stage) <= _STAGE_ORDER.index(self.stage):
			raise RuntimeError(f"illegal transition {self.stage.value} -> {stage.value}")
		self.stage = stage
		self.history.append(stage)


def _load(source: Source) -> bytes:
	if isinstance(source, (bytes, bytearray, memoryview)):
		data = bytes(source)
	else:
		try:
			data = Path(source).read_bytes()
		except OSError as e:
			raise OpenFailure(f"Failed to open input file {source}: {e}") from e
	if not data:
		raise OpenFailure("Empty input")
	return data


def _dng_hint(err: UnpackFailure, filename: Optional[str]) -> UnpackFailure:
	if filename and filename.lower().endswith(".dng"):
		err.message += " (this .dng may be a non-standard mobile-device DNG variant)"
		err.args = (err.message,)
	return err


def _run(
	source: Source,
	destination: Destination,
	*,
	raw: bool,
	variant: JpegVariant = JpegVariant.FULL,
	filename: Optional[str] = None,
) -> NormalizeResult:
	run = PipelineRun()
	record = ImageMetadata()
	default_model = record.camera_model
	color_filter = 0
	live: Optional[RasterBuffer] = None
	try:
		data = _load(source)
		if raw:
			route = Route.RAW
			default_model = RAW_LABEL
		else:
			fmt = sniff_format(data)
			route = route_for(fmt)
			default_model = label_for(fmt)
		record = ImageMetadata.with_label(default_model)
		run.advance(Stage.SNIFFED)

		try:
			decoded = decode(data, route, variant)
		except UnpackFailure as e:
			raise _dng_hint(e, filename)
		live = decoded.buffer
		record.set_raw_dimensions(decoded.source_width, decoded.source_height)
		run.advance(Stage.DECODED)

		source_exif = None
		if route is Route.JPEG:
			source_exif = exif_parser.parse(data)
			extract_source_metadata(record, source_exif)
		elif route is Route.RAW and decoded.raw_info is not None:
			apply_raw_capture(record, decoded.raw_info)
			color_filter = decoded.raw_info.color_filter
		run.advance(Stage.METADATA_EXTRACTED)

		live = normalize_geometry(
			live,
			record.orientation,
			reduction_for(route, variant),
			correct_orientation=route is Route.JPEG,
		)
		run.advance(Stage.GEOMETRY_NORMALIZED)
		out_w, out_h = live.width, live.height

		exif_bytes = exif_parser.sanitized_exif_bytes(source_exif, out_w, out_h) if source_exif else None
		encoded = encode_jpeg(live, quality_for(route, variant), exif_bytes)
		live.release()
		live = None
		run.advance(Stage.ENCODED)

		validate_output_size(encoded, max_output_bytes_for(route))
		run.advance(Stage.VALIDATED)

		if route is Route.JPEG:
			reconcile_output_metadata(record, exif_parser.parse(encoded))
		record.finalize(out_w, out_h, color_filter=color_filter, default_model=default_model)
		if destination is not None:
			write_output(encoded, destination)
		run.advance(Stage.DONE)
		logger.info(
			"Normalized %s via %s: %s, %d bytes",
			filename or "<bytes>", route.value, record.formatted_dimensions(), len(encoded),
		)
		return NormalizeResult(code=ErrorCode.SUCCESS, metadata=record.frozen_copy(), jpeg=encoded, stage=run.stage)
	except PipelineError as e:
		return _failed(record, run, e, default_model, color_filter)
	except Exception as e:
		logger.exception("Unexpected failure while normalizing %s", filename or "<bytes>")
		return _failed(record, run, UnknownFailure(f"Exception occurred: {e}"), default_model, color_filter)
	finally:
		if live is not None and not live.released:
			live.release()


def _failed(
	record: ImageMetadata,
	run: PipelineRun,
	err: PipelineError,
	default_model: str,
	color_filter: int,
) -> NormalizeResult:
	# no output was produced, so the delivered geometry is 0x0
	record.finalize(0, 0, color_filter=color_filter, default_model=default_model)
	return NormalizeResult(
		code=err.code,
		metadata=record.frozen_copy(),
		message=err.message,
		stage=err.stage or run.stage,
	)


def process_image_bytes(
	data: bytes,
	destination: Destination = None,
	*,
	variant: JpegVariant = JpegVariant.FULL,
	filename: Optional[str] = None,
) -> NormalizeResult:
	return _run(data, destination, raw=False, variant=variant, filename=filename)


def process_image_file(
	input_path: Union[str, Path],
	output_path: Destination,
	*,
	variant: JpegVariant = JpegVariant.FULL,
) -> NormalizeResult:
	return _run(Path(input_path), output_path, raw=False, variant=variant, filename=Path(input_path).name)


def convert_raw_bytes(
	data: bytes,
	destination: Destination = None,
	*,
	filename: Optional[str] = None,
) -> NormalizeResult:
	return _run(data, destination, raw=True, filename=filename)


def convert_raw_file(input_path: Union[str, Path], output_path: Destination) -> NormalizeResult:
	return _run(Path(input_path), output_path, raw=True, filename=Path(input_path).name)


def process_any_image(
	input_path: Union[str, Path],
	output_path: Destination,
	*,
	variant: JpegVariant = JpegVariant.FULL,
) -> NormalizeResult:
	"""Route by extension: RAW formats go through LibRaw, everything else is sniffed."""
	name = Path(input_path).name
	if is_raw_file(name):
		return convert_raw_file(input_path, output_path)
	if is_image_file(name):
		return process_image_file(input_path, output_path, variant=variant)
	record = ImageMetadata()
	err = UnsupportedFormat(
		f"Unsupported file format: '{name}'. Supported formats include RAW files "
		"(CR2, CR3, NEF, ARW, etc.) and image files (JPG, PNG, TIFF, etc.)"
	)
	return _failed(record, PipelineRun(), err, record.camera_model, 0)
