from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import piexif

logger = logging.getLogger(__name__)

_CONTAINER_MAGIC = (b"\xff\xd8", b"II*\x00", b"MM\x00*")
_IFD_KEYS = ("0th", "Exif", "GPS", "Interop", "1st")


@dataclass
class ExifParseResult:
	ok: bool
	reason: str = ""
	make: str = ""
	model: str = ""
	software: str = ""
	date_taken: str = ""
	lens: str = ""
	artist: str = ""
	description: str = ""
	exposure_time: float = 0.0
	f_number: float = 0.0
	focal_length: float = 0.0
	focal_length_35mm: int = 0
	max_aperture: float = 0.0
	iso: int = 0
	orientation: int = 1
	exif_dict: Dict[str, Any] = field(default_factory=dict, repr=False)

	@classmethod
	def failure(cls, reason: str) -> "ExifParseResult":
		return cls(ok=False, reason=reason)


def _rational_to_float(x: Any) -> Optional[float]:
	if x is None:
		return None
	if isinstance(x, tuple) and len(x) == 2:
		num, den = x
		if not den:
			return None
		return float(num) / float(den)
	try:
		return float(x)
	except (TypeError, ValueError):
		return None


def _apex_to_time(apex: Optional[float]) -> Optional[float]:
	return 2.0 ** (-apex) if apex is not None else None


def _apex_to_fnumber(apex: Optional[float]) -> Optional[float]:
	return 2.0 ** (apex / 2.0) if apex is not None else None


def _bytes_to_str(v: Any) -> str:
	if v is None:
		return ""
	if isinstance(v, bytes):
		return v.decode("utf-8", errors="ignore").strip("\x00 ").strip()
	if isinstance(v, str):
		return v.strip("\x00 ").strip()
	return str(v)


def _to_int_safe(v: Any) -> Optional[int]:
	if v is None:
		return None
	if isinstance(v, int):
		return v
	if isinstance(v, (list, tuple)) and v:
		try:
			return int(v[0])
		except (TypeError, ValueError):
			return None
	if isinstance(v, bytes):
		s = v.decode("utf-8", errors="ignore").strip()
		try:
			return int(s) if s else None
		except ValueError:
			return None
	try:
		return int(v)
	except (TypeError, ValueError):
		return None


def parse(data: bytes) -> ExifParseResult:
	"""Parse EXIF from JPEG (APP1) or TIFF-structured bytes.

	Never raises: a missing segment or a malformed one is a failed result.
	"""
	if not data or not bytes(data[:4]).startswith(_CONTAINER_MAGIC):
		return ExifParseResult.failure("not a JPEG or TIFF container")
	try:
		ex = piexif.load(bytes(data))
	except Exception as e:
		return ExifParseResult.failure(f"malformed EXIF: {e}")
	if not any(ex.get(k) for k in _IFD_KEYS):
		return ExifParseResult.failure("no EXIF segment")

	zeroth = ex.get("0th", {})
	exif = ex.get("Exif", {})
	res = ExifParseResult(ok=True, exif_dict=ex)
	res.make = _bytes_to_str(zeroth.get(piexif.ImageIFD.Make))
	res.model = _bytes_to_str(zeroth.get(piexif.ImageIFD.Model))
	res.software = _bytes_to_str(zeroth.get(piexif.ImageIFD.Software))
	res.artist = _bytes_to_str(zeroth.get(piexif.ImageIFD.Artist))
	res.description = _bytes_to_str(zeroth.get(piexif.ImageIFD.ImageDescription))
	dt = exif.get(piexif.ExifIFD.DateTimeOriginal) or zeroth.get(piexif.ImageIFD.DateTime)
	res.date_taken = _bytes_to_str(dt)
	res.lens = _bytes_to_str(exif.get(piexif.ExifIFD.LensModel))

	exp = _rational_to_float(exif.get(piexif.ExifIFD.ExposureTime))
	if exp is None:
		exp = _apex_to_time(_rational_to_float(exif.get(piexif.ExifIFD.ShutterSpeedValue)))
	res.exposure_time = exp or 0.0
	fnum = _rational_to_float(exif.get(piexif.ExifIFD.FNumber))
	if fnum is None:
		fnum = _apex_to_fnumber(_rational_to_float(exif.get(piexif.ExifIFD.ApertureValue)))
	res.f_number = fnum or 0.0
	res.max_aperture = _apex_to_fnumber(_rational_to_float(exif.get(piexif.ExifIFD.MaxApertureValue))) or 0.0
	res.focal_length = _rational_to_float(exif.get(piexif.ExifIFD.FocalLength)) or 0.0
	res.focal_length_35mm = _to_int_safe(exif.get(piexif.ExifIFD.FocalLengthIn35mmFilm)) or 0
	res.iso = _to_int_safe(exif.get(piexif.ExifIFD.ISOSpeedRatings)) or 0
	res.orientation = _to_int_safe(zeroth.get(piexif.ImageIFD.Orientation)) or 1
	return res


def sanitized_exif_bytes(result: ExifParseResult, width: int, height: int) -> Optional[bytes]:
	"""Serialize the parsed EXIF for embedding into an already-upright output.

	Orientation is reset to 1, pixel dimensions follow the output and the
	embedded thumbnail is dropped. Returns None when there is nothing to embed
	or the source EXIF cannot be re-serialized.
	"""
	if not result.ok or not result.exif_dict:
		return None
	ex = copy.deepcopy(result.exif_dict)
	ex.setdefault("0th", {})[piexif.ImageIFD.Orientation] = 1
	exif = ex.setdefault("Exif", {})
	exif[piexif.ExifIFD.PixelXDimension] = int(width)
	exif[piexif.ExifIFD.PixelYDimension] = int(height)
	ex["1st"] = {}
	ex["thumbnail"] = None
	try:
		return piexif.dump(ex)
	except Exception as e:
		logger.warning("Source EXIF could not be re-serialized, output will carry none: %s", e)
		return None
