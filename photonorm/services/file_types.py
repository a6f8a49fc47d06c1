"""
Extension based file classification used by the outer surfaces to pick the
RAW entry point. Content sniffing for the image entry point lives in
format_sniffer.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

RAW_EXTS = {
	".raw", ".cr2", ".cr3", ".nef", ".dng", ".arw", ".raf", ".rw2", ".orf", ".pef",
	".sr2", ".srf", ".srw", ".3fr", ".fff", ".mef", ".mrw", ".x3f", ".dcr", ".kdc",
	".iiq", ".rwl", ".gpr", ".cap", ".erf", ".mdc", ".mos", ".ptx", ".r3d",
}
SUPPORTED_IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".bmp", ".webp"}

PathLike = Union[str, Path]


def _suffix(filename: PathLike) -> str:
	return Path(str(filename)).suffix.lower()


def is_raw_file(filename: PathLike) -> bool:
	return _suffix(filename) in RAW_EXTS


def is_image_file(filename: PathLike) -> bool:
	return _suffix(filename) in SUPPORTED_IMAGE_EXTS


def is_supported_file(filename: PathLike) -> bool:
	return is_raw_file(filename) or is_image_file(filename)


def get_file_type(filename: PathLike) -> str:
	if is_raw_file(filename):
		return "RAW"
	if is_image_file(filename):
		return "Image"
	return "Unknown"


def can_process_file(input_path: PathLike) -> bool:
	return is_supported_file(Path(str(input_path)).name)


def get_file_info(input_path: PathLike) -> str:
	kind = get_file_type(Path(str(input_path)).name)
	if kind == "RAW":
		return "RAW file (will be processed with LibRaw)"
	if kind == "Image":
		return "Standard image file (will be decoded and re-encoded as JPEG)"
	return "Unsupported file format"
