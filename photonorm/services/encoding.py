from __future__ import annotations

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Optional, Union

from photonorm.services.backends import jpeg_codec
from photonorm.services.errors import EncodeFailure, WriteFailure, guarded_call
from photonorm.services.raster import RasterBuffer

logger = logging.getLogger(__name__)


def encode_jpeg(buf: RasterBuffer, quality: int, exif: Optional[bytes] = None) -> bytes:
	start = time.perf_counter()
	data = guarded_call(EncodeFailure, "Failed to compress JPEG", jpeg_codec.compress, buf.pixels, quality, exif)
	logger.debug("JPEG encode at q%d: %d bytes in %.3f seconds", quality, len(data), time.perf_counter() - start)
	return data


def validate_output_size(data: bytes, max_bytes: Optional[int]) -> None:
	if max_bytes is not None and len(data) > max_bytes:
		raise WriteFailure(f"JPEG size {len(data)} bytes exceeds the {max_bytes // (1024 * 1024)}MB limit")


def write_output(data: bytes, destination: Union[str, Path, bytearray]) -> None:
	"""Deliver the JPEG. Files are written to a temp sibling and renamed into place."""
	if isinstance(destination, bytearray):
		destination[:] = data
		return
	out_path = Path(destination)
	try:
		out_path.parent.mkdir(parents=True, exist_ok=True)
		fd, tmp_name = tempfile.mkstemp(prefix=f".{out_path.name}.", suffix=".tmp", dir=str(out_path.parent))
	except OSError as e:
		raise WriteFailure(f"Failed to open output file {out_path}: {e}") from e
	try:
		with os.fdopen(fd, "wb") as f:
			f.write(data)
		os.replace(tmp_name, out_path)
	except OSError as e:
		Path(tmp_name).unlink(missing_ok=True)
		raise WriteFailure(f"Failed to write output file {out_path}: {e}") from e
