from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import numpy as np
from PIL import Image, JpegImagePlugin

# PIL subsampling ids: 0 = 4:4:4, 1 = 4:2:2, 2 = 4:2:0, -1 = unknown/grayscale
SUBSAMPLING_444 = 0


class JpegCodecError(Exception):
	pass


@dataclass(frozen=True)
class JpegHeader:
	width: int
	height: int
	subsampling: int
	colorspace: str


def _open(data: bytes) -> Image.Image:
	try:
		img = Image.open(BytesIO(data))
	except Exception as e:
		raise JpegCodecError(f"not a readable JPEG stream ({e})") from e
	if img.format != "JPEG":
		img.close()
		raise JpegCodecError(f"expected JPEG stream, got {img.format}")
	return img


def read_header(data: bytes) -> JpegHeader:
	with _open(data) as img:
		width, height = img.size
		return JpegHeader(
			width=width,
			height=height,
			subsampling=JpegImagePlugin.get_sampling(img),
			colorspace=img.mode,
		)


def decompress(data: bytes, scale_half: bool = False) -> np.ndarray:
	"""Decode to an HxWx3 uint8 RGB array.

	With ``scale_half`` the DCT-domain scaler decodes straight to half width
	and half height instead of resizing after a full decode.
	"""
	with _open(data) as img:
		if scale_half:
			w, h = img.size
			img.draft("RGB", (max(1, w // 2), max(1, h // 2)))
		try:
			img.load()
			rgb = img if img.mode == "RGB" else img.convert("RGB")
			return np.array(rgb, dtype=np.uint8)
		except Exception as e:
			raise JpegCodecError(f"failed to decompress JPEG ({e})") from e


def compress(pixels: np.ndarray, quality: int, exif: Optional[bytes] = None) -> bytes:
	if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] != 3:
		raise JpegCodecError(f"unsupported pixel layout {pixels.dtype} {pixels.shape}")
	if not 1 <= quality <= 100:
		raise JpegCodecError(f"quality out of range: {quality}")
	img = Image.fromarray(pixels)
	save_kwargs = {
		"format": "JPEG",
		"quality": quality,
		"subsampling": SUBSAMPLING_444,
	}
	if exif:
		save_kwargs["exif"] = exif
	out = BytesIO()
	try:
		img.save(out, **save_kwargs)
	except Exception as e:
		raise JpegCodecError(f"failed to compress JPEG ({e})") from e
	finally:
		img.close()
	return out.getvalue()
