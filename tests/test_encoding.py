from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from PIL import Image, JpegImagePlugin

from photonorm.services.backends import jpeg_codec
from photonorm.services.encoding import encode_jpeg, validate_output_size, write_output
from photonorm.services.errors import EncodeFailure, ErrorCode, WriteFailure
from photonorm.services.raster import RasterBuffer


def test_solid_color_round_trip_keeps_size_and_color() -> None:
    pixels = np.zeros((37, 53, 3), dtype=np.uint8)
    pixels[...] = (40, 160, 220)
    data = encode_jpeg(RasterBuffer(pixels), 90)

    assert data[:2] == b"\xff\xd8"
    decoded = jpeg_codec.decompress(data)
    assert decoded.shape == (37, 53, 3)
    mean = decoded.reshape(-1, 3).mean(axis=0)
    assert np.all(np.abs(mean - np.array([40, 160, 220])) < 4)


def test_encoder_uses_444_subsampling() -> None:
    pixels = np.full((16, 16, 3), 128, dtype=np.uint8)
    data = encode_jpeg(RasterBuffer(pixels), 75)
    with Image.open(BytesIO(data)) as img:
        assert JpegImagePlugin.get_sampling(img) == 0
    assert jpeg_codec.read_header(data).subsampling == 0


def test_encoder_does_not_release_the_buffer() -> None:
    buf = RasterBuffer(np.zeros((4, 4, 3), dtype=np.uint8))
    encode_jpeg(buf, 90)
    assert not buf.released


def test_bad_quality_is_an_encode_failure() -> None:
    with pytest.raises(EncodeFailure) as info:
        encode_jpeg(RasterBuffer(np.zeros((4, 4, 3), dtype=np.uint8)), 0)
    assert info.value.code is ErrorCode.ENCODE_FAILURE


def test_size_ceiling() -> None:
    validate_output_size(b"x" * 10, None)
    validate_output_size(b"x" * 10, 10)
    with pytest.raises(WriteFailure) as info:
        validate_output_size(b"x" * (2 * 1024 * 1024 + 1), 2 * 1024 * 1024)
    assert "exceeds the 2MB limit" in str(info.value)


def test_write_output_to_file_and_buffer(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out.jpg"
    write_output(b"\xff\xd8data", target)
    assert target.read_bytes() == b"\xff\xd8data"
    assert [p.name for p in target.parent.iterdir()] == ["out.jpg"]

    sink = bytearray(b"old contents that are longer")
    write_output(b"new", sink)
    assert sink == bytearray(b"new")


def test_write_output_failure_leaves_nothing_behind(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(WriteFailure):
        write_output(b"data", blocker / "out.jpg")
