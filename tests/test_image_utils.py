import numpy as np
import pytest

from photonorm.services.image_utils import (
    apply_exif_orientation,
    downscale_nearest_half,
    normalize_geometry,
    rotate_quarter_turns,
)
from photonorm.services.policy import Reduction
from photonorm.services.raster import RasterBuffer


def _gradient(width: int, height: int) -> np.ndarray:
    ys, xs = np.mgrid[0:height, 0:width]
    return np.stack([xs % 256, ys % 256, (xs + ys) % 256], axis=-1).astype(np.uint8)


def test_orientation_one_or_absent_is_a_no_op() -> None:
    pixels = _gradient(6, 4)
    for orientation in (1, None, 2, 5, 7, 42, "bogus"):
        buf = RasterBuffer(pixels)
        out = apply_exif_orientation(buf, orientation)
        assert out is buf
        assert not buf.released
        assert np.array_equal(out.pixels, pixels)


def test_orientation_six_rotates_clockwise_and_swaps_dimensions() -> None:
    pixels = _gradient(6, 4)
    buf = RasterBuffer(pixels)
    out = apply_exif_orientation(buf, 6)

    assert (out.width, out.height) == (4, 6)
    assert buf.released
    # top-left of the upright image is the source's bottom-left
    assert np.array_equal(out.pixels[0, 0], pixels[3, 0])
    assert np.array_equal(out.pixels[0, 3], pixels[0, 0])


def test_orientation_eight_and_three() -> None:
    pixels = _gradient(6, 4)
    ccw = apply_exif_orientation(RasterBuffer(pixels), 8)
    assert (ccw.width, ccw.height) == (4, 6)
    assert np.array_equal(ccw.pixels[0, 0], pixels[0, 5])

    flipped = apply_exif_orientation(RasterBuffer(pixels), 3)
    assert (flipped.width, flipped.height) == (6, 4)
    assert np.array_equal(flipped.pixels, pixels[::-1, ::-1])


def test_four_quarter_turns_restore_original_layout() -> None:
    pixels = _gradient(7, 3)
    buf = RasterBuffer(pixels)
    for _ in range(4):
        buf = rotate_quarter_turns(buf, -1)
    assert (buf.width, buf.height) == (7, 3)
    assert np.array_equal(buf.pixels, pixels)


def test_nearest_half_samples_even_coordinates() -> None:
    pixels = _gradient(100, 50)
    buf = RasterBuffer(pixels)
    out = downscale_nearest_half(buf)

    assert (out.width, out.height) == (50, 25)
    assert buf.released
    for x, y in [(0, 0), (10, 3), (49, 24)]:
        assert np.array_equal(out.pixels[y, x], pixels[2 * y, 2 * x])


def test_nearest_half_odd_and_tiny_sizes() -> None:
    out = downscale_nearest_half(RasterBuffer(_gradient(5, 3)))
    assert (out.width, out.height) == (2, 1)
    out = downscale_nearest_half(RasterBuffer(_gradient(1, 1)))
    assert (out.width, out.height) == (1, 1)


def test_normalize_geometry_strategies() -> None:
    pixels = _gradient(8, 4)
    same = normalize_geometry(RasterBuffer(pixels), 1, Reduction.NONE)
    assert (same.width, same.height) == (8, 4)

    decoded_small = normalize_geometry(RasterBuffer(pixels), 1, Reduction.DECODE_TIME_HALF)
    assert (decoded_small.width, decoded_small.height) == (8, 4)

    halved = normalize_geometry(RasterBuffer(pixels), 6, Reduction.NEAREST_HALF, correct_orientation=False)
    assert (halved.width, halved.height) == (4, 2)

    rotated = normalize_geometry(RasterBuffer(pixels), 6, Reduction.NONE)
    assert (rotated.width, rotated.height) == (4, 8)


def test_raster_buffer_release_rules() -> None:
    buf = RasterBuffer.allocate(3, 2)
    assert buf.nbytes == 18
    buf.release()
    with pytest.raises(RuntimeError):
        buf.release()
    with pytest.raises(RuntimeError):
        _ = buf.pixels


def test_raster_buffer_rejects_non_rgb() -> None:
    with pytest.raises(ValueError):
        RasterBuffer(np.zeros((2, 2, 4), dtype=np.uint8))
    with pytest.raises(ValueError):
        RasterBuffer(np.zeros((2, 2, 3), dtype=np.uint16))
