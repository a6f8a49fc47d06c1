from __future__ import annotations

import os
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Any

import numpy as np
import piexif
import pytest
import rawpy
from PIL import Image

# photonorm.main builds its app at import time; keep its logs out of the repo.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="photonorm-tests-"))
_CONFIG = _SESSION_DIR / "photonorm.toml"
_CONFIG.write_text(
    f'[logging]\nlevel = "debug"\ndir = "{(_SESSION_DIR / "logs").as_posix()}"\n',
    encoding="utf-8",
)
os.environ.setdefault("PHOTONORM_CONFIG", str(_CONFIG))


def make_jpeg(
    size: tuple[int, int],
    color: tuple[int, int, int] = (200, 30, 30),
    exif: dict[str, Any] | None = None,
    quality: int = 95,
) -> bytes:
    image = Image.new("RGB", size, color=color)
    buffer = BytesIO()
    kwargs: dict[str, Any] = {"format": "JPEG", "quality": quality}
    if exif is not None:
        kwargs["exif"] = piexif.dump(exif)
    image.save(buffer, **kwargs)
    return buffer.getvalue()


def make_png(size: tuple[int, int], mode: str = "RGB", color: Any = (10, 120, 240)) -> bytes:
    image = Image.new(mode, size, color=color)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def exif_dict(orientation: int | None = None, **zeroth: Any) -> dict[str, Any]:
    ifd0: dict[int, Any] = {}
    if orientation is not None:
        ifd0[piexif.ImageIFD.Orientation] = orientation
    names = {"make": piexif.ImageIFD.Make, "model": piexif.ImageIFD.Model}
    for key, value in zeroth.items():
        ifd0[names[key]] = value.encode("ascii")
    return {"0th": ifd0, "Exif": {}, "GPS": {}, "Interop": {}, "1st": {}, "thumbnail": None}


class FakeSizes:
    def __init__(self, raw_width: int, raw_height: int) -> None:
        self.raw_width = raw_width
        self.raw_height = raw_height


class FakeRawPy:
    """Stand-in for a rawpy.RawPy handle, recording which steps ran."""

    def __init__(self, image: np.ndarray, fail_on: str | None = None) -> None:
        self.image = image
        self.fail_on = fail_on
        self.calls: list[str] = []
        self.process_kwargs: dict[str, Any] = {}
        self.closed = False
        self.sizes = FakeSizes(image.shape[1] * 2, image.shape[0] * 2)
        self.num_colors = 3
        self.raw_pattern = np.array([[0, 1], [3, 2]])
        self.camera_whitebalance = [2.0, 1.0, 1.5, 0.0]

    def _step(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} exploded")

    def unpack(self) -> None:
        self._step("unpack")

    def dcraw_process(self, **kwargs: Any) -> None:
        self._step("process")
        rawpy.Params(**kwargs)
        self.process_kwargs = kwargs

    def dcraw_make_mem_image(self) -> np.ndarray:
        self._step("materialize")
        return self.image

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_raw(monkeypatch: pytest.MonkeyPatch):
    """Install a FakeRawPy factory in place of rawpy.imread; returns a setter."""
    from photonorm.services.backends import raw_decoder

    state: dict[str, Any] = {}

    def install(image: np.ndarray, fail_on: str | None = None, open_error: Exception | None = None) -> FakeRawPy:
        handle = FakeRawPy(image, fail_on=fail_on)

        def imread(_source: Any) -> FakeRawPy:
            state.setdefault("opened", 0)
            state["opened"] += 1
            if open_error is not None:
                raise open_error
            return handle

        monkeypatch.setattr(raw_decoder.rawpy, "imread", imread)
        state["handle"] = handle
        return handle

    install.state = state  # type: ignore[attr-defined]
    return install
