import json
from pathlib import Path

import pandas as pd
import pytest

from preview_pipeline.scripts.convert_folder import REPORT_COLUMNS, convert_folder, list_image_files

from conftest import make_jpeg, make_png


def test_convert_folder_writes_jpegs_and_report(tmp_path: Path) -> None:
    src = tmp_path / "in"
    src.mkdir()
    (src / "a.jpg").write_bytes(make_jpeg((16, 16)))
    (src / "a.png").write_bytes(make_png((16, 16)))
    (src / "broken.png").write_bytes(b"nope")
    (src / "notes.txt").write_text("skip me")
    out = tmp_path / "out"

    report = convert_folder(src, out)

    assert list(report.columns) == REPORT_COLUMNS
    assert list(report["filename"]) == ["a.jpg", "a.png", "broken.png"]
    assert list(report["status"]) == ["ok", "ok", "failed"]
    assert (out / "a.jpg").exists()
    assert (out / "a_1.jpg").exists()
    assert not (out / "broken.jpg").exists()

    on_disk = pd.read_csv(out / "report.csv")
    assert len(on_disk) == 3
    records = json.loads((out / "metadata.json").read_text(encoding="utf-8"))["images"]
    assert records[2]["error"] == "DECODE_FAILURE"


def test_empty_folder_exits(tmp_path: Path) -> None:
    (tmp_path / "readme.md").write_text("no images here")
    assert list_image_files(tmp_path) == []
    with pytest.raises(SystemExit):
        convert_folder(tmp_path, tmp_path / "out")
