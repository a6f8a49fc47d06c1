"""
Convert Folder - batch normalization to JPEG

Converts every supported image in a folder (RAW and standard formats),
writing <stem>.jpg per success plus report.csv and metadata.json.
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from photonorm.config.loader import load_config
from photonorm.logging.setup import setup_logging
from photonorm.services.file_types import is_supported_file
from photonorm.services.metadata import write_metadata_json
from photonorm.services.normalization import process_any_image
from photonorm.services.policy import JpegVariant
from photonorm.services.upload_pipeline import output_name

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "filename", "status", "code", "error", "message", "camera_make", "camera_model",
    "output_width", "output_height", "bytes", "seconds",
]


def list_image_files(folder: Path) -> List[Path]:
    return sorted([p for p in folder.iterdir() if p.is_file() and is_supported_file(p.name)])


def convert_folder(input_dir: Path, output_dir: Path, variant: JpegVariant = JpegVariant.FULL) -> pd.DataFrame:
    input_dir = input_dir.resolve()
    output_dir = output_dir.resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    image_paths = list_image_files(input_dir)
    if not image_paths:
        raise SystemExit(f"No images found in: {input_dir}")

    rows: List[Dict[str, Any]] = []
    records: List[Dict[str, Any]] = []
    taken: set = set()
    for p in image_paths:
        out_path = output_dir / output_name(p, taken)
        start = time.perf_counter()
        res = process_any_image(p, out_path, variant=variant)
        elapsed = time.perf_counter() - start
        if res.ok:
            logger.info("%s -> %s (took %.2fs)", p.name, out_path.name, elapsed)
        else:
            logger.error("%s failed: %s (took %.2fs)", p.name, res.message, elapsed)
        md = res.metadata
        rows.append({
            "filename": p.name,
            "status": "ok" if res.ok else "failed",
            "code": int(res.code),
            "error": res.code.name,
            "message": res.message,
            "camera_make": md.camera_make,
            "camera_model": md.camera_model,
            "output_width": md.output_width,
            "output_height": md.output_height,
            "bytes": len(res.jpeg),
            "seconds": round(elapsed, 4),
        })
        records.append({"filename": p.name, **res.to_dict()})

    report = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    report.to_csv(output_dir / "report.csv", index=False)
    write_metadata_json({"images": records}, output_dir / "metadata.json")
    return report


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Normalize a folder of images (JPEG, PNG, RAW, ...) to JPEG")
    parser.add_argument("--input", required=True, help="Input folder")
    parser.add_argument("--output", required=True, help="Output folder for JPEGs, report.csv and metadata.json")
    parser.add_argument("--variant", choices=[v.value for v in JpegVariant], help="JPEG re-compression variant")
    parser.add_argument("--config", help="TOML config file (default: $PHOTONORM_CONFIG or photonorm.toml)")
    args = parser.parse_args(argv)

    config = load_config(Path(args.config) if args.config else None)
    setup_logging(Path(config["logging"]["dir"]), level=config["logging"]["level"])
    variant = JpegVariant(args.variant or config["pipeline"]["jpeg_variant"])

    report = convert_folder(Path(args.input), Path(args.output), variant=variant)
    failed = int((report["status"] != "ok").sum())
    print(f"Converted {len(report) - failed}/{len(report)} images -> {Path(args.output) / 'report.csv'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
