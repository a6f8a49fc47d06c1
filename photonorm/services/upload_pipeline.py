from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Set

from photonorm.services.metadata import write_metadata_json
from photonorm.services.normalization import process_any_image
from photonorm.services.policy import JpegVariant
from photonorm.services.status_store import write_status

logger = logging.getLogger(__name__)


def output_name(src: Path, taken: Set[str]) -> str:
	name = src.stem + ".jpg"
	n = 1
	while name in taken:
		name = f"{src.stem}_{n}.jpg"
		n += 1
	taken.add(name)
	return name


def run_pipeline(
	job_id: str,
	files_meta: List[Dict[str, Any]],
	data_dir: Path,
	jobs_dir: Path,
	variant: JpegVariant = JpegVariant.FULL,
) -> None:
	try:
		# 1) Save originals to <data_dir>/input/<job_id>/
		write_status(jobs_dir, job_id, {"job_id": job_id, "status": "saving", "step": "Save Images"})
		in_dir = data_dir / "input" / job_id
		in_dir.mkdir(parents=True, exist_ok=True)
		saved = []
		for fm in files_meta:
			p = in_dir / Path(fm["filename"]).name
			with p.open("wb") as f:
				f.write(fm["data"])
			saved.append(p)

		# 2) Normalize each image to <data_dir>/output/<job_id>/<stem>.jpg
		write_status(jobs_dir, job_id, {"job_id": job_id, "status": "normalizing", "step": "Normalize Images"})
		out_dir = data_dir / "output" / job_id
		records: List[Dict[str, Any]] = []
		taken: Set[str] = set()
		for p in saved:
			out_path = out_dir / output_name(p, taken)
			res = process_any_image(p, out_path, variant=variant)
			entry = {"filename": p.name, **res.to_dict()}
			if res.ok:
				entry["output"] = str(out_path)
			else:
				logger.error("Job %s: %s failed at %s: %s", job_id, p.name, entry["stage"], res.message)
			records.append(entry)

		# 3) Metadata JSON for the whole job
		metadata_path = write_metadata_json({"images": records}, out_dir / "metadata.json")
		succeeded = sum(1 for r in records if r["code"] == 0)

		write_status(jobs_dir, job_id, {
			"job_id": job_id,
			"status": "completed",
			"step": "Done",
			"metadata": metadata_path,
			"succeeded": succeeded,
			"failed": len(records) - succeeded,
			"outputs": [r["output"] for r in records if "output" in r],
			"errors": [
				{"filename": r["filename"], "error": r["error"], "message": r["message"]}
				for r in records if r["code"] != 0
			],
		})
	except Exception as e:
		logger.exception("Job %s aborted", job_id)
		write_status(jobs_dir, job_id, {"job_id": job_id, "status": "error", "error": str(e)})
