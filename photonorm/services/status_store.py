from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Any


def _status_path(jobs_dir: Path, job_id: str) -> Path:
	return jobs_dir / f"{job_id}.json"


def write_status(jobs_dir: Path, job_id: str, data: Dict[str, Any]) -> None:
	jobs_dir.mkdir(parents=True, exist_ok=True)
	# rename keeps readers from ever seeing a half-written status file
	tmp_path = _status_path(jobs_dir, job_id).with_suffix(".json.tmp")
	with tmp_path.open("w", encoding="utf-8") as f:
		json.dump(data, f, indent=2)
	tmp_path.replace(_status_path(jobs_dir, job_id))


def read_status(jobs_dir: Path, job_id: str) -> Dict[str, Any]:
	status_path = _status_path(jobs_dir, job_id)
	if not status_path.exists():
		return {"job_id": job_id, "status": "unknown"}
	with status_path.open("r", encoding="utf-8") as f:
		return json.load(f)
