from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from photonorm.services.file_types import is_raw_file
from photonorm.services.normalization import NormalizeResult, convert_raw_bytes, process_image_bytes
from photonorm.services.policy import JpegVariant
from photonorm.services.status_store import read_status, write_status
from photonorm.services.upload_pipeline import run_pipeline


router = APIRouter(prefix="/pipeline", tags=["normalize"])


def _slugify(text: str) -> str:
	return "".join(ch if (ch.isalnum() or ch in ("-", "_")) else "-" for ch in text).strip("-_").lower()


def _config(request: Request) -> Dict[str, Any]:
	return request.app.state.config


def _variant(value: str) -> JpegVariant:
	try:
		return JpegVariant(value.lower())
	except ValueError:
		raise HTTPException(status_code=400, detail=f"unknown variant {value!r}, expected 'full' or 'quarter'")


def _normalize_bytes(data: bytes, filename: str, variant: JpegVariant) -> NormalizeResult:
	if is_raw_file(filename):
		return convert_raw_bytes(data, filename=filename)
	return process_image_bytes(data, variant=variant, filename=filename)


@router.post("/normalize", summary="Normalize a single image to JPEG")
async def normalize(
	request: Request,
	file: UploadFile = File(...),
	variant: str = Form(""),
):
	jpeg_variant = _variant(variant or _config(request)["pipeline"]["jpeg_variant"])
	data = await file.read()
	filename = file.filename or "image"
	# decode and encode are CPU-bound; keep them off the event loop
	res = await run_in_threadpool(_normalize_bytes, data, filename, jpeg_variant)
	if not res.ok:
		return JSONResponse(status_code=422, content=res.to_dict())
	return Response(
		content=res.jpeg,
		media_type="image/jpeg",
		headers={"X-Image-Metadata": json.dumps(res.metadata.to_dict())},
	)


@router.post("/upload", summary="Upload images and normalize them in the background")
async def upload(
	request: Request,
	background_tasks: BackgroundTasks,
	files: List[UploadFile] = File(...),
	variant: str = Form(""),
):
	config = _config(request)
	jpeg_variant = _variant(variant or config["pipeline"]["jpeg_variant"])
	files_meta = []
	for f in files:
		data = await f.read()
		files_meta.append({"filename": f.filename or "image.jpg", "data": data})
	filenames = [m["filename"] for m in files_meta]
	# Human-readable job_id: "<first_filename_stem>_<ddmmyyyy_HHMMSS>"
	first_stem = _slugify(Path(filenames[0]).stem) if filenames else "job"
	job_id = f"{first_stem or 'job'}_{datetime.now().strftime('%d%m%Y_%H%M%S')}"
	jobs_dir = Path(config["storage"]["jobs_dir"])
	data_dir = Path(config["storage"]["data_dir"])
	write_status(jobs_dir, job_id, {"job_id": job_id, "status": "queued", "step": "Queued"})
	background_tasks.add_task(run_pipeline, job_id, files_meta, data_dir, jobs_dir, jpeg_variant)
	return {
		"job_id": job_id,
		"status": "queued",
		"num_files": len(files_meta),
		"filenames": filenames,
		"status_endpoint": f"/pipeline/status/{job_id}",
		"result_endpoint": f"/pipeline/result/{job_id}",
	}


@router.get("/status/{job_id}", summary="Get job status")
def status(request: Request, job_id: str):
	return read_status(Path(_config(request)["storage"]["jobs_dir"]), job_id)


@router.get("/result/{job_id}", summary="Get job results")
def result(request: Request, job_id: str):
	data = read_status(Path(_config(request)["storage"]["jobs_dir"]), job_id)
	if data.get("status") != "completed":
		return {"job_id": job_id, "status": data.get("status"), "message": "not completed yet"}
	return {
		"job_id": job_id,
		"metadata": data.get("metadata"),
		"succeeded": data.get("succeeded", 0),
		"failed": data.get("failed", 0),
		"outputs": data.get("outputs", []),
		"errors": data.get("errors", []),
	}
