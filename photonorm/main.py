from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from photonorm.config.loader import load_config
from photonorm.logging.setup import setup_logging
from photonorm.routers.normalize_images import router as normalize_router


def create_app(config_path: Optional[Path] = None, configure_logging: bool = True) -> FastAPI:
	config = load_config(config_path)
	if configure_logging:
		setup_logging(Path(config["logging"]["dir"]), level=config["logging"]["level"])

	app = FastAPI(title="PhotoNorm - Image Normalization API", version="0.1.0")
	app.state.config = config

	# CORS (adjust origins in production)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=False,
		allow_methods=["*"],
		allow_headers=["*"],
		expose_headers=["X-Image-Metadata"],
	)

	# Routers
	app.include_router(normalize_router)

	return app


app = create_app()


if __name__ == "__main__":
	# Local dev server: uvicorn photonorm.main:app --reload
	import uvicorn

	uvicorn.run("photonorm.main:app", host="0.0.0.0", port=8000, reload=True)
