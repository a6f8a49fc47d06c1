"""
Process-wide logging for the service and the batch converter.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE = "photonorm.log"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"

# PIL traces every chunk it parses at debug level
QUIET_LOGGERS = ("PIL", "multipart", "python_multipart")


def setup_logging(
	log_dir: Path | None = None,
	level: str = "INFO",
	max_bytes: int = 5 * 1024 * 1024,
	backup_count: int = 3,
) -> Path:
	"""Attach a console handler and a rotating photonorm.log to the root logger.

	Calling it again replaces the handlers from the previous call instead of
	stacking new ones. Returns the log file path.
	"""
	log_dir = Path(log_dir or "logs")
	log_dir.mkdir(parents=True, exist_ok=True)
	log_path = log_dir / LOG_FILE

	file_handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
	file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
	console = logging.StreamHandler()
	console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

	root = logging.getLogger()
	for handler in list(root.handlers):
		if getattr(handler, "photonorm", False):
			root.removeHandler(handler)
			handler.close()
	for handler in (file_handler, console):
		handler.photonorm = True
		root.addHandler(handler)
	root.setLevel(level.upper())

	for name in QUIET_LOGGERS:
		logging.getLogger(name).setLevel(logging.WARNING)
	return log_path
