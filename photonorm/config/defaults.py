"""
Default configuration values.
"""

from __future__ import annotations

DEFAULTS: dict[str, object] = {
	"logging": {"level": "info", "dir": "logs"},
	"storage": {"data_dir": "data", "jobs_dir": "jobs"},
	"pipeline": {"jpeg_variant": "full"},
}
