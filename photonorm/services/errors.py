from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, Callable, Optional, Type, TypeVar


T = TypeVar("T")


class ErrorCode(IntEnum):
	SUCCESS = 0
	OPEN_FAILURE = 1
	UNPACK_FAILURE = 2
	DECODE_FAILURE = 3
	WRITE_FAILURE = 4
	UNKNOWN_FAILURE = 5
	ENCODE_FAILURE = 6
	UNSUPPORTED_FORMAT = 7


class Stage(str, Enum):
	START = "start"
	SNIFFED = "sniffed"
	DECODED = "decoded"
	METADATA_EXTRACTED = "metadata_extracted"
	GEOMETRY_NORMALIZED = "geometry_normalized"
	ENCODED = "encoded"
	VALIDATED = "validated"
	DONE = "done"


class PipelineError(Exception):
	"""Base class for every failure the normalization pipeline reports."""

	code: ErrorCode = ErrorCode.UNKNOWN_FAILURE

	def __init__(self, message: str, stage: Optional[Stage] = None) -> None:
		super().__init__(message)
		self.message = message
		self.stage = stage


class OpenFailure(PipelineError):
	code = ErrorCode.OPEN_FAILURE


class UnpackFailure(PipelineError):
	code = ErrorCode.UNPACK_FAILURE


class DecodeFailure(PipelineError):
	code = ErrorCode.DECODE_FAILURE


class EncodeFailure(PipelineError):
	code = ErrorCode.ENCODE_FAILURE


class WriteFailure(PipelineError):
	code = ErrorCode.WRITE_FAILURE


class UnsupportedFormat(PipelineError):
	code = ErrorCode.UNSUPPORTED_FORMAT


class UnknownFailure(PipelineError):
	code = ErrorCode.UNKNOWN_FAILURE


def guarded_call(
	error_cls: Type[PipelineError],
	what: str,
	fn: Callable[..., Optional[T]],
	*args: Any,
	allow_none: bool = False,
	**kwargs: Any,
) -> T:
	"""Run a backend call and translate its failure style into ``error_cls``.

	Backends fail by raising (Pillow, rawpy, piexif) or by returning ``None``
	(OpenCV). Both become the same taxonomy exception; a ``PipelineError``
	raised further down is passed through untouched.
	"""
	try:
		result = fn(*args, **kwargs)
	except PipelineError:
		raise
	except Exception as e:
		raise error_cls(f"{what}: {e}") from e
	if result is None and not allow_none:
		raise error_cls(f"{what}: backend returned no data")
	return result
